# Services package.
#
#   article_service : ArticleService: composes storage lookups into
#                      article / feed / favorite response DTOs
#   user_service    : registration, lookup, profiles and follows
#
# Services talk to the storage ports in ``conduit.storage`` only; the
# router layer builds the SQL-backed storages from the request's session
# (see ``conduit.dependencies``) and so controls the transaction boundary.
