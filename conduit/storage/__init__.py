from conduit.storage.base import ArticleStorage, UserStorage
from conduit.storage.sql import SqlArticleStorage, SqlUserStorage

__all__ = ["ArticleStorage", "UserStorage", "SqlArticleStorage", "SqlUserStorage"]
