"""
Article service: the aggregation layer for the Article aggregate.

Design notes
------------
- Every response is re-derived from storage on each call: favorited flag,
  favorite count, tag list and author profile are never cached.
- Each operation is a short chain of awaited storage calls.  Later calls
  depend on earlier results (no article, no favorite lookup), so a missing
  article short-circuits to ``None`` before any dependent lookup is issued.
- Storage errors are not caught here; the first failing call aborts the
  whole operation and the ``get_db`` dependency rolls the transaction back.
- Independent lookups are still awaited one after another: the storages of
  one request share a single ``AsyncSession``, which does not allow
  overlapping statements.
- Authors are always rendered as a ``Profile`` with ``following=False``.
"""
import logging
import re
from collections.abc import Iterable, Sequence

from conduit.config import settings
from conduit.models import Article, ArticleTag, Tag, User, utcnow
from conduit.schemas import (
    ArticleForResponse,
    ArticlePosted,
    ArticleRequest,
    ArticleUpdated,
    ForResponseArticle,
    ForResponseArticles,
    Profile,
)
from conduit.serialization import iso8601, to_profile
from conduit.storage import ArticleStorage, UserStorage

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_WHITESPACE_RE = re.compile(r"\s")


def slugify(title: str) -> str:
    """Lower-case *title* and turn every whitespace character into ``-``."""
    return _WHITESPACE_RE.sub("-", title.lower())


def updated_fields(article: Article, patch: ArticleUpdated) -> dict:
    """
    Return the column values *article* should have after applying *patch*.

    Fields missing from the patch keep their current value.  The slug is
    always recomputed from the resulting title, changed or not.
    """
    title = patch.title if patch.title is not None else article.title
    return {
        "title": title,
        "slug": slugify(title),
        "description": (
            patch.description if patch.description is not None else article.description
        ),
        "body": patch.body if patch.body is not None else article.body,
    }


def _unique(ids: Iterable[int]) -> list[int]:
    return list(dict.fromkeys(ids))


def _to_response(
    article: Article,
    tags: Sequence[str],
    favorited: bool,
    favorites_count: int,
    author: Profile,
) -> ArticleForResponse:
    return ArticleForResponse(
        slug=article.slug,
        title=article.title,
        description=article.description,
        body=article.body,
        tag_list=list(tags),
        created_at=iso8601(article.created_at),
        updated_at=iso8601(article.updated_at),
        favorited=favorited,
        favorites_count=favorites_count,
        author=author,
    )


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class ArticleService:
    """Composes storage lookups into article response DTOs."""

    def __init__(self, article_storage: ArticleStorage, user_storage: UserStorage) -> None:
        self._articles = article_storage
        self._users = user_storage

    # ------------------------------------------------------------------
    # Lists
    # ------------------------------------------------------------------

    async def get_articles(self, request: ArticleRequest) -> ForResponseArticles:
        """
        Return the articles matching *request* with their authors and tags.

        Favorite state is not resolved for this listing: every item reports
        ``favorited=False`` and ``favoritesCount=0``.
        """
        articles = await self._articles.get_articles(request)
        authors = await self._authors_by_id(articles)
        tags = await self._articles.get_tag_names([a.id for a in articles])

        return ForResponseArticles(
            articles=[
                _to_response(
                    a,
                    tags.get(a.id, []),
                    favorited=False,
                    favorites_count=0,
                    author=to_profile(authors.get(a.author_id)),
                )
                for a in articles
            ],
            articles_count=len(articles),
        )

    async def get_feeds(
        self,
        user_id: int,
        limit: int | None = None,
        offset: int | None = None,
    ) -> ForResponseArticles:
        """
        Return articles by the authors *user_id* follows.

        ``favorited`` is membership in the set of these articles the user
        favorited; ``favoritesCount`` is the author's total favorite count,
        0 when the author has none.
        """
        limit = settings.DEFAULT_FEED_LIMIT if limit is None else limit
        offset = 0 if offset is None else offset

        articles = await self._articles.get_articles_by_followees(user_id, limit, offset)
        article_ids = [a.id for a in articles]
        favorites = set(await self._articles.is_favorite_article_ids(user_id, article_ids))
        favorite_counts = dict(
            await self._articles.count_favorites(_unique(a.author_id for a in articles))
        )
        authors = await self._authors_by_id(articles)
        tags = await self._articles.get_tag_names(article_ids)

        return ForResponseArticles(
            articles=[
                _to_response(
                    a,
                    tags.get(a.id, []),
                    favorited=a.id in favorites,
                    favorites_count=favorite_counts.get(a.author_id, 0),
                    author=to_profile(authors.get(a.author_id)),
                )
                for a in articles
            ],
            articles_count=len(articles),
        )

    # ------------------------------------------------------------------
    # Single article
    # ------------------------------------------------------------------

    async def create_article(
        self,
        author_id: int,
        draft: ArticlePosted,
        current_user_id: int | None = None,
    ) -> ForResponseArticle | None:
        """
        Persist *draft* for *author_id*, attach its tags and return the
        detail response.

        Returns None when the insert yields no identity or the author does
        not exist.
        """
        now = utcnow()
        article = await self._articles.create_article(
            Article(
                slug=slugify(draft.title),
                title=draft.title,
                description=draft.description,
                body=draft.body,
                author_id=author_id,
                created_at=now,
                updated_at=now,
            )
        )
        if article.id is None:
            logger.warning("Article insert returned no identity (slug=%r)", article.slug)
            return None

        tags = await self.create_tags(draft.tag_list)
        await self._articles.insert_article_tags(
            [ArticleTag(article_id=article.id, tag_id=tag.id) for tag in tags]
        )
        logger.info(
            "Created article id=%s slug=%r author_id=%s tags=%d",
            article.id, article.slug, author_id, len(tags),
        )

        author = await self._users.get_user(article.author_id)
        if author is None:
            return None

        favorited = False
        if current_user_id is not None:
            favorited = article.id in await self._articles.is_favorite_article_ids(
                current_user_id, [article.id]
            )
        counts = dict(await self._articles.count_article_favorites([article.id]))

        return ForResponseArticle(
            article=_to_response(
                article,
                sorted(tag.name for tag in tags),
                favorited=favorited,
                favorites_count=counts.get(article.id, 0),
                author=to_profile(author),
            )
        )

    async def get_article_by_slug(
        self, slug: str, user_id: int | None = None
    ) -> ForResponseArticle | None:
        """Return the detail response for *slug*, or None if it does not exist."""
        article = await self._articles.get_article_by_slug(slug)
        if article is None:
            logger.debug("Article slug=%r not found", slug)
            return None
        return await self._detail_response(article, user_id)

    async def update_article_by_slug(
        self, slug: str, user_id: int | None, patch: ArticleUpdated
    ) -> ForResponseArticle | None:
        """
        Apply *patch* to the article identified by *slug*.

        Returns None when the article does not exist; nothing is written
        in that case.
        """
        article = await self._articles.get_article_by_slug(slug)
        if article is None:
            return None

        article = await self._articles.update_article(article, updated_fields(article, patch))
        logger.info("Updated article id=%s slug=%r -> %r", article.id, slug, article.slug)
        return await self._detail_response(article, user_id)

    async def delete_article_by_slug(self, slug: str) -> None:
        removed = await self._articles.delete_article_by_slug(slug)
        logger.info("Deleted article slug=%r (rows=%d)", slug, removed)

    # ------------------------------------------------------------------
    # Favorites
    # ------------------------------------------------------------------

    async def favorite_article(self, user_id: int, slug: str) -> ForResponseArticle | None:
        """
        Record that *user_id* favorited *slug*.

        The author's favorite count is read before the insert and reported
        plus one, saving a second read.  Concurrent favorites of the same
        author's articles can make this figure drift from the stored count.
        """
        article = await self._articles.get_article_by_slug(slug)
        if article is None:
            return None

        favorite_count = await self._articles.count_favorite(article.author_id)
        favorite = await self._articles.favorite_article(user_id, article.id)
        author = await self._users.get_user(article.author_id)
        tags = await self._articles.get_tag_names([article.id])
        logger.info("User id=%s favorited article id=%s", user_id, article.id)

        return ForResponseArticle(
            article=_to_response(
                article,
                tags.get(article.id, []),
                favorited=favorite.favorited_id == article.id,
                favorites_count=favorite_count + 1,
                author=to_profile(author),
            )
        )

    async def unfavorite_article(self, user_id: int, slug: str) -> ForResponseArticle | None:
        """
        Remove the Favorite of *user_id* on *slug*.

        The response always reports ``favorited=False`` and
        ``favoritesCount=0``, whatever other users' favorites remain.
        """
        article = await self._articles.get_article_by_slug(slug)
        if article is None:
            return None

        await self._articles.unfavorite_article(user_id, article.id)
        author = await self._users.get_user(article.author_id)
        tags = await self._articles.get_tag_names([article.id])
        logger.info("User id=%s unfavorited article id=%s", user_id, article.id)

        return ForResponseArticle(
            article=_to_response(
                article,
                tags.get(article.id, []),
                favorited=False,
                favorites_count=0,
                author=to_profile(author),
            )
        )

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    async def create_tags(self, names: Sequence[str]) -> list[Tag]:
        """
        Resolve *names* to Tag rows, inserting only names not stored yet.

        Matching is case-sensitive.  The result has one Tag per distinct
        name, in no particular order.
        """
        if not names:
            return []
        existing = await self._articles.find_tags_by_names(names)
        new_names = set(names) - {tag.name for tag in existing}
        created = await self._articles.insert_and_get_tags(sorted(new_names)) if new_names else []
        if created:
            logger.debug("Inserted %d new tag(s): %s", len(created), sorted(new_names))
        return existing + created

    async def get_tags(self) -> list[str]:
        return await self._articles.get_all_tags()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _authors_by_id(self, articles: Sequence[Article]) -> dict[int, User]:
        users = await self._users.get_users(_unique(a.author_id for a in articles))
        return {u.id: u for u in users}

    async def _detail_response(
        self, article: Article, user_id: int | None
    ) -> ForResponseArticle:
        favorited = False
        if user_id is not None:
            favorited = article.id in await self._articles.is_favorite_article_ids(
                user_id, [article.id]
            )
        favorite_count = await self._articles.count_favorite(article.author_id)
        author = await self._users.get_user(article.author_id)
        tags = await self._articles.get_tag_names([article.id])

        return ForResponseArticle(
            article=_to_response(
                article,
                tags.get(article.id, []),
                favorited=favorited,
                favorites_count=favorite_count,
                author=to_profile(author),
            )
        )
