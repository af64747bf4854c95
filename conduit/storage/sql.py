"""
SQLAlchemy implementations of the storage ports.

Design notes
------------
- Each method issues the minimum number of statements for its contract;
  bulk lookups use a single ``IN`` query and return plain dicts / pairs so
  the service layer never triggers per-row queries.
- Methods flush but do not commit; the transaction boundary is owned by
  the ``get_db`` dependency in the router layer.
- Empty id lists short-circuit without touching the database.
"""
from collections import defaultdict
from collections.abc import Sequence

from sqlalchemy import delete, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from conduit.models import Article, ArticleTag, Favorite, Follower, Tag, User, utcnow
from conduit.schemas import ArticleRequest
from conduit.storage.base import ArticleStorage, UserStorage

_NEWEST_FIRST = (desc(Article.created_at), desc(Article.id))


class SqlArticleStorage(ArticleStorage):
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    # ------------------------------------------------------------------
    # Articles
    # ------------------------------------------------------------------

    async def get_articles(self, request: ArticleRequest) -> list[Article]:
        q = select(Article)
        if request.tag:
            q = (
                q.join(ArticleTag, ArticleTag.article_id == Article.id)
                .join(Tag, Tag.id == ArticleTag.tag_id)
                .where(Tag.name == request.tag)
            )
        if request.author:
            author = aliased(User)
            q = q.join(author, author.id == Article.author_id).where(
                author.username == request.author
            )
        if request.favorited:
            favoriter = aliased(User)
            q = (
                q.join(Favorite, Favorite.favorited_id == Article.id)
                .join(favoriter, favoriter.id == Favorite.user_id)
                .where(favoriter.username == request.favorited)
            )
        q = q.order_by(*_NEWEST_FIRST).offset(request.offset).limit(request.limit)
        result = await self._db.execute(q)
        return list(result.scalars().all())

    async def get_articles_by_followees(
        self, user_id: int, limit: int, offset: int
    ) -> list[Article]:
        q = (
            select(Article)
            .join(Follower, Follower.followee_id == Article.author_id)
            .where(Follower.user_id == user_id)
            .order_by(*_NEWEST_FIRST)
            .offset(offset)
            .limit(limit)
        )
        result = await self._db.execute(q)
        return list(result.scalars().all())

    async def get_article_by_slug(self, slug: str) -> Article | None:
        result = await self._db.execute(select(Article).where(Article.slug == slug))
        return result.scalar_one_or_none()

    async def create_article(self, article: Article) -> Article:
        self._db.add(article)
        await self._db.flush()
        return article

    async def update_article(self, article: Article, changes: dict) -> Article:
        for field, value in changes.items():
            setattr(article, field, value)
        article.updated_at = utcnow()
        await self._db.flush()
        return article

    async def delete_article_by_slug(self, slug: str) -> int:
        article = await self.get_article_by_slug(slug)
        if article is None:
            return 0
        # Children first so the delete also works where FK cascades are off.
        await self._db.execute(delete(ArticleTag).where(ArticleTag.article_id == article.id))
        await self._db.execute(delete(Favorite).where(Favorite.favorited_id == article.id))
        await self._db.delete(article)
        await self._db.flush()
        return 1

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    async def find_tags_by_names(self, names: Sequence[str]) -> list[Tag]:
        if not names:
            return []
        result = await self._db.execute(select(Tag).where(Tag.name.in_(sorted(set(names)))))
        return list(result.scalars().all())

    async def insert_and_get_tags(self, names: Sequence[str]) -> list[Tag]:
        tags = [Tag(name=name) for name in names]
        if not tags:
            return []
        self._db.add_all(tags)
        await self._db.flush()
        return tags

    async def insert_article_tags(self, links: Sequence[ArticleTag]) -> None:
        if not links:
            return
        self._db.add_all(list(links))
        await self._db.flush()

    async def get_tag_names(self, article_ids: Sequence[int]) -> dict[int, list[str]]:
        if not article_ids:
            return {}
        q = (
            select(ArticleTag.article_id, Tag.name)
            .join(Tag, Tag.id == ArticleTag.tag_id)
            .where(ArticleTag.article_id.in_(sorted(set(article_ids))))
            .order_by(Tag.name)
        )
        names: dict[int, list[str]] = defaultdict(list)
        for article_id, name in (await self._db.execute(q)).all():
            names[article_id].append(name)
        return dict(names)

    async def get_all_tags(self) -> list[str]:
        result = await self._db.execute(select(Tag.name).order_by(Tag.name))
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Favorites
    # ------------------------------------------------------------------

    async def favorite_article(self, user_id: int, article_id: int) -> Favorite:
        existing = await self._db.execute(
            select(Favorite).where(
                Favorite.user_id == user_id, Favorite.favorited_id == article_id
            )
        )
        favorite = existing.scalar_one_or_none()
        if favorite is not None:
            return favorite
        favorite = Favorite(user_id=user_id, favorited_id=article_id)
        self._db.add(favorite)
        await self._db.flush()
        return favorite

    async def unfavorite_article(self, user_id: int, article_id: int) -> None:
        await self._db.execute(
            delete(Favorite).where(
                Favorite.user_id == user_id, Favorite.favorited_id == article_id
            )
        )

    async def is_favorite_article_ids(
        self, user_id: int, article_ids: Sequence[int]
    ) -> list[int]:
        if not article_ids:
            return []
        q = select(Favorite.favorited_id).where(
            Favorite.user_id == user_id, Favorite.favorited_id.in_(sorted(set(article_ids)))
        )
        return list((await self._db.execute(q)).scalars().all())

    async def count_favorite(self, author_id: int) -> int:
        q = (
            select(func.count(Favorite.id))
            .select_from(Favorite)
            .join(Article, Article.id == Favorite.favorited_id)
            .where(Article.author_id == author_id)
        )
        return (await self._db.execute(q)).scalar_one()

    async def count_favorites(self, author_ids: Sequence[int]) -> list[tuple[int, int]]:
        if not author_ids:
            return []
        q = (
            select(Article.author_id, func.count(Favorite.id))
            .select_from(Favorite)
            .join(Article, Article.id == Favorite.favorited_id)
            .where(Article.author_id.in_(sorted(set(author_ids))))
            .group_by(Article.author_id)
        )
        return [(author_id, count) for author_id, count in (await self._db.execute(q)).all()]

    async def count_article_favorites(
        self, article_ids: Sequence[int]
    ) -> list[tuple[int, int]]:
        if not article_ids:
            return []
        q = (
            select(Favorite.favorited_id, func.count(Favorite.id))
            .where(Favorite.favorited_id.in_(sorted(set(article_ids))))
            .group_by(Favorite.favorited_id)
        )
        return [(article_id, count) for article_id, count in (await self._db.execute(q)).all()]


class SqlUserStorage(UserStorage):
    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def get_user(self, user_id: int) -> User | None:
        return await self._db.get(User, user_id)

    async def get_user_by_username(self, username: str) -> User | None:
        result = await self._db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def get_users(self, user_ids: Sequence[int]) -> list[User]:
        if not user_ids:
            return []
        result = await self._db.execute(select(User).where(User.id.in_(sorted(set(user_ids)))))
        return list(result.scalars().all())

    async def save_user(self, user: User) -> User:
        self._db.add(user)
        await self._db.flush()
        return user

    async def follow(self, user_id: int, followee_id: int) -> None:
        if await self.is_following(user_id, followee_id):
            return
        self._db.add(Follower(user_id=user_id, followee_id=followee_id))
        await self._db.flush()

    async def unfollow(self, user_id: int, followee_id: int) -> None:
        await self._db.execute(
            delete(Follower).where(
                Follower.user_id == user_id, Follower.followee_id == followee_id
            )
        )

    async def is_following(self, user_id: int, followee_id: int) -> bool:
        q = select(func.count(Follower.id)).where(
            Follower.user_id == user_id, Follower.followee_id == followee_id
        )
        return (await self._db.execute(q)).scalar_one() > 0
