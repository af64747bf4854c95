"""Storage ports consumed by the service layer.

Every method is a single, independently atomic call. Bulk variants take a
sequence of identities and return structures keyed by identity so callers
can join in memory.
"""
from abc import ABC, abstractmethod
from collections.abc import Sequence

from conduit.models import Article, ArticleTag, Favorite, Tag, User
from conduit.schemas import ArticleRequest


class ArticleStorage(ABC):
    """Port for article, tag and favorite persistence."""

    # --- articles ---

    @abstractmethod
    async def get_articles(self, request: ArticleRequest) -> list[Article]:
        """Articles matching *request*, newest first."""
        ...

    @abstractmethod
    async def get_articles_by_followees(
        self, user_id: int, limit: int, offset: int
    ) -> list[Article]:
        """Articles written by the authors *user_id* follows, newest first."""
        ...

    @abstractmethod
    async def get_article_by_slug(self, slug: str) -> Article | None:
        ...

    @abstractmethod
    async def create_article(self, article: Article) -> Article:
        """Persist *article* and return it with its generated identity."""
        ...

    @abstractmethod
    async def update_article(self, article: Article, changes: dict) -> Article:
        """Apply *changes* to *article*, refresh ``updated_at`` and return it."""
        ...

    @abstractmethod
    async def delete_article_by_slug(self, slug: str) -> int:
        """Delete the article and its tag links / favorites; return rows removed."""
        ...

    # --- tags ---

    @abstractmethod
    async def find_tags_by_names(self, names: Sequence[str]) -> list[Tag]:
        ...

    @abstractmethod
    async def insert_and_get_tags(self, names: Sequence[str]) -> list[Tag]:
        """Insert one Tag per name and return them with identities."""
        ...

    @abstractmethod
    async def insert_article_tags(self, links: Sequence[ArticleTag]) -> None:
        ...

    @abstractmethod
    async def get_tag_names(self, article_ids: Sequence[int]) -> dict[int, list[str]]:
        """Map article id -> tag names, sorted; articles without tags are absent."""
        ...

    @abstractmethod
    async def get_all_tags(self) -> list[str]:
        ...

    # --- favorites ---

    @abstractmethod
    async def favorite_article(self, user_id: int, article_id: int) -> Favorite:
        """Insert the (user, article) Favorite, returning the existing row if present."""
        ...

    @abstractmethod
    async def unfavorite_article(self, user_id: int, article_id: int) -> None:
        ...

    @abstractmethod
    async def is_favorite_article_ids(
        self, user_id: int, article_ids: Sequence[int]
    ) -> list[int]:
        """Subset of *article_ids* that *user_id* has favorited."""
        ...

    @abstractmethod
    async def count_favorite(self, author_id: int) -> int:
        """Favorites received across every article written by *author_id*."""
        ...

    @abstractmethod
    async def count_favorites(self, author_ids: Sequence[int]) -> list[tuple[int, int]]:
        """``(author_id, count)`` pairs; authors with no favorites are omitted."""
        ...

    @abstractmethod
    async def count_article_favorites(
        self, article_ids: Sequence[int]
    ) -> list[tuple[int, int]]:
        """``(article_id, count)`` pairs; articles with no favorites are omitted."""
        ...


class UserStorage(ABC):
    """Port for user and follower persistence."""

    @abstractmethod
    async def get_user(self, user_id: int) -> User | None:
        ...

    @abstractmethod
    async def get_user_by_username(self, username: str) -> User | None:
        ...

    @abstractmethod
    async def get_users(self, user_ids: Sequence[int]) -> list[User]:
        ...

    @abstractmethod
    async def save_user(self, user: User) -> User:
        ...

    @abstractmethod
    async def follow(self, user_id: int, followee_id: int) -> None:
        ...

    @abstractmethod
    async def unfollow(self, user_id: int, followee_id: int) -> None:
        ...

    @abstractmethod
    async def is_following(self, user_id: int, followee_id: int) -> bool:
        ...
