from fastapi import Depends, Header, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from conduit.config import settings
from conduit.database import get_db
from conduit.services.article_service import ArticleService
from conduit.storage import SqlArticleStorage, SqlUserStorage


class PaginationParams:
    """
    Reusable FastAPI dependency that parses ``limit`` / ``offset`` query
    parameters.

    Usage in a router::

        @router.get("/articles/feed")
        async def feed(pagination: PaginationParams = Depends(PaginationParams)):
            ...

    Attributes
    ----------
    limit:
        Maximum number of items to return, clamped to
        ``settings.MAX_PAGE_SIZE``.  None lets the service apply its own
        default for the endpoint.
    offset:
        Number of items to skip (minimum 0).
    """

    def __init__(
        self,
        limit: int | None = Query(
            None,
            ge=1,
            description="Number of items to return.",
        ),
        offset: int = Query(
            0,
            ge=0,
            description="Number of items to skip.",
        ),
    ) -> None:
        self.limit = min(limit, settings.MAX_PAGE_SIZE) if limit is not None else None
        self.offset = offset


# ---------------------------------------------------------------------------
# Current user
# ---------------------------------------------------------------------------
# Authentication happens upstream; the authenticating proxy forwards the
# caller's user id in the X-User-Id header.

def get_optional_user_id(x_user_id: int | None = Header(None)) -> int | None:
    return x_user_id


def get_current_user_id(user_id: int | None = Depends(get_optional_user_id)) -> int:
    if user_id is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user_id


# ---------------------------------------------------------------------------
# Storage / services bound to the request session
# ---------------------------------------------------------------------------

def get_user_storage(db: AsyncSession = Depends(get_db)) -> SqlUserStorage:
    return SqlUserStorage(db)


def get_article_service(db: AsyncSession = Depends(get_db)) -> ArticleService:
    return ArticleService(SqlArticleStorage(db), SqlUserStorage(db))
