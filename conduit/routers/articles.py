from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from conduit.config import settings
from conduit.dependencies import (
    PaginationParams,
    get_article_service,
    get_current_user_id,
    get_optional_user_id,
)
from conduit.schemas import (
    ArticlePosted,
    ArticleRequest,
    ArticleUpdated,
    ForResponseArticle,
    ForResponseArticles,
)
from conduit.services.article_service import ArticleService

router = APIRouter(prefix="/api/v1/articles", tags=["articles"])

@router.get("", response_model=ForResponseArticles)
async def list_articles(
    tag: str | None = None,
    author: str | None = None,
    favorited: str | None = None,
    pagination: PaginationParams = Depends(),
    service: ArticleService = Depends(get_article_service),
):
    request = ArticleRequest(
        tag=tag,
        author=author,
        favorited=favorited,
        limit=pagination.limit or settings.DEFAULT_ARTICLE_LIMIT,
        offset=pagination.offset,
    )
    return await service.get_articles(request)

@router.get("/feed", response_model=ForResponseArticles)
async def feed_articles(
    pagination: PaginationParams = Depends(),
    user_id: int = Depends(get_current_user_id),
    service: ArticleService = Depends(get_article_service),
):
    return await service.get_feeds(user_id, pagination.limit, pagination.offset)

@router.post("", status_code=201, response_model=ForResponseArticle)
async def create_article(
    data: ArticlePosted,
    user_id: int = Depends(get_current_user_id),
    service: ArticleService = Depends(get_article_service),
):
    try:
        article = await service.create_article(user_id, data, user_id)
    except IntegrityError:
        raise HTTPException(
            status_code=409,
            detail="Article conflicts with an existing slug or an unknown author",
        )
    if article is None:
        raise HTTPException(status_code=404, detail="Author not found")
    return article

@router.get("/{slug}", response_model=ForResponseArticle)
async def get_article(
    slug: str,
    user_id: int | None = Depends(get_optional_user_id),
    service: ArticleService = Depends(get_article_service),
):
    article = await service.get_article_by_slug(slug, user_id)
    if article is None:
        raise HTTPException(status_code=404, detail="Article not found")
    return article

@router.put("/{slug}", response_model=ForResponseArticle)
async def update_article(
    slug: str,
    data: ArticleUpdated,
    user_id: int = Depends(get_current_user_id),
    service: ArticleService = Depends(get_article_service),
):
    try:
        article = await service.update_article_by_slug(slug, user_id, data)
    except IntegrityError:
        raise HTTPException(
            status_code=409,
            detail="Article conflicts with an existing slug or an unknown author",
        )
    if article is None:
        raise HTTPException(status_code=404, detail="Article not found")
    return article

@router.delete("/{slug}", status_code=204)
async def delete_article(slug: str, service: ArticleService = Depends(get_article_service)):
    await service.delete_article_by_slug(slug)

@router.post("/{slug}/favorite", response_model=ForResponseArticle)
async def favorite_article(
    slug: str,
    user_id: int = Depends(get_current_user_id),
    service: ArticleService = Depends(get_article_service),
):
    article = await service.favorite_article(user_id, slug)
    if article is None:
        raise HTTPException(status_code=404, detail="Article not found")
    return article

@router.delete("/{slug}/favorite", response_model=ForResponseArticle)
async def unfavorite_article(
    slug: str,
    user_id: int = Depends(get_current_user_id),
    service: ArticleService = Depends(get_article_service),
):
    article = await service.unfavorite_article(user_id, slug)
    if article is None:
        raise HTTPException(status_code=404, detail="Article not found")
    return article
