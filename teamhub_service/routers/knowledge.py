from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import SessionContext, get_db, get_session_context, require_staff
from ..schemas.knowledge import (
    ArticleCreate,
    ArticleOpened,
    ArticleResponse,
    ArticleUpdate,
    CategoryCreate,
    CategoryResponse,
)
from ..services import knowledge_service

router = APIRouter(prefix="/knowledge", tags=["knowledge"])


@router.get("/categories", response_model=List[CategoryResponse])
async def list_categories(
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return await knowledge_service.list_categories(db)


@router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryCreate,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_staff),
):
    return await knowledge_service.create_category(db, payload)


@router.get("/articles", response_model=List[ArticleResponse])
async def list_articles(
    category_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    include_unpublished: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    return await knowledge_service.list_articles(
        db,
        category_id=category_id,
        search=search,
        include_unpublished=include_unpublished and ctx.is_staff,
    )


@router.post("/articles", response_model=ArticleResponse, status_code=status.HTTP_201_CREATED)
async def create_article(
    payload: ArticleCreate,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_staff),
):
    return await knowledge_service.create_article(db, ctx, payload)


@router.patch("/articles/{article_id}", response_model=ArticleResponse)
async def update_article(
    article_id: int,
    payload: ArticleUpdate,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(require_staff),
):
    return await knowledge_service.update_article(db, article_id, payload)


@router.post("/articles/{article_id}/open", response_model=ArticleOpened)
async def open_article(
    article_id: int,
    db: AsyncSession = Depends(get_db),
    ctx: SessionContext = Depends(get_session_context),
):
    """Counts as one view every time it is called."""
    return await knowledge_service.open_article(db, ctx, article_id)
