from __future__ import annotations

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import SessionContext
from ..exceptions import EntityNotFoundException, NotFoundOrNotPermittedException
from ..metrics import ARTICLE_OPENS_TOTAL
from ..models import ArticleView, KnowledgeArticle, KnowledgeCategory, User
from ..schemas.knowledge import ArticleCreate, ArticleOpened, ArticleResponse, ArticleUpdate, CategoryCreate

logger = structlog.get_logger(__name__)


async def list_categories(db: AsyncSession) -> list[KnowledgeCategory]:
    res = await db.scalars(select(KnowledgeCategory).order_by(KnowledgeCategory.sort_order, KnowledgeCategory.id))
    return list(res.all())


async def create_category(db: AsyncSession, payload: CategoryCreate) -> KnowledgeCategory:
    category = KnowledgeCategory(**payload.model_dump())
    db.add(category)
    await db.commit()
    logger.info("knowledge_category_created", category_id=category.id)
    return category


def _article_query():
    return (
        select(KnowledgeArticle, KnowledgeCategory, User.full_name)
        .outerjoin(KnowledgeCategory, KnowledgeCategory.id == KnowledgeArticle.category_id)
        .outerjoin(User, User.id == KnowledgeArticle.author_id)
    )


def _article_response(article: KnowledgeArticle, category: KnowledgeCategory | None, author_name: str | None) -> ArticleResponse:
    return ArticleResponse(
        id=article.id,
        category_id=article.category_id,
        category_name=category.name if category else None,
        category_color=category.color if category else None,
        author_id=article.author_id,
        author_name=author_name,
        title=article.title,
        summary=article.summary,
        content=article.content,
        tags=list(article.tags or []),
        image_url=article.image_url,
        video_url=article.video_url,
        is_published=article.is_published,
        view_count=article.view_count,
        created_at=article.created_at,
    )


def matches_search(article: ArticleResponse, term: str) -> bool:
    term = term.strip().lower()
    if not term:
        return True
    haystack = [article.title, article.summary or "", *article.tags]
    return any(term in text.lower() for text in haystack)


async def list_articles(
    db: AsyncSession,
    *,
    category_id: int | None = None,
    search: str | None = None,
    include_unpublished: bool = False,
) -> list[ArticleResponse]:
    stmt = _article_query()
    if not include_unpublished:
        stmt = stmt.where(KnowledgeArticle.is_published.is_(True))
    if category_id is not None:
        stmt = stmt.where(KnowledgeArticle.category_id == category_id)
    stmt = stmt.order_by(KnowledgeArticle.created_at.desc(), KnowledgeArticle.id.desc())

    articles = [_article_response(*row) for row in (await db.execute(stmt)).all()]
    if search:
        # tags live in a JSON column, so the text match runs here for every backend
        articles = [a for a in articles if matches_search(a, search)]
    return articles


async def get_article(db: AsyncSession, article_id: int) -> ArticleResponse:
    row = (
        await db.execute(
            _article_query().where(KnowledgeArticle.id == article_id).execution_options(populate_existing=True)
        )
    ).first()
    if row is None:
        raise EntityNotFoundException("KnowledgeArticle", article_id)
    return _article_response(*row)


async def open_article(db: AsyncSession, ctx: SessionContext, article_id: int) -> ArticleOpened:
    """Record one open: a view row plus an atomic counter bump."""
    stmt = update(KnowledgeArticle).where(KnowledgeArticle.id == article_id)
    if not ctx.is_staff:
        stmt = stmt.where(KnowledgeArticle.is_published.is_(True))
    res = await db.execute(stmt.values(view_count=KnowledgeArticle.view_count + 1))
    if res.rowcount == 0:
        raise NotFoundOrNotPermittedException("KnowledgeArticle", article_id)
    db.add(ArticleView(article_id=article_id, user_id=ctx.user_id))
    await db.commit()
    ARTICLE_OPENS_TOTAL.inc()

    article = await get_article(db, article_id)
    unique_viewers = await db.scalar(
        select(func.count(func.distinct(ArticleView.user_id))).where(ArticleView.article_id == article_id)
    )
    return ArticleOpened(**article.model_dump(), unique_viewers=unique_viewers or 0)


async def _ensure_category(db: AsyncSession, category_id: int | None) -> None:
    if category_id is not None and await db.get(KnowledgeCategory, category_id) is None:
        raise EntityNotFoundException("KnowledgeCategory", category_id)


async def create_article(db: AsyncSession, ctx: SessionContext, payload: ArticleCreate) -> ArticleResponse:
    await _ensure_category(db, payload.category_id)
    article = KnowledgeArticle(**payload.model_dump(), author_id=ctx.user_id, view_count=0)
    db.add(article)
    await db.commit()
    logger.info("knowledge_article_created", article_id=article.id, is_published=article.is_published)
    return await get_article(db, article.id)


async def update_article(db: AsyncSession, article_id: int, payload: ArticleUpdate) -> ArticleResponse:
    values = payload.model_dump(exclude_unset=True)
    if "category_id" in values:
        await _ensure_category(db, values["category_id"])
    if values:
        res = await db.execute(update(KnowledgeArticle).where(KnowledgeArticle.id == article_id).values(**values))
        if res.rowcount == 0:
            raise NotFoundOrNotPermittedException("KnowledgeArticle", article_id)
        await db.commit()
        logger.info("knowledge_article_updated", article_id=article_id, fields=sorted(values))
    return await get_article(db, article_id)
