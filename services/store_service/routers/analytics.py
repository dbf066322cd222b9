"""Admin analytics router."""

from fastapi import APIRouter, Depends, Request
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.rate_limit import ai_limit
from libs.db.session import get_async_db
from services.store_service.routers._helpers import get_text_generator
from services.store_service.schemas import (
    AnalyticsAnswer,
    AnalyticsQuestion,
    SalesReport,
)
from services.store_service.services import analytics
from services.store_service.services.text_generation import TextGenerator
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/admin/analytics", tags=["admin-store"])


@router.get("", response_model=SalesReport)
async def get_sales_report(
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Revenue, customers, categories, products and monthly trends."""
    return await analytics.build_sales_report(db)


@router.post("/ask", response_model=AnalyticsAnswer)
@ai_limit
async def ask_about_sales(
    request: Request,
    question_in: AnalyticsQuestion,
    current_user: AuthUser = Depends(require_admin),
    generator: TextGenerator = Depends(get_text_generator),
    db: AsyncSession = Depends(get_async_db),
):
    """Answer a natural-language question about the sales report."""
    return await analytics.answer_question(db, generator, question_in.question)
