"""
Reports router - /api/reports/*
Sales summaries recomputed from raw orders and withdrawals on every request.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from shared.config.constants import Limits
from shared.infrastructure.db import get_db
from shared.utils.report_schemas import DailyHistoryPage, SalesSummary, ValidateDayRequest
from rest_api.services.domain.report_service import ReportService

router = APIRouter(prefix="/api/reports", tags=["reports"])


def _get_service(db: Session) -> ReportService:
    return ReportService(db)


@router.get("/daily", response_model=SalesSummary)
def daily_summary(
    date: str | None = Query(default=None, pattern=r"^\d{4}-\d{2}-\d{2}$", description="Business date; current day if omitted"),
    at: int | None = Query(default=None, description="Client epoch ms used to resolve the current day"),
    db: Session = Depends(get_db),
) -> SalesSummary:
    """
    Business-day summary, 08:00 to 01:00 venue time.
    Without a date the day is resolved from `at` (or server time).
    """
    return _get_service(db).daily_summary(business_date=date, at_ms=at)


@router.get("/daily/history", response_model=DailyHistoryPage)
def daily_history(
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=10, ge=1, le=Limits.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
) -> DailyHistoryPage:
    """Business days with activity, newest first."""
    return _get_service(db).daily_history(page=page, page_size=page_size)


@router.post("/daily/validate", response_model=SalesSummary)
def validate_day(body: ValidateDayRequest, db: Session = Depends(get_db)) -> SalesSummary:
    """Record an owner's sign-off on a business day."""
    return _get_service(db).validate_day(body)


@router.get("/monthly", response_model=SalesSummary)
def monthly_summary(
    year: int | None = Query(default=None, ge=2000, le=2100),
    month: int | None = Query(default=None, ge=1, le=12),
    at: int | None = None,
    db: Session = Depends(get_db),
) -> SalesSummary:
    """Calendar-month summary; the current month if year/month are omitted."""
    return _get_service(db).monthly_summary(year=year, month=month, at_ms=at)
