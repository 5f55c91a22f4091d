"""
Pydantic schemas for the business-day and monthly sales reports.
"""

from decimal import Decimal

from pydantic import BaseModel, Field

from shared.utils.schemas import WithdrawalOutput


class ReportWindow(BaseModel):
    """Half-open [start_ms, end_ms) window in epoch milliseconds."""

    kind: str  # "business_day" or "calendar_month"
    label: str  # "2026-03-14" or "2026-03"
    start_ms: int
    end_ms: int
    timezone: str


class CategoryLine(BaseModel):
    name: str
    price: Decimal
    quantity: int
    total: Decimal


class OrderTakerSales(BaseModel):
    name: str
    email: str | None = None
    cash: Decimal = Decimal("0.00")
    gcash: Decimal = Decimal("0.00")
    total: Decimal = Decimal("0.00")
    order_count: int = 0


class SalesSummary(BaseModel):
    """
    Totals for one window, recomputed from raw orders and withdrawals.

    total_sales = total_cash + total_gcash
    net_sales = total_sales - (total_withdrawals + total_purchases)
    """

    window: ReportWindow
    order_count: int = 0
    items_by_category: dict[str, list[CategoryLine]] = Field(default_factory=dict)
    withdrawals: list[WithdrawalOutput] = Field(default_factory=list)
    purchases: list[WithdrawalOutput] = Field(default_factory=list)
    total_sales: Decimal = Decimal("0.00")
    total_cash: Decimal = Decimal("0.00")
    total_gcash: Decimal = Decimal("0.00")
    total_withdrawals: Decimal = Decimal("0.00")
    total_purchases: Decimal = Decimal("0.00")
    net_sales: Decimal = Decimal("0.00")
    sales_by_owner: dict[str, Decimal] = Field(default_factory=dict)
    withdrawals_by_owner: dict[str, Decimal] = Field(default_factory=dict)
    purchases_by_owner: dict[str, Decimal] = Field(default_factory=dict)
    net_by_owner: dict[str, Decimal] = Field(default_factory=dict)
    order_taker_sales: list[OrderTakerSales] = Field(default_factory=list)
    is_validated: bool = False
    validated_at: int | None = None
    validated_by_name: str | None = None


class DailyHistoryPage(BaseModel):
    """Business days with activity, newest first."""

    items: list[SalesSummary]
    page: int
    page_size: int
    total: int


class ValidateDayRequest(BaseModel):
    business_date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    validated_by_name: str | None = Field(default=None, max_length=200)
    validated_by_email: str | None = Field(default=None, max_length=255)
