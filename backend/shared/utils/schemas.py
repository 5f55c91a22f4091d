"""
Shared Pydantic schemas for orders, withdrawals, and menu items.

The output models double as the station's order snapshots: the offline
mirror stores them as JSON and the lifecycle rules mutate them in place.
"""

from decimal import Decimal
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

from shared.config.constants import Limits
from shared.utils import order_lifecycle


# =============================================================================
# Common Types
# =============================================================================

ItemStatusType = Literal["pending", "preparing", "ready", "served"]
OrderTypeType = Literal["dine-in", "take-out"]
PaymentMethodType = Literal["cash", "gcash", "split"]
OrderSourceType = Literal["in-house", "online"]
OnlinePaymentStatusType = Literal["pending", "confirmed"]
OrderStatusType = Literal["pending", "in_progress", "completed"]
WithdrawalTypeType = Literal["withdrawal", "purchase"]
SortField = Literal["created_at", "customer_name", "order_number"]
SortOrder = Literal["asc", "desc"]

Money = Decimal
Amount = Annotated[Decimal, Field(ge=0, max_digits=12, decimal_places=2)]


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
    code: str | None = None


class ActorInput(BaseModel):
    """Who performed an action."""

    name: str | None = Field(default=None, max_length=200)
    email: str | None = Field(default=None, max_length=255)

    def to_actor(self) -> order_lifecycle.Actor:
        return order_lifecycle.Actor(name=self.name, email=self.email)


# =============================================================================
# Order inputs
# =============================================================================


class OrderItemInput(BaseModel):
    """A line submitted with a new order or an appended wave."""

    id: str | None = Field(default=None, max_length=64)
    name: str = Field(min_length=1, max_length=Limits.MAX_NAME_LENGTH)
    price: Money = Field(ge=0, max_digits=12, decimal_places=2)
    quantity: int = Field(default=1, ge=Limits.MIN_QUANTITY, le=Limits.MAX_QUANTITY)
    item_type: OrderTypeType | None = None  # Defaults to the order's type
    note: str | None = Field(default=None, max_length=Limits.MAX_NOTE_LENGTH)


class OrderCreate(BaseModel):
    """
    New order from the order-taking collaborator.

    customer_name and items are checked by the order store rather than the
    schema so the offline path raises the same ValidationError.
    """

    id: str = Field(min_length=1, max_length=64)
    customer_name: str = Field(default="", max_length=Limits.MAX_NAME_LENGTH)
    order_type: OrderTypeType = "dine-in"
    items: list[OrderItemInput] = Field(default_factory=list)
    created_at: int | None = None  # Client epoch ms; server time if omitted
    source: OrderSourceType = "in-house"
    online_code: str | None = Field(default=None, max_length=64)
    branch_id: str | None = Field(default=None, max_length=64)
    order_taker_name: str | None = Field(default=None, max_length=200)
    order_taker_email: str | None = Field(default=None, max_length=255)


class AppendItemsRequest(BaseModel):
    """A second wave of items for an existing order."""

    id: str | None = Field(default=None, max_length=64)  # Client-chosen wave id for replay
    items: list[OrderItemInput] = Field(default_factory=list)
    created_at: int | None = None


class UpdateItemStatusRequest(BaseModel):
    status: ItemStatusType
    appended_id: str | None = None
    actor: ActorInput | None = None
    at: int | None = None  # Client epoch ms of the transition


class TogglePaymentRequest(BaseModel):
    """
    Payment block for the main order or one appended wave.
    is_paid omitted means flip the current flag.
    """

    is_paid: bool | None = None
    payment_method: PaymentMethodType | None = None
    cash_amount: Amount | None = None
    gcash_amount: Amount | None = None
    appended_id: str | None = None


class OrderUpdate(BaseModel):
    """Partial update of order header fields."""

    model_config = ConfigDict(extra="forbid")

    customer_name: str | None = Field(default=None, max_length=Limits.MAX_NAME_LENGTH)
    order_type: OrderTypeType | None = None
    order_taker_name: str | None = Field(default=None, max_length=200)
    order_taker_email: str | None = Field(default=None, max_length=255)


class AddNoteRequest(BaseModel):
    id: str | None = Field(default=None, max_length=64)
    content: str = Field(min_length=1, max_length=Limits.MAX_NOTE_LENGTH)
    author: ActorInput | None = None
    created_at: int | None = None


class OrderFilter(BaseModel):
    """Filters for listing orders."""

    is_paid: bool | None = None
    status: ItemStatusType | None = None  # Any item (main or appended) in this status
    customer_name: str | None = None  # Case-insensitive substring
    source: OrderSourceType | None = None
    branch_id: str | None = None
    limit: int | None = Field(default=None, ge=1, le=1000)
    sort_by: SortField = "created_at"
    sort_order: SortOrder = "desc"

    def is_empty(self) -> bool:
        """True when no filter narrows the result set."""
        return all(
            getattr(self, name) is None
            for name in ("is_paid", "status", "customer_name", "source", "branch_id", "limit")
        )


# =============================================================================
# Order outputs / snapshots
# =============================================================================


class OrderItemOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    price: Money
    quantity: int
    status: ItemStatusType = "pending"
    item_type: OrderTypeType = "dine-in"
    note: str | None = None
    preparing_at: int | None = None
    prepared_by: str | None = None
    prepared_by_email: str | None = None
    ready_at: int | None = None
    ready_by: str | None = None
    ready_by_email: str | None = None
    served_at: int | None = None
    served_by: str | None = None
    served_by_email: str | None = None


class AppendedOrderOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    items: list[OrderItemOutput] = Field(default_factory=list)
    created_at: int
    is_paid: bool = False
    payment_method: PaymentMethodType | None = None
    cash_amount: Money | None = None
    gcash_amount: Money | None = None

    @computed_field
    @property
    def subtotal(self) -> Money:
        return order_lifecycle.items_subtotal(self.items)


class OrderNoteOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    content: str
    created_at: int
    created_by: str | None = None
    created_by_email: str | None = None


class OrderOutput(BaseModel):
    """Full order snapshot with derived totals."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    order_number: int | None = None  # None until the server assigns one
    customer_name: str
    created_at: int
    order_type: OrderTypeType = "dine-in"
    items: list[OrderItemOutput] = Field(default_factory=list)
    appended_orders: list[AppendedOrderOutput] = Field(default_factory=list)
    notes: list[OrderNoteOutput] = Field(default_factory=list)
    is_paid: bool = False
    payment_method: PaymentMethodType | None = None
    cash_amount: Money | None = None
    gcash_amount: Money | None = None
    source: OrderSourceType = "in-house"
    online_code: str | None = None
    online_payment_status: OnlinePaymentStatusType | None = None
    branch_id: str | None = None
    order_taker_name: str | None = None
    order_taker_email: str | None = None
    all_items_served_at: int | None = None

    @computed_field
    @property
    def total_amount(self) -> Money:
        return order_lifecycle.order_total(self)

    @computed_field
    @property
    def total_items(self) -> int:
        return order_lifecycle.total_item_count(self)

    @computed_field
    @property
    def order_status(self) -> OrderStatusType:
        return order_lifecycle.derive_order_status(self)

    @computed_field
    @property
    def is_fully_paid(self) -> bool:
        return order_lifecycle.is_fully_paid(self)

    @computed_field
    @property
    def is_fully_served(self) -> bool:
        return order_lifecycle.is_fully_served(self)

    @computed_field
    @property
    def pending_amount(self) -> Money:
        return order_lifecycle.pending_amount(self)


class DeleteResponse(BaseModel):
    id: str
    deleted: bool = True


# =============================================================================
# Withdrawals and menu
# =============================================================================


class WithdrawalCreate(BaseModel):
    """charged_to is one of the two owners or 'split' ('all' accepted as an alias)."""

    id: str | None = Field(default=None, max_length=64)
    type: WithdrawalTypeType = "withdrawal"
    amount: Money = Field(gt=0, max_digits=12, decimal_places=2)
    charged_to: str = Field(min_length=1, max_length=32)
    description: str = Field(min_length=1, max_length=Limits.MAX_DESCRIPTION_LENGTH)
    payment_method: Literal["cash", "gcash"] | None = None
    created_at: int | None = None
    created_by_name: str | None = Field(default=None, max_length=200)
    created_by_email: str | None = Field(default=None, max_length=255)


class WithdrawalOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: WithdrawalTypeType
    amount: Money
    charged_to: str
    description: str
    payment_method: str | None = None
    created_at: int
    created_by_name: str | None = None
    created_by_email: str | None = None


class MenuItemOutput(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    price: Money
    owner: str | None = None
    category: str | None = None
