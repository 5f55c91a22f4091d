"""
Centralized constants for the backend application.
Avoid magic strings and repeated constants.

Usage:
    from shared.config.constants import ItemStatus, PaymentMethod

    if item.status == ItemStatus.PENDING:
        ...
"""

from typing import Final

from shared.config.settings import settings


# =============================================================================
# Order item lifecycle
# Flow: pending → preparing → ready → served (forward only)
# =============================================================================


class ItemStatus:
    """Order item status constants."""

    PENDING: Final[str] = "pending"
    PREPARING: Final[str] = "preparing"
    READY: Final[str] = "ready"
    SERVED: Final[str] = "served"

    # Ordered by lifecycle position
    ALL: Final[list[str]] = [PENDING, PREPARING, READY, SERVED]
    OPEN: Final[list[str]] = [PENDING, PREPARING, READY]


ITEM_STATUS_RANK: Final[dict[str, int]] = {
    status: rank for rank, status in enumerate(ItemStatus.ALL)
}

# Kitchen queue priority tiers (served items never reach the queue)
KITCHEN_PRIORITY: Final[dict[str, int]] = {
    ItemStatus.PENDING: 0,
    ItemStatus.PREPARING: 1,
    ItemStatus.READY: 2,
}


class OrderStatus:
    """Derived order-level status."""

    PENDING: Final[str] = "pending"
    IN_PROGRESS: Final[str] = "in_progress"
    COMPLETED: Final[str] = "completed"


class OrderType:
    """Service type for orders and items."""

    DINE_IN: Final[str] = "dine-in"
    TAKE_OUT: Final[str] = "take-out"

    ALL: Final[list[str]] = [DINE_IN, TAKE_OUT]


class OrderSource:
    """Where an order was taken."""

    IN_HOUSE: Final[str] = "in-house"
    ONLINE: Final[str] = "online"


class OnlinePaymentStatus:
    """Payment confirmation state for online orders."""

    PENDING: Final[str] = "pending"
    CONFIRMED: Final[str] = "confirmed"


# =============================================================================
# Payments
# =============================================================================


class PaymentMethod:
    """Payment method constants."""

    CASH: Final[str] = "cash"
    GCASH: Final[str] = "gcash"
    SPLIT: Final[str] = "split"

    ALL: Final[list[str]] = [CASH, GCASH, SPLIT]


# =============================================================================
# Owners and ledger
# =============================================================================


class Owners:
    """The two fixed owners who split revenue."""

    OWNER_A: Final[str] = settings.owner_a_name
    OWNER_B: Final[str] = settings.owner_b_name
    SPLIT: Final[str] = "split"
    # Legacy alias for SPLIT accepted on withdrawals
    ALL_ALIAS: Final[str] = "all"

    BOTH: Final[tuple[str, str]] = (OWNER_A, OWNER_B)


class WithdrawalType:
    """Cash movement types recorded against an owner."""

    WITHDRAWAL: Final[str] = "withdrawal"
    PURCHASE: Final[str] = "purchase"

    ALL: Final[list[str]] = [WITHDRAWAL, PURCHASE]


class StationCategory:
    """Kitchen station split of the queue."""

    FOOD: Final[str] = "food"
    DRINKS: Final[str] = "drinks"


# Category names (lowercase substrings) routed to the drinks station
DRINK_CATEGORY_KEYWORDS: Final[tuple[str, ...]] = (
    "coffee",
    "tea",
    "drinks",
    "beverages",
    "juice",
    "smoothie",
    "frappe",
    "iced",
    "hot-drinks",
    "cold-drinks",
)


class Urgency:
    """Presentational urgency level of a pending kitchen group."""

    NORMAL: Final[str] = "normal"
    URGENT: Final[str] = "urgent"
    CRITICAL: Final[str] = "critical"


# =============================================================================
# Validation Constants
# =============================================================================


class Limits:
    """Validation limits."""

    MIN_QUANTITY: Final[int] = 1
    MAX_QUANTITY: Final[int] = 99

    MAX_NAME_LENGTH: Final[int] = 200
    MAX_NOTE_LENGTH: Final[int] = 500
    MAX_DESCRIPTION_LENGTH: Final[int] = 500

    # Pagination defaults
    DEFAULT_PAGE_SIZE: Final[int] = 20
    MAX_PAGE_SIZE: Final[int] = 200


# =============================================================================
# Error messages
# =============================================================================


class ErrorMessages:
    """User-facing error messages."""

    CUSTOMER_NAME_REQUIRED: Final[str] = "Customer name is required"
    ITEMS_REQUIRED: Final[str] = "At least one item is required"
    PAYMENT_BELOW_TOTAL: Final[str] = "Payment below total"
    NOT_ONLINE_ORDER: Final[str] = "Order is not an online order"


def validate_item_status(status: str) -> bool:
    """Validate that an item status is valid."""
    return status in ItemStatus.ALL


def validate_item_transition(current_status: str, new_status: str) -> bool:
    """
    Validate that an item status change does not move backward.

    Same-state and forward skips are valid.
    """
    return ITEM_STATUS_RANK[new_status] >= ITEM_STATUS_RANK[current_status]
