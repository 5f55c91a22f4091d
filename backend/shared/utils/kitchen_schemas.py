from typing import Literal, List

from pydantic import BaseModel, Field

from shared.utils.schemas import ActorInput, ItemStatusType, OrderTypeType

# Kitchen station split and presentational urgency
StationType = Literal["food", "drinks"]
UrgencyType = Literal["normal", "urgent", "critical"]
GroupStatusType = Literal["pending", "preparing", "ready"]


class KitchenInstance(BaseModel):
    """One order's contribution to a kitchen group."""
    order_id: str
    order_number: int | None = None
    customer_name: str
    item_id: str
    appended_id: str | None = None
    quantity: int
    created_at: int
    note: str | None = None


class KitchenGroup(BaseModel):
    """Identical items (name, status, service type) batched across orders."""
    key: str
    name: str
    status: GroupStatusType
    item_type: OrderTypeType
    category: str | None = None
    station: StationType = "food"
    total_quantity: int
    oldest_created_at: int
    instances: List[KitchenInstance]
    urgency: UrgencyType | None = None  # Pending groups only
    wait_seconds: int | None = None


class KitchenQueueOutput(BaseModel):
    """The prioritized queue as observed at generated_at."""
    generated_at: int
    groups: List[KitchenGroup]


class AdvanceGroupRequest(BaseModel):
    """Advance every instance of a group to a new status."""
    new_status: ItemStatusType
    actor: ActorInput | None = None


class ItemAdvanceResult(BaseModel):
    """Outcome of one instance's status update."""
    order_id: str
    item_id: str
    appended_id: str | None = None
    ok: bool
    error: str | None = None


class AdvanceGroupResult(BaseModel):
    """Per-instance outcome of a group advance; failures are not rolled back."""
    key: str
    new_status: ItemStatusType
    results: List[ItemAdvanceResult] = Field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.ok)
