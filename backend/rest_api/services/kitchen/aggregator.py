"""
Kitchen batch aggregation.

Flattens every non-served item of every open order into instances, groups
identical items (normalized name, status, service type) across orders, and
orders the groups by status priority then by the oldest waiting instance.

Pure functions over order snapshots; the REST endpoint builds the queue in
one pass and the station keeps an incremental view built from the same
pieces.
"""

from __future__ import annotations

from typing import Any, Iterable, Iterator

from shared.config.constants import (
    DRINK_CATEGORY_KEYWORDS,
    KITCHEN_PRIORITY,
    ItemStatus,
    StationCategory,
    Urgency,
)
from shared.config.settings import settings
from shared.utils.kitchen_schemas import KitchenGroup, KitchenInstance, KitchenQueueOutput
from shared.utils.order_lifecycle import now_ms as current_ms

GroupKey = tuple[str, str, str]


def normalize_name(name: str) -> str:
    return name.strip().lower()


def group_key(name: str, status: str, item_type: str) -> GroupKey:
    return normalize_name(name), status, item_type


def key_string(key: GroupKey) -> str:
    return "|".join(key)


def station_for_category(category: str | None) -> str:
    """Route a menu category to the drinks or food station; unknown goes to food."""
    if not category:
        return StationCategory.FOOD
    lowered = category.lower()
    if any(keyword in lowered for keyword in DRINK_CATEGORY_KEYWORDS):
        return StationCategory.DRINKS
    return StationCategory.FOOD


def classify_urgency(
    status: str,
    oldest_created_at: int,
    now_ms: int,
    urgent_after_minutes: int | None = None,
    critical_after_minutes: int | None = None,
) -> tuple[str | None, int | None]:
    """
    (urgency, wait_seconds) for a group; only pending groups are urgent.

    normal below urgent_after, urgent up to critical_after, critical at or
    above critical_after.
    """
    if status != ItemStatus.PENDING:
        return None, None

    urgent_after = settings.urgent_after_minutes if urgent_after_minutes is None else urgent_after_minutes
    critical_after = settings.critical_after_minutes if critical_after_minutes is None else critical_after_minutes

    wait_ms = max(0, now_ms - oldest_created_at)
    wait_minutes = wait_ms / 60_000
    if wait_minutes >= critical_after:
        urgency = Urgency.CRITICAL
    elif wait_minutes >= urgent_after:
        urgency = Urgency.URGENT
    else:
        urgency = Urgency.NORMAL
    return urgency, wait_ms // 1000


def iter_instances(order: Any) -> Iterator[tuple[GroupKey, str, KitchenInstance]]:
    """
    (group key, display name, instance) for every non-served item of an order.

    Main items are dated by the order, appended items by their wave.
    """
    parts = [(None, order.created_at, order.items)]
    parts.extend((wave.id, wave.created_at, wave.items) for wave in order.appended_orders)

    for appended_id, created_at, items in parts:
        for item in items:
            if item.status == ItemStatus.SERVED:
                continue
            yield group_key(item.name, item.status, item.item_type), item.name.strip(), KitchenInstance(
                order_id=order.id,
                order_number=order.order_number,
                customer_name=order.customer_name,
                item_id=item.id,
                appended_id=appended_id,
                quantity=item.quantity,
                created_at=created_at,
                note=item.note,
            )


def build_group(
    key: GroupKey,
    name: str,
    instances: list[KitchenInstance],
    categories: dict[str, str | None],
    now_ms: int,
) -> KitchenGroup:
    _, status, item_type = key
    oldest = min(instance.created_at for instance in instances)
    category = categories.get(key[0])
    urgency, wait_seconds = classify_urgency(status, oldest, now_ms)
    return KitchenGroup(
        key=key_string(key),
        name=name,
        status=status,
        item_type=item_type,
        category=category,
        station=station_for_category(category),
        total_quantity=sum(instance.quantity for instance in instances),
        oldest_created_at=oldest,
        instances=sorted(instances, key=lambda i: i.created_at),
        urgency=urgency,
        wait_seconds=wait_seconds,
    )


def sort_key(group: KitchenGroup) -> tuple[int, int]:
    return KITCHEN_PRIORITY[group.status], group.oldest_created_at


def category_index(menu_items: Iterable[Any]) -> dict[str, str | None]:
    """Menu category by normalized item name."""
    return {normalize_name(item.name): item.category for item in menu_items}


def build_kitchen_queue(
    orders: Iterable[Any],
    menu_items: Iterable[Any] = (),
    now_ms: int | None = None,
    station: str | None = None,
) -> KitchenQueueOutput:
    """Group and prioritize every open item; optionally keep one station only."""
    now = current_ms() if now_ms is None else now_ms
    categories = category_index(menu_items)

    buckets: dict[GroupKey, list[KitchenInstance]] = {}
    names: dict[GroupKey, str] = {}
    for order in orders:
        for key, name, instance in iter_instances(order):
            buckets.setdefault(key, []).append(instance)
            names.setdefault(key, name)

    groups = [build_group(key, names[key], instances, categories, now) for key, instances in buckets.items()]
    if station is not None:
        groups = [group for group in groups if group.station == station]
    groups.sort(key=sort_key)

    return KitchenQueueOutput(generated_at=now, groups=groups)
