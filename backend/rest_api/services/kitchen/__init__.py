from .aggregator import (
    build_group,
    build_kitchen_queue,
    category_index,
    classify_urgency,
    group_key,
    iter_instances,
    key_string,
    normalize_name,
    sort_key,
    station_for_category,
)

__all__ = [
    "build_group",
    "build_kitchen_queue",
    "category_index",
    "classify_urgency",
    "group_key",
    "iter_instances",
    "key_string",
    "normalize_name",
    "sort_key",
    "station_for_category",
]
