"""
Event Type Constants.

Order feed events published on Redis pub/sub after a committed mutation.
Receivers treat every event as an invalidation hint for the order it names.
"""

# =============================================================================
# Order lifecycle events
# =============================================================================

ORDER_CREATED = "ORDER_CREATED"
ORDER_UPDATED = "ORDER_UPDATED"  # Item status, payment, append, note, partial update
ORDER_DELETED = "ORDER_DELETED"

# =============================================================================
# Online order events
# =============================================================================

ONLINE_ORDER_CREATED = "ONLINE_ORDER_CREATED"
ONLINE_ORDER_CONFIRMED = "ONLINE_ORDER_CONFIRMED"

ALL_ORDER_EVENTS = frozenset({
    ORDER_CREATED,
    ORDER_UPDATED,
    ORDER_DELETED,
    ONLINE_ORDER_CREATED,
    ONLINE_ORDER_CONFIRMED,
})
