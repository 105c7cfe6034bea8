"""
Legacy calendar UID redirects.

Early invites were sent for duplicate events that were later merged. Replies to those
invites still carry the old event id in their UID. Keep this table explicit and
reviewable: alias event id -> canonical event id. Consulted once per inbound reply,
after parsing and before the event lookup.
"""
from collections.abc import Mapping

LEGACY_EVENT_REDIRECTS: Mapping[int, int] = {}


def resolve_legacy_event_id(event_id: int, redirects: Mapping[int, int] | None = None) -> int:
    table = LEGACY_EVENT_REDIRECTS if redirects is None else redirects
    return table.get(event_id, event_id)
