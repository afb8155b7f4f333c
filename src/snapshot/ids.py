"""Temporary and canonical record identifiers."""

import time
import uuid
from typing import Any

from shared_types import SyncState

TEMP_PREFIX = "local-"


def new_temp_id() -> str:
    """Issue a client-side id from the temporary namespace.

    Millisecond clock plus a random suffix, so two records created in the same
    millisecond still get distinct ids.
    """
    return f"{TEMP_PREFIX}{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


def coalesce_id(raw: dict[str, Any]) -> str | None:
    """Pick whichever identifier field a wire record used, as a string."""
    for key in ("id", "_id"):
        value = raw.get(key)
        if value is None or value == "":
            continue
        if isinstance(value, dict) and "$oid" in value:
            value = value["$oid"]
        return str(value)
    return None


def infer_sync_state(record_id: str) -> SyncState:
    """Classify an id read from a payload that carries no sync tag.

    Only used while parsing untagged data (remote payloads, snapshots written
    before the tag existed). Everything downstream reads the tag instead.
    """
    if record_id.startswith(TEMP_PREFIX):
        return SyncState.PENDING
    return SyncState.CONFIRMED
