"""
gatherKids: shared utilities.

Pure helpers used across the data-access core.  No imports from other
gatherkids modules.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Protocol


# ---------------------------------------------------------------------------
# Clocks
# ---------------------------------------------------------------------------

class Clock(Protocol):
    """A source of ISO-8601 timestamps."""

    def now_iso(self) -> str:
        ...


class SystemClock:
    """UTC wall clock, millisecond precision, ``Z`` suffix."""

    def now_iso(self) -> str:
        return utc_now_iso()


@dataclass
class FixedClock:
    """Clock that always returns the same instant (useful for tests)."""

    instant: str = "2025-01-01T00:00:00.000Z"

    def now_iso(self) -> str:
        return self.instant


def utc_now_iso() -> str:
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def _parse_iso(value: str) -> Optional[datetime]:
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def later_timestamp(candidate: str, previous: Optional[str]) -> str:
    """Return ``candidate`` unless ``previous`` is a later instant.

    Keeps ``updated_at`` monotonically non-decreasing when the local clock
    lags a timestamp written elsewhere.
    """
    if not previous:
        return candidate
    new_dt, old_dt = _parse_iso(candidate), _parse_iso(previous)
    if new_dt is None or old_dt is None:
        return candidate
    return previous if old_dt > new_dt else candidate


# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------

def new_id() -> str:
    """Return a fresh record id (uuid4, canonical string form)."""
    return str(uuid.uuid4())


def draft_id(form_name: str, user_id: str) -> str:
    """Form drafts are keyed by ``"<form>::<user>"``."""
    return f"{form_name}::{user_id}"


def group_member_id(group_id: str, ministry_id: str) -> str:
    return f"{group_id}::{ministry_id}"
