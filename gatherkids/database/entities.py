"""
Entity catalogue: one ``EntitySpec`` per collection/table.

Both adapters read this table: the local store builds its collections and
secondary indices from it, the remote adapter translates list filters into
PostgREST predicates from it.  ``normalize_filters`` turns the caller's loose
filter dict into a ``ListQuery`` and silently drops keys the entity does not
recognise.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from gatherkids.database import mappings
from gatherkids.database.errors import ValidationError
from gatherkids.database.mappings import EntityMapper


@dataclass(frozen=True)
class EntitySpec:
    collection: str
    mapper: EntityMapper
    equals: Tuple[str, ...] = ()            # exact-match filter keys (column == value)
    flags: Tuple[str, ...] = ()             # boolean filter keys
    search: Tuple[str, ...] = ()            # columns scanned by the "search" key
    presence: Dict[str, str] = field(default_factory=dict)  # filter key -> column tested for NOT NULL

    @property
    def entity(self) -> str:
        return self.mapper.entity

    @property
    def id_field(self) -> str:
        return self.mapper.id_field

    @property
    def index_fields(self) -> Tuple[str, ...]:
        """Secondary indices kept by the local store."""
        return tuple(dict.fromkeys((*self.equals, *self.flags)))


@dataclass
class ListQuery:
    equals: Dict[str, Any] = field(default_factory=dict)
    flags: Dict[str, bool] = field(default_factory=dict)
    search: Optional[str] = None
    present: Dict[str, bool] = field(default_factory=dict)   # column -> must be non-null?
    limit: Optional[int] = None
    offset: int = 0


def _as_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "false", "1", "0"}:
        return value.strip().lower() in {"true", "1"}
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise ValidationError(f"Filter {key!r} expects a boolean, got {value!r}")


def _as_count(key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"Filter {key!r} expects a non-negative integer, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Filter {key!r} expects a non-negative integer, got {value!r}") from None
    if number < 0:
        raise ValidationError(f"Filter {key!r} expects a non-negative integer, got {value!r}")
    return number


def normalize_filters(spec: EntitySpec, filters: Optional[Mapping[str, Any]]) -> ListQuery:
    query = ListQuery()
    if not filters:
        return query
    for key, value in filters.items():
        if value is None:
            continue
        if key == "limit":
            query.limit = _as_count(key, value)
        elif key == "offset":
            query.offset = _as_count(key, value)
        elif key == "search" and spec.search:
            text = str(value).strip()
            query.search = text or None
        elif key in spec.equals:
            query.equals[key] = value.value if isinstance(value, Enum) else value
        elif key in spec.flags:
            query.flags[key] = _as_bool(key, value)
        elif key in spec.presence:
            query.present[spec.presence[key]] = _as_bool(key, value)
    return query


def matches_search(record: Mapping[str, Any], columns: Tuple[str, ...], term: str) -> bool:
    """Case-insensitive substring match over ``columns`` (any column may match)."""
    needle = term.lower()
    for column in columns:
        value = record.get(column)
        if value is not None and needle in str(value).lower():
            return True
    return False


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------

_SPECS = (
    EntitySpec("households", mappings.HOUSEHOLD,
               equals=("city", "state", "zip"),
               search=("name", "address_line1", "city")),
    EntitySpec("guardians", mappings.GUARDIAN,
               equals=("household_id",), flags=("is_primary",),
               search=("first_name", "last_name", "email")),
    EntitySpec("emergency_contacts", mappings.EMERGENCY_CONTACT,
               equals=("household_id",)),
    EntitySpec("children", mappings.CHILD,
               equals=("household_id", "grade"), flags=("is_active",),
               search=("first_name", "last_name")),
    EntitySpec("registration_cycles", mappings.REGISTRATION_CYCLE,
               flags=("is_active",)),
    EntitySpec("registrations", mappings.REGISTRATION,
               equals=("child_id", "cycle_id", "status")),
    EntitySpec("ministries", mappings.MINISTRY,
               equals=("code", "enrollment_type"), flags=("is_active",),
               search=("name", "code")),
    EntitySpec("ministry_enrollments", mappings.MINISTRY_ENROLLMENT,
               equals=("child_id", "ministry_id", "cycle_id", "status")),
    EntitySpec("events", mappings.EVENT, search=("name",)),
    EntitySpec("attendance", mappings.ATTENDANCE,
               equals=("child_id", "event_id", "date")),
    EntitySpec("incidents", mappings.INCIDENT,
               equals=("child_id", "event_id", "severity"),
               presence={"resolved": "admin_acknowledged_at"}),
    EntitySpec("users", mappings.USER,
               equals=("role", "email"), flags=("is_active",),
               search=("name", "email")),
    EntitySpec("user_households", mappings.USER_HOUSEHOLD,
               equals=("auth_user_id", "household_id")),
    EntitySpec("leader_profiles", mappings.LEADER_PROFILE,
               equals=("email",), flags=("is_active",),
               search=("first_name", "last_name", "email")),
    EntitySpec("ministry_leader_memberships", mappings.MINISTRY_LEADER_MEMBERSHIP,
               equals=("ministry_id", "leader_id", "role_type"), flags=("is_active",)),
    EntitySpec("ministry_accounts", mappings.MINISTRY_ACCOUNT,
               equals=("email",), flags=("is_active",),
               search=("display_name", "email")),
    EntitySpec("ministry_groups", mappings.MINISTRY_GROUP,
               equals=("code", "email"), flags=("is_active",),
               search=("name", "code")),
    EntitySpec("ministry_group_members", mappings.MINISTRY_GROUP_MEMBER,
               equals=("group_id", "ministry_id")),
    EntitySpec("bible_bee_cycles", mappings.BIBLE_BEE_CYCLE,
               flags=("is_active",), search=("label",)),
    EntitySpec("bible_bee_years", mappings.BIBLE_BEE_YEAR,
               flags=("is_active",), search=("label",)),
    EntitySpec("bible_bee_enrollments", mappings.BIBLE_BEE_ENROLLMENT,
               equals=("child_id", "cycle_id", "division_id")),
    EntitySpec("enrollment_overrides", mappings.ENROLLMENT_OVERRIDE,
               equals=("child_id", "cycle_id", "division_id")),
    EntitySpec("divisions", mappings.DIVISION,
               equals=("cycle_id",), search=("name",)),
    EntitySpec("scriptures", mappings.SCRIPTURE,
               equals=("cycle_id",), search=("reference",)),
    EntitySpec("student_scriptures", mappings.STUDENT_SCRIPTURE,
               equals=("child_id", "cycle_id", "scripture_id", "status")),
    EntitySpec("essay_prompts", mappings.ESSAY_PROMPT,
               equals=("cycle_id", "division_id")),
    EntitySpec("student_essays", mappings.STUDENT_ESSAY,
               equals=("child_id", "cycle_id", "status")),
    EntitySpec("branding_settings", mappings.BRANDING_SETTINGS,
               equals=("org_id",)),
    EntitySpec("form_drafts", mappings.FORM_DRAFT,
               equals=("user_id", "form_name")),
    EntitySpec("audit_logs", mappings.AUDIT_LOG,
               equals=("actor_user_id", "target_id")),
)

ENTITIES: Dict[str, EntitySpec] = {spec.collection: spec for spec in _SPECS}


def get_spec(collection: str) -> EntitySpec:
    try:
        return ENTITIES[collection]
    except KeyError:
        raise ValidationError(f"Unknown collection: {collection!r}") from None
