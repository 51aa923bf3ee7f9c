"""
The adapter contract every backend implements.

``DatabaseAdapter`` is the only type upstream code depends on; the factory
hands back one concrete subclass and callers never learn which.  Concrete
adapters implement five generic primitives keyed by collection name plus
``transaction`` and ``subscribe_to_table``; the typed per-entity methods
(``get_household``, ``list_children``, …) are thin wrappers defined here.

Shared semantics:
  • ``get_*`` returns ``None`` for a missing id, never raises NotFound
  • ``update_*`` raises ``NotFoundError`` for a missing id (shallow merge)
  • ``delete_*`` is idempotent
  • ``list_*`` ignores filter keys it does not recognise
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, TypeVar

from gatherkids.core.diagnostics import DiagnosticSink, default_sink
from gatherkids.core.utils import Clock, SystemClock, draft_id, group_member_id, new_id
from gatherkids.database.entities import EntitySpec
from gatherkids.database.errors import DuplicateRecordError, ValidationError
from gatherkids.domain.enums import ChangeType
from gatherkids.domain.models import (
    Attendance, AuditLogEntry, BibleBeeCycle, BibleBeeEnrollment, BibleBeeYear,
    BrandingSettings, Child, Division, DomainModel, EmergencyContact,
    EnrollmentOverride, EssayPrompt, Event, Guardian, Household, Incident,
    LeaderProfile, Ministry, MinistryAccount, MinistryEnrollment, MinistryGroup,
    MinistryGroupMember, MinistryLeaderMembership, Registration,
    RegistrationCycle, Scripture, StudentEssay, StudentScripture, User,
    UserHousehold,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Unsubscribe = Callable[[], None]


@dataclass(frozen=True)
class TableChange:
    """Row-level change delivered to ``subscribe_to_table`` callbacks."""
    table: str
    event_type: ChangeType
    record: Dict[str, Any]

    def as_dict(self) -> Dict[str, Any]:
        return {"table": self.table, "eventType": self.event_type.value, "record": self.record}


ChangeCallback = Callable[[TableChange], Any]


class DatabaseAdapter(abc.ABC):
    backend: str = "none"

    def __init__(
        self,
        sink: Optional[DiagnosticSink] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.sink = sink or default_sink()
        self.clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    @abc.abstractmethod
    async def get_record(self, collection: str, record_id: str) -> Optional[DomainModel]:
        ...

    @abc.abstractmethod
    async def create_record(self, collection: str, data: Mapping[str, Any]) -> DomainModel:
        ...

    @abc.abstractmethod
    async def update_record(
        self, collection: str, record_id: str, patch: Mapping[str, Any]
    ) -> DomainModel:
        ...

    @abc.abstractmethod
    async def delete_record(self, collection: str, record_id: str) -> None:
        ...

    @abc.abstractmethod
    async def list_records(
        self, collection: str, filters: Optional[Mapping[str, Any]] = None
    ) -> List[DomainModel]:
        ...

    @abc.abstractmethod
    async def transaction(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Run ``fn`` and return its result (atomic on the local backend only)."""

    @abc.abstractmethod
    async def subscribe_to_table(self, table: str, callback: ChangeCallback) -> Unsubscribe:
        """Register for row changes; the returned callable stops delivery for good."""

    async def aclose(self) -> None:
        """Release engines, HTTP clients and sockets."""

    def _prepare_create(self, spec: EntitySpec, data: Mapping[str, Any]) -> DomainModel:
        """Assign id and timestamps to create-call input and validate it."""
        payload = data.model_dump() if isinstance(data, DomainModel) else dict(data)
        now = self.clock.now_iso()
        payload[spec.id_field] = payload.get(spec.id_field) or new_id()
        payload["created_at"] = now
        payload["updated_at"] = now
        return spec.mapper.validate(payload)

    # ------------------------------------------------------------------
    # Form drafts
    # ------------------------------------------------------------------

    async def get_draft(self, form_name: str, user_id: str) -> Any:
        draft = await self.get_record("form_drafts", draft_id(form_name, user_id))
        return draft.payload if draft is not None else None

    async def save_draft(self, form_name: str, user_id: str, payload: Any, version: int = 1) -> None:
        key = draft_id(form_name, user_id)
        if await self.get_record("form_drafts", key) is None:
            await self.create_record("form_drafts", {
                "id": key, "form_name": form_name, "user_id": user_id,
                "payload": payload, "version": version,
            })
        else:
            await self.update_record("form_drafts", key, {"payload": payload, "version": version})

    async def clear_draft(self, form_name: str, user_id: str) -> None:
        await self.delete_record("form_drafts", draft_id(form_name, user_id))

    # ------------------------------------------------------------------
    # Audit log
    # ------------------------------------------------------------------

    async def log_audit(self, entry: Mapping[str, Any]) -> AuditLogEntry:
        return await self.create_record("audit_logs", entry)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_ministry_by_code(self, code: str) -> Optional[Ministry]:
        found = await self.list_records("ministries", {"code": code, "limit": 1})
        return found[0] if found else None

    async def list_guardians_for_household(self, household_id: str) -> List[Guardian]:
        return await self.list_records("guardians", {"household_id": household_id})

    async def get_household_for_user(self, auth_user_id: str) -> Optional[str]:
        """Household id linked to a sign-in identity, or ``None``."""
        links = await self.list_records("user_households", {"auth_user_id": auth_user_id})
        if not links:
            return None
        if len(links) > 1:
            logger.warning(
                "User %s is linked to %d households; using %s",
                auth_user_id, len(links), links[0].household_id,
            )
        return links[0].household_id or None

    async def get_ministry_group_by_code(self, code: str) -> Optional[MinistryGroup]:
        found = await self.list_records("ministry_groups", {"code": code, "limit": 1})
        return found[0] if found else None

    async def _get_many(self, collection: str, record_ids: List[str]) -> List[DomainModel]:
        """Fetch each id once, in order, skipping ids that no longer exist."""
        found = []
        for record_id in dict.fromkeys(record_ids):
            record = await self.get_record(collection, record_id)
            if record is not None:
                found.append(record)
        return found

    # ------------------------------------------------------------------
    # Ministry groups
    # ------------------------------------------------------------------

    async def add_ministry_to_group(self, group_id: str, ministry_id: str) -> MinistryGroupMember:
        """Link a ministry to a group; adding an existing link returns it unchanged."""
        key = group_member_id(group_id, ministry_id)
        try:
            return await self.create_record("ministry_group_members", {
                "id": key, "group_id": group_id, "ministry_id": ministry_id,
            })
        except DuplicateRecordError:
            existing = await self.get_record("ministry_group_members", key)
            if existing is None:
                raise
            return existing

    async def remove_ministry_from_group(self, group_id: str, ministry_id: str) -> None:
        await self.delete_record("ministry_group_members", group_member_id(group_id, ministry_id))

    async def list_ministries_by_group(self, group_id: str) -> List[Ministry]:
        links = await self.list_records("ministry_group_members", {"group_id": group_id})
        return await self._get_many("ministries", [link.ministry_id for link in links])

    async def list_groups_by_ministry(self, ministry_id: str) -> List[MinistryGroup]:
        links = await self.list_records("ministry_group_members", {"ministry_id": ministry_id})
        return await self._get_many("ministry_groups", [link.group_id for link in links])

    async def _ministry_ids_for_email(self, email: str) -> List[str]:
        ids = [
            account.ministry_id
            for account in await self.list_records("ministry_accounts", {"email": email, "is_active": True})
        ]
        for group in await self.list_records("ministry_groups", {"email": email, "is_active": True}):
            links = await self.list_records("ministry_group_members", {"group_id": group.id})
            ids.extend(link.ministry_id for link in links)
        return ids

    async def list_accessible_ministries_for_email(self, email: str) -> List[Ministry]:
        """Ministries an email may manage.

        An active ministry account with that email grants its own ministry;
        an active group with that email grants every member ministry.
        """
        email = (email or "").strip().lower()
        if not email:
            return []
        return await self._get_many("ministries", await self._ministry_ids_for_email(email))

    async def list_accessible_ministries_for_account(self, account_id: str) -> List[Ministry]:
        """The account's own ministry plus whatever its email reaches."""
        account = await self.get_record("ministry_accounts", account_id)
        if account is None or not account.is_active:
            return []
        ids = [account.ministry_id]
        if account.email:
            ids.extend(await self._ministry_ids_for_email(account.email))
        return await self._get_many("ministries", ids)

    # ------------------------------------------------------------------
    # Bible Bee placement
    # ------------------------------------------------------------------

    async def delete_enrollment_override_by_child(self, child_id: str) -> None:
        """Drop every division override for ``child_id``."""
        async def remove_all() -> None:
            for override in await self.list_records("enrollment_overrides", {"child_id": child_id}):
                await self.delete_record("enrollment_overrides", override.id)

        await self.transaction(remove_all)

    # ------------------------------------------------------------------
    # Entity operations
    # ------------------------------------------------------------------

    # Households

    async def get_household(self, household_id: str) -> Optional[Household]:
        return await self.get_record("households", household_id)

    async def create_household(self, data: Mapping[str, Any]) -> Household:
        return await self.create_record("households", data)

    async def update_household(self, household_id: str, patch: Mapping[str, Any]) -> Household:
        return await self.update_record("households", household_id, patch)

    async def delete_household(self, household_id: str) -> None:
        await self.delete_record("households", household_id)

    async def list_households(self, filters: Optional[Mapping[str, Any]] = None) -> List[Household]:
        return await self.list_records("households", filters)

    # Guardians

    async def get_guardian(self, guardian_id: str) -> Optional[Guardian]:
        return await self.get_record("guardians", guardian_id)

    async def create_guardian(self, data: Mapping[str, Any]) -> Guardian:
        return await self.create_record("guardians", data)

    async def update_guardian(self, guardian_id: str, patch: Mapping[str, Any]) -> Guardian:
        return await self.update_record("guardians", guardian_id, patch)

    async def delete_guardian(self, guardian_id: str) -> None:
        await self.delete_record("guardians", guardian_id)

    async def list_guardians(self, filters: Optional[Mapping[str, Any]] = None) -> List[Guardian]:
        return await self.list_records("guardians", filters)

    # Emergency contacts

    async def get_emergency_contact(self, contact_id: str) -> Optional[EmergencyContact]:
        return await self.get_record("emergency_contacts", contact_id)

    async def create_emergency_contact(self, data: Mapping[str, Any]) -> EmergencyContact:
        return await self.create_record("emergency_contacts", data)

    async def update_emergency_contact(self, contact_id: str, patch: Mapping[str, Any]) -> EmergencyContact:
        return await self.update_record("emergency_contacts", contact_id, patch)

    async def delete_emergency_contact(self, contact_id: str) -> None:
        await self.delete_record("emergency_contacts", contact_id)

    async def list_emergency_contacts(self, filters: Optional[Mapping[str, Any]] = None) -> List[EmergencyContact]:
        return await self.list_records("emergency_contacts", filters)

    # Children

    async def get_child(self, child_id: str) -> Optional[Child]:
        return await self.get_record("children", child_id)

    async def create_child(self, data: Mapping[str, Any]) -> Child:
        return await self.create_record("children", data)

    async def update_child(self, child_id: str, patch: Mapping[str, Any]) -> Child:
        return await self.update_record("children", child_id, patch)

    async def delete_child(self, child_id: str) -> None:
        await self.delete_record("children", child_id)

    async def list_children(self, filters: Optional[Mapping[str, Any]] = None) -> List[Child]:
        return await self.list_records("children", filters)

    # Registration cycles

    async def get_registration_cycle(self, cycle_id: str) -> Optional[RegistrationCycle]:
        return await self.get_record("registration_cycles", cycle_id)

    async def create_registration_cycle(self, data: Mapping[str, Any]) -> RegistrationCycle:
        return await self.create_record("registration_cycles", data)

    async def update_registration_cycle(self, cycle_id: str, patch: Mapping[str, Any]) -> RegistrationCycle:
        return await self.update_record("registration_cycles", cycle_id, patch)

    async def delete_registration_cycle(self, cycle_id: str) -> None:
        await self.delete_record("registration_cycles", cycle_id)

    async def list_registration_cycles(self, filters: Optional[Mapping[str, Any]] = None) -> List[RegistrationCycle]:
        return await self.list_records("registration_cycles", filters)

    # Registrations

    async def get_registration(self, registration_id: str) -> Optional[Registration]:
        return await self.get_record("registrations", registration_id)

    async def create_registration(self, data: Mapping[str, Any]) -> Registration:
        return await self.create_record("registrations", data)

    async def update_registration(self, registration_id: str, patch: Mapping[str, Any]) -> Registration:
        return await self.update_record("registrations", registration_id, patch)

    async def delete_registration(self, registration_id: str) -> None:
        await self.delete_record("registrations", registration_id)

    async def list_registrations(self, filters: Optional[Mapping[str, Any]] = None) -> List[Registration]:
        return await self.list_records("registrations", filters)

    # Ministries

    async def get_ministry(self, ministry_id: str) -> Optional[Ministry]:
        return await self.get_record("ministries", ministry_id)

    async def create_ministry(self, data: Mapping[str, Any]) -> Ministry:
        return await self.create_record("ministries", data)

    async def update_ministry(self, ministry_id: str, patch: Mapping[str, Any]) -> Ministry:
        return await self.update_record("ministries", ministry_id, patch)

    async def delete_ministry(self, ministry_id: str) -> None:
        await self.delete_record("ministries", ministry_id)

    async def list_ministries(self, filters: Optional[Mapping[str, Any]] = None) -> List[Ministry]:
        return await self.list_records("ministries", filters)

    # Ministry enrollments

    async def get_ministry_enrollment(self, enrollment_id: str) -> Optional[MinistryEnrollment]:
        return await self.get_record("ministry_enrollments", enrollment_id)

    async def create_ministry_enrollment(self, data: Mapping[str, Any]) -> MinistryEnrollment:
        return await self.create_record("ministry_enrollments", data)

    async def update_ministry_enrollment(self, enrollment_id: str, patch: Mapping[str, Any]) -> MinistryEnrollment:
        return await self.update_record("ministry_enrollments", enrollment_id, patch)

    async def delete_ministry_enrollment(self, enrollment_id: str) -> None:
        await self.delete_record("ministry_enrollments", enrollment_id)

    async def list_ministry_enrollments(self, filters: Optional[Mapping[str, Any]] = None) -> List[MinistryEnrollment]:
        return await self.list_records("ministry_enrollments", filters)

    # Events

    async def get_event(self, event_id: str) -> Optional[Event]:
        return await self.get_record("events", event_id)

    async def create_event(self, data: Mapping[str, Any]) -> Event:
        return await self.create_record("events", data)

    async def update_event(self, event_id: str, patch: Mapping[str, Any]) -> Event:
        return await self.update_record("events", event_id, patch)

    async def delete_event(self, event_id: str) -> None:
        await self.delete_record("events", event_id)

    async def list_events(self, filters: Optional[Mapping[str, Any]] = None) -> List[Event]:
        return await self.list_records("events", filters)

    # Attendance

    async def get_attendance(self, attendance_id: str) -> Optional[Attendance]:
        return await self.get_record("attendance", attendance_id)

    async def create_attendance(self, data: Mapping[str, Any]) -> Attendance:
        return await self.create_record("attendance", data)

    async def update_attendance(self, attendance_id: str, patch: Mapping[str, Any]) -> Attendance:
        return await self.update_record("attendance", attendance_id, patch)

    async def delete_attendance(self, attendance_id: str) -> None:
        await self.delete_record("attendance", attendance_id)

    async def list_attendance(self, filters: Optional[Mapping[str, Any]] = None) -> List[Attendance]:
        return await self.list_records("attendance", filters)

    # Incidents

    async def get_incident(self, incident_id: str) -> Optional[Incident]:
        return await self.get_record("incidents", incident_id)

    async def create_incident(self, data: Mapping[str, Any]) -> Incident:
        return await self.create_record("incidents", data)

    async def update_incident(self, incident_id: str, patch: Mapping[str, Any]) -> Incident:
        return await self.update_record("incidents", incident_id, patch)

    async def delete_incident(self, incident_id: str) -> None:
        await self.delete_record("incidents", incident_id)

    async def list_incidents(self, filters: Optional[Mapping[str, Any]] = None) -> List[Incident]:
        return await self.list_records("incidents", filters)

    # Users

    async def get_user(self, user_id: str) -> Optional[User]:
        return await self.get_record("users", user_id)

    async def create_user(self, data: Mapping[str, Any]) -> User:
        return await self.create_record("users", data)

    async def update_user(self, user_id: str, patch: Mapping[str, Any]) -> User:
        return await self.update_record("users", user_id, patch)

    async def delete_user(self, user_id: str) -> None:
        await self.delete_record("users", user_id)

    async def list_users(self, filters: Optional[Mapping[str, Any]] = None) -> List[User]:
        return await self.list_records("users", filters)

    # User -> household links

    async def get_user_household(self, link_id: str) -> Optional[UserHousehold]:
        return await self.get_record("user_households", link_id)

    async def create_user_household(self, data: Mapping[str, Any]) -> UserHousehold:
        return await self.create_record("user_households", data)

    async def update_user_household(self, link_id: str, patch: Mapping[str, Any]) -> UserHousehold:
        return await self.update_record("user_households", link_id, patch)

    async def delete_user_household(self, link_id: str) -> None:
        await self.delete_record("user_households", link_id)

    async def list_user_households(self, filters: Optional[Mapping[str, Any]] = None) -> List[UserHousehold]:
        return await self.list_records("user_households", filters)

    # Leader profiles

    async def get_leader_profile(self, leader_id: str) -> Optional[LeaderProfile]:
        return await self.get_record("leader_profiles", leader_id)

    async def create_leader_profile(self, data: Mapping[str, Any]) -> LeaderProfile:
        return await self.create_record("leader_profiles", data)

    async def update_leader_profile(self, leader_id: str, patch: Mapping[str, Any]) -> LeaderProfile:
        return await self.update_record("leader_profiles", leader_id, patch)

    async def delete_leader_profile(self, leader_id: str) -> None:
        await self.delete_record("leader_profiles", leader_id)

    async def list_leader_profiles(self, filters: Optional[Mapping[str, Any]] = None) -> List[LeaderProfile]:
        return await self.list_records("leader_profiles", filters)

    # Ministry leader memberships

    async def get_ministry_leader_membership(self, membership_id: str) -> Optional[MinistryLeaderMembership]:
        return await self.get_record("ministry_leader_memberships", membership_id)

    async def create_ministry_leader_membership(self, data: Mapping[str, Any]) -> MinistryLeaderMembership:
        return await self.create_record("ministry_leader_memberships", data)

    async def update_ministry_leader_membership(
        self, membership_id: str, patch: Mapping[str, Any]
    ) -> MinistryLeaderMembership:
        return await self.update_record("ministry_leader_memberships", membership_id, patch)

    async def delete_ministry_leader_membership(self, membership_id: str) -> None:
        await self.delete_record("ministry_leader_memberships", membership_id)

    async def list_ministry_leader_memberships(
        self, filters: Optional[Mapping[str, Any]] = None
    ) -> List[MinistryLeaderMembership]:
        return await self.list_records("ministry_leader_memberships", filters)

    # Ministry accounts (keyed by ministry_id)

    async def get_ministry_account(self, ministry_id: str) -> Optional[MinistryAccount]:
        return await self.get_record("ministry_accounts", ministry_id)

    async def create_ministry_account(self, data: Mapping[str, Any]) -> MinistryAccount:
        payload = data.model_dump() if isinstance(data, DomainModel) else dict(data)
        if not payload.get("ministry_id"):
            raise ValidationError(
                "MinistryAccount needs the ministry_id it belongs to",
                [{"loc": ["ministry_id"], "msg": "Field required", "type": "missing"}],
            )
        return await self.create_record("ministry_accounts", payload)

    async def update_ministry_account(self, ministry_id: str, patch: Mapping[str, Any]) -> MinistryAccount:
        return await self.update_record("ministry_accounts", ministry_id, patch)

    async def delete_ministry_account(self, ministry_id: str) -> None:
        await self.delete_record("ministry_accounts", ministry_id)

    async def list_ministry_accounts(self, filters: Optional[Mapping[str, Any]] = None) -> List[MinistryAccount]:
        return await self.list_records("ministry_accounts", filters)

    # Ministry groups

    async def get_ministry_group(self, group_id: str) -> Optional[MinistryGroup]:
        return await self.get_record("ministry_groups", group_id)

    async def create_ministry_group(self, data: Mapping[str, Any]) -> MinistryGroup:
        return await self.create_record("ministry_groups", data)

    async def update_ministry_group(self, group_id: str, patch: Mapping[str, Any]) -> MinistryGroup:
        return await self.update_record("ministry_groups", group_id, patch)

    async def delete_ministry_group(self, group_id: str) -> None:
        await self.delete_record("ministry_groups", group_id)

    async def list_ministry_groups(self, filters: Optional[Mapping[str, Any]] = None) -> List[MinistryGroup]:
        return await self.list_records("ministry_groups", filters)

    # Bible Bee cycles

    async def get_bible_bee_cycle(self, cycle_id: str) -> Optional[BibleBeeCycle]:
        return await self.get_record("bible_bee_cycles", cycle_id)

    async def create_bible_bee_cycle(self, data: Mapping[str, Any]) -> BibleBeeCycle:
        return await self.create_record("bible_bee_cycles", data)

    async def update_bible_bee_cycle(self, cycle_id: str, patch: Mapping[str, Any]) -> BibleBeeCycle:
        return await self.update_record("bible_bee_cycles", cycle_id, patch)

    async def delete_bible_bee_cycle(self, cycle_id: str) -> None:
        await self.delete_record("bible_bee_cycles", cycle_id)

    async def list_bible_bee_cycles(self, filters: Optional[Mapping[str, Any]] = None) -> List[BibleBeeCycle]:
        return await self.list_records("bible_bee_cycles", filters)

    # Bible Bee years (pre-cycle records)

    async def get_bible_bee_year(self, year_id: str) -> Optional[BibleBeeYear]:
        return await self.get_record("bible_bee_years", year_id)

    async def create_bible_bee_year(self, data: Mapping[str, Any]) -> BibleBeeYear:
        return await self.create_record("bible_bee_years", data)

    async def update_bible_bee_year(self, year_id: str, patch: Mapping[str, Any]) -> BibleBeeYear:
        return await self.update_record("bible_bee_years", year_id, patch)

    async def delete_bible_bee_year(self, year_id: str) -> None:
        await self.delete_record("bible_bee_years", year_id)

    async def list_bible_bee_years(self, filters: Optional[Mapping[str, Any]] = None) -> List[BibleBeeYear]:
        return await self.list_records("bible_bee_years", filters)

    # Bible Bee enrollments

    async def get_bible_bee_enrollment(self, enrollment_id: str) -> Optional[BibleBeeEnrollment]:
        return await self.get_record("bible_bee_enrollments", enrollment_id)

    async def create_bible_bee_enrollment(self, data: Mapping[str, Any]) -> BibleBeeEnrollment:
        return await self.create_record("bible_bee_enrollments", data)

    async def update_bible_bee_enrollment(self, enrollment_id: str, patch: Mapping[str, Any]) -> BibleBeeEnrollment:
        return await self.update_record("bible_bee_enrollments", enrollment_id, patch)

    async def delete_bible_bee_enrollment(self, enrollment_id: str) -> None:
        await self.delete_record("bible_bee_enrollments", enrollment_id)

    async def list_bible_bee_enrollments(
        self, filters: Optional[Mapping[str, Any]] = None
    ) -> List[BibleBeeEnrollment]:
        return await self.list_records("bible_bee_enrollments", filters)

    # Division overrides

    async def get_enrollment_override(self, override_id: str) -> Optional[EnrollmentOverride]:
        return await self.get_record("enrollment_overrides", override_id)

    async def create_enrollment_override(self, data: Mapping[str, Any]) -> EnrollmentOverride:
        return await self.create_record("enrollment_overrides", data)

    async def update_enrollment_override(self, override_id: str, patch: Mapping[str, Any]) -> EnrollmentOverride:
        return await self.update_record("enrollment_overrides", override_id, patch)

    async def delete_enrollment_override(self, override_id: str) -> None:
        await self.delete_record("enrollment_overrides", override_id)

    async def list_enrollment_overrides(
        self, filters: Optional[Mapping[str, Any]] = None
    ) -> List[EnrollmentOverride]:
        return await self.list_records("enrollment_overrides", filters)

    # Bible Bee divisions

    async def get_division(self, division_id: str) -> Optional[Division]:
        return await self.get_record("divisions", division_id)

    async def create_division(self, data: Mapping[str, Any]) -> Division:
        return await self.create_record("divisions", data)

    async def update_division(self, division_id: str, patch: Mapping[str, Any]) -> Division:
        return await self.update_record("divisions", division_id, patch)

    async def delete_division(self, division_id: str) -> None:
        await self.delete_record("divisions", division_id)

    async def list_divisions(self, filters: Optional[Mapping[str, Any]] = None) -> List[Division]:
        return await self.list_records("divisions", filters)

    # Scriptures

    async def get_scripture(self, scripture_id: str) -> Optional[Scripture]:
        return await self.get_record("scriptures", scripture_id)

    async def create_scripture(self, data: Mapping[str, Any]) -> Scripture:
        return await self.create_record("scriptures", data)

    async def update_scripture(self, scripture_id: str, patch: Mapping[str, Any]) -> Scripture:
        return await self.update_record("scriptures", scripture_id, patch)

    async def delete_scripture(self, scripture_id: str) -> None:
        await self.delete_record("scriptures", scripture_id)

    async def list_scriptures(self, filters: Optional[Mapping[str, Any]] = None) -> List[Scripture]:
        return await self.list_records("scriptures", filters)

    # Student scripture progress

    async def get_student_scripture(self, progress_id: str) -> Optional[StudentScripture]:
        return await self.get_record("student_scriptures", progress_id)

    async def create_student_scripture(self, data: Mapping[str, Any]) -> StudentScripture:
        return await self.create_record("student_scriptures", data)

    async def update_student_scripture(self, progress_id: str, patch: Mapping[str, Any]) -> StudentScripture:
        return await self.update_record("student_scriptures", progress_id, patch)

    async def delete_student_scripture(self, progress_id: str) -> None:
        await self.delete_record("student_scriptures", progress_id)

    async def list_student_scriptures(self, filters: Optional[Mapping[str, Any]] = None) -> List[StudentScripture]:
        return await self.list_records("student_scriptures", filters)

    # Essay prompts

    async def get_essay_prompt(self, prompt_id: str) -> Optional[EssayPrompt]:
        return await self.get_record("essay_prompts", prompt_id)

    async def create_essay_prompt(self, data: Mapping[str, Any]) -> EssayPrompt:
        return await self.create_record("essay_prompts", data)

    async def update_essay_prompt(self, prompt_id: str, patch: Mapping[str, Any]) -> EssayPrompt:
        return await self.update_record("essay_prompts", prompt_id, patch)

    async def delete_essay_prompt(self, prompt_id: str) -> None:
        await self.delete_record("essay_prompts", prompt_id)

    async def list_essay_prompts(self, filters: Optional[Mapping[str, Any]] = None) -> List[EssayPrompt]:
        return await self.list_records("essay_prompts", filters)

    # Essay submissions

    async def get_student_essay(self, essay_id: str) -> Optional[StudentEssay]:
        return await self.get_record("student_essays", essay_id)

    async def create_student_essay(self, data: Mapping[str, Any]) -> StudentEssay:
        return await self.create_record("student_essays", data)

    async def update_student_essay(self, essay_id: str, patch: Mapping[str, Any]) -> StudentEssay:
        return await self.update_record("student_essays", essay_id, patch)

    async def delete_student_essay(self, essay_id: str) -> None:
        await self.delete_record("student_essays", essay_id)

    async def list_student_essays(self, filters: Optional[Mapping[str, Any]] = None) -> List[StudentEssay]:
        return await self.list_records("student_essays", filters)

    # Branding settings

    async def get_branding_settings(self, setting_id: str) -> Optional[BrandingSettings]:
        return await self.get_record("branding_settings", setting_id)

    async def create_branding_settings(self, data: Mapping[str, Any]) -> BrandingSettings:
        return await self.create_record("branding_settings", data)

    async def update_branding_settings(self, setting_id: str, patch: Mapping[str, Any]) -> BrandingSettings:
        return await self.update_record("branding_settings", setting_id, patch)

    async def delete_branding_settings(self, setting_id: str) -> None:
        await self.delete_record("branding_settings", setting_id)

    async def list_branding_settings(self, filters: Optional[Mapping[str, Any]] = None) -> List[BrandingSettings]:
        return await self.list_records("branding_settings", filters)
