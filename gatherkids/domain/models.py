"""
gatherkids.domain.models: Canonical Pydantic models.

These are the single source of truth for records crossing the data-access
boundary.  Both adapters return exactly these shapes, whatever the backend
stored; the mapping layer (``gatherkids.database.mappings``) is the only code
that knows how backend rows differ from them.

Conventions
-----------
* every model carries its string id plus ``created_at`` / ``updated_at``
  (ISO-8601 strings)
* optional semantic fields are ``None`` when absent
* address-like display fields are ``""`` when blank (the remote store keeps
  SQL NULL for them)

Import pattern::

    from gatherkids.domain.models import Household, Child, Ministry
"""

from __future__ import annotations

from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from gatherkids.domain.enums import (
    DataProfile, EnrollmentType, EssayStatus, IncidentSeverity, LeaderRoleType,
    MinistryEnrollmentStatus, PickupMethod, RegistrationStatus,
    ScriptureStatus, UserRole,
)


class DomainModel(BaseModel):
    """Common base: strict field set, enum values stored as plain strings."""

    model_config = ConfigDict(extra="forbid", use_enum_values=True, validate_default=True)

    ID_FIELD: ClassVar[str] = "id"

    created_at: str
    updated_at: str

    @property
    def record_id(self) -> str:
        return getattr(self, self.ID_FIELD)


# Stored trimmed and lowercase; the optional form turns a blank value into None.
Email = Annotated[str, AfterValidator(lambda value: value.strip().lower())]
OptionalEmail = Optional[Annotated[str, AfterValidator(lambda value: value.strip().lower() or None)]]


# ---------------------------------------------------------------------------
# Households & people
# ---------------------------------------------------------------------------

class Household(DomainModel):
    ID_FIELD: ClassVar[str] = "household_id"

    household_id: str
    name: Optional[str] = None
    preferred_scripture_translation: Optional[str] = None
    address_line1: str = ""
    address_line2: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    primary_email: Optional[str] = None
    primary_phone: Optional[str] = None
    photo_url: Optional[str] = None


class Guardian(DomainModel):
    ID_FIELD: ClassVar[str] = "guardian_id"

    guardian_id: str
    household_id: str = ""
    first_name: str = ""
    last_name: str = ""
    mobile_phone: str = ""
    email: Optional[str] = None
    relationship: str = ""
    is_primary: bool = False


class EmergencyContact(DomainModel):
    ID_FIELD: ClassVar[str] = "contact_id"

    contact_id: str
    household_id: str = ""
    first_name: str = ""
    last_name: str = ""
    mobile_phone: str = ""
    relationship: str = ""


class Child(DomainModel):
    ID_FIELD: ClassVar[str] = "child_id"

    child_id: str
    household_id: str = ""
    first_name: str = ""
    last_name: str = ""
    dob: Optional[str] = None               # YYYY-MM-DD
    grade: Optional[str] = None
    child_mobile: Optional[str] = None
    allergies: Optional[str] = None
    medical_notes: Optional[str] = None
    special_needs: bool = False
    special_needs_notes: Optional[str] = None
    is_active: bool = True
    photo_url: Optional[str] = None


class User(DomainModel):
    ID_FIELD: ClassVar[str] = "user_id"

    user_id: str
    name: str = ""
    email: str = ""
    mobile_phone: Optional[str] = None
    role: UserRole = UserRole.GUARDIAN
    is_active: bool = True
    background_check_status: Optional[Literal["clear", "pending", "expired", "na"]] = None
    expires_at: Optional[str] = None


class UserHousehold(DomainModel):
    """Links a sign-in identity to the household it manages."""
    ID_FIELD: ClassVar[str] = "user_household_id"

    user_household_id: str
    auth_user_id: str = ""
    household_id: str = ""


class LeaderProfile(DomainModel):
    """Ministry leader who is not necessarily an app user."""
    ID_FIELD: ClassVar[str] = "leader_id"

    leader_id: str
    first_name: str = ""
    last_name: str = ""
    email: OptionalEmail = None              # unique when present
    phone: Optional[str] = None
    photo_url: Optional[str] = None
    avatar_path: Optional[str] = None
    notes: Optional[str] = None
    background_check_complete: bool = False
    is_active: bool = True


# ---------------------------------------------------------------------------
# Registration & ministries
# ---------------------------------------------------------------------------

class RegistrationCycle(DomainModel):
    ID_FIELD: ClassVar[str] = "cycle_id"

    cycle_id: str                           # e.g. "2026"
    name: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    is_active: bool = False


class Consent(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: Literal["liability", "photoRelease", "custom"]
    text: Optional[str] = None
    accepted_at: Optional[str] = None
    signer_id: str = ""
    signer_name: str = ""


class Registration(DomainModel):
    ID_FIELD: ClassVar[str] = "registration_id"

    registration_id: str
    child_id: str = ""
    cycle_id: str = ""
    status: RegistrationStatus = RegistrationStatus.PENDING
    pre_registered_sunday_school: bool = False
    consents: List[Consent] = Field(default_factory=list)
    submitted_via: Literal["web", "import"] = "web"
    submitted_at: Optional[str] = None


class CustomQuestion(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    text: str
    type: Literal["radio", "checkbox", "text"]
    options: Optional[List[str]] = None


class Ministry(DomainModel):
    ID_FIELD: ClassVar[str] = "ministry_id"

    ministry_id: str
    name: str = ""
    code: str = ""
    enrollment_type: EnrollmentType = EnrollmentType.ENROLLED
    data_profile: DataProfile = DataProfile.BASIC
    min_age: Optional[int] = None
    max_age: Optional[int] = None
    min_grade: Optional[str] = None
    max_grade: Optional[str] = None
    open_at: Optional[str] = None
    close_at: Optional[str] = None
    details: Optional[str] = None
    description: Optional[str] = None
    custom_questions: Optional[List[CustomQuestion]] = None
    communicate_later: bool = False
    optional_consent_text: Optional[str] = None
    is_active: bool = True


class MinistryEnrollment(DomainModel):
    ID_FIELD: ClassVar[str] = "enrollment_id"

    enrollment_id: str
    child_id: str = ""
    cycle_id: str = ""
    ministry_id: str = ""
    status: MinistryEnrollmentStatus = MinistryEnrollmentStatus.ENROLLED
    custom_fields: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None


class MinistryLeaderMembership(DomainModel):
    ID_FIELD: ClassVar[str] = "membership_id"

    membership_id: str
    ministry_id: str = ""
    leader_id: str = ""
    role_type: LeaderRoleType = LeaderRoleType.VOLUNTEER
    is_active: bool = True
    notes: Optional[str] = None


class MinistryAccount(DomainModel):
    """Shared sign-in for one ministry; keyed by the ministry it belongs to."""
    ID_FIELD: ClassVar[str] = "ministry_id"

    ministry_id: str
    email: Email = ""                       # unique
    display_name: str = ""
    is_active: bool = True


class MinistryGroup(DomainModel):
    ID_FIELD: ClassVar[str] = "id"

    id: str
    code: str = ""
    name: str = ""
    description: Optional[str] = None
    email: OptionalEmail = None              # grants access to every member ministry
    custom_consent_text: Optional[str] = None
    custom_consent_required: bool = False
    is_active: bool = True


class MinistryGroupMember(DomainModel):
    """Ministry <-> group link, keyed ``"<group_id>::<ministry_id>"``."""
    ID_FIELD: ClassVar[str] = "id"

    id: str
    group_id: str
    ministry_id: str


# ---------------------------------------------------------------------------
# Check-in
# ---------------------------------------------------------------------------

class EventTimeslot(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    start_local: str                        # HH:mm
    end_local: str                          # HH:mm


class Event(DomainModel):
    ID_FIELD: ClassVar[str] = "event_id"

    event_id: str
    name: str = ""
    location_label: Optional[str] = None
    timeslots: List[EventTimeslot] = Field(default_factory=list)


class Attendance(DomainModel):
    ID_FIELD: ClassVar[str] = "attendance_id"

    attendance_id: str
    event_id: str = ""
    child_id: str = ""
    date: str = ""                          # YYYY-MM-DD
    timeslot_id: Optional[str] = None
    check_in_at: Optional[str] = None
    checked_in_by: Optional[str] = None
    check_out_at: Optional[str] = None
    checked_out_by: Optional[str] = None
    picked_up_by: Optional[str] = None
    pickup_method: Optional[PickupMethod] = None
    notes: Optional[str] = None
    first_time_flag: bool = False


class Incident(DomainModel):
    ID_FIELD: ClassVar[str] = "incident_id"

    incident_id: str
    child_id: str = ""
    child_name: str = ""                    # denormalized for display
    event_id: Optional[str] = None
    description: str = ""
    severity: IncidentSeverity = IncidentSeverity.LOW
    leader_id: str = ""
    timestamp: Optional[str] = None
    admin_acknowledged_at: Optional[str] = None


# ---------------------------------------------------------------------------
# Bible Bee
# ---------------------------------------------------------------------------

class BibleBeeCycle(DomainModel):
    ID_FIELD: ClassVar[str] = "id"

    id: str
    cycle_id: Optional[str] = None          # registration cycle it runs in
    label: str = ""
    description: Optional[str] = None
    is_active: bool = False


class BibleBeeYear(DomainModel):
    """Year-based competition record that predates ``BibleBeeCycle``."""
    ID_FIELD: ClassVar[str] = "id"

    id: str
    year: Optional[int] = None
    label: str = ""
    cycle_id: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = False
    registration_open_date: Optional[str] = None
    registration_close_date: Optional[str] = None
    competition_start_date: Optional[str] = None
    competition_end_date: Optional[str] = None


class BibleBeeEnrollment(DomainModel):
    """A child's placement in a division for one Bible Bee cycle."""
    ID_FIELD: ClassVar[str] = "id"

    id: str
    cycle_id: str = ""                      # bible_bee_cycles.id
    child_id: str = ""
    division_id: str = ""
    auto_enrolled: bool = False
    enrolled_at: Optional[str] = None


class EnrollmentOverride(DomainModel):
    """Manual division placement that wins over the grade rule."""
    ID_FIELD: ClassVar[str] = "id"

    id: str
    cycle_id: str = ""
    child_id: str = ""
    division_id: str = ""
    reason: Optional[str] = None
    created_by: Optional[str] = None


class Division(DomainModel):
    ID_FIELD: ClassVar[str] = "id"

    id: str
    cycle_id: str = ""                      # bible_bee_cycles.id
    name: str = ""
    description: Optional[str] = None
    min_grade: Optional[int] = None
    max_grade: Optional[int] = None
    minimum_required: int = 0


class Scripture(DomainModel):
    ID_FIELD: ClassVar[str] = "id"

    id: str
    cycle_id: str = ""
    reference: str = ""
    text: Optional[str] = None
    translation: Optional[str] = None
    texts: Optional[Dict[str, str]] = None  # translation key -> text
    book_lang_alt: Optional[str] = None
    sort_order: Optional[int] = None
    scripture_number: Optional[str] = None


class StudentScripture(DomainModel):
    ID_FIELD: ClassVar[str] = "id"

    id: str
    child_id: str = ""
    cycle_id: str = ""
    scripture_id: str = ""
    status: ScriptureStatus = ScriptureStatus.ASSIGNED
    completed_at: Optional[str] = None


class EssayPrompt(DomainModel):
    ID_FIELD: ClassVar[str] = "id"

    id: str
    cycle_id: str = ""
    division_id: Optional[str] = None
    division_name: Optional[str] = None
    title: str = ""
    prompt: str = ""
    instructions: Optional[str] = None
    due_date: Optional[str] = None


class StudentEssay(DomainModel):
    ID_FIELD: ClassVar[str] = "id"

    id: str
    child_id: str = ""
    cycle_id: str = ""
    status: EssayStatus = EssayStatus.ASSIGNED
    submitted_at: Optional[str] = None
    prompt_text: str = ""
    instructions: Optional[str] = None


# ---------------------------------------------------------------------------
# Settings, drafts, audit
# ---------------------------------------------------------------------------

class BrandingSettings(DomainModel):
    ID_FIELD: ClassVar[str] = "setting_id"

    setting_id: str
    org_id: str = ""
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    logo_url: Optional[str] = None
    org_name: Optional[str] = None
    app_name: Optional[str] = None
    description: Optional[str] = None
    use_logo_only: bool = False
    youtube_url: Optional[str] = None
    instagram_url: Optional[str] = None


class FormDraft(DomainModel):
    """Persisted, partially filled form (keyed ``"<form>::<user>"``)."""
    ID_FIELD: ClassVar[str] = "id"

    id: str
    form_name: str
    user_id: str
    payload: Any = None
    version: int = 1


class AuditLogEntry(DomainModel):
    ID_FIELD: ClassVar[str] = "id"

    id: str
    actor_user_id: str = ""
    action: str = ""
    target_type: str = ""
    target_id: str = ""
    diff: Optional[Dict[str, Any]] = None
