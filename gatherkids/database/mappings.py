"""
Type mapping layer: backend rows <-> canonical domain objects.

Both adapters call through here on every read and write; upstream code never
does.  Each entity has one ``EntityMapper`` exposing the pair:

    HOUSEHOLD.to_domain(row)        # backend row  -> Household
    HOUSEHOLD.to_backend(household) # Household / dict -> backend row

Row shapes are declared explicitly: every mapper builds a ``<Model>Row``
pydantic schema holding each canonical column plus each legacy spelling as
an optional field, so the set of keys a backend row may use is closed and
checked when the module is imported.

``to_domain`` is deterministic except for timestamp repair, which reads the
injected clock only when the source ``updated_at`` is missing.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Annotated, Any, Dict, Mapping, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, TypeAdapter, create_model
from pydantic import ValidationError as PydanticValidationError

from gatherkids.core.diagnostics import DiagnosticSink, default_sink
from gatherkids.core.utils import Clock, SystemClock
from gatherkids.database.errors import BackendError, ValidationError
from gatherkids.domain.models import (
    Attendance, AuditLogEntry, BibleBeeCycle, BibleBeeEnrollment, BibleBeeYear,
    BrandingSettings, Child, Division, DomainModel, EmergencyContact,
    EnrollmentOverride, EssayPrompt, Event, FormDraft, Guardian, Household,
    Incident, LeaderProfile, Ministry, MinistryAccount, MinistryEnrollment,
    MinistryGroup, MinistryGroupMember, MinistryLeaderMembership, Registration,
    RegistrationCycle, Scripture, StudentEssay, StudentScripture, User,
    UserHousehold,
)

logger = logging.getLogger(__name__)

TIMESTAMP_FIELDS = ("created_at", "updated_at")
LEGACY_FIELD_EVENT = "legacy_field_mapping"

_SYSTEM_CLOCK = SystemClock()


def build_row_model(model: Type[DomainModel], legacy_fields: Mapping[str, str]) -> Type[BaseModel]:
    """Declare the backend row schema for ``model``.

    All canonical fields and all legacy spellings become optional; values are
    left untyped here because the domain model performs the type validation
    once the legacy keys have been folded in.
    """
    fields: Dict[str, Any] = {name: (Optional[Any], None) for name in model.model_fields}
    for legacy in legacy_fields:
        fields[legacy] = (Optional[Any], None)
    return create_model(
        f"{model.__name__}Row",
        __config__=ConfigDict(extra="ignore"),
        **fields,
    )


def _pydantic_errors(exc: PydanticValidationError) -> list:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]


@dataclass(frozen=True)
class EntityMapper:
    """Bidirectional converter for one entity kind.

    ``blank_fields``  address-like text: NULL in the backend, ``""`` in the domain
    ``legacy_fields`` legacy spelling -> canonical field name
    ``json_fields``   columns that older rows stored as a JSON string
    """

    entity: str
    model: Type[DomainModel]
    blank_fields: Tuple[str, ...] = ()
    legacy_fields: Dict[str, str] = field(default_factory=dict)
    json_fields: Tuple[str, ...] = ()
    row_model: Type[BaseModel] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        known = set(self.model.model_fields)
        for name in (*self.blank_fields, *self.json_fields):
            if name not in known:
                raise TypeError(f"{self.entity}: {name!r} is not a {self.model.__name__} field")
        for legacy, canonical in self.legacy_fields.items():
            if canonical not in known:
                raise TypeError(f"{self.entity}: legacy {legacy!r} maps to unknown field {canonical!r}")
            if legacy in known:
                raise TypeError(f"{self.entity}: legacy {legacy!r} shadows a canonical field")
        object.__setattr__(self, "row_model", build_row_model(self.model, self.legacy_fields))

    @property
    def id_field(self) -> str:
        return self.model.ID_FIELD

    # ------------------------------------------------------------------
    # Backend -> domain
    # ------------------------------------------------------------------

    def to_domain(
        self,
        raw: Mapping[str, Any],
        *,
        sink: Optional[DiagnosticSink] = None,
        clock: Optional[Clock] = None,
    ) -> DomainModel:
        """Normalize a backend row into the canonical model."""
        try:
            row = self.row_model.model_validate(dict(raw))
        except (TypeError, ValueError) as exc:
            raise BackendError(f"Unreadable {self.entity} record: {exc}") from exc
        values = row.model_dump(exclude_unset=True)

        used: Dict[str, str] = {}
        for legacy, canonical in self.legacy_fields.items():
            legacy_value = values.pop(legacy, None)
            if legacy_value is None:
                continue
            if values.get(canonical) is None:
                values[canonical] = legacy_value
                used[legacy] = canonical

        for name in self.json_fields:
            if isinstance(values.get(name), str):
                values[name] = self._decode_json(name, values[name])

        for name in list(values):
            if values[name] is not None or name in TIMESTAMP_FIELDS:
                continue
            if name in self.blank_fields:
                values[name] = ""
            else:
                del values[name]

        updated_at = values.get("updated_at") or None
        created_at = values.get("created_at") or None
        if updated_at is None:
            updated_at = (clock or _SYSTEM_CLOCK).now_iso()
        values["updated_at"] = updated_at
        values["created_at"] = created_at or updated_at

        if used:
            (sink or default_sink()).emit(
                LEGACY_FIELD_EVENT,
                entity=self.entity,
                record_id=values.get(self.id_field),
                fields=used,
            )

        try:
            return self.model.model_validate(values)
        except PydanticValidationError as exc:
            raise BackendError(
                f"Malformed {self.entity} record {values.get(self.id_field)!r}: "
                f"{exc.error_count()} invalid field(s)"
            ) from exc

    def _decode_json(self, name: str, text: str) -> Any:
        try:
            return json.loads(text)
        except ValueError:
            logger.debug("%s.%s holds non-JSON text; leaving as-is", self.entity, name)
            return text

    # ------------------------------------------------------------------
    # Domain -> backend
    # ------------------------------------------------------------------

    def validate(self, data: Mapping[str, Any] | DomainModel) -> DomainModel:
        if isinstance(data, self.model):
            return data
        if isinstance(data, BaseModel):
            data = data.model_dump()
        try:
            return self.model.model_validate(dict(data))
        except PydanticValidationError as exc:
            raise ValidationError(f"Invalid {self.entity} data", _pydantic_errors(exc)) from exc

    def to_backend(self, obj: Mapping[str, Any] | DomainModel) -> Dict[str, Any]:
        """Serialize a full domain object into a backend row."""
        model = self.validate(obj)
        row = model.model_dump(mode="json")
        for name in self.blank_fields:
            if row.get(name) == "":
                row[name] = None
        return row

    def to_backend_patch(self, patch: Mapping[str, Any], record_id: Optional[str] = None) -> Dict[str, Any]:
        """Validate and serialize a partial update.

        The id may be repeated but not changed; timestamps are owned by the
        adapter and dropped here.
        """
        if not isinstance(patch, Mapping):
            raise ValidationError(f"{self.entity} patch must be a mapping")
        out: Dict[str, Any] = {}
        errors = []
        for name, value in patch.items():
            if name in TIMESTAMP_FIELDS:
                continue
            if name == self.id_field:
                if record_id is not None and value != record_id:
                    raise ValidationError(f"{self.entity} id is immutable")
                continue
            if name not in self.model.model_fields:
                errors.append({"loc": [name], "msg": "Extra inputs are not permitted", "type": "extra_forbidden"})
                continue
            if value is None and name in self.blank_fields:
                out[name] = None
                continue
            adapter = _field_adapter(self.model, name)
            try:
                validated = adapter.validate_python(value)
            except PydanticValidationError as exc:
                errors.extend(
                    {**err, "loc": [name, *err["loc"]]} for err in _pydantic_errors(exc)
                )
                continue
            dumped = adapter.dump_python(validated, mode="json")
            out[name] = None if (name in self.blank_fields and dumped == "") else dumped
        if errors:
            raise ValidationError(f"Invalid {self.entity} update", errors)
        return out


@lru_cache(maxsize=None)
def _field_adapter(model: Type[DomainModel], name: str) -> TypeAdapter:
    info = model.model_fields[name]
    # pydantic moves top-level Annotated metadata (validators, constraints) off the annotation.
    if info.metadata:
        return TypeAdapter(Annotated[(info.annotation, *info.metadata)])
    return TypeAdapter(info.annotation)


# ---------------------------------------------------------------------------
# Per-entity mappers
# ---------------------------------------------------------------------------

HOUSEHOLD = EntityMapper(
    "Household", Household,
    blank_fields=("address_line1", "address_line2", "city", "state", "zip"),
    legacy_fields={
        "preferredScriptureTranslation": "preferred_scripture_translation",
        "household_name": "name",
    },
)

GUARDIAN = EntityMapper(
    "Guardian", Guardian,
    blank_fields=("first_name", "last_name", "mobile_phone"),
)

EMERGENCY_CONTACT = EntityMapper(
    "EmergencyContact", EmergencyContact,
    blank_fields=("first_name", "last_name", "mobile_phone"),
)

CHILD = EntityMapper(
    "Child", Child,
    legacy_fields={"isActive": "is_active", "photoUrl": "photo_url"},
)

REGISTRATION_CYCLE = EntityMapper("RegistrationCycle", RegistrationCycle)

REGISTRATION = EntityMapper("Registration", Registration, json_fields=("consents",))

MINISTRY = EntityMapper(
    "Ministry", Ministry,
    legacy_fields={
        "label": "name",
        "ministry_code": "code",
        "enrollmentType": "enrollment_type",
        "dataProfile": "data_profile",
    },
    json_fields=("custom_questions",),
)

MINISTRY_ENROLLMENT = EntityMapper("MinistryEnrollment", MinistryEnrollment, json_fields=("custom_fields",))

EVENT = EntityMapper("Event", Event, json_fields=("timeslots",))

ATTENDANCE = EntityMapper("Attendance", Attendance)

INCIDENT = EntityMapper("Incident", Incident)

USER = EntityMapper("User", User)

USER_HOUSEHOLD = EntityMapper("UserHousehold", UserHousehold)

LEADER_PROFILE = EntityMapper(
    "LeaderProfile", LeaderProfile,
    blank_fields=("first_name", "last_name"),
    legacy_fields={"backgroundCheckComplete": "background_check_complete", "isActive": "is_active"},
)

MINISTRY_LEADER_MEMBERSHIP = EntityMapper(
    "MinistryLeaderMembership", MinistryLeaderMembership,
    legacy_fields={"assignment_id": "membership_id"},
)

MINISTRY_ACCOUNT = EntityMapper("MinistryAccount", MinistryAccount)

MINISTRY_GROUP = EntityMapper("MinistryGroup", MinistryGroup)

MINISTRY_GROUP_MEMBER = EntityMapper("MinistryGroupMember", MinistryGroupMember)

BIBLE_BEE_CYCLE = EntityMapper(
    "BibleBeeCycle", BibleBeeCycle,
    legacy_fields={"name": "label", "isActive": "is_active"},
)

BIBLE_BEE_YEAR = EntityMapper("BibleBeeYear", BibleBeeYear, legacy_fields={"name": "label"})

BIBLE_BEE_ENROLLMENT = EntityMapper(
    "BibleBeeEnrollment", BibleBeeEnrollment,
    legacy_fields={"year_id": "cycle_id", "bible_bee_cycle_id": "cycle_id"},
)

ENROLLMENT_OVERRIDE = EntityMapper(
    "EnrollmentOverride", EnrollmentOverride,
    legacy_fields={"year_id": "cycle_id", "bible_bee_cycle_id": "cycle_id"},
)

DIVISION = EntityMapper("Division", Division, legacy_fields={"year_id": "cycle_id"})

SCRIPTURE = EntityMapper(
    "Scripture", Scripture,
    legacy_fields={
        "competitionYearId": "cycle_id",
        "sortOrder": "sort_order",
        "scripture_order": "sort_order",
        "bookLangAlt": "book_lang_alt",
    },
    json_fields=("texts",),
)

STUDENT_SCRIPTURE = EntityMapper(
    "StudentScripture", StudentScripture,
    legacy_fields={
        "childId": "child_id",
        "scriptureId": "scripture_id",
        "competitionYearId": "cycle_id",
        "completedAt": "completed_at",
    },
)

ESSAY_PROMPT = EntityMapper("EssayPrompt", EssayPrompt, legacy_fields={"year_id": "cycle_id"})

STUDENT_ESSAY = EntityMapper(
    "StudentEssay", StudentEssay,
    legacy_fields={
        "childId": "child_id",
        "competitionYearId": "cycle_id",
        "submittedAt": "submitted_at",
        "promptText": "prompt_text",
    },
)

BRANDING_SETTINGS = EntityMapper(
    "BrandingSettings", BrandingSettings,
    legacy_fields={
        "primaryColor": "primary_color",
        "secondaryColor": "secondary_color",
        "logoUrl": "logo_url",
        "orgName": "org_name",
        "appName": "app_name",
        "useLogoOnly": "use_logo_only",
        "youtubeUrl": "youtube_url",
        "instagramUrl": "instagram_url",
    },
)

FORM_DRAFT = EntityMapper("FormDraft", FormDraft)

AUDIT_LOG = EntityMapper("AuditLogEntry", AuditLogEntry, json_fields=("diff",))
