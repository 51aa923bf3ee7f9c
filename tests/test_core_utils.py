"""
Unit tests for gatherkids.core and the entity catalogue.

Tests cover:
  • Timestamp formatting and monotonic selection
  • Draft ids
  • Diagnostic sinks
  • List-filter normalization
"""

import json
import logging
import re

import pytest

from gatherkids.core.diagnostics import CapturingDiagnosticSink, LoggingDiagnosticSink
from gatherkids.core.utils import draft_id, group_member_id, later_timestamp, new_id, utc_now_iso
from gatherkids.database.entities import ENTITIES, get_spec, matches_search, normalize_filters
from gatherkids.database.errors import ValidationError
from gatherkids.domain.enums import IncidentSeverity


# ---------------------------------------------------------------------------
# Timestamps & ids
# ---------------------------------------------------------------------------

class TestTimestamps:
    def test_utc_now_format(self):
        assert re.fullmatch(r"\d{4}-\d\d-\d\dT\d\d:\d\d:\d\d\.\d{3}Z", utc_now_iso())

    def test_later_keeps_newer_previous(self):
        assert later_timestamp("2025-01-01T00:00:00.000Z", "2026-01-01T00:00:00.000Z") == "2026-01-01T00:00:00.000Z"

    def test_later_takes_candidate(self):
        assert later_timestamp("2025-01-02T00:00:00.000Z", "2025-01-01T00:00:00+00:00") == "2025-01-02T00:00:00.000Z"

    def test_later_without_previous(self):
        assert later_timestamp("2025-01-01T00:00:00.000Z", None) == "2025-01-01T00:00:00.000Z"

    def test_later_with_unparseable_previous(self):
        assert later_timestamp("2025-01-01T00:00:00.000Z", "yesterday") == "2025-01-01T00:00:00.000Z"


class TestIds:
    def test_new_ids_are_unique(self):
        assert len({new_id() for _ in range(50)}) == 50

    def test_draft_id(self):
        assert draft_id("registration", "u1") == "registration::u1"

    def test_group_member_id(self):
        assert group_member_id("g-music", "m-choir") == "g-music::m-choir"


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------

class TestDiagnostics:
    def test_logging_sink_writes_event_and_json(self, caplog):
        sink = LoggingDiagnosticSink()
        with caplog.at_level(logging.WARNING, logger="gatherkids.diagnostics"):
            sink.emit("remote_credentials_missing", missing=["SUPABASE_URL"])
        (record,) = caplog.records
        event, payload = record.getMessage().split(" ", 1)
        assert event == "remote_credentials_missing"
        assert json.loads(payload) == {"missing": ["SUPABASE_URL"]}

    def test_capturing_sink(self):
        sink = CapturingDiagnosticSink()
        sink.emit("a", x=1)
        sink.emit("b", y=2)
        sink.emit("a", x=3)
        assert sink.named("a") == [{"x": 1}, {"x": 3}]
        sink.clear()
        assert sink.events == []


# ---------------------------------------------------------------------------
# Entity catalogue
# ---------------------------------------------------------------------------

class TestFilters:
    def test_catalogue_covers_every_collection(self):
        for name in ("households", "guardians", "emergency_contacts", "children",
                     "registration_cycles", "registrations", "ministries",
                     "ministry_enrollments", "events", "attendance", "incidents",
                     "users", "bible_bee_cycles", "divisions", "scriptures",
                     "student_scriptures", "essay_prompts", "student_essays",
                     "branding_settings"):
            assert name in ENTITIES

    def test_unknown_collection(self):
        with pytest.raises(ValidationError):
            get_spec("leaders")

    def test_normalize(self):
        query = normalize_filters(get_spec("incidents"), {
            "severity": IncidentSeverity.HIGH, "resolved": "false",
            "child_id": None, "search": "ignored", "limit": "10",
        })
        assert query.equals == {"severity": "high"}
        assert query.present == {"admin_acknowledged_at": False}
        assert query.search is None
        assert query.limit == 10
        assert query.offset == 0

    def test_bad_flag_value(self):
        with pytest.raises(ValidationError):
            normalize_filters(get_spec("children"), {"is_active": "maybe"})

    def test_blank_search_is_no_search(self):
        assert normalize_filters(get_spec("children"), {"search": "   "}).search is None

    def test_matches_search(self):
        record = {"first_name": "Ana", "last_name": None}
        assert matches_search(record, ("first_name", "last_name"), "an")
        assert not matches_search(record, ("first_name", "last_name"), "bo")
