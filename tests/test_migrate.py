"""Tests for copying a local store into the remote backend."""

import httpx
import pytest

from gatherkids import config, migrate
from gatherkids.migrate import copy_collection, migrate_local_to_remote


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr(migrate, "configure_logging", lambda: None)


@pytest.fixture
async def seeded(local_adapter):
    await local_adapter.create_household({"household_id": "h1", "name": "Smith"})
    await local_adapter.create_household({"household_id": "h2", "name": "Jones"})
    await local_adapter.create_child({"child_id": "c1", "household_id": "h1", "first_name": "Ana"})
    return local_adapter


@pytest.mark.asyncio
async def test_copies_records_with_original_timestamps(seeded, remote_adapter, postgrest):
    report = await copy_collection(seeded, remote_adapter, "households")
    assert (report.copied, report.skipped, report.errors) == (2, 0, 0)

    local = await seeded.get_household("h1")
    remote = await remote_adapter.get_household("h1")
    assert remote == local


@pytest.mark.asyncio
async def test_existing_records_are_skipped(seeded, remote_adapter, postgrest):
    postgrest.seed("households", {"household_id": "h1", "name": "Already there",
                                  "created_at": "2024-01-01T00:00:00.000Z",
                                  "updated_at": "2024-01-01T00:00:00.000Z"})
    report = await copy_collection(seeded, remote_adapter, "households")
    assert (report.copied, report.skipped) == (1, 1)
    assert (await remote_adapter.get_household("h1")).name == "Already there"


@pytest.mark.asyncio
async def test_dry_run_writes_nothing(seeded, remote_adapter, postgrest):
    reports = await migrate_local_to_remote(seeded, remote_adapter, ["households", "children"], dry_run=True)
    assert [(r.collection, r.copied) for r in reports] == [("households", 2), ("children", 1)]
    assert postgrest.tables["households"] == []
    assert not any(r.method == "POST" for r in postgrest.requests)


@pytest.mark.asyncio
async def test_record_errors_are_counted(seeded, remote_adapter, postgrest):
    postgrest.fail_next(httpx.Response(406, json={"code": "PGRST116", "message": "no rows"}))
    postgrest.fail_next(httpx.Response(403, json={"code": "42501", "message": "permission denied"}))
    report = await copy_collection(seeded, remote_adapter, "households")
    assert report.errors == 1
    assert report.copied == 1


def test_main_without_service_key_exits_2(monkeypatch, capsys):
    monkeypatch.setattr(config, "SUPABASE_URL", "https://project.supabase.co")
    monkeypatch.setattr(config, "SUPABASE_SERVICE_ROLE_KEY", "")
    assert migrate.main(["--local-url", "sqlite://"]) == 2
    assert "SUPABASE_SERVICE_ROLE_KEY" in capsys.readouterr().out


def test_main_reports_summary(monkeypatch, capsys, remote_adapter):
    monkeypatch.setattr(migrate, "create_maintenance_adapter", lambda: remote_adapter)
    assert migrate.main(["--local-url", "sqlite://", "--collections", "households,children"]) == 0
    out = capsys.readouterr().out
    assert "households" in out
    assert "Migration Summary" in out


def test_unknown_collection_aborts(monkeypatch, capsys, remote_adapter):
    monkeypatch.setattr(migrate, "create_maintenance_adapter", lambda: remote_adapter)
    assert migrate.main(["--local-url", "sqlite://", "--collections", "volunteer_shifts"]) == 1
    assert "Unknown collection" in capsys.readouterr().out
