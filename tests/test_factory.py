"""Tests for backend selection and fallback in the adapter factory."""

import pytest

from gatherkids import config
from gatherkids.database import factory
from gatherkids.database.errors import ConfigurationError
from gatherkids.database.factory import (
    CREDENTIALS_MISSING_EVENT, LOCAL_UNAVAILABLE_EVENT, REMOTE_UNAVAILABLE_EVENT,
    create_database_adapter, create_maintenance_adapter,
)
from gatherkids.database.local_adapter import LocalDatabaseAdapter
from gatherkids.database.remote_adapter import RemoteDatabaseAdapter


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    monkeypatch.setattr(config, "DATABASE_MODE", "demo")
    monkeypatch.setattr(config, "SUPABASE_URL", "")
    monkeypatch.setattr(config, "SUPABASE_ANON_KEY", "")
    monkeypatch.setattr(config, "SUPABASE_SERVICE_ROLE_KEY", "")
    monkeypatch.setattr(config, "LOCAL_DATABASE_URL", "sqlite://")


def _remote_env(monkeypatch, mode="supabase", url="https://project.supabase.co", key="anon-key"):
    monkeypatch.setattr(config, "DATABASE_MODE", mode)
    monkeypatch.setattr(config, "SUPABASE_URL", url)
    monkeypatch.setattr(config, "SUPABASE_ANON_KEY", key)


class TestSelection:
    @pytest.mark.parametrize("mode", ["supabase", "remote"])
    def test_remote_mode_with_credentials(self, monkeypatch, sink, mode):
        _remote_env(monkeypatch, mode=mode)
        adapter = create_database_adapter(sink=sink)
        assert isinstance(adapter, RemoteDatabaseAdapter)
        assert adapter.backend == "remote"
        assert sink.events == []

    @pytest.mark.parametrize("mode", ["demo", "local", ""])
    def test_other_modes_stay_local(self, monkeypatch, sink, mode):
        _remote_env(monkeypatch, mode=mode)
        adapter = create_database_adapter(sink=sink)
        assert isinstance(adapter, LocalDatabaseAdapter)
        assert sink.events == []

    def test_keywords_override_config(self, sink):
        adapter = create_database_adapter(
            mode="SUPABASE", url="https://x.supabase.co", key="k", sink=sink,
        )
        assert isinstance(adapter, RemoteDatabaseAdapter)

    def test_each_call_builds_a_new_adapter(self, sink):
        assert create_database_adapter(sink=sink) is not create_database_adapter(sink=sink)


class TestFallback:
    def test_missing_key_falls_back_with_diagnostic(self, monkeypatch, sink):
        _remote_env(monkeypatch, key="")
        adapter = create_database_adapter(sink=sink)
        assert isinstance(adapter, LocalDatabaseAdapter)
        assert sink.named(CREDENTIALS_MISSING_EVENT) == [
            {"mode": "supabase", "missing": ["SUPABASE_ANON_KEY"]},
        ]

    def test_missing_both_names_both(self, monkeypatch, sink):
        _remote_env(monkeypatch, url="", key="")
        create_database_adapter(sink=sink)
        (payload,) = sink.named(CREDENTIALS_MISSING_EVENT)
        assert payload["missing"] == ["SUPABASE_URL", "SUPABASE_ANON_KEY"]

    def test_remote_construction_failure_falls_back(self, monkeypatch, sink):
        _remote_env(monkeypatch)

        def broken(*args, **kwargs):
            raise ValueError("bad url")

        monkeypatch.setattr(factory, "RemoteDatabaseAdapter", broken)
        adapter = create_database_adapter(sink=sink)
        assert isinstance(adapter, LocalDatabaseAdapter)
        (payload,) = sink.named(REMOTE_UNAVAILABLE_EVENT)
        assert "bad url" in payload["error"]

    def test_unopenable_local_store_falls_back_to_memory(self, tmp_path, sink):
        adapter = create_database_adapter(local_url=f"sqlite:///{tmp_path}/no/such/dir.db", sink=sink)
        assert isinstance(adapter, LocalDatabaseAdapter)
        assert adapter.store.url == config.LOCAL_FALLBACK_URL
        assert len(sink.named(LOCAL_UNAVAILABLE_EVENT)) == 1

    @pytest.mark.parametrize("local_url", [
        "not a url",
        "postgresql://user:pw@localhost/gatherkids",
        "nosuchdialect://host/db",
    ])
    def test_unusable_local_url_falls_back_to_memory(self, sink, local_url):
        adapter = create_database_adapter(mode="demo", local_url=local_url, sink=sink)
        assert isinstance(adapter, LocalDatabaseAdapter)
        assert adapter.store.url == config.LOCAL_FALLBACK_URL
        (payload,) = sink.named(LOCAL_UNAVAILABLE_EVENT)
        assert payload["url"] == local_url

    @pytest.mark.asyncio
    async def test_fallback_adapter_is_usable(self, monkeypatch, sink):
        _remote_env(monkeypatch, key="")
        adapter = create_database_adapter(sink=sink)
        h = await adapter.create_household({"name": "Fallback"})
        assert (await adapter.get_household(h.household_id)).name == "Fallback"
        await adapter.aclose()


class TestMaintenanceAdapter:
    def test_requires_service_key(self, monkeypatch):
        monkeypatch.setattr(config, "SUPABASE_URL", "https://project.supabase.co")
        monkeypatch.setattr(config, "SUPABASE_ANON_KEY", "anon-key")
        with pytest.raises(ConfigurationError) as info:
            create_maintenance_adapter()
        assert info.value.missing == ["SUPABASE_SERVICE_ROLE_KEY"]

    def test_uses_service_key(self, monkeypatch):
        monkeypatch.setattr(config, "SUPABASE_URL", "https://project.supabase.co")
        monkeypatch.setattr(config, "SUPABASE_SERVICE_ROLE_KEY", "service-key")
        adapter = create_maintenance_adapter()
        assert isinstance(adapter, RemoteDatabaseAdapter)
        assert adapter.client._headers["apikey"] == "service-key"
