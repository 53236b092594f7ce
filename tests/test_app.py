"""Tests for settings, the composition root and startup diagnostics."""

import asyncio

import pytest
from pydantic import ValidationError

from kakeibo.audit import AuditLogger
from kakeibo.config import AppSettings, Settings, get_settings
from kakeibo.models import AuditEventBuilder, Collection
from kakeibo.orchestrator import create_app_components, create_store, run_diagnostics
from kakeibo.services.storage import InMemoryDocumentStore

from conftest import FlakyDocumentStore, fixed_clock


@pytest.fixture
def memory_settings(monkeypatch):
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    monkeypatch.setenv("PERSIST_AUDIT_LOG", "true")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


class TestAppSettings:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("TIMEZONE", raising=False)
        app = AppSettings(_env_file=None)
        assert app.timezone == "Asia/Tokyo"
        assert app.default_payment_methods_list == ["現金", "クレジットカード", "PayPay", "その他"]
        assert "食費" in app.default_categories_list

    def test_unknown_timezone_rejected(self):
        with pytest.raises(ValidationError):
            AppSettings(_env_file=None, timezone="Mars/Olympus")

    def test_unknown_backend_rejected(self):
        with pytest.raises(ValidationError):
            AppSettings(_env_file=None, storage_backend="postgres")


class TestComposition:

    def test_memory_backend(self, memory_settings):
        assert isinstance(create_store(memory_settings), InMemoryDocumentStore)

    def test_components_share_one_session(self, memory_settings):
        components = create_app_components(memory_settings, clock=fixed_clock)
        assert components.session.is_active

        components.auth.sign_in("u1", display_name="太郎")
        assert components.session.user.uid == "u1"

        result = asyncio.run(components.taxonomy_flow.seed_default_categories())
        assert result.success
        categories = asyncio.run(components.taxonomy_flow.load_categories()).items
        assert sorted(c.name for c in categories) == sorted(memory_settings.app.default_categories_list)

    def test_audit_log_persisted_when_enabled(self, memory_settings):
        components = create_app_components(memory_settings)
        asyncio.run(components.taxonomy_flow.create_category("食費"))
        events = asyncio.run(components.store.list_all(Collection.AUDIT_LOG))
        assert [e["eventType"] for e in events] == ["category_created"]


class TestAuditLogger:

    def test_store_failure_does_not_raise(self):
        store = FlakyDocumentStore(fail_on={"add": 0})
        event = AuditEventBuilder.entity_deleted("tag", "t1")
        assert asyncio.run(AuditLogger(store).log(event)) is False

    def test_without_store_only_logs(self):
        event = AuditEventBuilder.entity_deleted("tag", "t1")
        assert asyncio.run(AuditLogger().log(event)) is True


class TestDiagnostics:

    def test_healthy_store(self, memory_settings):
        store = InMemoryDocumentStore({"categories": {"c1": {"name": "食費"}}})
        checks = asyncio.run(run_diagnostics(store, memory_settings))
        assert all(check.passed for check in checks)
        assert checks[-1].detail == "1 categories"

    def test_unreachable_store(self, memory_settings):
        store = FlakyDocumentStore(fail_on={"list_all": 0})
        checks = asyncio.run(run_diagnostics(store, memory_settings))
        assert checks[-1].name == "store.read"
        assert not checks[-1].passed

    def test_uses_given_settings(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "google_sheets")
        get_settings.cache_clear()

        class MemoryOnlySettings(Settings):
            @property
            def app(self) -> AppSettings:
                return AppSettings(_env_file=None, storage_backend="memory")

        checks = asyncio.run(run_diagnostics(InMemoryDocumentStore(), MemoryOnlySettings()))
        get_settings.cache_clear()
        assert [check.name for check in checks] == ["settings.app", "store.read"]
        assert all(check.passed for check in checks)
