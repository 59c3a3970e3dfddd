"""Unit tests for main.py - Application wiring."""

import pytest
from unittest.mock import AsyncMock, patch

from config import Config, DatabaseConfig
from errors import ConflictError
from main import Application
from reconciler import LifecycleHookReconciler, ReconcileResult


@pytest.fixture
def app_config():
    cfg = Config.default()
    cfg.database = DatabaseConfig(password="pw")
    return cfg


@pytest.mark.asyncio
class TestApplication:
    """Tests for Application."""

    async def test_initialize(self, app_config):
        with patch("main.DatabaseManager") as mock_db_class, patch(
            "main.configure_logging"
        ) as mock_logging:
            mock_db = mock_db_class.return_value
            mock_db.connect = AsyncMock()
            mock_db.initialize_schema = AsyncMock()

            app = Application(app_config)
            await app.initialize()

            mock_logging.assert_called_once_with(app_config.logging)
            mock_db.connect.assert_called_once()
            mock_db.initialize_schema.assert_called_once()
            assert app.api.api_base_url == "http://localhost:8080"
            assert isinstance(app.reconciler, LifecycleHookReconciler)

    async def test_reconcile_all(self, app_config):
        app = Application(app_config)
        app.db = AsyncMock()
        app.db.list_machine_pool_ids = AsyncMock(return_value=[1, 2])
        app.reconciler = AsyncMock()
        app.reconciler.reconcile_machine_pool = AsyncMock(
            side_effect=[ReconcileResult(success=True), ReconcileResult()]
        )

        results = await app.reconcile_all()

        assert list(results) == [1, 2]
        assert results[1].success is True
        assert results[2].success is False
        app.reconciler.reconcile_machine_pool.assert_any_call(app.db, 2)

    async def test_stop(self, app_config):
        app = Application(app_config)
        app.db = AsyncMock()
        app.api = AsyncMock()

        await app.stop()

        app.api.close.assert_called_once()
        app.db.close.assert_called_once()

    async def test_reconcile_all_continues_after_error(self, app_config):
        app = Application(app_config)
        app.db = AsyncMock()
        app.db.list_machine_pool_ids = AsyncMock(return_value=[1, 2])
        app.reconciler = AsyncMock()
        app.reconciler.reconcile_machine_pool = AsyncMock(
            side_effect=[ConflictError("stale"), ReconcileResult(success=True)]
        )

        results = await app.reconcile_all()

        assert app.reconciler.reconcile_machine_pool.call_count == 2
        assert results[1].success is False
        assert isinstance(results[1].error, ConflictError)
        assert results[1].message == "stale"
        assert results[2].success is True
