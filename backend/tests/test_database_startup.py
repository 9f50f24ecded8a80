"""Tests for startup checks: schema present and key material loaded."""

import asyncio

import pytest
from sqlalchemy import create_engine, inspect

import burnafter.main as main_module
from burnafter.config import settings
from burnafter.exceptions import CipherConfigError
from burnafter.main import app, check_database_tables


class TestDatabaseStartup:
    def test_check_database_tables_raises_on_missing_tables(self, tmp_path, monkeypatch):
        empty_engine = create_engine(
            f"sqlite:///{tmp_path / 'empty.db'}",
            connect_args={"check_same_thread": False},
        )
        assert inspect(empty_engine).get_table_names() == []
        monkeypatch.setattr(main_module, "engine", empty_engine)

        with pytest.raises(RuntimeError) as exc_info:
            check_database_tables()

        error_message = str(exc_info.value)
        assert "Database tables missing: secrets" in error_message
        assert "alembic upgrade head" in error_message
        empty_engine.dispose()

    def test_check_database_tables_passes_with_all_tables(self, db_session, monkeypatch):
        monkeypatch.setattr(main_module, "engine", db_session.get_bind())
        check_database_tables()

    def test_required_tables_exist_after_setup(self, db_session):
        tables = set(inspect(db_session.get_bind()).get_table_names())
        assert "secrets" in tables


class TestKeyLoading:
    def test_cipher_loaded_on_startup(self, client):
        assert app.state.cipher is not None

    def test_startup_fails_without_key(self, db_session, monkeypatch):
        monkeypatch.setattr(main_module, "engine", db_session.get_bind())
        monkeypatch.setattr(settings, "encryption_key", "")
        monkeypatch.setattr(settings, "scheduler_enabled", False)

        async def start():
            async with main_module.lifespan(app):
                pass

        with pytest.raises(CipherConfigError):
            asyncio.run(start())
