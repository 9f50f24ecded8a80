"""Tests for the periodic cleanup job."""

from datetime import timedelta

from sqlalchemy.orm import sessionmaker

import burnafter.scheduler as scheduler_module
from burnafter.services.secret_store import SqlSecretStore
from tests.test_utils import utcnow


def test_cleanup_job_deletes_expired(file_session_factory, monkeypatch):
    with file_session_factory() as db:
        store = SqlSecretStore(db)
        expired = store.insert(b"x" * 40, utcnow() - timedelta(minutes=1))
        live = store.insert(b"y" * 40, utcnow() + timedelta(hours=1))

    monkeypatch.setattr(scheduler_module, "SessionLocal", file_session_factory)

    assert scheduler_module.cleanup_job() == 1
    assert scheduler_module.cleanup_job() == 0

    with file_session_factory() as db:
        store = SqlSecretStore(db)
        assert store.delete_if_present(expired.public_id) is False
        assert store.find_live(live.public_id) is not None


def test_cleanup_job_logs_and_survives_failure(tmp_path, monkeypatch):
    from sqlalchemy import create_engine

    # No tables: the DELETE fails
    engine = create_engine(f"sqlite:///{tmp_path / 'empty.db'}")
    monkeypatch.setattr(scheduler_module, "SessionLocal", sessionmaker(bind=engine))

    assert scheduler_module.cleanup_job() == 0
    engine.dispose()


def test_scheduler_registers_cleanup_job(monkeypatch):
    monkeypatch.setattr(scheduler_module.settings, "cleanup_interval_minutes", 15)

    scheduler_module.start_scheduler()
    try:
        job = scheduler_module.scheduler.get_job("cleanup_expired_secrets")
        assert job is not None
        assert job.trigger.interval == timedelta(minutes=15)
    finally:
        scheduler_module.shutdown_scheduler()
