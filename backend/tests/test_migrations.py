from pathlib import Path

from sqlalchemy import create_engine, inspect

import burnafter.config as config_module
from alembic import command
from alembic.config import Config

REPO_ROOT = Path(__file__).resolve().parents[2]


def test_alembic_upgrade_head_on_fresh_sqlite_db(tmp_path, monkeypatch):
    database_url = f"sqlite:///{tmp_path / 'fresh.db'}"
    monkeypatch.setattr(config_module.settings, "database_url", database_url)

    alembic_cfg = Config(str(REPO_ROOT / "alembic.ini"))
    command.upgrade(alembic_cfg, "head")

    engine = create_engine(database_url)
    inspector = inspect(engine)

    assert "secrets" in inspector.get_table_names()
    columns = {c["name"]: c for c in inspector.get_columns("secrets")}
    assert set(columns) == {"id", "public_id", "encrypted_content", "expires_at", "created_at"}
    assert columns["expires_at"]["nullable"] is True

    indexes = {ix["name"]: ix for ix in inspector.get_indexes("secrets")}
    assert indexes["ix_secrets_public_id"]["unique"]
    assert indexes["ix_secrets_expires_at"]["column_names"] == ["expires_at"]
    engine.dispose()


def test_downgrade_removes_table(tmp_path, monkeypatch):
    database_url = f"sqlite:///{tmp_path / 'down.db'}"
    monkeypatch.setattr(config_module.settings, "database_url", database_url)

    alembic_cfg = Config(str(REPO_ROOT / "alembic.ini"))
    command.upgrade(alembic_cfg, "head")
    command.downgrade(alembic_cfg, "base")

    engine = create_engine(database_url)
    assert "secrets" not in inspect(engine).get_table_names()
    engine.dispose()
