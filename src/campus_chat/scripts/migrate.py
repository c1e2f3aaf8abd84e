# src/campus_chat/scripts/migrate.py
"""Apply Alembic migrations up to head against the configured database."""
from __future__ import annotations

import os

from alembic import command
from alembic.config import Config

from campus_chat.core.settings import settings

MIGRATIONS_DIR = os.path.abspath(
    os.path.join(os.path.dirname(__file__), "..", "..", "..", "migrations")
)


def run_upgrade_head() -> None:
    cfg = Config()
    cfg.set_main_option("script_location", MIGRATIONS_DIR)
    cfg.set_main_option("sqlalchemy.url", settings.database_url_sync)
    command.upgrade(cfg, "head")


if __name__ == "__main__":
    run_upgrade_head()
