from __future__ import annotations

import argparse
import asyncio
import re
from pathlib import Path

import asyncpg
from alembic import command
from alembic.config import Config
from sqlalchemy.engine import make_url

from talent_core.core.config import get_settings
from talent_core.core.integration_db_safety import assess_integration_db_safety

IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
ALEMBIC_INI = Path(__file__).resolve().parents[1] / "alembic.ini"


def _validate_target(database_url: str) -> str:
    safety = assess_integration_db_safety(database_url)
    if not safety.is_safe:
        raise RuntimeError(f"Refusing to prepare database '{safety.database_name}': {safety.reason}")
    if IDENTIFIER_RE.fullmatch(safety.database_name) is None:
        raise RuntimeError(
            f"Unsupported database name '{safety.database_name}'. "
            "Only [A-Za-z0-9_] identifiers are supported."
        )
    return safety.database_name


async def _ensure_database_exists(database_url: str) -> None:
    db_name = _validate_target(database_url)
    parsed = make_url(database_url)
    host = parsed.host or "localhost"
    port = int(parsed.port or 5432)
    if parsed.username is None:
        raise RuntimeError("DATABASE_URL username is required.")

    conn = await asyncpg.connect(
        host=host,
        port=port,
        user=parsed.username,
        password=parsed.password,
        database="postgres",
    )
    try:
        exists = await conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", db_name)
        if exists:
            print(f"ensure_test_db: exists db={db_name} host={host}:{port}")  # noqa: T201
            return

        await conn.execute(f'CREATE DATABASE "{db_name}"')
        print(f"ensure_test_db: created db={db_name} host={host}:{port}")  # noqa: T201
    finally:
        await conn.close()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create the integration test database.")
    parser.add_argument(
        "--migrate",
        action="store_true",
        help="apply alembic migrations up to head after the database exists",
    )
    args = parser.parse_args(argv)

    asyncio.run(_ensure_database_exists(get_settings().database_url))
    if args.migrate:
        command.upgrade(Config(str(ALEMBIC_INI)), "head")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
