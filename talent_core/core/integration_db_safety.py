from __future__ import annotations

import re
from dataclasses import dataclass

from sqlalchemy.engine import make_url

TEST_DB_NAME_RE = re.compile(r"(^|_)test(_|$)", re.IGNORECASE)
ALLOWED_LOCAL_HOSTS = frozenset(
    {
        "localhost",
        "127.0.0.1",
        "::1",
        "postgres",
        "talent_core_postgres",
    }
)


@dataclass(frozen=True, slots=True)
class IntegrationDbTarget:
    backend: str
    database_name: str
    host: str


@dataclass(frozen=True, slots=True)
class IntegrationDbSafetyResult:
    is_safe: bool
    reason: str
    database_name: str
    host: str


def _parse_target(database_url: str) -> IntegrationDbTarget:
    parsed = make_url(database_url)
    return IntegrationDbTarget(
        backend=parsed.get_backend_name(),
        database_name=(parsed.database or "").strip(),
        host=(parsed.host or "").strip().lower(),
    )


def _unsafe_reason(target: IntegrationDbTarget) -> str | None:
    if target.backend != "postgresql":
        return "Integration tests need PostgreSQL: conditional updates rely on its row locking."
    if not target.database_name:
        return "Database name is empty."
    if TEST_DB_NAME_RE.search(target.database_name) is None:
        return "Database name must carry a 'test' segment, e.g. 'talent_core_test'."
    if target.host not in ALLOWED_LOCAL_HOSTS:
        return f"Host '{target.host}' is not an allowed local integration-test host."
    return None


def assess_integration_db_safety(database_url: str) -> IntegrationDbSafetyResult:
    target = _parse_target(database_url)
    reason = _unsafe_reason(target)
    return IntegrationDbSafetyResult(
        is_safe=reason is None,
        reason=reason or "ok",
        database_name=target.database_name,
        host=target.host,
    )


def assert_safe_integration_db(database_url: str) -> None:
    result = assess_integration_db_safety(database_url)
    if result.is_safe:
        return

    raise RuntimeError(
        "Refusing to run integration tests with destructive TRUNCATE.\n"
        f"Reason: {result.reason}\n"
        f"Resolved DB: name='{result.database_name}' host='{result.host}'"
    )
