from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class ApplicationSnapshot:
    id: int
    work_unit_id: str
    applicant_user_id: str
    status: str
    created_at: datetime
    resolution_notes: str | None = None
    reviewer_user_id: str | None = None
    resolved_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class AvailableWorkUnit:
    work_unit_id: str
    title: str
    created_at: datetime
    application_status: str | None = None
    rejection_reason: str | None = None
