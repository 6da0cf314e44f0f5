from __future__ import annotations

APPLICATION_STATUS_PENDING = "PENDING"
APPLICATION_STATUS_APPROVED = "APPROVED"
APPLICATION_STATUS_REJECTED = "REJECTED"
APPLICATION_STATUSES = (
    APPLICATION_STATUS_PENDING,
    APPLICATION_STATUS_APPROVED,
    APPLICATION_STATUS_REJECTED,
)
APPLICATION_TERMINAL_STATUSES = frozenset({APPLICATION_STATUS_APPROVED, APPLICATION_STATUS_REJECTED})

DECISION_APPROVE = "APPROVE"
DECISION_REJECT = "REJECT"
DECISION_TO_STATUS = {
    DECISION_APPROVE: APPLICATION_STATUS_APPROVED,
    DECISION_REJECT: APPLICATION_STATUS_REJECTED,
}

WORK_UNIT_STATUS_OPEN = "OPEN"
WORK_UNIT_STATUS_ASSIGNED = "ASSIGNED"
WORK_UNIT_STATUS_CLOSED = "CLOSED"
