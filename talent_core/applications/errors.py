from __future__ import annotations

from talent_core.referrals.errors import (
    ERROR_CATEGORY_CONFLICT,
    ERROR_CATEGORY_NOT_FOUND,
    ERROR_CATEGORY_VALIDATION,
)


class ApplicationError(Exception):
    code = "E_APPLICATION"
    category = ERROR_CATEGORY_VALIDATION


class WorkUnitUnavailableError(ApplicationError):
    code = "E_WORK_UNIT_UNAVAILABLE"
    category = ERROR_CATEGORY_CONFLICT


class DuplicateApplicationError(ApplicationError):
    code = "E_APPLICATION_DUPLICATE"
    category = ERROR_CATEGORY_CONFLICT


class ApplicationNotFoundError(ApplicationError):
    code = "E_APPLICATION_NOT_FOUND"
    category = ERROR_CATEGORY_NOT_FOUND


class AlreadyResolvedError(ApplicationError):
    code = "E_APPLICATION_ALREADY_RESOLVED"
    category = ERROR_CATEGORY_CONFLICT


class WorkUnitNoLongerAvailableError(ApplicationError):
    code = "E_WORK_UNIT_NO_LONGER_AVAILABLE"
    category = ERROR_CATEGORY_CONFLICT


class MissingReasonError(ApplicationError):
    code = "E_APPLICATION_REASON_REQUIRED"
    category = ERROR_CATEGORY_VALIDATION


class InvalidDecisionError(ApplicationError):
    code = "E_APPLICATION_DECISION_INVALID"
    category = ERROR_CATEGORY_VALIDATION


class InvalidStatusFilterError(ApplicationError):
    code = "E_APPLICATION_STATUS_FILTER_INVALID"
    category = ERROR_CATEGORY_VALIDATION
