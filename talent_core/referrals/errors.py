from __future__ import annotations

ERROR_CATEGORY_VALIDATION = "validation"
ERROR_CATEGORY_CONFLICT = "conflict"
ERROR_CATEGORY_NOT_FOUND = "not_found"
ERROR_CATEGORY_FATAL = "fatal"


class ReferralError(Exception):
    code = "E_REFERRAL"
    category = ERROR_CATEGORY_FATAL


class InvalidCodeError(ReferralError):
    code = "E_REFERRAL_CODE_INVALID"
    category = ERROR_CATEGORY_VALIDATION


class SelfReferralError(ReferralError):
    code = "E_REFERRAL_SELF"
    category = ERROR_CATEGORY_VALIDATION


class AlreadyReferredError(ReferralError):
    code = "E_REFERRAL_ALREADY_REFERRED"
    category = ERROR_CATEGORY_CONFLICT


class RelationshipNotFoundError(ReferralError):
    code = "E_REFERRAL_NOT_FOUND"
    category = ERROR_CATEGORY_NOT_FOUND


class ReferralCodeGenerationError(ReferralError):
    """Every candidate collided; the caller should retry the request later."""

    code = "E_REFERRAL_CODE_UNAVAILABLE"
    category = ERROR_CATEGORY_FATAL
