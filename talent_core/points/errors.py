class PointsLedgerError(Exception):
    pass


class PointsLedgerUnavailableError(PointsLedgerError):
    pass


class PointsAmountInvalidError(PointsLedgerError):
    pass


class PointsIdempotencyConflictError(PointsLedgerError):
    pass
