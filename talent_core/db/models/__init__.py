from talent_core.db.models.applications import Application
from talent_core.db.models.point_balances import PointBalance
from talent_core.db.models.points_ledger_entries import PointsLedgerEntry
from talent_core.db.models.referral_codes import ReferralCode
from talent_core.db.models.referrals import Referral
from talent_core.db.models.work_units import WorkUnit

__all__ = [
    "Application",
    "PointBalance",
    "PointsLedgerEntry",
    "ReferralCode",
    "Referral",
    "WorkUnit",
]
