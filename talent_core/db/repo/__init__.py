from talent_core.db.repo.applications_repo import ApplicationsRepo
from talent_core.db.repo.points_ledger_repo import PointsLedgerRepo
from talent_core.db.repo.referral_codes_repo import ReferralCodesRepo
from talent_core.db.repo.referrals_repo import ReferralsRepo
from talent_core.db.repo.work_units_repo import WorkUnitsRepo

__all__ = [
    "ApplicationsRepo",
    "PointsLedgerRepo",
    "ReferralCodesRepo",
    "ReferralsRepo",
    "WorkUnitsRepo",
]
