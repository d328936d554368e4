# commission/reconciliation.py
from decimal import Decimal
from typing import Dict, Any, List

from extensions import db
from logger import repair_logger as logger
from models import AuditLog, Profile, Role
from commission.wallet import WalletHelper


class ReconciliationHelper:
    """
    Compares the cached profiles.wallet_balance with the credited commission
    ledger. Nothing here runs automatically; repairs are operator-triggered.
    """

    DEFAULT_TOLERANCE = Decimal('0.01')

    @staticmethod
    def find_wallet_drift(tolerance: Decimal = DEFAULT_TOLERANCE) -> List[Dict[str, Any]]:
        tolerance = Decimal(str(tolerance))
        profiles = Profile.query.filter(
            Profile.role.in_([Role.PROMOTER.value, Role.ADMIN.value])
        ).order_by(Profile.created_at).all()

        drifted = []
        for profile in profiles:
            cached = Decimal(str(profile.wallet_balance or 0)).quantize(Decimal('0.01'))
            expected = WalletHelper.credited_total(profile.id)
            drift = cached - expected
            if abs(drift) > tolerance:
                drifted.append({
                    "id": profile.id,
                    "name": profile.name,
                    "role": profile.role,
                    "promoter_id": profile.promoter_id,
                    "cached_balance": float(cached),
                    "expected_balance": float(expected),
                    "drift": float(drift),
                })

        logger.info(f"Wallet drift check: {len(drifted)} of {len(profiles)} profiles drifted (tolerance {tolerance})")
        return drifted

    @staticmethod
    def repair_wallet_drift(dry_run: bool = True, tolerance: Decimal = DEFAULT_TOLERANCE,
                            actor: str = "system") -> Dict[str, Any]:
        """Reset drifted cached balances to the ledger total, one commit per profile."""
        drifted = ReconciliationHelper.find_wallet_drift(tolerance)
        summary = {
            "dry_run": dry_run,
            "profiles_found": len(drifted),
            "repaired": 0,
            "failed": 0,
            "profiles": drifted,
            "errors": [],
        }
        if dry_run:
            return summary

        for item in drifted:
            try:
                profile = db.session.get(Profile, item["id"])
                profile.wallet_balance = Decimal(str(item["expected_balance"])).quantize(Decimal('0.01'))
                AuditLog.record("repair_wallet_drift", {
                    "profile_id": profile.id,
                    "old_balance": item["cached_balance"],
                    "new_balance": item["expected_balance"],
                }, actor=actor)
                db.session.commit()
                summary["repaired"] += 1
                logger.info(
                    f"Wallet {profile.id} reset from {item['cached_balance']} to {item['expected_balance']}"
                )
            except Exception as e:
                db.session.rollback()
                summary["failed"] += 1
                summary["errors"].append({"profile_id": item["id"], "error": str(e)})
                logger.error(f"Failed to reconcile wallet {item['id']}: {e}")

        return summary
