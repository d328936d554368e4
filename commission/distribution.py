# commission/distribution.py
import secrets
import time
from decimal import Decimal
from typing import Dict, Any, List, Optional

from sqlalchemy import func

from extensions import db
from logger import commission_logger as logger
from models import (AffiliateCommission, AuditLog, CommissionStatus, Profile,
                    RecipientType, Role)
from commission.config import CommissionConfigHelper
from commission.referral_chain import ReferralChainHelper
from commission.wallet import WalletHelper
from errors import NotFoundError, ValidationError


def _transaction_id(level):
    return f"COMM-{int(time.time())}-{level}-{secrets.token_hex(3).upper()}"


class CommissionDistributionHelper:
    """
    Distributes the fixed commission pool for one customer up the promoter chain.

    Commission rows and wallet credits are written in the caller's session;
    distribute() commits unless commit=False, which lets customer creation
    wrap everything in a single transaction.
    """

    @staticmethod
    def existing_commission(customer_id: str) -> Optional[Dict[str, Any]]:
        rows = AffiliateCommission.query.filter_by(customer_id=customer_id).order_by(
            AffiliateCommission.level
        ).all()
        if not rows:
            return None

        total = sum((Decimal(str(row.amount)) for row in rows), Decimal('0'))
        return {
            "record_count": len(rows),
            "total_distributed": total,
            "records": rows,
        }

    @staticmethod
    def distribute(customer_id: str, initiator_promoter_id: str, commit: bool = True) -> Dict[str, Any]:
        """
        Credit each promoter of the referral chain its level amount and the
        unclaimed remainder to the admin. A customer that already has any
        commission row is skipped so a re-run never double-credits.
        """
        customer = db.session.get(Profile, customer_id)
        if customer is None or customer.role != Role.CUSTOMER.value:
            raise NotFoundError("Customer not found", {"customer_id": customer_id})
        if not initiator_promoter_id:
            raise ValidationError("Initiator promoter ID is required")

        existing = CommissionDistributionHelper.existing_commission(customer_id)
        if existing:
            logger.info(
                f"Commission already exists for customer {customer_id} - skipping "
                f"({existing['record_count']} records, {existing['total_distributed']})"
            )
            return {
                "success": True,
                "skipped": True,
                "customer_id": customer_id,
                "initiator_promoter_id": initiator_promoter_id,
                "total_distributed": float(existing["total_distributed"]),
                "levels_distributed": sum(1 for row in existing["records"] if row.level > 0),
                "admin_fallback": float(sum(
                    (Decimal(str(row.amount)) for row in existing["records"] if row.level == 0),
                    Decimal('0'),
                )),
                "commissions": [row.to_dict() for row in existing["records"]],
                "message": "Commission already distributed for this customer",
            }

        # Only promoters earn level commissions; the chain ends at the first non-promoter
        recipients: List[Profile] = []
        for profile in ReferralChainHelper.get_upline(initiator_promoter_id):
            if profile.role != Role.PROMOTER.value:
                break
            recipients.append(profile)

        commissions = []
        total_distributed = Decimal('0')
        remaining = Decimal('0')

        for level in range(1, CommissionConfigHelper.MAX_LEVEL + 1):
            amount = CommissionConfigHelper.get_level_amount(level)

            if level <= len(recipients):
                recipient = recipients[level - 1]
                row = AffiliateCommission(
                    customer_id=customer_id,
                    initiator_promoter_id=initiator_promoter_id,
                    promoter_id=initiator_promoter_id,
                    recipient_id=recipient.id,
                    recipient_type=RecipientType.PROMOTER.value,
                    level=level,
                    amount=amount,
                    status=CommissionStatus.CREDITED.value,
                    transaction_id=_transaction_id(level),
                    note=f"Level {level} Commission - ₹{amount}",
                )
                db.session.add(row)
                WalletHelper.credit_wallet(recipient, amount)
                commissions.append(row)
                total_distributed += amount
                logger.info(f"Level {level} commission: {amount} to promoter {recipient.id}")
            else:
                remaining += amount
                logger.info(f"Level {level} has no promoter - {amount} stays in pool for admin")

        if remaining > 0:
            admin = Profile.query.filter_by(role=Role.ADMIN.value).order_by(Profile.created_at).first()
            row = AffiliateCommission(
                customer_id=customer_id,
                initiator_promoter_id=initiator_promoter_id,
                promoter_id=initiator_promoter_id,
                recipient_id=admin.id if admin else None,
                recipient_type=RecipientType.ADMIN.value,
                level=CommissionConfigHelper.ADMIN_FALLBACK_LEVEL,
                amount=remaining,
                status=CommissionStatus.CREDITED.value,
                transaction_id=_transaction_id("ADMIN"),
                note=f"Unclaimed Commission Fallback - ₹{remaining}",
            )
            db.session.add(row)
            if admin is not None:
                WalletHelper.credit_wallet(admin, remaining)
            else:
                logger.warning(f"No admin profile - fallback of {remaining} for customer {customer_id} has no recipient")
            commissions.append(row)
            total_distributed += remaining

        db.session.flush()

        result = {
            "success": True,
            "skipped": False,
            "customer_id": customer_id,
            "initiator_promoter_id": initiator_promoter_id,
            "total_distributed": float(total_distributed),
            "levels_distributed": len(recipients[:CommissionConfigHelper.MAX_LEVEL]),
            "admin_fallback": float(remaining),
            "commissions": [row.to_dict() for row in commissions],
            "message": f"Distributed ₹{total_distributed} across "
                       f"{len(recipients[:CommissionConfigHelper.MAX_LEVEL])} levels",
        }

        if commit:
            db.session.commit()

        logger.info(
            f"Commission distribution complete for customer {customer_id}: "
            f"{result['total_distributed']} total, {result['levels_distributed']} levels, "
            f"admin fallback {result['admin_fallback']}"
        )
        return result

    @staticmethod
    def find_customers_missing_commissions() -> List[Profile]:
        """Customers linked to a promoter that have no commission rows at all."""
        has_commission = db.session.query(AffiliateCommission.customer_id).distinct()
        return Profile.query.filter(
            Profile.role == Role.CUSTOMER.value,
            Profile.parent_promoter_id.isnot(None),
            Profile.id.notin_(has_commission),
        ).order_by(Profile.created_at).all()

    @staticmethod
    def repair_missing_commissions(dry_run: bool = True, actor: str = "system") -> Dict[str, Any]:
        """
        Distribute commission for every customer that never received it.
        Each customer is committed on its own; a failure is logged and the
        loop continues with the next one.
        """
        customers = CommissionDistributionHelper.find_customers_missing_commissions()
        summary = {
            "dry_run": dry_run,
            "customers_found": len(customers),
            "repaired": 0,
            "failed": 0,
            "total_distributed": 0.0,
            "errors": [],
        }

        if dry_run:
            summary["customers"] = [
                {"id": c.id, "customer_id": c.customer_id, "name": c.name} for c in customers
            ]
            return summary

        for customer in customers:
            try:
                result = CommissionDistributionHelper.distribute(
                    customer.id, customer.parent_promoter_id, commit=False
                )
                AuditLog.record("repair_missing_commission", {
                    "customer_id": customer.id,
                    "total_distributed": result["total_distributed"],
                    "levels_distributed": result["levels_distributed"],
                }, actor=actor)
                db.session.commit()
                summary["repaired"] += 1
                summary["total_distributed"] += result["total_distributed"]
            except Exception as e:
                db.session.rollback()
                summary["failed"] += 1
                summary["errors"].append({"customer_id": customer.id, "error": str(e)})
                logger.error(f"Failed to repair commission for customer {customer.id}: {e}")

        return summary

    @staticmethod
    def commission_totals(rows: List[AffiliateCommission]) -> Dict[str, Any]:
        """Totals over credited/completed rows, split by commission type."""
        totals = {
            "totalEarned": Decimal('0'),
            "totalCount": 0,
            "affiliateEarned": Decimal('0'),
            "affiliateCount": 0,
            "repaymentEarned": Decimal('0'),
            "repaymentCount": 0,
        }
        for row in rows:
            if row.status not in (CommissionStatus.CREDITED.value, "completed"):
                continue
            amount = Decimal(str(row.amount))
            totals["totalEarned"] += amount
            totals["totalCount"] += 1
            totals["affiliateEarned"] += amount
            totals["affiliateCount"] += 1

        for key in ("totalEarned", "affiliateEarned", "repaymentEarned"):
            totals[key] = float(totals[key])
        return totals

    @staticmethod
    def commission_statistics() -> Dict[str, Any]:
        """Admin overview: credited totals per level."""
        per_level = db.session.query(
            AffiliateCommission.level,
            func.count(AffiliateCommission.id),
            func.coalesce(func.sum(AffiliateCommission.amount), 0),
        ).filter(
            AffiliateCommission.status == CommissionStatus.CREDITED.value
        ).group_by(AffiliateCommission.level).order_by(AffiliateCommission.level).all()

        return {
            "levels": [
                {"level": level, "count": count, "amount": float(Decimal(str(amount)))}
                for level, count, amount in per_level
            ],
            "customers_with_commission": db.session.query(
                func.count(func.distinct(AffiliateCommission.customer_id))
            ).scalar() or 0,
            "configuration": CommissionConfigHelper.get_distribution_summary(),
        }
