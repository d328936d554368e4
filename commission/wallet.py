from decimal import Decimal
from typing import Dict, Any
import logging

from sqlalchemy import func

from extensions import db
from models import AffiliateCommission, CommissionStatus, Profile, RequestStatus, WithdrawalRequest
from errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class WalletHelper:
    """Cached wallet balance on profiles and the ledger totals it should mirror."""

    @staticmethod
    def credited_total(profile_id: str) -> Decimal:
        total = db.session.query(func.coalesce(func.sum(AffiliateCommission.amount), 0)).filter(
            AffiliateCommission.recipient_id == profile_id,
            AffiliateCommission.status == CommissionStatus.CREDITED.value,
        ).scalar()
        return Decimal(str(total)).quantize(Decimal('0.01'))

    @staticmethod
    def credit_wallet(profile: Profile, amount: Decimal) -> Decimal:
        """
        Add amount to the cached balance. Runs inside the caller's transaction;
        the row is re-read with FOR UPDATE where the database supports it.
        """
        if amount <= 0:
            raise ValidationError("Credit amount must be positive")

        locked = db.session.query(Profile).filter_by(id=profile.id) \
            .with_for_update().populate_existing().one()
        current_balance = Decimal(str(locked.wallet_balance or 0))
        locked.wallet_balance = current_balance + amount
        logger.info(f"Wallet credit: profile {locked.id}, amount {amount}, new balance {locked.wallet_balance}")
        return locked.wallet_balance

    @staticmethod
    def wallet_summary(promoter_id: str) -> Dict[str, Any]:
        if not promoter_id:
            raise ValidationError("Promoter ID is required")

        promoter = db.session.get(Profile, promoter_id)
        if promoter is None:
            raise NotFoundError("Promoter not found")

        affiliate_earned = WalletHelper.credited_total(promoter_id)
        # no repayment commission ledger exists
        repayment_earned = Decimal('0.00')
        total_earned = affiliate_earned + repayment_earned

        total_withdrawn = db.session.query(func.coalesce(func.sum(WithdrawalRequest.amount), 0)).filter(
            WithdrawalRequest.promoter_id == promoter_id,
            WithdrawalRequest.status == RequestStatus.APPROVED.value,
        ).scalar()
        total_withdrawn = Decimal(str(total_withdrawn)).quantize(Decimal('0.01'))

        pending_withdrawals = WithdrawalRequest.query.filter_by(
            promoter_id=promoter_id, status=RequestStatus.PENDING.value
        ).count()

        return {
            "totalEarned": float(total_earned),
            "affiliateEarned": float(affiliate_earned),
            "repaymentEarned": float(repayment_earned),
            "totalWithdrawn": float(total_withdrawn),
            "availableBalance": float(total_earned - total_withdrawn),
            "cachedBalance": float(Decimal(str(promoter.wallet_balance or 0))),
            "pendingWithdrawals": pending_withdrawals,
        }
