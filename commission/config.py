# commission/config.py
from decimal import Decimal
from typing import Dict, Any, Tuple
import logging

logger = logging.getLogger(__name__)


class CommissionConfigHelper:
    """
    Affiliate commission configuration with fixed per-level amounts.
    Level 1 (initiating promoter): 500, Levels 2-4 (upline): 100 each.
    Whatever is not claimed by a promoter goes to the admin as a level 0 row.
    """

    LEVEL_AMOUNTS = {
        1: Decimal('500.00'),
        2: Decimal('100.00'),
        3: Decimal('100.00'),
        4: Decimal('100.00'),
    }

    LEVEL_DESCRIPTIONS = {
        1: 'Parent Promoter (Immediate Upline)',
        2: 'Next-Level Upline Promoter',
        3: 'Next-Level Upline Promoter',
        4: 'Next-Level Upline Promoter',
    }

    MAX_LEVEL = 4
    ADMIN_FALLBACK_LEVEL = 0
    TOTAL_POOL = Decimal('800.00')

    @staticmethod
    def get_level_amount(level: int) -> Decimal:
        """Fixed commission for a level; anything outside 1..MAX_LEVEL earns nothing."""
        if not isinstance(level, int) or level < 1 or level > CommissionConfigHelper.MAX_LEVEL:
            logger.warning(f"Invalid commission level {level}")
            return Decimal('0.00')
        return CommissionConfigHelper.LEVEL_AMOUNTS[level]

    @staticmethod
    def get_distribution_summary() -> Dict[str, Any]:
        distribution = {}
        total = Decimal('0')

        for level in range(1, CommissionConfigHelper.MAX_LEVEL + 1):
            amount = CommissionConfigHelper.get_level_amount(level)
            distribution[level] = {
                'amount': float(amount),
                'description': CommissionConfigHelper.LEVEL_DESCRIPTIONS[level],
            }
            total += amount

        return {
            'distribution': distribution,
            'total_pool': float(total),
            'max_level': CommissionConfigHelper.MAX_LEVEL,
            'admin_fallback_level': CommissionConfigHelper.ADMIN_FALLBACK_LEVEL,
        }

    @staticmethod
    def validate_configuration() -> Tuple[bool, str]:
        """Level amounts must be positive and add up to the pool."""
        total = sum(CommissionConfigHelper.LEVEL_AMOUNTS.values(), Decimal('0'))

        if any(amount <= 0 for amount in CommissionConfigHelper.LEVEL_AMOUNTS.values()):
            return False, "Every commission level must pay a positive amount"

        if sorted(CommissionConfigHelper.LEVEL_AMOUNTS) != list(range(1, CommissionConfigHelper.MAX_LEVEL + 1)):
            return False, "Commission levels must be numbered 1..MAX_LEVEL without gaps"

        if total != CommissionConfigHelper.TOTAL_POOL:
            return False, f"Level amounts add up to {total}, expected pool of {CommissionConfigHelper.TOTAL_POOL}"

        return True, f"Commission configuration valid: {total} across {CommissionConfigHelper.MAX_LEVEL} levels"
