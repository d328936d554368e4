from typing import List, Dict, Any, Optional
from sqlalchemy import or_
import logging

from extensions import db
from models import Profile, Role
from commission.config import CommissionConfigHelper

logger = logging.getLogger(__name__)


class ReferralChainHelper:
    """
    Walks the promoter referral tree stored as profiles.parent_promoter_id.
    The chain is short (commission stops at level 4) so plain per-row
    lookups are used instead of a closure table.
    """

    @staticmethod
    def get_upline(promoter_id: str, max_levels: int = CommissionConfigHelper.MAX_LEVEL) -> List[Profile]:
        """
        Return [promoter, parent, grandparent, ...] up to max_levels profiles.
        Stops at a missing parent or when the chain loops back on itself.
        """
        chain = []
        seen = set()
        current_id = promoter_id

        while current_id and len(chain) < max_levels:
            if current_id in seen:
                logger.warning(f"Referral cycle detected at profile {current_id} while walking from {promoter_id}")
                break
            seen.add(current_id)

            profile = db.session.get(Profile, current_id)
            if profile is None:
                logger.info(f"Referral chain from {promoter_id} ends at missing profile {current_id}")
                break

            chain.append(profile)
            current_id = profile.parent_promoter_id

        return chain

    @staticmethod
    def is_descendant(ancestor_id: str, descendant_id: str) -> bool:
        """
        Returns True if ancestor_id sits anywhere above descendant_id (depth >= 1)
        """
        seen = set()
        current = db.session.get(Profile, descendant_id)
        while current is not None and current.parent_promoter_id:
            if current.parent_promoter_id == ancestor_id:
                return True
            if current.parent_promoter_id in seen:
                return False
            seen.add(current.parent_promoter_id)
            current = db.session.get(Profile, current.parent_promoter_id)
        return False

    @staticmethod
    def validate_hierarchy(promoter_id: Optional[str], parent_promoter_id: Optional[str]) -> Optional[str]:
        """
        Check that parent_promoter_id may become the parent of promoter_id.
        Returns an error message, or None when the link is allowed.
        """
        if not parent_promoter_id:
            return None

        parent = db.session.get(Profile, parent_promoter_id)
        if parent is None:
            return "Parent promoter not found"
        if parent.role not in (Role.PROMOTER.value, Role.ADMIN.value):
            return "Parent must be a promoter or admin"
        if promoter_id is None:
            return None
        if promoter_id == parent_promoter_id:
            return "Promoter cannot be their own parent"
        if ReferralChainHelper.is_descendant(promoter_id, parent_promoter_id):
            return "Parent promoter is in this promoter's downline"
        return None

    @staticmethod
    def get_hierarchy(promoter_id: Optional[str] = None, max_depth: int = 20) -> List[Dict[str, Any]]:
        """
        Nested downline tree of promoters. With no promoter_id, every
        top-level promoter (no parent promoter) becomes a root.
        """
        if promoter_id:
            roots = [db.session.get(Profile, promoter_id)]
            roots = [root for root in roots if root is not None]
        else:
            roots = Profile.query.filter(
                Profile.role == Role.PROMOTER.value,
                or_(
                    Profile.parent_promoter_id.is_(None),
                    Profile.parent_promoter_id.in_(
                        db.session.query(Profile.id).filter(Profile.role == Role.ADMIN.value)
                    ),
                ),
            ).order_by(Profile.promoter_id).all()

        return [ReferralChainHelper._node(root, 0, max_depth, set()) for root in roots]

    @staticmethod
    def _node(profile: Profile, depth: int, max_depth: int, seen: set) -> Dict[str, Any]:
        seen.add(profile.id)
        children = []
        if depth < max_depth:
            downline = Profile.query.filter_by(
                parent_promoter_id=profile.id, role=Role.PROMOTER.value
            ).order_by(Profile.promoter_id).all()
            children = [
                ReferralChainHelper._node(child, depth + 1, max_depth, seen)
                for child in downline if child.id not in seen
            ]

        return {
            "id": profile.id,
            "promoter_id": profile.promoter_id,
            "name": profile.name,
            "role_level": profile.role_level,
            "depth": depth,
            "children": children,
        }
