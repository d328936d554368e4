# accounts/promoters.py
import logging
from typing import Dict, Any, Optional

from extensions import db
from models import Profile, PromoterIdSequence, Role
from commission.referral_chain import ReferralChainHelper
from errors import DuplicateError, NotFoundError, ValidationError
from utils import is_blank, normalize_email, validate_email, validate_phone

logger = logging.getLogger(__name__)

PROMOTER_ID_PREFIX = "BPVP"
DEFAULT_ROLE_LEVEL = "Affiliate"


def format_promoter_id(number: int) -> str:
    return f"{PROMOTER_ID_PREFIX}{number:02d}"


class PromoterHelper:

    @staticmethod
    def generate_next_promoter_id() -> str:
        """
        Advance the single-row sequence and return the next free BPVPxx id.
        Numbers already taken by a profile are skipped. Does not commit.
        """
        sequence = PromoterIdSequence.query.order_by(PromoterIdSequence.id) \
            .with_for_update().populate_existing().first()
        if sequence is None:
            sequence = PromoterIdSequence(last_promoter_number=0)
            db.session.add(sequence)

        next_number = (sequence.last_promoter_number or 0) + 1
        promoter_id = format_promoter_id(next_number)
        while Profile.query.filter_by(promoter_id=promoter_id).first() is not None:
            next_number += 1
            promoter_id = format_promoter_id(next_number)

        sequence.last_promoter_number = next_number
        db.session.flush()
        return promoter_id

    @staticmethod
    def create_unified_promoter(name: str, phone: str, password: str,
                                email: Optional[str] = None,
                                parent_promoter_id: Optional[str] = None,
                                role_level: Optional[str] = None,
                                address: Optional[str] = None,
                                state: Optional[str] = None,
                                city: Optional[str] = None,
                                pincode: Optional[str] = None,
                                status: Optional[str] = None) -> Dict[str, Any]:
        if is_blank(name):
            raise ValidationError("Promoter name is required")
        if is_blank(phone):
            raise ValidationError("Phone number is required")
        if is_blank(password):
            raise ValidationError("Password is required")

        name = str(name).strip()
        phone = str(phone).strip()
        password = str(password)
        if not validate_phone(phone):
            raise ValidationError("Invalid phone number")
        if len(password) < 6:
            raise ValidationError("Password must be at least 6 characters")

        email = normalize_email(email)
        if email and not validate_email(email):
            raise ValidationError("Invalid email address")

        existing = Profile.query.filter_by(phone=phone).filter(
            Profile.role.in_([Role.PROMOTER.value, Role.ADMIN.value])
        ).first()
        if existing:
            raise DuplicateError(f"A promoter with phone {phone} already exists")
        if email and Profile.query.filter_by(email=email).first():
            raise DuplicateError(f"Email {email} is already registered")

        if parent_promoter_id:
            error = ReferralChainHelper.validate_hierarchy(None, parent_promoter_id)
            if error:
                if error == "Parent promoter not found":
                    raise NotFoundError(error, {"parent_promoter_id": parent_promoter_id})
                raise ValidationError(error)

        promoter_id = PromoterHelper.generate_next_promoter_id()
        promoter = Profile(
            name=name,
            phone=phone,
            email=email,
            role=Role.PROMOTER.value,
            status=status or "active",
            promoter_id=promoter_id,
            role_level=role_level or DEFAULT_ROLE_LEVEL,
            parent_promoter_id=parent_promoter_id or None,
            address=address,
            state=state,
            city=city,
            pincode=pincode,
            pins=0,
        )
        promoter.set_password(password)
        db.session.add(promoter)
        db.session.commit()

        logger.info(f"Created promoter {promoter_id} ({promoter.id}) under parent {parent_promoter_id}")
        return {
            "success": True,
            "user_id": promoter.id,
            "promoter_id": promoter_id,
            "name": promoter.name,
            "phone": promoter.phone,
            "email": promoter.email,
            "role_level": promoter.role_level,
            "parent_promoter_id": promoter.parent_promoter_id,
            "message": f"Promoter {promoter_id} created successfully",
        }

    @staticmethod
    def get_hierarchy(promoter_id: Optional[str] = None):
        if promoter_id and db.session.get(Profile, promoter_id) is None:
            raise NotFoundError("Promoter not found", {"promoter_id": promoter_id})
        return ReferralChainHelper.get_hierarchy(promoter_id)
