# accounts/pins.py
import logging
from typing import Dict, Any, Optional

from sqlalchemy import func

from extensions import db
from models import PinRequest, PinTransaction, Profile, RequestStatus, Role, utcnow
from errors import InsufficientPinsError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

MAX_PINS_PER_REQUEST = 1000


class PinHelper:
    """Pin balances on profiles, the requests promoters raise, and the ledger behind both."""

    @staticmethod
    def _locked_profile(profile_id: str) -> Profile:
        profile = db.session.query(Profile).filter_by(id=profile_id) \
            .with_for_update().populate_existing().first()
        if profile is None:
            raise NotFoundError("User not found", {"user_id": profile_id})
        return profile

    @staticmethod
    def record_change(profile: Profile, change: int, action_type: str,
                      description: str, created_by: Optional[str] = None) -> PinTransaction:
        """Apply a signed pin change and write its ledger row. Does not commit."""
        balance_before = profile.pins or 0
        balance_after = balance_before + change
        if balance_after < 0:
            raise InsufficientPinsError(
                f"Insufficient pins. Current balance: {balance_before}, requested: {abs(change)}"
            )

        profile.pins = balance_after
        entry = PinTransaction(
            user_id=profile.id,
            action_type=action_type,
            pin_change=change,
            balance_before=balance_before,
            balance_after=balance_after,
            description=description,
            created_by=created_by,
        )
        db.session.add(entry)
        return entry

    @staticmethod
    def _next_request_number() -> int:
        current = db.session.query(func.max(PinRequest.request_number)).scalar()
        return (current or 0) + 1

    @staticmethod
    def submit_pin_request(promoter_id: str, requested_pins, reason: Optional[str] = None) -> Dict[str, Any]:
        if not promoter_id:
            raise ValidationError("Promoter ID is required")
        try:
            requested_pins = int(requested_pins)
        except (TypeError, ValueError):
            raise ValidationError("Requested pins must be a number")
        if requested_pins <= 0 or requested_pins > MAX_PINS_PER_REQUEST:
            raise ValidationError(f"Requested pins must be between 1 and {MAX_PINS_PER_REQUEST}")

        promoter = db.session.get(Profile, promoter_id)
        if promoter is None or promoter.role != Role.PROMOTER.value:
            raise NotFoundError("Promoter not found", {"promoter_id": promoter_id})

        pending = PinRequest.query.filter_by(
            promoter_id=promoter_id, status=RequestStatus.PENDING.value
        ).first()
        if pending:
            raise ValidationError(
                "You already have a pending pin request. Please wait for admin approval.",
                {"request_id": pending.id},
            )

        pin_request = PinRequest(
            request_number=PinHelper._next_request_number(),
            promoter_id=promoter_id,
            requested_pins=requested_pins,
            reason=(reason or "").strip() or None,
            status=RequestStatus.PENDING.value,
        )
        db.session.add(pin_request)
        db.session.commit()

        logger.info(f"Pin request #{pin_request.request_number} submitted by {promoter_id} for {requested_pins} pins")
        return {
            "success": True,
            "request_id": pin_request.id,
            "request_number": pin_request.request_number,
            "message": "Pin request submitted successfully",
        }

    @staticmethod
    def _pending_request(request_id: str) -> PinRequest:
        pin_request = db.session.get(PinRequest, request_id)
        if pin_request is None:
            raise NotFoundError("Pin request not found", {"request_id": request_id})
        if pin_request.status != RequestStatus.PENDING.value:
            raise ValidationError(f"Pin request already {pin_request.status}")
        return pin_request

    @staticmethod
    def approve_pin_request(request_id: str, admin_id: Optional[str] = None,
                            admin_notes: Optional[str] = None) -> Dict[str, Any]:
        pin_request = PinHelper._pending_request(request_id)
        promoter = PinHelper._locked_profile(pin_request.promoter_id)

        PinHelper.record_change(
            promoter, pin_request.requested_pins, "admin_allocation",
            f"Pin request #{pin_request.request_number} approved", created_by=admin_id,
        )
        pin_request.status = RequestStatus.APPROVED.value
        pin_request.approved_by = admin_id
        pin_request.admin_notes = admin_notes
        pin_request.approved_at = utcnow()
        db.session.commit()

        logger.info(f"Pin request #{pin_request.request_number} approved: {pin_request.requested_pins} pins to {promoter.id}")
        return {
            "success": True,
            "request_id": pin_request.id,
            "pins_allocated": pin_request.requested_pins,
            "new_balance": promoter.pins,
            "message": "Pin request approved",
        }

    @staticmethod
    def reject_pin_request(request_id: str, admin_id: Optional[str] = None,
                           admin_notes: Optional[str] = None) -> Dict[str, Any]:
        pin_request = PinHelper._pending_request(request_id)
        pin_request.status = RequestStatus.REJECTED.value
        pin_request.approved_by = admin_id
        pin_request.admin_notes = admin_notes
        pin_request.approved_at = utcnow()
        db.session.commit()

        logger.info(f"Pin request #{pin_request.request_number} rejected")
        return {
            "success": True,
            "request_id": pin_request.id,
            "message": "Pin request rejected",
        }

    @staticmethod
    def admin_allocate_pins(user_id: str, pins, admin_id: Optional[str] = None,
                            reason: Optional[str] = None) -> Dict[str, Any]:
        pins = int(pins)
        if pins <= 0:
            raise ValidationError("Pins to allocate must be positive")
        profile = PinHelper._locked_profile(user_id)
        entry = PinHelper.record_change(
            profile, pins, "admin_allocation", reason or f"Admin allocated {pins} pins", created_by=admin_id
        )
        db.session.commit()
        return {"success": True, "user_id": user_id, "new_balance": entry.balance_after}

    @staticmethod
    def admin_deduct_pins(user_id: str, pins, admin_id: Optional[str] = None,
                          reason: Optional[str] = None) -> Dict[str, Any]:
        pins = int(pins)
        if pins <= 0:
            raise ValidationError("Pins to deduct must be positive")
        profile = PinHelper._locked_profile(user_id)
        entry = PinHelper.record_change(
            profile, -pins, "admin_deduction", reason or f"Admin deducted {pins} pins", created_by=admin_id
        )
        db.session.commit()
        return {"success": True, "user_id": user_id, "new_balance": entry.balance_after}
