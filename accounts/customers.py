# accounts/customers.py
import logging
from typing import Dict, Any, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import Profile, Role
from accounts.payment_schedule import PaymentScheduleHelper
from accounts.pins import PinHelper
from commission.distribution import CommissionDistributionHelper
from errors import DuplicateError, InsufficientPinsError, NotFoundError, ServiceError, ValidationError
from utils import is_blank, normalize_customer_id, normalize_email, validate_email

logger = logging.getLogger(__name__)


class CustomerHelper:

    @staticmethod
    def validate_customer_input(name, mobile, customer_id, password, parent_promoter_id):
        if is_blank(name):
            raise ValidationError("Customer name is required")
        if is_blank(mobile):
            raise ValidationError("Mobile number is required")
        if is_blank(customer_id):
            raise ValidationError("Customer ID is required")
        if is_blank(password):
            raise ValidationError("Password is required")
        if is_blank(parent_promoter_id):
            raise ValidationError("Parent promoter is required")

    @staticmethod
    def create_customer_final(name: str, mobile: str, customer_id: str, password: str,
                              parent_promoter_id: str,
                              email: Optional[str] = None,
                              state: Optional[str] = None,
                              city: Optional[str] = None,
                              pincode: Optional[str] = None,
                              address: Optional[str] = None) -> Dict[str, Any]:
        """
        Create a customer in one transaction: profile, pin deduction,
        20-month schedule and commission. Any failure rolls all of it back.
        """
        CustomerHelper.validate_customer_input(name, mobile, customer_id, password, parent_promoter_id)
        card_no = normalize_customer_id(customer_id)
        email = normalize_email(email)
        if email and not validate_email(email):
            raise ValidationError("Invalid email address")

        try:
            if Profile.query.filter_by(customer_id=card_no).first() is not None:
                raise DuplicateError(
                    f'Customer ID "{card_no}" already exists. Please choose a different Customer ID. '
                    f'Suggestion: Try {card_no}-01, {card_no}-02, etc.',
                    {"suggestions": [f"{card_no}-01", f"{card_no}-02"]},
                )
            if email and Profile.query.filter_by(email=email).first() is not None:
                raise DuplicateError(f"Email {email} is already registered")

            promoter = db.session.query(Profile).filter_by(
                id=parent_promoter_id, role=Role.PROMOTER.value
            ).with_for_update().populate_existing().first()
            if promoter is None:
                raise NotFoundError("Promoter not found or invalid promoter ID")
            if (promoter.pins or 0) < 1:
                raise InsufficientPinsError(
                    f"Insufficient pins. Promoter has {promoter.pins or 0} pins, "
                    f"but 1 is required to create a customer"
                )

            customer = Profile(
                name=str(name).strip(),
                phone=str(mobile).strip(),
                email=email,
                role=Role.CUSTOMER.value,
                customer_id=card_no,
                parent_promoter_id=promoter.id,
                status="active",
                saving_plan=current_app.config.get("SAVING_PLAN_LABEL"),
                address=address,
                state=state,
                city=city,
                pincode=pincode,
            )
            customer.set_password(str(password))
            db.session.add(customer)
            db.session.flush()

            PinHelper.record_change(
                promoter, -1, "customer_creation",
                f"Pin deducted for creating customer: {card_no}", created_by=promoter.id,
            )
            payment_count = PaymentScheduleHelper.create_schedule(customer.id)
            commission = CommissionDistributionHelper.distribute(customer.id, promoter.id, commit=False)

            db.session.commit()
        except ServiceError:
            db.session.rollback()
            raise
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception(f"Database error while creating customer {card_no}")
            raise

        logger.info(
            f"Customer {card_no} ({customer.id}) created by promoter {promoter.id}: "
            f"{payment_count} payments, commission {commission['total_distributed']}"
        )
        return {
            "success": True,
            "customer_id": customer.id,
            "customer_card_no": card_no,
            "payment_count": payment_count,
            "pins_remaining": promoter.pins,
            "commission": {
                "total_distributed": commission["total_distributed"],
                "levels_distributed": commission["levels_distributed"],
                "admin_fallback": commission["admin_fallback"],
            },
            "message": f"Customer created successfully with {payment_count} payment records",
        }

    @staticmethod
    def customer_report(customer_ref: str) -> Dict[str, Any]:
        """Schedule and commission state of one customer, looked up by uuid or card number."""
        customer = db.session.get(Profile, customer_ref)
        if customer is None:
            customer = Profile.query.filter_by(customer_id=normalize_customer_id(customer_ref)).first()
        if customer is None or customer.role != Role.CUSTOMER.value:
            raise NotFoundError("Customer not found", {"customer": customer_ref})

        existing = CommissionDistributionHelper.existing_commission(customer.id)
        return {
            "customer": customer.to_dict(),
            "schedule": PaymentScheduleHelper.inspect_schedule(customer.id),
            "commission": {
                "record_count": existing["record_count"] if existing else 0,
                "total_distributed": float(existing["total_distributed"]) if existing else 0.0,
                "records": [row.to_dict() for row in existing["records"]] if existing else [],
            },
        }
