# accounts/payment_schedule.py
from collections import Counter
from decimal import Decimal
from typing import Dict, Any, List, Optional

from flask import current_app
from sqlalchemy import func

from extensions import db
from logger import repair_logger
from models import AuditLog, CustomerPayment, PaymentStatus, Profile, Role
from errors import NotFoundError


def _installment_count() -> int:
    return current_app.config.get("INSTALLMENT_COUNT", 20)


def _installment_amount() -> Decimal:
    return Decimal(str(current_app.config.get("INSTALLMENT_AMOUNT", "1000.00")))


class PaymentScheduleHelper:
    """
    Every customer owns exactly one pending/paid installment per month
    number 1..INSTALLMENT_COUNT.
    """

    @staticmethod
    def build_schedule(customer_id: str, months: Optional[List[int]] = None) -> List[CustomerPayment]:
        """Unsaved CustomerPayment rows, all months unless a subset is given."""
        if months is None:
            months = range(1, _installment_count() + 1)
        amount = _installment_amount()
        return [
            CustomerPayment(
                customer_id=customer_id,
                month_number=month,
                payment_amount=amount,
                status=PaymentStatus.PENDING.value,
            )
            for month in months
        ]

    @staticmethod
    def inspect_schedule(customer_id: str) -> Dict[str, Any]:
        months = [
            row.month_number for row in
            CustomerPayment.query.filter_by(customer_id=customer_id).order_by(CustomerPayment.month_number).all()
        ]
        expected = set(range(1, _installment_count() + 1))
        counts = Counter(months)

        missing = sorted(expected - set(months))
        duplicates = sorted(month for month, count in counts.items() if count > 1)
        out_of_range = sorted(month for month in counts if month not in expected)

        return {
            "customer_id": customer_id,
            "count": len(months),
            "missing_months": missing,
            "duplicate_months": duplicates,
            "out_of_range_months": out_of_range,
            "is_complete": not missing and not duplicates and not out_of_range,
        }

    @staticmethod
    def create_schedule(customer_id: str) -> int:
        """
        Insert the months this customer is missing and return how many were
        added. Does not commit; a complete schedule is left untouched.
        """
        customer = db.session.get(Profile, customer_id)
        if customer is None or customer.role != Role.CUSTOMER.value:
            raise NotFoundError("Customer not found", {"customer_id": customer_id})

        missing = PaymentScheduleHelper.inspect_schedule(customer_id)["missing_months"]
        if not missing:
            return 0

        db.session.add_all(PaymentScheduleHelper.build_schedule(customer_id, missing))
        db.session.flush()
        return len(missing)

    @staticmethod
    def find_customers_missing_schedules() -> List[Dict[str, Any]]:
        """Customers whose schedule is not exactly months 1..INSTALLMENT_COUNT."""
        expected = _installment_count()
        stats = dict(
            (customer_id, (count, low, high)) for customer_id, count, low, high in
            db.session.query(
                CustomerPayment.customer_id,
                func.count(func.distinct(CustomerPayment.month_number)),
                func.min(CustomerPayment.month_number),
                func.max(CustomerPayment.month_number),
            ).group_by(CustomerPayment.customer_id).all()
        )

        incomplete = []
        customers = Profile.query.filter_by(role=Role.CUSTOMER.value).order_by(Profile.created_at).all()
        for customer in customers:
            count, low, high = stats.get(customer.id, (0, None, None))
            if count == expected and low == 1 and high == expected:
                continue
            incomplete.append({
                "id": customer.id,
                "customer_id": customer.customer_id,
                "name": customer.name,
                "payment_count": count,
            })
        return incomplete

    @staticmethod
    def repair_missing_schedules(dry_run: bool = True, actor: str = "system") -> Dict[str, Any]:
        """
        Fill missing months for every incomplete schedule. Months outside
        1..INSTALLMENT_COUNT are never deleted; those customers are listed
        under needs_review instead of being counted as repaired.
        """
        customers = PaymentScheduleHelper.find_customers_missing_schedules()
        summary = {
            "dry_run": dry_run,
            "customers_found": len(customers),
            "repaired": 0,
            "rows_created": 0,
            "failed": 0,
            "customers": customers,
            "needs_review": [],
            "errors": [],
        }

        for item in customers:
            report = PaymentScheduleHelper.inspect_schedule(item["id"])
            if report["out_of_range_months"] or report["duplicate_months"]:
                summary["needs_review"].append({
                    "id": item["id"],
                    "customer_id": item["customer_id"],
                    "out_of_range_months": report["out_of_range_months"],
                    "duplicate_months": report["duplicate_months"],
                })
        if dry_run:
            return summary

        for item in customers:
            try:
                created = PaymentScheduleHelper.create_schedule(item["id"])
                if not created:
                    continue
                AuditLog.record("repair_payment_schedule", {
                    "customer_id": item["id"],
                    "rows_created": created,
                }, actor=actor)
                db.session.commit()
                summary["repaired"] += 1
                summary["rows_created"] += created
                repair_logger.info(f"Payment schedule for customer {item['id']}: {created} months added")
            except Exception as e:
                db.session.rollback()
                summary["failed"] += 1
                summary["errors"].append({"customer_id": item["id"], "error": str(e)})
                repair_logger.error(f"Failed to repair schedule for customer {item['id']}: {e}")

        for item in summary["needs_review"]:
            repair_logger.warning(
                f"Payment schedule for customer {item['id']} needs manual review: "
                f"out of range {item['out_of_range_months']}, duplicates {item['duplicate_months']}"
            )
        return summary
