"""Tests for the 20-month payment schedule."""
from decimal import Decimal

import pytest

from accounts.payment_schedule import PaymentScheduleHelper
from errors import NotFoundError
from models import AuditLog, CustomerPayment


class TestBuildSchedule:

    def test_builds_twenty_pending_months(self, app):
        rows = PaymentScheduleHelper.build_schedule("some-customer")

        assert len(rows) == 20
        assert [row.month_number for row in rows] == list(range(1, 21))
        assert all(row.status == "pending" for row in rows)
        assert all(row.payment_amount == Decimal("1000.00") for row in rows)

    def test_builds_only_requested_months(self, app):
        rows = PaymentScheduleHelper.build_schedule("some-customer", [3, 7])
        assert [row.month_number for row in rows] == [3, 7]


class TestCreateSchedule:

    def test_creates_full_schedule(self, db, make_customer):
        customer = make_customer()

        created = PaymentScheduleHelper.create_schedule(customer.id)
        db.session.commit()

        assert created == 20
        months = {p.month_number for p in CustomerPayment.query.filter_by(customer_id=customer.id)}
        assert months == set(range(1, 21))

    def test_rerun_is_noop(self, db, make_customer):
        customer = make_customer()
        PaymentScheduleHelper.create_schedule(customer.id)
        db.session.commit()

        assert PaymentScheduleHelper.create_schedule(customer.id) == 0
        assert CustomerPayment.query.filter_by(customer_id=customer.id).count() == 20

    def test_fills_only_missing_months(self, db, make_customer):
        customer = make_customer()
        db.session.add_all(PaymentScheduleHelper.build_schedule(customer.id, [1, 2, 3]))
        db.session.commit()

        assert PaymentScheduleHelper.create_schedule(customer.id) == 17
        db.session.commit()
        assert PaymentScheduleHelper.inspect_schedule(customer.id)["is_complete"] is True

    def test_unknown_customer(self, app):
        with pytest.raises(NotFoundError):
            PaymentScheduleHelper.create_schedule("does-not-exist")


class TestInspectSchedule:

    def test_reports_missing_months(self, db, make_customer):
        customer = make_customer()
        db.session.add_all(PaymentScheduleHelper.build_schedule(customer.id, range(1, 19)))
        db.session.commit()

        report = PaymentScheduleHelper.inspect_schedule(customer.id)

        assert report["count"] == 18
        assert report["missing_months"] == [19, 20]
        assert report["duplicate_months"] == []
        assert report["is_complete"] is False

    def test_reports_out_of_range_months(self, db, make_customer):
        customer = make_customer()
        db.session.add_all(PaymentScheduleHelper.build_schedule(customer.id, range(1, 22)))
        db.session.commit()

        report = PaymentScheduleHelper.inspect_schedule(customer.id)

        assert report["out_of_range_months"] == [21]
        assert report["is_complete"] is False


class TestRepairMissingSchedules:

    def test_finds_incomplete_customers(self, db, make_customer):
        complete = make_customer()
        partial = make_customer()
        empty = make_customer()
        PaymentScheduleHelper.create_schedule(complete.id)
        db.session.add_all(PaymentScheduleHelper.build_schedule(partial.id, [1]))
        db.session.commit()

        found = {item["id"] for item in PaymentScheduleHelper.find_customers_missing_schedules()}

        assert found == {partial.id, empty.id}

    def test_dry_run_writes_nothing(self, db, make_customer):
        customer = make_customer()

        summary = PaymentScheduleHelper.repair_missing_schedules(dry_run=True)

        assert summary["customers_found"] == 1
        assert summary["repaired"] == 0
        assert CustomerPayment.query.filter_by(customer_id=customer.id).count() == 0

    def test_apply_repairs_and_audits(self, db, make_customer):
        first = make_customer()
        second = make_customer()
        db.session.add_all(PaymentScheduleHelper.build_schedule(second.id, range(1, 11)))
        db.session.commit()

        summary = PaymentScheduleHelper.repair_missing_schedules(dry_run=False)

        assert summary["repaired"] == 2
        assert summary["rows_created"] == 30
        assert summary["failed"] == 0
        for customer in (first, second):
            assert PaymentScheduleHelper.inspect_schedule(customer.id)["is_complete"]
        assert AuditLog.query.filter_by(action="repair_payment_schedule").count() == 2

    def test_repair_is_idempotent(self, db, make_customer):
        make_customer()
        PaymentScheduleHelper.repair_missing_schedules(dry_run=False)

        summary = PaymentScheduleHelper.repair_missing_schedules(dry_run=False)

        assert summary["customers_found"] == 0
        assert CustomerPayment.query.count() == 20

    def test_out_of_range_rows_are_flagged_not_repaired(self, db, make_customer):
        customer = make_customer()
        db.session.add_all(PaymentScheduleHelper.build_schedule(customer.id, range(1, 22)))
        db.session.commit()

        summary = PaymentScheduleHelper.repair_missing_schedules(dry_run=False)

        assert summary["customers_found"] == 1
        assert summary["repaired"] == 0
        assert summary["rows_created"] == 0
        assert summary["needs_review"] == [{
            "id": customer.id,
            "customer_id": customer.customer_id,
            "out_of_range_months": [21],
            "duplicate_months": [],
        }]
        assert AuditLog.query.filter_by(action="repair_payment_schedule").count() == 0
        assert CustomerPayment.query.filter_by(customer_id=customer.id).count() == 21

    def test_gaps_and_out_of_range_rows_together(self, db, make_customer):
        customer = make_customer()
        db.session.add_all(PaymentScheduleHelper.build_schedule(customer.id, [1, 2, 25]))
        db.session.commit()

        dry = PaymentScheduleHelper.repair_missing_schedules(dry_run=True)
        assert [item["id"] for item in dry["needs_review"]] == [customer.id]

        summary = PaymentScheduleHelper.repair_missing_schedules(dry_run=False)

        assert summary["repaired"] == 1
        assert summary["rows_created"] == 18
        assert summary["needs_review"][0]["out_of_range_months"] == [25]
