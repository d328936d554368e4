"""Tests for the flask repair command group."""
from decimal import Decimal
from unittest.mock import patch

from accounts.payment_schedule import PaymentScheduleHelper
from commands import split_sql_statements
from models import AffiliateCommission, AuditLog, CustomerPayment, Profile


class TestScheduleCommands:

    def test_check_and_repair_schedules(self, db, runner, make_customer):
        customer = make_customer()

        result = runner.invoke(args=["repair", "check-schedules"])
        assert result.exit_code == 0
        assert "1 customer(s)" in result.output

        result = runner.invoke(args=["repair", "repair-schedules"])
        assert "[DRY RUN]" in result.output
        assert CustomerPayment.query.count() == 0

        result = runner.invoke(args=["repair", "repair-schedules", "--apply"])
        assert result.exit_code == 0
        assert "rows created: 20" in result.output
        assert PaymentScheduleHelper.inspect_schedule(customer.id)["is_complete"]

        result = runner.invoke(args=["repair", "check-schedules"])
        assert "All customers have a complete payment schedule." in result.output

    def test_repair_schedules_reports_rows_needing_review(self, db, runner, make_customer):
        customer = make_customer(customer_id="BP-021")
        db.session.add_all(PaymentScheduleHelper.build_schedule(customer.id, range(1, 22)))
        db.session.commit()

        result = runner.invoke(args=["repair", "repair-schedules", "--apply"])

        assert result.exit_code == 0
        assert "repaired: 0  rows created: 0" in result.output
        assert "needs review BP-021: out of range [21]" in result.output


class TestCommissionCommands:

    def test_repair_commissions(self, db, runner, chain, make_customer):
        customer = make_customer(parent=chain["p5"])

        result = runner.invoke(args=["repair", "check-commissions"])
        assert "1 customer(s) missing commission" in result.output

        result = runner.invoke(args=["repair", "repair-commissions", "--apply"])
        assert result.exit_code == 0
        assert "repaired: 1" in result.output
        assert AffiliateCommission.query.filter_by(customer_id=customer.id).count() == 4

    def test_reconcile_wallets(self, db, runner, make_promoter):
        promoter = make_promoter()
        promoter.wallet_balance = Decimal("10.00")
        db.session.commit()

        result = runner.invoke(args=["repair", "reconcile-wallets"])
        assert "drifted wallets: 1" in result.output
        assert "drift=10.00" in result.output

        result = runner.invoke(args=["repair", "reconcile-wallets", "--apply"])
        assert "repaired: 1" in result.output
        assert Decimal(str(db.session.get(Profile, promoter.id).wallet_balance)) == Decimal("0.00")

    def test_reconcile_wallets_tolerance(self, db, runner, make_promoter):
        promoter = make_promoter()
        promoter.wallet_balance = Decimal("10.00")
        db.session.commit()

        result = runner.invoke(args=["repair", "reconcile-wallets", "--tolerance", "20"])
        assert "drifted wallets: 0" in result.output


class TestDiagnostics:

    def test_check_customer(self, runner, make_customer):
        customer = make_customer(customer_id="BP-777")

        result = runner.invoke(args=["repair", "check-customer", "bp-777"])

        assert result.exit_code == 0
        assert '"is_complete": false' in result.output

    def test_check_unknown_customer(self, runner):
        result = runner.invoke(args=["repair", "check-customer", "nobody"])
        assert result.exit_code != 0
        assert "Customer not found" in result.output

    def test_system_health_reports_backend_failure(self, runner):
        with patch("commands.check_backend_health", return_value=(False, "Backend not reachable", None)):
            result = runner.invoke(args=["repair", "system-health", "--url", "http://localhost:1"])

        assert result.exit_code != 0
        assert "backend:    FAIL" in result.output
        assert "database:   OK" in result.output

    def test_system_health_ok(self, runner):
        with patch("commands.check_backend_health", return_value=(True, "Backend service operational", {})):
            result = runner.invoke(args=["repair", "system-health"])

        assert result.exit_code == 0
        assert "commission: OK" in result.output


class TestAdminTools:

    def test_make_admin_promotes_existing_profile(self, db, runner, make_promoter):
        promoter = make_promoter()

        result = runner.invoke(args=["repair", "make-admin", promoter.phone])

        assert result.exit_code == 0
        assert db.session.get(Profile, promoter.id).role == "admin"
        assert AuditLog.query.filter_by(action="make_admin").count() == 1

    def test_make_admin_creates_profile(self, db, runner):
        result = runner.invoke(args=["repair", "make-admin", "+919999999999", "--password", "pw123456"])

        assert result.exit_code == 0
        admin = Profile.query.filter_by(phone="+919999999999").one()
        assert admin.role == "admin"
        assert admin.check_password("pw123456")

    def test_run_sql(self, db, runner, make_promoter, tmp_path):
        promoter = make_promoter(pins=1)
        script = tmp_path / "fix.sql"
        script.write_text(
            f"UPDATE profiles SET pins = 9 WHERE id = '{promoter.id}';\n"
            "UPDATE profiles SET status = 'active' WHERE status IS NULL;\n",
            encoding="utf-8",
        )

        result = runner.invoke(args=["repair", "run-sql", str(script)])

        assert result.exit_code == 0
        assert "Executed 2 statement(s)" in result.output
        db.session.expire_all()
        assert db.session.get(Profile, promoter.id).pins == 9

    def test_run_sql_keeps_literal_colons_and_percents(self, db, runner, make_promoter, tmp_path):
        promoter = make_promoter()
        script = tmp_path / "address.sql"
        script.write_text(
            f"UPDATE profiles SET address = '{{\"door\":12}}', city = '50% off' WHERE id = '{promoter.id}';\n",
            encoding="utf-8",
        )

        result = runner.invoke(args=["repair", "run-sql", str(script)])

        assert result.exit_code == 0, result.output
        db.session.expire_all()
        profile = db.session.get(Profile, promoter.id)
        assert profile.address == '{"door":12}'
        assert profile.city == "50% off"

    def test_run_sql_rolls_back_on_error(self, db, runner, make_promoter, tmp_path):
        promoter = make_promoter(pins=1)
        script = tmp_path / "broken.sql"
        script.write_text(
            f"UPDATE profiles SET pins = 9 WHERE id = '{promoter.id}';\n"
            "UPDATE no_such_table SET x = 1;\n",
            encoding="utf-8",
        )

        result = runner.invoke(args=["repair", "run-sql", str(script)])

        assert result.exit_code != 0
        db.session.expire_all()
        assert db.session.get(Profile, promoter.id).pins == 1


class TestSplitSql:

    def test_keeps_function_bodies_together(self):
        script = (
            "CREATE FUNCTION f() RETURNS int AS $$ BEGIN RETURN 1; END; $$ LANGUAGE plpgsql;\n"
            "SELECT ';' AS semi;"
        )

        statements = split_sql_statements(script)

        assert len(statements) == 2
        assert statements[0].endswith("LANGUAGE plpgsql")
        assert statements[1] == "SELECT ';' AS semi"
