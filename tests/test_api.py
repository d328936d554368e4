"""HTTP tests for the list endpoints, commission routes and remote procedures."""
from decimal import Decimal

from commission.distribution import CommissionDistributionHelper
from models import PinRequest, Profile, WithdrawalRequest


class TestHealthAndLists:

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.get_json() == {"status": "ok", "message": "Backend server is running"}

    def test_users_promoters_customers(self, client, chain, make_customer):
        make_customer(parent=chain["p1"])

        users = client.get("/api/users").get_json()
        promoters = client.get("/api/promoters").get_json()
        customers = client.get("/api/customers").get_json()

        assert users["success"] is True
        assert len(users["data"]) == 7
        assert {p["role"] for p in promoters["data"]} == {"promoter"}
        assert len(promoters["data"]) == 5
        assert [c["role"] for c in customers["data"]] == ["customer"]

    def test_list_limit(self, app, client, make_promoter):
        app.config["LIST_LIMIT"] = 2
        for _ in range(3):
            make_promoter()

        assert len(client.get("/api/promoters").get_json()["data"]) == 2

    def test_pin_requests(self, db, client, make_promoter):
        promoter = make_promoter()
        db.session.add(PinRequest(request_number=1, promoter_id=promoter.id, requested_pins=3))
        db.session.commit()

        data = client.get("/api/pin-requests").get_json()["data"]

        assert len(data) == 1
        assert data[0]["requested_pins"] == 3
        assert data[0]["status"] == "pending"

    def test_unknown_route_uses_envelope(self, client):
        response = client.get("/api/does-not-exist")
        assert response.status_code == 404
        assert response.get_json()["success"] is False


class TestCommissionRoutes:

    def test_history_requires_promoter_or_admin(self, client):
        response = client.get("/api/commission/history")
        assert response.status_code == 400
        assert response.get_json()["success"] is False

    def test_history_for_promoter(self, client, chain, make_customer):
        customer = make_customer(parent=chain["p5"])
        CommissionDistributionHelper.distribute(customer.id, chain["p5"].id)

        body = client.get(f"/api/commission/history?promoterId={chain['p5'].id}").get_json()

        assert body["success"] is True
        assert len(body["data"]) == 1
        assert body["data"][0]["commission_type"] == "affiliate"
        assert body["data"][0]["customer"]["customer_id"] == customer.customer_id
        assert body["totals"]["totalEarned"] == 500.0
        assert body["totals"]["affiliateCount"] == 1

    def test_history_for_admin(self, client, chain, make_customer):
        customer = make_customer(parent=chain["p2"])
        CommissionDistributionHelper.distribute(customer.id, chain["p2"].id)

        body = client.get("/api/commission/history?admin=true").get_json()

        assert len(body["data"]) == 3
        assert body["totals"]["totalEarned"] == 800.0

    def test_wallet(self, client, chain, make_customer):
        customer = make_customer(parent=chain["p5"])
        CommissionDistributionHelper.distribute(customer.id, chain["p5"].id)

        body = client.get(f"/api/commission/wallet?promoterId={chain['p4'].id}").get_json()

        assert body["success"] is True
        assert body["data"]["totalEarned"] == 100.0
        assert body["data"]["availableBalance"] == 100.0

    def test_wallet_errors(self, client):
        assert client.get("/api/commission/wallet").status_code == 400
        assert client.get("/api/commission/wallet?promoterId=missing").status_code == 404

    def test_withdrawals(self, db, client, make_promoter):
        promoter = make_promoter()
        db.session.add(WithdrawalRequest(promoter_id=promoter.id, amount=Decimal("75.00")))
        db.session.commit()

        body = client.get(f"/api/commission/withdrawals?promoterId={promoter.id}").get_json()

        assert body["data"][0]["amount"] == 75.0
        assert client.get("/api/commission/withdrawals").status_code == 400


class TestRemoteProcedures:

    def test_unknown_procedure(self, client):
        response = client.post("/rpc/drop_everything", json={})
        assert response.status_code == 404
        assert response.get_json()["success"] is False

    def test_create_customer_final(self, db, client, chain):
        response = client.post("/rpc/create_customer_final", json={
            "p_name": "Meena",
            "p_mobile": "9988776655",
            "p_customer_id": "bp-900",
            "p_password": "secret123",
            "p_parent_promoter_id": chain["p5"].id,
        })

        body = response.get_json()
        assert response.status_code == 200
        assert body["success"] is True
        assert body["customer_card_no"] == "BP-900"
        assert body["payment_count"] == 20

    def test_create_customer_validation_error(self, client, chain):
        response = client.post("/rpc/create_customer_final", json={
            "p_name": "Meena",
            "p_parent_promoter_id": chain["p5"].id,
        })

        assert response.status_code == 400
        assert response.get_json() == {"success": False, "error": "Mobile number is required"}

    def test_create_customer_with_numeric_fields(self, client, chain):
        response = client.post("/rpc/create_customer_final", json={
            "p_name": 12345,
            "p_mobile": 9988776655,
            "p_customer_id": 902,
            "p_password": "secret123",
            "p_parent_promoter_id": chain["p5"].id,
        })

        assert response.status_code == 200
        assert response.get_json()["customer_card_no"] == "902"

    def test_duplicate_email_returns_conflict(self, client, chain):
        payload = {
            "p_name": "Meena",
            "p_mobile": "9988776655",
            "p_email": "meena@example.com",
            "p_password": "secret123",
            "p_parent_promoter_id": chain["p5"].id,
        }
        assert client.post("/rpc/create_customer_final", json=dict(payload, p_customer_id="BP-910")).status_code == 200

        response = client.post("/rpc/create_customer_final", json=dict(payload, p_customer_id="BP-911"))
        assert response.status_code == 409
        assert response.get_json()["success"] is False

    def test_duplicate_customer_returns_conflict(self, client, chain):
        payload = {
            "p_name": "Meena",
            "p_mobile": "9988776655",
            "p_customer_id": "BP-901",
            "p_password": "secret123",
            "p_parent_promoter_id": chain["p5"].id,
        }
        assert client.post("/rpc/create_customer_final", json=payload).status_code == 200

        response = client.post("/rpc/create_customer_final", json=payload)
        assert response.status_code == 409
        assert "BP-901-01" in response.get_json()["error"]

    def test_generate_next_promoter_id(self, client):
        assert client.post("/rpc/generate_next_promoter_id", json={}).get_json() == "BPVP01"
        assert client.post("/rpc/generate_next_promoter_id").get_json() == "BPVP02"

    def test_create_unified_promoter(self, db, client, make_admin):
        admin = make_admin()
        response = client.post("/rpc/create_unified_promoter", json={
            "p_name": "Suresh",
            "p_phone": "9000011111",
            "p_password": "secret123",
            "p_parent_promoter_id": admin.id,
        })

        body = response.get_json()
        assert response.status_code == 200
        assert body["promoter_id"] == "BPVP01"
        assert db.session.get(Profile, body["user_id"]).status == "active"

    def test_distribute_affiliate_commission(self, client, chain, make_customer):
        customer = make_customer(parent=chain["p3"])
        payload = {"p_customer_id": customer.id, "p_initiator_promoter_id": chain["p3"].id}

        first = client.post("/rpc/distribute_affiliate_commission", json=payload).get_json()
        second = client.post("/rpc/distribute_affiliate_commission", json=payload).get_json()

        assert first["skipped"] is False
        assert first["admin_fallback"] == 100.0
        assert second["skipped"] is True

    def test_pin_request_flow(self, db, client, make_admin, make_promoter):
        admin = make_admin()
        promoter = make_promoter(pins=0)

        submitted = client.post("/rpc/submit_pin_request", json={
            "p_promoter_id": promoter.id, "p_requested_pins": 3, "p_reason": "stock",
        }).get_json()
        assert submitted["success"] is True

        approved = client.post("/rpc/approve_pin_request", json={
            "p_request_id": submitted["request_id"], "p_admin_id": admin.id,
        })
        assert approved.status_code == 200
        db.session.expire_all()
        assert db.session.get(Profile, promoter.id).pins == 3

        again = client.post("/rpc/reject_pin_request", json={"p_request_id": submitted["request_id"]})
        assert again.status_code == 400

    def test_body_must_be_object(self, client):
        response = client.post("/rpc/submit_pin_request", json=[1, 2])
        assert response.status_code == 400


class TestFrontendServing:

    def _frontend_app(self, build_dir):
        from app import create_app
        from config import TestConfig

        class FrontendConfig(TestConfig):
            FLASK_ENV = "production"
            FRONTEND_BUILD_DIR = str(build_dir)

        return create_app(FrontendConfig)

    def test_serves_files_with_index_fallback(self, tmp_path):
        (tmp_path / "index.html").write_text("<html>app</html>", encoding="utf-8")
        (tmp_path / "main.js").write_text("console.log(1)", encoding="utf-8")
        client = self._frontend_app(tmp_path).test_client()

        assert client.get("/main.js").data == b"console.log(1)"
        assert client.get("/").data == b"<html>app</html>"
        assert client.get("/admin/customers").data == b"<html>app</html>"
        assert client.get("/api/health").get_json()["status"] == "ok"
