from flask import Blueprint, jsonify, current_app, request
from sqlalchemy.exc import SQLAlchemyError

from models import AffiliateCommission, WithdrawalRequest
from commission.distribution import CommissionDistributionHelper
from commission.wallet import WalletHelper
from errors import ServiceError


bp = Blueprint('commission', __name__, url_prefix="/api/commission")


def _history_row(row):
    data = row.to_dict()
    data["commission_type"] = "affiliate"
    data["initiator"] = {
        "name": row.initiator.name,
        "promoter_id": row.initiator.promoter_id,
    } if row.initiator else None
    return data

#=======================================================================================
#      COMMISSION HISTORY
#=======================================================================================

@bp.route("/history", methods=["GET"])
def commission_history():
    """
    ?promoterId=<uuid> lists commissions received by that promoter,
    ?admin=true lists every commission row.
    """
    promoter_id = request.args.get("promoterId")
    is_admin = request.args.get("admin") == "true"

    if not promoter_id and not is_admin:
        return jsonify({
            "success": False,
            "error": "Promoter ID is required or admin=true for admin access",
        }), 400

    try:
        query = AffiliateCommission.query.order_by(AffiliateCommission.created_at.desc())
        if promoter_id:
            query = query.filter_by(recipient_id=promoter_id)
        rows = query.all()

        return jsonify({
            "success": True,
            "data": [_history_row(row) for row in rows],
            "totals": CommissionDistributionHelper.commission_totals(rows),
        }), 200

    except SQLAlchemyError as e:
        current_app.logger.error(f"Error fetching commission history: {str(e)}")
        return jsonify({"success": False, "error": "Failed to fetch commission history"}), 500


@bp.route("/stats", methods=["GET"])
def commission_stats():
    try:
        return jsonify({"success": True, "data": CommissionDistributionHelper.commission_statistics()}), 200
    except SQLAlchemyError as e:
        current_app.logger.error(f"Error computing commission statistics: {str(e)}")
        return jsonify({"success": False, "error": "Failed to compute commission statistics"}), 500

#=======================================================================================
#      WALLET & WITHDRAWALS
#=======================================================================================

@bp.route("/wallet", methods=["GET"])
def wallet_balance():
    try:
        summary = WalletHelper.wallet_summary(request.args.get("promoterId"))
        return jsonify({"success": True, "data": summary}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except SQLAlchemyError as e:
        current_app.logger.error(f"Error calculating wallet balance: {str(e)}")
        return jsonify({"success": False, "error": "Internal server error"}), 500


@bp.route("/withdrawals", methods=["GET"])
def withdrawals():
    promoter_id = request.args.get("promoterId")
    if not promoter_id:
        return jsonify({"success": False, "error": "Promoter ID is required"}), 400

    try:
        rows = WithdrawalRequest.query.filter_by(promoter_id=promoter_id).order_by(
            WithdrawalRequest.created_at.desc()
        ).all()
        return jsonify({"success": True, "data": [row.to_dict() for row in rows]}), 200
    except SQLAlchemyError as e:
        current_app.logger.error(f"Error fetching withdrawals: {str(e)}")
        return jsonify({"success": False, "error": "Failed to fetch withdrawals"}), 500
