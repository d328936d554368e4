from flask import Blueprint, jsonify, current_app, request
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from accounts.customers import CustomerHelper
from accounts.pins import PinHelper
from accounts.promoters import PromoterHelper
from commission.distribution import CommissionDistributionHelper
from errors import ServiceError


bp = Blueprint('rpc', __name__, url_prefix="/rpc")


def _generate_next_promoter_id():
    promoter_id = PromoterHelper.generate_next_promoter_id()
    db.session.commit()
    return promoter_id


# name -> (callable, {request parameter: keyword argument})
PROCEDURES = {
    "create_customer_final": (CustomerHelper.create_customer_final, {
        "p_name": "name",
        "p_mobile": "mobile",
        "p_email": "email",
        "p_state": "state",
        "p_city": "city",
        "p_pincode": "pincode",
        "p_address": "address",
        "p_customer_id": "customer_id",
        "p_password": "password",
        "p_parent_promoter_id": "parent_promoter_id",
    }),
    "create_unified_promoter": (PromoterHelper.create_unified_promoter, {
        "p_name": "name",
        "p_phone": "phone",
        "p_password": "password",
        "p_email": "email",
        "p_parent_promoter_id": "parent_promoter_id",
        "p_role_level": "role_level",
        "p_address": "address",
        "p_state": "state",
        "p_city": "city",
        "p_pincode": "pincode",
        "p_status": "status",
    }),
    "generate_next_promoter_id": (_generate_next_promoter_id, {}),
    "distribute_affiliate_commission": (CommissionDistributionHelper.distribute, {
        "p_customer_id": "customer_id",
        "p_initiator_promoter_id": "initiator_promoter_id",
    }),
    "submit_pin_request": (PinHelper.submit_pin_request, {
        "p_promoter_id": "promoter_id",
        "p_requested_pins": "requested_pins",
        "p_reason": "reason",
    }),
    "approve_pin_request": (PinHelper.approve_pin_request, {
        "p_request_id": "request_id",
        "p_admin_id": "admin_id",
        "p_admin_notes": "admin_notes",
    }),
    "reject_pin_request": (PinHelper.reject_pin_request, {
        "p_request_id": "request_id",
        "p_admin_id": "admin_id",
        "p_admin_notes": "admin_notes",
    }),
}

def _build_kwargs(params, body):
    # Missing parameters arrive as None and are rejected by the procedure's own validation
    return {argument: body.get(param) for param, argument in params.items()}

#=======================================================================================
#      REMOTE PROCEDURES
#=======================================================================================

@bp.route("/<name>", methods=["POST"])
def call_procedure(name):
    if name not in PROCEDURES:
        return jsonify({"success": False, "error": f"Unknown procedure: {name}"}), 404

    body = request.get_json(silent=True)
    if body is None:
        body = {}
    if not isinstance(body, dict):
        return jsonify({"success": False, "error": "Request body must be a JSON object"}), 400

    func, params = PROCEDURES[name]
    try:
        result = func(**_build_kwargs(params, body))
        return jsonify(result), 200

    except ServiceError as e:
        db.session.rollback()
        current_app.logger.warning(f"Procedure {name} rejected: {e.message}")
        return jsonify(e.to_dict()), e.status_code

    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(f"Database error in procedure {name}: {str(e)}")
        return jsonify({"success": False, "error": "Database error"}), 500
