from flask import Blueprint, jsonify, current_app, request
from sqlalchemy.exc import SQLAlchemyError

from models import PinRequest, Profile, Role
from accounts.promoters import PromoterHelper
from errors import ServiceError


bp = Blueprint('api', __name__, url_prefix="/api")


@bp.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok", "message": "Backend server is running"}), 200

# ----------------------------------------------------------------------------------
# PROFILE LISTS (users / promoters / customers are role views of profiles)
# ----------------------------------------------------------------------------------

def _list_profiles(role=None, limit=None):
    try:
        query = Profile.query
        if role:
            query = query.filter_by(role=role)
        query = query.order_by(Profile.created_at.desc())
        if limit:
            query = query.limit(limit)
        return jsonify({"success": True, "data": [p.to_dict() for p in query.all()]}), 200
    except SQLAlchemyError as e:
        current_app.logger.error(f"Error listing profiles (role={role}): {str(e)}")
        return jsonify({"success": False, "error": "Failed to load profiles"}), 500


@bp.route("/users", methods=["GET"])
def list_users():
    return _list_profiles()


@bp.route("/promoters", methods=["GET"])
def list_promoters():
    return _list_profiles(Role.PROMOTER.value, current_app.config.get("LIST_LIMIT", 100))


@bp.route("/customers", methods=["GET"])
def list_customers():
    return _list_profiles(Role.CUSTOMER.value, current_app.config.get("LIST_LIMIT", 100))


@bp.route("/pin-requests", methods=["GET"])
def list_pin_requests():
    try:
        rows = PinRequest.query.order_by(PinRequest.created_at.desc()).limit(
            current_app.config.get("PIN_REQUEST_LIST_LIMIT", 50)
        ).all()
        return jsonify({"success": True, "data": [row.to_dict() for row in rows]}), 200
    except SQLAlchemyError as e:
        current_app.logger.error(f"Error listing pin requests: {str(e)}")
        return jsonify({"success": False, "error": "Failed to load pin requests"}), 500


@bp.route("/promoters/hierarchy", methods=["GET"])
def promoter_hierarchy():
    try:
        tree = PromoterHelper.get_hierarchy(request.args.get("promoterId"))
        return jsonify({"success": True, "data": tree}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
