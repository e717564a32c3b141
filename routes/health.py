from flask import Blueprint, jsonify

from utils.timeutil import iso, utc_now

health_bp = Blueprint("health", __name__)


@health_bp.get("/health")
def health():
    return jsonify(success=True, status="OK", message="QuickCourt API is running", timestamp=iso(utc_now())), 200
