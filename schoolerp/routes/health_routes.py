"""
Health check route
"""

from flask import Blueprint, jsonify

from schoolerp.models.database import check_connection
from schoolerp.utils import DatabaseError, create_response

health_bp = Blueprint('health', __name__)


@health_bp.route('', methods=['GET'])
def health():
    """Report application and database status"""
    if not check_connection():
        raise DatabaseError("Database unavailable")
    return jsonify(create_response(True, "Service healthy", {'status': 'ok', 'database': 'connected'}))
