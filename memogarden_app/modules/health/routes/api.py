from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from memogarden_app.core.error_handlers import success_response
from ..services.health_service import HealthService

health_api_bp = Blueprint('health_api', __name__)


@health_api_bp.route('', methods=['GET'])
@login_required
def get_health():
    """Account and per-deck retrievability with their health bands."""
    return jsonify(success_response(HealthService.get_account_health(current_user.user_id)))


@health_api_bp.route('/sync', methods=['POST'])
@login_required
def force_sync():
    """Recompute every aggregate now, regardless of the last sync day."""
    card_count = HealthService.force_sync_account_health(current_user.user_id)
    return jsonify(success_response({'cards': card_count}, message='Health synced'))
