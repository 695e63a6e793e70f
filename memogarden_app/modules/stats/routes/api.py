from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from memogarden_app.core.error_handlers import success_response
from memogarden_app.modules.review.services.deck_service import DeckService
from ..services.statistics_service import StatisticsService

stats_api_bp = Blueprint('stats_api', __name__)


@stats_api_bp.route('', methods=['GET'])
@login_required
def get_stats():
    """
    Statistics for the account, or for one deck with ?deck_id=.
    """
    user_id = current_user.user_id
    deck_id = request.args.get('deck_id', type=int)
    if deck_id is not None:
        DeckService.get_owned_deck(user_id, deck_id)
    return jsonify(success_response(StatisticsService.get_summary(user_id, deck_id)))
