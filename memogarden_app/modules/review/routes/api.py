from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from memogarden_app.core.error_handlers import ValidationError, success_response
from ..services.card_service import CardService
from ..services.deck_service import DeckService
from ..services.review_service import ReviewService

review_api_bp = Blueprint('review_api', __name__)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('No input data provided')
    return data


# ----------------------------------------------------------------------
# Decks
# ----------------------------------------------------------------------

@review_api_bp.route('/decks', methods=['GET'])
@login_required
def list_decks():
    user_id = current_user.user_id
    remaining = ReviewService.get_all_cards_remaining(user_id)
    decks = []
    for deck in DeckService.list_decks(user_id):
        item = deck.to_dict()
        item['remaining'] = remaining[deck.deck_id].to_dict()
        decks.append(item)
    return jsonify(success_response(decks))


@review_api_bp.route('/decks', methods=['POST'])
@login_required
def create_deck():
    data = _json_body()
    deck = DeckService.create_deck(current_user.user_id, data.get('name'), data.get('description'))
    return jsonify(success_response(deck.to_dict(), message='Deck created')), 201


@review_api_bp.route('/decks/<int:deck_id>', methods=['PATCH'])
@login_required
def rename_deck(deck_id):
    data = _json_body()
    deck = DeckService.rename_deck(current_user.user_id, deck_id, data.get('name'), data.get('description'))
    return jsonify(success_response(deck.to_dict()))


@review_api_bp.route('/decks/<int:deck_id>', methods=['DELETE'])
@login_required
def remove_deck(deck_id):
    DeckService.remove_deck(current_user.user_id, deck_id)
    return jsonify(success_response(message='Deck removed'))


@review_api_bp.route('/decks/<int:deck_id>/next', methods=['GET'])
@login_required
def next_card(deck_id):
    """
    Next card of today's session for the deck.
    Output: { "card": {...} | null, "remaining": {...} }
    """
    user_id = current_user.user_id
    card = ReviewService.get_next_card(user_id, deck_id)
    remaining = ReviewService.get_cards_remaining(user_id, deck_id)
    return jsonify(success_response({
        'card': card.to_dict() if card else None,
        'remaining': remaining.to_dict(),
    }))


# ----------------------------------------------------------------------
# Cards
# ----------------------------------------------------------------------

@review_api_bp.route('/decks/<int:deck_id>/cards', methods=['POST'])
@login_required
def create_card(deck_id):
    data = _json_body()
    card = CardService.create_card(current_user.user_id, deck_id, data.get('front'), data.get('back'))
    return jsonify(success_response(card.to_dict(), message='Card created')), 201


@review_api_bp.route('/cards/<int:card_id>', methods=['PATCH'])
@login_required
def edit_card(card_id):
    data = _json_body()
    card = CardService.edit_card(
        current_user.user_id,
        card_id,
        front=data.get('front'),
        back=data.get('back'),
        deck_id=data.get('deck_id'),
    )
    return jsonify(success_response(card.to_dict()))


@review_api_bp.route('/cards/<int:card_id>', methods=['DELETE'])
@login_required
def remove_card(card_id):
    CardService.remove_card(current_user.user_id, card_id)
    return jsonify(success_response(message='Card removed'))


@review_api_bp.route('/cards/<int:card_id>/review', methods=['POST'])
@login_required
def review_card(card_id):
    """
    Submit a review.
    Input: {
        "rating": int (1-4),
        "answer": str (optional)
    }
    """
    data = _json_body()
    outcome = ReviewService.submit_review(
        user_id=current_user.user_id,
        card_id=card_id,
        answer_attempt=data.get('answer'),
        rating=data.get('rating'),
    )
    return jsonify(success_response(outcome.to_dict(), message='Review processed successfully'))


@review_api_bp.route('/cards/<int:card_id>/options', methods=['GET'])
@login_required
def revision_options(card_id):
    """Preview of each rating's outcome."""
    options = ReviewService.get_revision_options(current_user.user_id, card_id)
    return jsonify(success_response({'card_id': card_id, 'options': options}))
