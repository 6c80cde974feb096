from flask import Blueprint, request, jsonify, current_app

from kubbz.routes import current_identity, require_admin, json_body
from kubbz.tournament_catalog import TournamentFields

bp = Blueprint('tournaments', __name__, url_prefix='/api/tournaments')


# ==================== Tournament Catalog ====================

@bp.route('', methods=['GET'])
def list_tournaments():
    """List tournaments, latest start first, each with its derived status."""
    catalog = current_app.catalog
    tournaments = catalog.list(status=request.args.get('status'))
    now = catalog.clock()
    return jsonify([t.to_dict(now) for t in tournaments])


@bp.route('/<int:tournament_id>', methods=['GET'])
def get_tournament(tournament_id: int):
    catalog = current_app.catalog
    return jsonify(catalog.get(tournament_id).to_dict(catalog.clock()))


@bp.route('', methods=['POST'])
def create_tournament():
    """Create a tournament (admin only)."""
    require_admin()
    catalog = current_app.catalog
    tournament = catalog.create(TournamentFields.from_payload(json_body()))
    return jsonify(tournament.to_dict(catalog.clock())), 201


@bp.route('/<int:tournament_id>', methods=['PATCH', 'PUT'])
def update_tournament(tournament_id: int):
    """Apply a partial update (admin only)."""
    require_admin()
    catalog = current_app.catalog
    tournament = catalog.update(tournament_id, TournamentFields.from_payload(json_body()))
    return jsonify(tournament.to_dict(catalog.clock()))


@bp.route('/<int:tournament_id>', methods=['DELETE'])
def delete_tournament(tournament_id: int):
    """Delete a tournament and all of its registrations (admin only)."""
    require_admin()
    current_app.catalog.delete(tournament_id)
    return jsonify({'message': 'Tournament deleted successfully'})


# ==================== Registration ====================

@bp.route('/<int:tournament_id>/register', methods=['POST'])
def register(tournament_id: int):
    user_id, _ = current_identity()
    registration = current_app.registrations.register(
        tournament_id,
        user_id,
        json_body().get('team_name')
    )
    return jsonify({
        'message': 'Successfully registered for tournament',
        'registration': registration.to_dict()
    }), 201


@bp.route('/<int:tournament_id>/register', methods=['DELETE'])
def withdraw(tournament_id: int):
    user_id, _ = current_identity()
    current_app.registrations.withdraw(tournament_id, user_id)
    return jsonify({'message': 'Successfully dropped out from tournament'})


@bp.route('/<int:tournament_id>/participants', methods=['GET'])
def list_participants(tournament_id: int):
    current_identity()
    return jsonify(current_app.participants.participants_of(tournament_id))


@bp.route('/<int:tournament_id>/participants/<int:registration_id>', methods=['DELETE'])
def remove_participant(tournament_id: int, registration_id: int):
    """Admin removal; authorization is decided by the service from the flag."""
    _, is_admin = current_identity()
    current_app.registrations.remove_participant(tournament_id, registration_id, is_admin)
    return jsonify({'message': 'Participant removed successfully'})


@bp.route('/user/registered', methods=['GET'])
def my_tournaments():
    """Tournaments the session user is registered for."""
    user_id, _ = current_identity()
    return jsonify(current_app.participants.tournaments_of(user_id))
