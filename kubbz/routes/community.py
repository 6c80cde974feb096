"""Rankings, winners and gallery endpoints."""
from flask import Blueprint, jsonify, current_app

from kubbz.routes import current_identity, json_body

bp = Blueprint('community', __name__, url_prefix='/api')


# ==================== Rankings ====================

@bp.route('/rankings', methods=['GET'])
def rankings():
    return jsonify(current_app.leaderboard.standings())


@bp.route('/rankings/season', methods=['GET'])
def season_rankings():
    return jsonify(current_app.leaderboard.standings(season=True))


# ==================== Winners ====================

@bp.route('/winners', methods=['GET'])
def list_winners():
    return jsonify([w.to_dict() for w in current_app.winners.list()])


@bp.route('/winners', methods=['POST'])
def add_winner():
    _, is_admin = current_identity()
    winner = current_app.winners.add(json_body(), is_admin)
    return jsonify(winner.to_dict()), 201


@bp.route('/winners/<int:winner_id>', methods=['DELETE'])
def delete_winner(winner_id: int):
    _, is_admin = current_identity()
    current_app.winners.delete(winner_id, is_admin)
    return '', 204


# ==================== Gallery ====================

@bp.route('/gallery', methods=['GET'])
def list_images():
    return jsonify([image.to_dict() for image in current_app.gallery.list()])


@bp.route('/gallery/<int:image_id>', methods=['GET'])
def get_image(image_id: int):
    return jsonify(current_app.gallery.get(image_id).to_dict())


@bp.route('/gallery/upload', methods=['POST'])
def upload_image():
    user_id, _ = current_identity()
    image = current_app.gallery.upload(user_id, json_body())
    return jsonify(image.to_dict()), 201


@bp.route('/gallery/<int:image_id>', methods=['DELETE'])
def delete_image(image_id: int):
    user_id, is_admin = current_identity()
    current_app.gallery.delete(image_id, user_id, is_admin)
    return '', 204
