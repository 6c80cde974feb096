from flask import Blueprint, jsonify, current_app
from flask_login import login_user, logout_user

from kubbz.routes import current_identity, json_body

bp = Blueprint('auth', __name__, url_prefix='/api/auth')


@bp.route('/register', methods=['POST'])
def register():
    data = json_body()
    user = current_app.accounts.register(
        username=data.get('username'),
        email=data.get('email'),
        password=data.get('password')
    )
    login_user(user)
    return jsonify({
        'message': 'User created successfully',
        'user': user.to_dict(include_private=True)
    }), 201


@bp.route('/login', methods=['POST'])
def login():
    data = json_body()
    user = current_app.accounts.authenticate(data.get('email'), data.get('password'))
    login_user(user, remember=bool(data.get('remember')))
    return jsonify({'user': user.to_dict(include_private=True)})


@bp.route('/logout', methods=['POST'])
def logout():
    logout_user()
    return jsonify({'message': 'Logged out'})


@bp.route('/profile', methods=['GET'])
def get_profile():
    user_id, _ = current_identity()
    return jsonify(current_app.accounts.get(user_id).to_dict(include_private=True))


@bp.route('/profile', methods=['PATCH'])
def update_profile():
    user_id, _ = current_identity()
    user = current_app.accounts.update_profile(user_id, json_body())
    return jsonify(user.to_dict(include_private=True))


@bp.route('/profile', methods=['DELETE'])
def delete_profile():
    """Delete the account, releasing all of its tournament seats."""
    user_id, _ = current_identity()
    current_app.accounts.delete_account(user_id)
    logout_user()
    return jsonify({'message': 'Account deleted successfully'})
