"""Auth blueprint - registration, login and profile."""
from flask import Blueprint, g, jsonify

from storefront.database import get_session
from storefront.middleware import require_login
from storefront.services import auth_service
from storefront.utils.http import json_body

auth_bp = Blueprint('auth', __name__, url_prefix='/auth')


@auth_bp.route('/register', methods=['POST'])
def register():
    """Create an account and return a bearer token."""
    data = json_body()
    result = auth_service.register(
        get_session(),
        email=data.get('email'),
        username=data.get('username'),
        password=data.get('password'),
        first_name=data.get('firstName'),
        last_name=data.get('lastName'),
    )
    return jsonify(result), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    data = json_body()
    result = auth_service.login(get_session(), data.get('email'), data.get('password'))
    return jsonify(result), 200


@auth_bp.route('/me')
@require_login
def me():
    """Current user profile."""
    return jsonify(auth_service.get_profile(get_session(), g.ctx.user_id))
