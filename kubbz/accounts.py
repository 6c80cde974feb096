import logging

from sqlalchemy.exc import IntegrityError

from .models import db, User
from .registration_service import RegistrationService
from .storage import atomic
from shared.errors import ValidationError, NotFound, Conflict, Unauthorized

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6
PROFILE_TEXT_FIELDS = ('bio', 'phone', 'avatar')


def _required_text(data: dict, key: str, errors: dict) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        errors[key] = "This field is required"
        return None
    return value.strip()


def _check_email(email: str, errors: dict):
    if email and '@' not in email:
        errors['email'] = "Email address is not valid"


def _check_password(password: str, errors: dict, key: str = 'password'):
    if password is None:
        return
    if not isinstance(password, str):
        errors[key] = "Password must be a string"
    elif len(password) < MIN_PASSWORD_LENGTH:
        errors[key] = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"


class AccountService:
    """
    Identity collaborator: accounts, credentials and profiles.
    Password hashing is delegated to Werkzeug.
    """

    def __init__(self, registrations: RegistrationService = None):
        self.registrations = registrations or RegistrationService()

    def _ensure_unique(self, user_id: int = None, username: str = None, email: str = None):
        if email:
            existing = User.query.filter(User.email == email).first()
            if existing and existing.id != user_id:
                raise Conflict("This email is already registered", field='email')
        if username:
            existing = User.query.filter(User.username == username).first()
            if existing and existing.id != user_id:
                raise Conflict("This username is already taken", field='username')

    def register(self, username: str, email: str, password: str, is_admin: bool = False) -> User:
        errors = {}
        data = {'username': username, 'email': email, 'password': password}
        username = _required_text(data, 'username', errors)
        email = _required_text(data, 'email', errors)
        if not isinstance(password, str) or not password:
            errors['password'] = "This field is required"
            password = None
        _check_email(email, errors)
        _check_password(password, errors)
        if errors:
            raise ValidationError(errors)

        email = email.lower()
        self._ensure_unique(username=username, email=email)

        try:
            with atomic('register user'):
                user = User(username=username, email=email, is_admin=is_admin, points=0, season_points=0)
                user.set_password(password)
                db.session.add(user)
        except IntegrityError as e:
            raise Conflict("Username or email is already registered") from e

        logger.info(f"Registered user {user.id} ({username})")
        return user

    def authenticate(self, email: str, password: str) -> User:
        if not isinstance(email, str) or not isinstance(password, str) or not email or not password:
            raise Unauthorized("Invalid credentials")
        user = User.query.filter(User.email == email.strip().lower()).first()
        if user is None or not user.check_password(password):
            logger.info("Rejected login attempt")
            raise Unauthorized("Invalid credentials")
        return user

    def get(self, user_id: int) -> User:
        user = db.session.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def update_profile(self, user_id: int, data: dict) -> User:
        user = self.get(user_id)
        errors = {}
        changes = {}

        for key in ('username', 'email'):
            if data.get(key) is not None:
                value = _required_text(data, key, errors)
                if value:
                    changes[key] = value.lower() if key == 'email' else value
        _check_email(changes.get('email'), errors)

        for key in PROFILE_TEXT_FIELDS:
            if key in data:
                value = data[key]
                if value is not None and not isinstance(value, str):
                    errors[key] = "Must be a string"
                else:
                    changes[key] = value

        new_password = data.get('new_password')
        current_password = data.get('current_password')
        if new_password is not None:
            _check_password(new_password, errors, 'new_password')
            if not current_password:
                errors['current_password'] = "Current password is required to set a new one"
            elif not isinstance(current_password, str):
                errors['current_password'] = "Current password must be a string"

        if errors:
            raise ValidationError(errors)
        if not changes and new_password is None:
            raise ValidationError({'body': "No updates provided"}, "No updates provided")

        if new_password is not None and not user.check_password(current_password):
            raise Unauthorized("Current password is incorrect")

        self._ensure_unique(user.id, changes.get('username'), changes.get('email'))

        try:
            with atomic('update profile'):
                for key, value in changes.items():
                    setattr(user, key, value)
                if new_password is not None:
                    user.set_password(new_password)
        except IntegrityError as e:
            raise Conflict("Username or email is already registered") from e

        logger.info(f"Updated profile of user {user_id}: {sorted(changes) + (['password'] if new_password else [])}")
        return user

    def delete_account(self, user_id: int):
        """Delete a user, releasing every tournament seat they hold."""
        with atomic('delete account'):
            user = self.get(user_id)
            removed = self.registrations.withdraw_everywhere(user_id)
            db.session.delete(user)

        logger.info(f"Deleted user {user_id} and {len(removed)} registration(s)")
        self.registrations.announce_withdrawals(removed)
