import logging

from models import db
from models.session import Session
from models.user import User, ROLE_ADMIN, ROLE_USER
from security.password import hash_password, verify_password
from services.errors import Conflict, Unauthorized, ValidationError, user_not_found
from services.store import commit

logger = logging.getLogger(__name__)

ROLES = (ROLE_USER, ROLE_ADMIN)


def normalize_email(value: str) -> str:
    return (value or "").strip().lower()


def _is_valid_email(email: str) -> bool:
    return isinstance(email, str) and "@" in email and len(email) <= 255


def _ensure_unique(name=None, email=None, exclude_id=None):
    if name is not None:
        q = User.query.filter(User.name == name)
        if exclude_id is not None:
            q = q.filter(User.id != exclude_id)
        if q.first():
            raise Conflict("Name already exists", "NAME_EXISTS")
    if email is not None:
        q = User.query.filter(User.email == email)
        if exclude_id is not None:
            q = q.filter(User.id != exclude_id)
        if q.first():
            raise Conflict("Email already exists", "EMAIL_EXISTS")


def _user_exists():
    return Conflict("Name or email already exists", "USER_EXISTS")


def get_user(user_id) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise user_not_found()
    return user


def create_user(name, email, password, role=ROLE_USER) -> User:
    name = (name or "").strip()
    email = normalize_email(email)
    if not name or not email or not password:
        raise ValidationError("Name, email, and password required", "REQUIRED_FIELDS")
    if not _is_valid_email(email):
        raise ValidationError("Invalid email")
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")

    _ensure_unique(name=name, email=email)
    user = User(name=name, email=email, password_hash=hash_password(password), role=role)
    db.session.add(user)
    commit(on_integrity_error=_user_exists)
    logger.info("User %s created with role %s", user.id, role)
    return user


def register_user(name, email, password) -> User:
    return create_user(name, email, password, role=ROLE_USER)


def authenticate(email, password):
    user = User.query.filter_by(email=normalize_email(email)).first()
    if not user or not verify_password(password, user.password_hash):
        return None
    return user


def update_user(user_id, name=None, email=None, password=None) -> User:
    user = get_user(user_id)

    name = (name or "").strip() or None
    email = normalize_email(email) or None
    if email is not None and not _is_valid_email(email):
        raise ValidationError("Invalid email")

    if name is not None and name != user.name:
        _ensure_unique(name=name, exclude_id=user.id)
        user.name = name
    if email is not None and email != user.email:
        _ensure_unique(email=email, exclude_id=user.id)
        user.email = email
    if password:
        user.password_hash = hash_password(password)

    commit(on_integrity_error=_user_exists)
    return user


def update_profile(user_id, name=None, email=None, current_password=None, new_password=None) -> User:
    """
    Self-service profile edit. Name changes freely; email or password (one at a
    time) require the current password.
    """
    user = get_user(user_id)

    name = (name or "").strip() or None
    email = normalize_email(email) or None
    if email is not None and new_password:
        raise ValidationError("You can only update email OR password at a time", "EMAIL_OR_PASSWORD_ONLY")

    changing_email = email is not None and email != user.email
    if changing_email or new_password:
        if not current_password:
            raise ValidationError("Current password required", "PASSWORD_REQUIRED")
        if not verify_password(current_password, user.password_hash):
            raise Unauthorized("Incorrect current password", "INVALID_PASSWORD")

    if changing_email:
        if not _is_valid_email(email):
            raise ValidationError("Invalid email")
        _ensure_unique(email=email, exclude_id=user.id)
        user.email = email
    if new_password:
        if verify_password(new_password, user.password_hash):
            raise ValidationError("New password cannot be the same as old password", "SAME_PASSWORD")
        user.password_hash = hash_password(new_password)
    if name is not None and name != user.name:
        _ensure_unique(name=name, exclude_id=user.id)
        user.name = name

    commit(on_integrity_error=_user_exists)
    logger.info("User %s updated their profile", user.id)
    return user


def delete_user(user_id) -> int:
    """Delete the user along with their bookings and sessions; returns bookings removed."""
    user = get_user(user_id)
    removed = len(user.bookings)
    Session.query.filter_by(user_id=user.id).delete(synchronize_session=False)
    db.session.delete(user)
    commit()
    logger.info("User %s deleted with %d bookings", user_id, removed)
    return removed


def promote_to_admin(email) -> User:
    user = User.query.filter_by(email=normalize_email(email)).first()
    if user is None:
        raise user_not_found()
    user.role = ROLE_ADMIN
    commit()
    return user
