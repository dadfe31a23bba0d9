"""User service: local provisioning of identity-provider accounts."""

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import Conflict, UserNotProvisioned, ValidationError
from app.core.logging_config import get_logger
from app.models.user import User

logger = get_logger(__name__)


def get_user_by_auth_id(db: Session, auth_id: str) -> User:
    """Resolve a verified token subject to the local user, or raise UserNotProvisioned."""
    user = db.query(User).filter(User.auth_id == auth_id).first()
    if user is None:
        raise UserNotProvisioned(
            "Not authorized, user not found in our DB", error="user_not_provisioned"
        )
    return user


def register_user(db: Session, auth_id: str | None, email: str | None) -> User:
    """Create the local user for an identity-provider account.

    Raises ValidationError if a field is missing and Conflict if either the
    authId or the email is already registered.
    """
    auth_id = (auth_id or "").strip()
    email = (email or "").strip()
    if not auth_id or not email:
        raise ValidationError("Please provide authId and email")

    existing = db.query(User).filter(or_(User.auth_id == auth_id, User.email == email)).first()
    if existing:
        raise Conflict("User already exists in our database")

    user = User(auth_id=auth_id, email=email)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("User already exists in our database")
    db.refresh(user)
    logger.info(f"Registered user {user.id} | auth_id={auth_id}")
    return user


def sync_identity_user(db: Session, auth_id: str | None, email: str | None) -> User:
    """Insert-if-absent keyed by auth_id. Idempotent for repeated webhook deliveries."""
    auth_id = (auth_id or "").strip()
    email = (email or "").strip()
    if not auth_id or not email:
        logger.warning(f"Webhook received but authId or email is missing | auth_id={auth_id!r}")
        raise ValidationError("User ID and email are required.")

    user = db.query(User).filter(User.auth_id == auth_id).first()
    if user:
        logger.debug(f"Webhook user {auth_id} already synced")
        return user

    user = User(auth_id=auth_id, email=email)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        # Concurrent delivery of the same event won the insert
        user = db.query(User).filter(User.auth_id == auth_id).first()
        if user is None:
            raise Conflict("A user with this email already exists")
        return user
    db.refresh(user)
    logger.info(f"[Webhook] User {email} synced successfully")
    return user
