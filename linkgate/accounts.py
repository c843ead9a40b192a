import logging

import bcrypt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from linkgate import errors, models
from linkgate.database import retry_transient

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes and newer releases refuse longer input
MAX_PASSWORD_BYTES = 72

# Checked against when the username is unknown, so both failures cost one bcrypt round trip
_DUMMY_HASH = bcrypt.hashpw(b"linkgate-dummy-password", bcrypt.gensalt(rounds=10))


def hash_password(password: str, rounds: int = 10) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))


def _too_long(password: str) -> bool:
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


def get_user_by_username(db: Session, username: str) -> models.User | None:
    return db.query(models.User).filter_by(username=username).first()


@retry_transient()
def register(db: Session, username: str, password: str, role: models.Role = models.Role.user,
             rounds: int = 10) -> models.User:
    if _too_long(password):
        raise errors.ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    if get_user_by_username(db, username):
        raise errors.DuplicateUsername()

    user = models.User(
        username=username,
        password_hash=hash_password(password, rounds),
        role=models.Role(role).value,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # lost a race against a concurrent signup for the same name
        db.rollback()
        raise errors.DuplicateUsername()
    db.refresh(user)
    logger.info("Registered user id=%s username=%s role=%s", user.id, user.username, user.role)
    return user


@retry_transient()
def verify_credentials(db: Session, username: str, password: str) -> models.User:
    user = get_user_by_username(db, username)
    if user is None:
        if not _too_long(password):
            bcrypt.checkpw(password.encode("utf-8"), _DUMMY_HASH)
        logger.info("Login failed: unknown username=%s", username)
        raise errors.InvalidCredentials()

    if _too_long(password) or not verify_password(password, user.password_hash):
        logger.info("Login failed: password mismatch for username=%s", username)
        raise errors.InvalidCredentials()

    return user
