import logging
import secrets
import string

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from linkgate import errors, models
from linkgate.database import retry_transient

logger = logging.getLogger(__name__)

ALPHABET = string.ascii_lowercase + string.digits
CODE_LENGTH = 5
MAX_ATTEMPTS = 8
# Failed attempts at one length before codes get a character longer
LENGTHEN_AFTER = 4


def generate_code(length: int = CODE_LENGTH) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def code_taken(db: Session, code: str) -> bool:
    return db.query(models.Link.id).filter_by(converted_link=code).first() is not None


@retry_transient()
def allocate(db: Session, original_link: str, owner_id: int,
             length: int = CODE_LENGTH, attempts: int = MAX_ATTEMPTS) -> models.Link:
    """Insert a new link for ``owner_id`` under a short code nobody else holds.

    The pre-check keeps the common collision cheap; the UNIQUE constraint on
    ``links.converted_link`` is what actually settles a race between two
    allocators, so an IntegrityError on commit counts as one more collision.
    """
    for attempt in range(attempts):
        code = generate_code(length + attempt // LENGTHEN_AFTER)
        if code_taken(db, code):
            logger.debug("Short code collision on %s (attempt %d/%d)", code, attempt + 1, attempts)
            continue

        link = models.Link(original_link=original_link, converted_link=code, user_id=owner_id)
        db.add(link)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            if not code_taken(db, code):
                raise
            logger.info("Short code %s taken concurrently (attempt %d/%d)", code, attempt + 1, attempts)
            continue

        db.refresh(link)
        return link

    logger.error("Gave up allocating a short code after %d attempts", attempts)
    raise errors.AllocationExhausted()
