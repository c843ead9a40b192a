import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from linkgate import allocator, errors, models
from linkgate.database import retry_transient

logger = logging.getLogger(__name__)


def create_for_owner(db: Session, original_link: str, owner_id: int, *,
                     length: int = allocator.CODE_LENGTH,
                     attempts: int = allocator.MAX_ATTEMPTS) -> models.Link:
    original_link = (original_link or "").strip()
    if not original_link:
        raise errors.ValidationError("Link is required")
    return allocator.allocate(db, original_link, owner_id, length=length, attempts=attempts)


@retry_transient()
def get_by_code(db: Session, code: str) -> models.Link | None:
    return db.query(models.Link).filter_by(converted_link=code).first()


@retry_transient()
def list_all(db: Session) -> dict[int, dict]:
    """Group every link under its owner.

    Returns ``{user_id: {"username": ..., "links": [Link, ...]}}``. Links are
    kept as a list in id order, so an owner with the same original link twice
    gets both entries back.
    """
    rows = (
        db.query(models.User.id, models.User.username, models.Link)
        .join(models.Link, models.Link.user_id == models.User.id)
        .order_by(models.User.id, models.Link.id)
        .all()
    )
    users: dict[int, dict] = {}
    for user_id, username, link in rows:
        entry = users.setdefault(user_id, {"username": username, "links": []})
        entry["links"].append(link)
    return users


@retry_transient()
def delete_by_id(db: Session, link_id: int) -> None:
    link = db.get(models.Link, link_id)
    if not link:
        raise errors.NotFound()
    db.delete(link)
    db.commit()


@retry_transient()
def update_by_id(db: Session, link_id: int, original_link: str, converted_link: str) -> models.Link:
    original_link = (original_link or "").strip()
    converted_link = (converted_link or "").strip()
    if not original_link or not converted_link:
        raise errors.ValidationError("Original link and converted link are required")

    link = db.get(models.Link, link_id)
    if not link:
        raise errors.NotFound()

    clash = (
        db.query(models.Link.id)
        .filter(models.Link.converted_link == converted_link, models.Link.id != link_id)
        .first()
    )
    if clash:
        raise errors.DuplicateCode()

    link.original_link = original_link
    link.converted_link = converted_link
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise errors.DuplicateCode()
    db.refresh(link)
    return link
