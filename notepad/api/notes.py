"""
Note store: every operation is scoped to the acting user's id.

A note owned by somebody else behaves exactly like a note that does not exist,
so callers can never learn whether another user's note id is taken.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from notepad.api.errors import NotFound, ValidationError
from notepad.api.models import Note, utcnow

logger = logging.getLogger(__name__)

VIEW_ACTIVE = "active"
VIEW_ARCHIVED = "archived"
VIEW_TRASH = "trash"
VIEW_ALL = "all"
VIEWS = (VIEW_ACTIVE, VIEW_ARCHIVED, VIEW_TRASH, VIEW_ALL)

DEFAULT_COLOR = "default"

UPDATABLE_FIELDS = ("title", "content", "color", "pinned", "archived")


def _require_text(field: str, value: Optional[str]) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field.capitalize()} is required")
    return value


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _owned(db: Session, user_id: int):
    return db.query(Note).filter(Note.user_id == user_id)


# PUBLIC_INTERFACE
def get_note(db: Session, user_id: int, note_id: int) -> Note:
    """Return the note if it exists and belongs to ``user_id``, else raise NotFound."""
    note = _owned(db, user_id).filter(Note.id == note_id).first()
    if note is None:
        raise NotFound()
    return note


# PUBLIC_INTERFACE
def create_note(
    db: Session,
    user_id: int,
    title: str,
    content: str,
    color: Optional[str] = None,
    pinned: bool = False,
) -> Note:
    """Create an active note owned by ``user_id``."""
    note = Note(
        title=_require_text("title", title).strip(),
        content=_require_text("content", content),
        color=color or DEFAULT_COLOR,
        pinned=bool(pinned),
        archived=False,
        deleted=False,
        user_id=user_id,
    )
    db.add(note)
    db.commit()
    db.refresh(note)
    return note


# PUBLIC_INTERFACE
def list_notes(db: Session, user_id: int, view: str = VIEW_ACTIVE, search: Optional[str] = None) -> List[Note]:
    """
    List the user's notes in one view, optionally filtered by a search term.

    Views:
        active: not archived, not in trash
        archived: archived, not in trash
        trash: in trash, whatever the archived flag says
        all: everything not in trash

    Pinned notes come first in the active and all views; otherwise notes are
    ordered most recently updated first.
    """
    if view not in VIEWS:
        raise ValidationError(f"Unknown view '{view}', expected one of: {', '.join(VIEWS)}")

    query = _owned(db, user_id)
    if view == VIEW_TRASH:
        query = query.filter(Note.deleted.is_(True))
    else:
        query = query.filter(Note.deleted.is_(False))
        if view == VIEW_ACTIVE:
            query = query.filter(Note.archived.is_(False))
        elif view == VIEW_ARCHIVED:
            query = query.filter(Note.archived.is_(True))

    term = (search or "").strip()
    if term:
        like = f"%{_escape_like(term)}%"
        query = query.filter(Note.title.ilike(like, escape="\\") | Note.content.ilike(like, escape="\\"))

    ordering = [Note.updated_at.desc(), Note.id.desc()]
    if view in (VIEW_ACTIVE, VIEW_ALL):
        ordering.insert(0, Note.pinned.desc())
    return query.order_by(*ordering).all()


def _save(db: Session, note: Note) -> Note:
    note.updated_at = utcnow()
    db.add(note)
    db.commit()
    db.refresh(note)
    return note


# PUBLIC_INTERFACE
def update_note(db: Session, user_id: int, note_id: int, changes: dict) -> Note:
    """
    Apply a partial update. Only title, content, color, pinned and archived can
    change; anything else in ``changes`` is ignored. Archiving leaves ``pinned``
    as it is.
    """
    note = get_note(db, user_id, note_id)
    fields = [field for field in UPDATABLE_FIELDS if field in changes]
    if not fields:
        return note
    values = {}
    for field in fields:
        value = changes[field]
        if field in ("title", "content"):
            value = _require_text(field, value)
            if field == "title":
                value = value.strip()
        elif field == "color":
            value = value or DEFAULT_COLOR
        elif value is None:
            raise ValidationError(f"{field.capitalize()} must be true or false")
        values[field] = value
    for field, value in values.items():
        setattr(note, field, value)
    return _save(db, note)


# PUBLIC_INTERFACE
def trash_note(db: Session, user_id: int, note_id: int) -> Note:
    """Move a note to trash. Trashing a note that is already there is a no-op."""
    note = get_note(db, user_id, note_id)
    if note.deleted:
        return note
    note.deleted = True
    return _save(db, note)


# PUBLIC_INTERFACE
def restore_note(db: Session, user_id: int, note_id: int) -> Note:
    """Take a note out of trash, back to the active or archived view it left."""
    note = get_note(db, user_id, note_id)
    if not note.deleted:
        return note
    note.deleted = False
    return _save(db, note)


# PUBLIC_INTERFACE
def purge_note(db: Session, user_id: int, note_id: int) -> None:
    """
    Permanently remove a note from trash.

    Raises:
        NotFound if the note is absent or not owned by ``user_id``.
        ValidationError if the note has not been moved to trash first.
    """
    note = get_note(db, user_id, note_id)
    if not note.deleted:
        raise ValidationError("Only notes in trash can be deleted permanently")
    db.delete(note)
    db.commit()
    logger.info("Purged note %s for user %s", note_id, user_id)
