import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Depends, status, Query, Path
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from notepad.api import notes as note_store
from notepad.api.auth import (
    authenticate_user,
    get_current_user,
    get_current_user_id,
    register_user,
)
from notepad.api.config import FRONTEND_ORIGINS, HOST, LOG_LEVEL, PORT
from notepad.api.database import get_db, init_db
from notepad.api.errors import register_exception_handlers
from notepad.api.models import User
from notepad.api.schemas import (
    AuthResponse,
    LoginRequest,
    MessageResponse,
    NoteCreateRequest,
    NoteEnvelope,
    NoteResponse,
    NotesListResponse,
    NoteUpdateRequest,
    SignupRequest,
    UserResponse,
)

logger = logging.getLogger(__name__)


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_db()
    logger.info("Notes API started")
    yield


app = FastAPI(
    title="Notes API",
    description="Notes application backend API with JWT auth, pinning, archive and trash for personal notes.",
    version="1.0.0",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Health", "description": "Service health and status."},
        {"name": "Auth", "description": "User registration and authentication."},
        {"name": "Notes", "description": "Note lifecycle: create, list, update, trash, restore, purge."},
    ],
)

# CORS setup - allow frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=FRONTEND_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

register_exception_handlers(app)


def _note_envelope(note) -> NoteEnvelope:
    return NoteEnvelope(note=NoteResponse.model_validate(note))


def _auth_response(token: str, user: User) -> AuthResponse:
    return AuthResponse(token=token, user=UserResponse.model_validate(user))


# PUBLIC_INTERFACE
@app.get("/", response_model=MessageResponse, tags=["Health"], summary="Health Check")
def health_check():
    """
    Health check endpoint.

    Returns:
        JSON object indicating service status.
    """
    return {"message": "Notes API is running"}


# -------- Auth Routes --------

# PUBLIC_INTERFACE
@app.post(
    "/auth/signup",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["Auth"],
    summary="Register a new user",
)
def signup(payload: SignupRequest, db: Session = Depends(get_db)):
    """
    Register a new user and log them in.

    Body:
        name: display name
        email: valid email address
        password: plaintext password

    Returns:
        AuthResponse with a bearer token and the user without sensitive fields.

    Raises:
        400 if the email is already in use or a field is invalid.
    """
    token, user = register_user(db, payload.name, payload.email, payload.password)
    return _auth_response(token, user)


# PUBLIC_INTERFACE
@app.post("/auth/login", response_model=AuthResponse, tags=["Auth"], summary="Login and obtain JWT token")
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    """
    Login with email and password.

    Raises:
        401 on invalid credentials.
    """
    token, user = authenticate_user(db, payload.email, payload.password)
    return _auth_response(token, user)


# PUBLIC_INTERFACE
@app.get("/auth/me", response_model=UserResponse, tags=["Auth"], summary="Current user")
def read_current_user(current_user: User = Depends(get_current_user)):
    """Return the public projection of the token's user."""
    return current_user


# -------- Notes Routes --------

# PUBLIC_INTERFACE
@app.get("/notes", response_model=NotesListResponse, tags=["Notes"], summary="List notes in a view")
def list_notes(
    view: str = Query(note_store.VIEW_ACTIVE, description="One of: active, archived, trash, all"),
    search: str = Query(None, description="Search text in title and content"),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    List the current user's notes.

    Query params:
        view: which bucket to list, defaults to active
        search: optional case-insensitive text to match in title or content
    """
    notes = note_store.list_notes(db, user_id, view=view, search=search)
    return NotesListResponse(notes=[NoteResponse.model_validate(n) for n in notes])


# PUBLIC_INTERFACE
@app.post(
    "/notes",
    response_model=NoteEnvelope,
    status_code=status.HTTP_201_CREATED,
    tags=["Notes"],
    summary="Create a new note",
)
def create_note(
    payload: NoteCreateRequest,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Create a new note for the authenticated user.

    Body:
        title: note title
        content: note content
        color: optional color tag
        pinned: optional, defaults to false
    """
    note = note_store.create_note(
        db,
        user_id,
        title=payload.title,
        content=payload.content,
        color=payload.color,
        pinned=payload.pinned,
    )
    return _note_envelope(note)


# PUBLIC_INTERFACE
@app.get("/notes/{note_id}", response_model=NoteEnvelope, tags=["Notes"], summary="Get a note by ID")
def get_note(
    note_id: int = Path(...),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Retrieve a single note by ID. Only the owner can access it.
    """
    return _note_envelope(note_store.get_note(db, user_id, note_id))


# PUBLIC_INTERFACE
@app.put("/notes/{note_id}", response_model=NoteEnvelope, tags=["Notes"], summary="Update a note by ID")
def update_note(
    payload: NoteUpdateRequest,
    note_id: int = Path(...),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Update any subset of title, content, color, pinned and archived. Only the owner can modify it.
    """
    changes = payload.model_dump(exclude_unset=True)
    return _note_envelope(note_store.update_note(db, user_id, note_id, changes))


# PUBLIC_INTERFACE
@app.delete("/notes/{note_id}", response_model=MessageResponse, tags=["Notes"], summary="Move a note to trash")
def delete_note(
    note_id: int = Path(...),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Soft-delete a note. It stays restorable from the trash view.
    """
    note_store.trash_note(db, user_id, note_id)
    return {"message": "Note moved to trash"}


# PUBLIC_INTERFACE
@app.post("/notes/{note_id}/restore", response_model=NoteEnvelope, tags=["Notes"], summary="Restore a note from trash")
def restore_note(
    note_id: int = Path(...),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    return _note_envelope(note_store.restore_note(db, user_id, note_id))


# PUBLIC_INTERFACE
@app.delete(
    "/notes/{note_id}/permanent",
    response_model=MessageResponse,
    tags=["Notes"],
    summary="Permanently delete a note from trash",
)
def purge_note(
    note_id: int = Path(...),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """
    Irreversibly remove a note. The note must be in trash.
    """
    note_store.purge_note(db, user_id, note_id)
    return {"message": "Note deleted permanently"}


def run() -> None:
    uvicorn.run("notepad.api.main:app", host=HOST, port=PORT)


if __name__ == "__main__":
    run()
