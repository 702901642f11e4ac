from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from notepad.api.config import DATABASE_URL
from notepad.api.models import Base

connect_args = {}
engine_kwargs = {}
if DATABASE_URL.startswith("sqlite"):
    # SQLite needs check_same_thread=False for multithreading in FastAPI
    connect_args["check_same_thread"] = False
    if DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
        # One connection shared by every session, otherwise each gets its own empty database
        engine_kwargs["poolclass"] = StaticPool

engine = create_engine(DATABASE_URL, connect_args=connect_args, future=True, **engine_kwargs)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


if engine.dialect.name == "sqlite":
    @event.listens_for(engine, "connect")
    def _register_sqlite_functions(dbapi_connection, connection_record):
        # SQLite's built-in lower() only folds ASCII; ILIKE compiles to lower(x) LIKE lower(y)
        dbapi_connection.create_function("lower", 1, _unicode_lower)


def init_db() -> None:
    """Create the users and notes tables if they do not exist yet."""
    Base.metadata.create_all(bind=engine)


def get_db():
    """
    Dependency that provides a database session and ensures proper cleanup.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
