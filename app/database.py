from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from sqlalchemy.pool import StaticPool

from app.config import DATABASE_URL


def build_engine(url: str):
    """
    Create an engine for the given URL.

    SQLite needs cross-thread access because FastAPI runs sync endpoints
    in a thread pool; in-memory SQLite additionally needs a single shared
    connection or every checkout would see an empty database.
    """
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=False, **kwargs)

    return create_engine(
        url,
        echo=False,  # Set True for SQL debugging
        pool_pre_ping=True  # Verify connections before use
    )


engine = build_engine(DATABASE_URL)

# Session factory for request-scoped sessions
SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def get_db():
    """
    Request-scoped session for the sync endpoints.

    Usage:
        @router.post("/push")
        def push(request: SyncPushRequest, db: Session = Depends(get_db)):
            push_changes(db, request.changes, request.last_pulled_at)

    The services commit or roll back themselves; this only closes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
