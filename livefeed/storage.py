import logging
import threading
from dataclasses import dataclass
from typing import Generator, Optional

from sqlalchemy import create_engine, func, inspect, text
from sqlalchemy.orm import sessionmaker, Session, declarative_base
from sqlalchemy.exc import SQLAlchemyError

from livefeed.config import settings
from livefeed.errors import ErrorKind
from livefeed.utils import clamp, normalize_author, utc_timestamp, validate_body

logger = logging.getLogger(__name__)

# check_same_thread=False is required for SQLite to work with FastAPI's async
_connect_args = (
    {"check_same_thread": False}
    if settings.DATABASE_URL.startswith("sqlite")
    else {}
)

engine = create_engine(
    settings.DATABASE_URL,
    connect_args=_connect_args,
    echo=False,
)

# Create SessionLocal class for creating database sessions
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for SQLAlchemy models
Base = declarative_base()

# Serializes appends within this process so id assignment and commit happen together
_append_lock = threading.Lock()


@dataclass
class AppendResult:
    """
    Outcome of an append: either the assigned id or an error with its kind.
    """
    id: Optional[int] = None
    error: Optional[str] = None
    kind: Optional[ErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def init_db() -> None:
    """
    Initialize the database by creating all tables.
    Called during application startup.
    """
    logger.debug(f"Initializing database with URL: {settings.DATABASE_URL}")
    try:
        # Import models to register them with Base.metadata
        from livefeed.models import Message  # noqa: F401

        Base.metadata.create_all(bind=engine)
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


def get_db() -> Generator[Session, None, None]:
    """
    Dependency to get database session.
    Yields a session and ensures it's closed after use.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_health() -> bool:
    """
    Check if the database is reachable and the messages table exists.

    Returns:
        True if DB is healthy and schema exists, False otherwise.
    """
    from livefeed.models import Message

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            if not inspect(conn).has_table(Message.__tablename__):
                logger.error(f"Database schema not applied: '{Message.__tablename__}' table not found")
                return False
        logger.debug("Database health check passed")
        return True
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        return False


# =============================================================================
# Message Log Functions
# =============================================================================

def append_message(db: Session, author: Optional[str], body: Optional[str]) -> AppendResult:
    """
    Append a message to the log.

    The body is validated before any database work; the author is trimmed,
    truncated and defaulted. A failed insert is rolled back so no id is
    handed out.

    Args:
        db: Database session
        author: Optional author name
        body: Message text (1..MAX_BODY_LENGTH characters after trimming)

    Returns:
        AppendResult with the new id, or with error/kind set
    """
    from livefeed.models import Message

    body_text, problem = validate_body(body)
    if problem:
        return AppendResult(error=problem, kind=ErrorKind.VALIDATION)

    name = normalize_author(author)
    logger.debug(f"Appending message: author={name}, length={len(body_text)}")

    with _append_lock:
        try:
            message = Message(author=name, body=body_text, created_at=utc_timestamp())
            db.add(message)
            db.commit()
            db.refresh(message)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to append message: {e}")
            return AppendResult(error=f"Insert failed: {e}", kind=ErrorKind.PERSISTENCE)

    logger.info(f"Message appended: id={message.id}")
    return AppendResult(id=message.id)


def fetch_since(db: Session, cursor: int, limit: int) -> list:
    """
    Retrieve messages with id > cursor in ascending id order.

    Args:
        db: Database session
        cursor: Highest id the caller has already seen (0 = from the beginning)
        limit: Requested maximum, clamped to [1, HARD_CAP]

    Returns:
        List of Message rows
    """
    from livefeed.models import Message

    limit = clamp(limit, 1, settings.HARD_CAP)
    cursor = max(cursor, 0)

    messages = (
        db.query(Message)
        .filter(Message.id > cursor)
        .order_by(Message.id.asc())
        .limit(limit)
        .all()
    )
    logger.debug(f"fetch_since cursor={cursor} limit={limit}: {len(messages)} rows")
    return messages


def fetch_recent(db: Session, count: int) -> list:
    """
    Retrieve the most recent messages in ascending id order.

    Args:
        db: Database session
        count: Number of messages, clamped to [1, HARD_CAP]

    Returns:
        List of Message rows, oldest first
    """
    from livefeed.models import Message

    count = clamp(count, 1, settings.HARD_CAP)

    newest_first = (
        db.query(Message)
        .order_by(Message.id.desc())
        .limit(count)
        .all()
    )
    logger.debug(f"fetch_recent count={count}: {len(newest_first)} rows")
    return list(reversed(newest_first))


def get_stats(db: Session) -> dict:
    """
    Get total message count and highest assigned id.

    Returns:
        Dictionary with total and max_id (0 when the log is empty)
    """
    from livefeed.models import Message

    total, max_id = db.query(func.count(Message.id), func.max(Message.id)).one()
    stats = {"total": total or 0, "max_id": max_id or 0}
    logger.debug(f"Stats computed: {stats}")
    return stats
