from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional
import logging

from sqlalchemy import select, text, update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, sessionmaker

from shortlink.core.errors import DuplicateShortCodeError, StoreFailure, StoreTimeout
from shortlink.db.Models.models import ShortLinkRecord
from shortlink.models.short_link import ShortLink

logger = logging.getLogger(__name__)

_TIMEOUT_MARKERS = ("timeout", "timed out", "canceling statement", "database is locked")


class ShortLinkRepository(ABC):
    """Storage contract used by the link registry.

    Every method raises StoreFailure (or a subclass) on I/O errors; a missing
    record is reported with None, never with an exception. `timeout` is the
    caller's remaining budget in seconds; None leaves the store's own limits.
    """

    @abstractmethod
    def create(self, link: ShortLink, timeout: Optional[float] = None) -> ShortLink:
        """Persist a new link and return it with its store-assigned id.

        Raises:
            DuplicateShortCodeError: another record already holds link.short_code.
            StoreFailure: the write failed for any other reason.
        """

    @abstractmethod
    def get_by_code(self, short_code: str, timeout: Optional[float] = None) -> Optional[ShortLink]:
        ...

    @abstractmethod
    def get_by_original_url(self, original_url: str, timeout: Optional[float] = None) -> Optional[ShortLink]:
        ...

    @abstractmethod
    def increment_click(self, short_code: str) -> bool:
        """Atomically add one to click_count. Returns False when no record matched."""


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _to_model(row: ShortLinkRecord) -> ShortLink:
    return ShortLink(
        id=row.id,
        original_url=row.original_url,
        short_code=row.short_code,
        created_at=_as_utc(row.created_at),
        expires_at=_as_utc(row.expires_at),
        click_count=row.click_count or 0,
        is_active=bool(row.is_active),
    )


def _is_timeout(exc: SQLAlchemyError) -> bool:
    if isinstance(exc, PoolTimeoutError):
        return True
    if isinstance(exc, OperationalError):
        message = str(exc.orig if exc.orig is not None else exc).lower()
        return any(marker in message for marker in _TIMEOUT_MARKERS)
    return False


def _limit_statement_time(db: Session, timeout: float):
    # SET LOCAL lasts until the session's transaction ends
    if db.get_bind().dialect.name != "postgresql":
        return
    milliseconds = max(1, int(timeout * 1000))
    db.execute(text(f"SET LOCAL statement_timeout = {milliseconds}"))


class SQLAlchemyShortLinkRepository(ShortLinkRepository):
    """ShortLinkRepository backed by a SQLAlchemy session factory.

    Each call opens its own session so the repository can be shared between
    request threads and the click recorder's workers.
    """

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _session(self, operation: str, timeout: Optional[float] = None):
        db: Session = self._session_factory()
        try:
            if timeout is not None:
                _limit_statement_time(db, timeout)
            yield db
        except IntegrityError as e:
            db.rollback()
            message = str(e.orig if e.orig is not None else e).lower()
            if "short_code" in message:
                raise DuplicateShortCodeError(operation, "short code already exists") from e
            logger.warning("IntegrityError during %s: %s", operation, message)
            raise StoreFailure(operation, message) from e
        except SQLAlchemyError as e:
            db.rollback()
            if _is_timeout(e):
                raise StoreTimeout(operation, str(e)) from e
            raise StoreFailure(operation, str(e)) from e
        finally:
            db.close()

    def create(self, link: ShortLink, timeout: Optional[float] = None) -> ShortLink:
        with self._session("create", timeout) as db:
            row = ShortLinkRecord(
                short_code=link.short_code,
                original_url=link.original_url,
                created_at=link.created_at,
                expires_at=link.expires_at,
                click_count=link.click_count,
                is_active=link.is_active,
            )
            db.add(row)
            db.commit()
            return link.with_id(row.id)

    def get_by_code(self, short_code: str, timeout: Optional[float] = None) -> Optional[ShortLink]:
        with self._session("get_by_code", timeout) as db:
            row = db.execute(
                select(ShortLinkRecord).where(ShortLinkRecord.short_code == short_code)
            ).scalar_one_or_none()
            return _to_model(row) if row is not None else None

    def get_by_original_url(self, original_url: str, timeout: Optional[float] = None) -> Optional[ShortLink]:
        with self._session("get_by_original_url", timeout) as db:
            row = db.execute(
                select(ShortLinkRecord)
                .where(ShortLinkRecord.original_url == original_url)
                .order_by(ShortLinkRecord.id)
                .limit(1)
            ).scalar_one_or_none()
            return _to_model(row) if row is not None else None

    def increment_click(self, short_code: str) -> bool:
        with self._session("increment_click") as db:
            result = db.execute(
                update(ShortLinkRecord)
                .where(ShortLinkRecord.short_code == short_code)
                .values(click_count=ShortLinkRecord.click_count + 1)
            )
            db.commit()
            return result.rowcount > 0
