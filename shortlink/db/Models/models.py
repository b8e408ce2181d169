from sqlalchemy import Column, String, Integer, DateTime, Boolean
from sqlalchemy.orm import declarative_base
from datetime import datetime, timezone

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ShortLinkRecord(Base):
    __tablename__ = "short_links"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Uniqueness of short_code is the only collision guard; the registry retries on violation
    short_code = Column(String(8), unique=True, index=True, nullable=False)

    # Non-unique: concurrent shortens of the same URL may both land
    original_url = Column(String, index=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    click_count = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
