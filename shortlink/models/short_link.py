from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class ShortLink:
    """A short code mapped to the original URL it redirects to.

    Attributes:
        original_url (str):
            The URL submitted for shortening.
        short_code (str):
            Unique 6-8 character URL-safe token.
        created_at (datetime):
            UTC creation time, never changed afterwards.
        expires_at (Optional[datetime]):
            UTC time after which the link no longer redirects. None means never.
        click_count (int):
            Number of successful redirects recorded so far.
        is_active (bool):
            False once a link has been deactivated.
        id (Optional[int]):
            Store-assigned identifier, None until persisted.

    Example:
        >>> from datetime import datetime, timezone
        >>> link = ShortLink(
        ...     original_url="https://example.com/article/123",
        ...     short_code="Ab3_x9Qz",
        ...     created_at=datetime.now(timezone.utc),
        ... )
        >>> link.click_count
        0
        >>> link.is_expired(link.created_at)
        False
    """
    original_url: str
    short_code: str
    created_at: datetime
    expires_at: Optional[datetime] = None
    click_count: int = 0
    is_active: bool = True
    id: Optional[int] = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at < now

    def with_id(self, id: int) -> 'ShortLink':
        return replace(self, id=id)
