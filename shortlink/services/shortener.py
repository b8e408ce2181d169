from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
from urllib.parse import urlparse
import ipaddress
import logging
import re

from shortlink.core.deadline import Deadline
from shortlink.core.errors import (
    DuplicateShortCodeError,
    ExpiredError,
    GenerationFailure,
    InactiveError,
    InvalidURLError,
    NotFoundError,
    StoreFailure,
)
from shortlink.db.repository import ShortLinkRepository
from shortlink.models.short_link import ShortLink
from shortlink.services.keygen import CodeGenerator
from shortlink.services.metrics import ClickRecorder

logger = logging.getLogger(__name__)

MAX_URL_LENGTH = 2048
DEFAULT_MAX_ATTEMPTS = 5

# RFC 3986 reg-name: unreserved, pct-encoded and sub-delims characters
REG_NAME_PATTERN = re.compile(r"^[A-Za-z0-9\-._~%!$&'()*+,;=]+$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_url(original_url: str) -> str:
    if not isinstance(original_url, str):
        raise InvalidURLError("URL must be a string")

    url = original_url.strip()
    if len(url) > MAX_URL_LENGTH:
        raise InvalidURLError(f"URL must be at most {MAX_URL_LENGTH} characters")

    try:
        parsed = urlparse(url)
        # .port raises ValueError for non-numeric or out-of-range ports
        parsed.port
    except ValueError as e:
        raise InvalidURLError(f"URL could not be parsed: {e}") from e

    if not parsed.scheme or not parsed.netloc or not parsed.hostname:
        raise InvalidURLError("URL must be absolute, with a scheme and a host")
    if not _is_valid_host(parsed.netloc, parsed.hostname):
        raise InvalidURLError(f"URL host is not valid: {parsed.hostname!r}")
    return url


def _is_valid_host(netloc: str, hostname: str) -> bool:
    # urlparse strips the brackets from IP literals, leaving the bare address
    if "[" in netloc:
        try:
            ipaddress.IPv6Address(hostname)
        except ValueError:
            return False
        return True
    return REG_NAME_PATTERN.match(hostname) is not None


class LinkRegistry:
    """Creates, resolves and reports on short links.

    The registry owns every write to the link store: records are created by
    create_short_link() and only ever mutated by the click increments that
    resolve_short_link() hands to the ClickRecorder.
    """

    def __init__(
        self,
        repository: ShortLinkRepository,
        code_generator: CodeGenerator,
        click_recorder: ClickRecorder,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self.code_generator = code_generator
        self.click_recorder = click_recorder
        self.max_attempts = max(1, max_attempts)
        self.clock = clock

    def create_short_link(
        self,
        original_url: str,
        expires_after: Optional[timedelta] = None,
        deadline: Optional[Deadline] = None,
    ) -> ShortLink:
        deadline = deadline or Deadline()
        url = validate_url(original_url)

        existing = self._find_existing(url, deadline)
        if existing is not None:
            logger.info("short URL already existed : '%s' for URL: %s", existing.short_code, url[:50])
            return existing

        for attempt in range(1, self.max_attempts + 1):
            deadline.check("create_short_link")
            code = self.code_generator.get_code()
            now = self.clock()
            link = ShortLink(
                original_url=url,
                short_code=code,
                created_at=now,
                expires_at=now + expires_after if expires_after is not None else None,
            )

            deadline.check("create_short_link")
            try:
                created = self.repository.create(link, timeout=deadline.remaining())
            except DuplicateShortCodeError:
                logger.info(f"Short code collision on attempt {attempt}/{self.max_attempts}")
                continue

            logger.info("Shortened %s... to %s", url[:50], created.short_code)
            return created

        raise GenerationFailure(f"Failed to generate unique short code after {self.max_attempts} attempts")

    def _find_existing(self, url: str, deadline: Deadline) -> Optional[ShortLink]:
        deadline.check("get_by_original_url")
        try:
            return self.repository.get_by_original_url(url, timeout=deadline.remaining())
        except StoreFailure as e:
            # Read failures here must not block creation; the cost is a possible duplicate record
            logger.warning("Existing-URL lookup failed, creating a new link: %s", e)
            return None

    def resolve_short_link(self, short_code: str, deadline: Optional[Deadline] = None) -> str:
        link = self._get(short_code, deadline or Deadline(), "resolve_short_link")

        if not link.is_active:
            raise InactiveError(f"Short code {short_code} is inactive")
        if link.is_expired(self.clock()):
            raise ExpiredError(f"Short code {short_code} has expired")

        self.click_recorder.dispatch(link.short_code)
        return link.original_url

    def get_stats(self, short_code: str, deadline: Optional[Deadline] = None) -> ShortLink:
        return self._get(short_code, deadline or Deadline(), "get_stats")

    def _get(self, short_code: str, deadline: Deadline, operation: str) -> ShortLink:
        deadline.check(operation)
        link = self.repository.get_by_code(short_code, timeout=deadline.remaining())
        if link is None:
            raise NotFoundError(f"Short code {short_code} not found")
        return link
