import base64
import re
import secrets

RANDOM_BYTES = 6
MIN_CODE_LENGTH = 6
MAX_CODE_LENGTH = 8

# URL-safe base64 alphabet, padding excluded
SHORT_CODE_PATTERN = re.compile(r"^[A-Za-z0-9_-]{%d,%d}$" % (MIN_CODE_LENGTH, MAX_CODE_LENGTH))


def generate_short_code() -> str:
    """Generate a random URL-safe code from 6 cryptographically secure bytes.

    6 bytes encode to exactly 8 base64 characters with no padding, so the
    truncation below never discards entropy: every code carries 48 bits.
    """
    encoded = base64.urlsafe_b64encode(secrets.token_bytes(RANDOM_BYTES)).decode("ascii")
    return encoded.rstrip("=")[:MAX_CODE_LENGTH]


def is_valid_short_code(code: str) -> bool:
    return bool(code) and SHORT_CODE_PATTERN.match(code) is not None
