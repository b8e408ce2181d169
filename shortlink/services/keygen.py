import logging
from typing import Optional

import redis.exceptions

from shortlink.core.errors import GenerationFailure
from shortlink.utils.encoding import generate_short_code, is_valid_short_code

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_NAME = "short_code_queue"


class CodeGenerator:
    """Hands out short codes, preferring the pre-generated Redis pool.

    Tiers:
        1. LPOP from the pool list. An unreachable Redis or an empty list is a miss.
        2. Local generation from the OS randomness source.
    """

    def __init__(self, redis_client: Optional[redis.Redis], queue_name: str = DEFAULT_QUEUE_NAME):
        self.redis_client = redis_client
        self.queue_name = queue_name

    def get_code(self) -> str:
        code = self._pop_from_pool()
        if code is not None:
            return code

        code = self.generate_code()
        if not is_valid_short_code(code):
            raise GenerationFailure(f"locally generated code has an invalid shape: {code!r}")
        return code

    def generate_code(self) -> str:
        return generate_short_code()

    def _pop_from_pool(self) -> Optional[str]:
        if self.redis_client is None:
            return None

        try:
            pooled = self.redis_client.lpop(self.queue_name)
        except redis.exceptions.RedisError as e:
            logger.warning(f"Code pool '{self.queue_name}' unavailable, generating locally: {e}")
            return None

        if pooled is None:
            logger.debug("Code pool '%s' is empty", self.queue_name)
            return None

        code = pooled.decode() if isinstance(pooled, (bytes, bytearray)) else str(pooled)
        if not is_valid_short_code(code):
            logger.warning("Discarding malformed pooled code %r", code)
            return None
        return code

    def refill(self, count: int) -> int:
        """Push `count` freshly generated codes onto the pool and return its new length."""
        if self.redis_client is None:
            raise GenerationFailure("no Redis client configured for the code pool")
        if count <= 0:
            raise ValueError(f"count must be positive (given value: {count})")

        codes = [self.generate_code() for _ in range(count)]
        try:
            length = self.redis_client.rpush(self.queue_name, *codes)
        except redis.exceptions.RedisError as e:
            raise GenerationFailure(f"could not refill code pool '{self.queue_name}': {e}") from e
        logger.info("Added %d codes to pool '%s' (size now %d)", count, self.queue_name, length)
        return length
