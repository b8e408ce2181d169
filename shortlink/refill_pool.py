"""Pre-stage short codes in the Redis code pool.

CLI usage:
    $ shortlink-refill-pool --count 1000
    $ shortlink-refill-pool --count 500 --queue short_code_queue

Connection details come from the same environment / .env settings the
service reads (REDIS_HOST, REDIS_PORT, REDIS_PASSWORD, REDIS_DB).
"""

import argparse
import logging
import sys

from shortlink.core.config import settings
from shortlink.core.errors import GenerationFailure
from shortlink.core.logging_config import configure_logging
from shortlink.db.Connection.database import create_redis_client
from shortlink.services.keygen import CodeGenerator

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Push freshly generated short codes onto the Redis code pool.")
    parser.add_argument("--count", type=int, default=1000, help="Number of codes to add (default: 1000)")
    parser.add_argument(
        "--queue",
        default=settings.CODE_QUEUE_NAME,
        help=f"Redis list holding the pool (default: {settings.CODE_QUEUE_NAME})",
    )
    args = parser.parse_args(argv)
    if args.count <= 0:
        parser.error("--count must be positive")
    return args


def main(argv=None) -> int:
    configure_logging(settings.LOG_LEVEL)
    args = parse_args(argv)

    redis_client = create_redis_client(settings)
    try:
        length = CodeGenerator(redis_client, args.queue).refill(args.count)
    except GenerationFailure as e:
        logger.error(str(e))
        return 1
    finally:
        redis_client.close()

    print(f"Pool '{args.queue}' now holds {length} codes")
    return 0


if __name__ == "__main__":
    sys.exit(main())
