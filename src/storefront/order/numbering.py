"""Order number allocation: ``ORD-YYYYMMDD-NNNNNN``.

The existence check is only a cheap way to avoid doomed inserts. Uniqueness
is guaranteed by ``OrderStore.insert``, which raises ``DuplicateOrderNumber``
if another request claimed the same number in between.
"""

import random
from collections.abc import Callable
from datetime import UTC, datetime

import structlog

from storefront.errors import ExhaustedAllocation

logger = structlog.get_logger(__name__)

SUFFIX_LOW = 100000
SUFFIX_HIGH = 999999


def _utcnow() -> datetime:
    return datetime.now(UTC)


class OrderNumberAllocator:
    def __init__(
        self,
        exists: Callable[[str], bool],
        prefix: str = "ORD",
        max_attempts: int = 10,
        clock: Callable[[], datetime] = _utcnow,
        rng: random.Random | None = None,
    ):
        self.exists = exists
        self.prefix = prefix
        self.max_attempts = max_attempts
        self.clock = clock
        self.rng = rng or random.SystemRandom()

    def compose(self, suffix: int) -> str:
        return f"{self.prefix}-{self.clock():%Y%m%d}-{suffix:06d}"

    def candidate(self) -> str:
        return self.compose(self.rng.randint(SUFFIX_LOW, SUFFIX_HIGH))

    def allocate(self) -> str:
        for attempt in range(1, self.max_attempts + 1):
            number = self.candidate()
            if not self.exists(number):
                return number
            logger.debug("order_number_collision", order_number=number, attempt=attempt)

        logger.error("order_number_exhausted", attempts=self.max_attempts)
        raise ExhaustedAllocation(self.max_attempts)
