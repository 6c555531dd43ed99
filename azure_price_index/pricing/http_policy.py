import asyncio
import random
from typing import Optional

from ..config import HTTP_MAX_RETRIES

RETRYABLE_STATUS_CODES = frozenset({429, 503})


class HttpRetryPolicy:
    def __init__(self, max_retries=HTTP_MAX_RETRIES, base_delay=1.0, max_delay=60.0):
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay

    def should_retry(self, status_code: int, attempt: int) -> bool:
        return status_code in RETRYABLE_STATUS_CODES and attempt < self.max_retries

    def delay_for(self, attempt, retry_after: Optional[str] = None) -> float:
        if retry_after:
            try:
                return min(self.max_delay, max(0.0, float(retry_after)))
            except ValueError:
                # HTTP-date form of Retry-After; fall back to backoff.
                pass
        delay = min(self.max_delay, self.base_delay * (2 ** attempt))
        delay += random.uniform(0, delay * 0.2)
        return delay

    async def wait_async(self, attempt, retry_after=None):
        await asyncio.sleep(self.delay_for(attempt, retry_after))
