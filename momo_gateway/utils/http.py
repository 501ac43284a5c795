from typing import Optional

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

# Only transport failures are retried; an HTTP answer (even a decline) is final.
RETRYABLE_ERRORS = (httpx.TimeoutException, httpx.NetworkError)

def client(timeout_sec: float = 15, transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=timeout_sec, transport=transport)

def retry_policy(max_attempts: int = 3, backoff_sec: float = 0.5):
    return retry(
        stop=stop_after_attempt(max(1, max_attempts)),
        wait=wait_exponential(multiplier=backoff_sec, min=backoff_sec, max=8),
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        reraise=True,
    )
