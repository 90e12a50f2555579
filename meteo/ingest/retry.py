"""GET with retry and rate limit handling, shared by the API clients."""

import logging
import time

import httpx

logger = logging.getLogger(__name__)

RETRY_STATUS_CODES = (429, 503)


def quiet_http_logging() -> None:
    """Keep httpx request lines, which include the API key, out of the logs."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_with_retry(
    url: str,
    *,
    params: dict | None = None,
    headers: dict | None = None,
    timeout: float = 10.0,
    max_retries: int = 2,
    retry_base_delay: float = 1.0,
    label: str = "API",
) -> httpx.Response:
    """Issue a GET and return the successful response.

    Retries on 503/429 and transport errors with exponential backoff.
    Raises httpx.HTTPStatusError or httpx.RequestError once retries run out.
    """
    last_error: Exception | None = None
    for attempt in range(max_retries + 1):
        try:
            resp = httpx.get(url, params=params, headers=headers, timeout=timeout)
            if resp.status_code in RETRY_STATUS_CODES and attempt < max_retries:
                delay = retry_base_delay * (2**attempt)
                logger.warning(
                    "%s %s returned %d, retrying in %.1fs (attempt %d/%d)",
                    label, url, resp.status_code, delay, attempt + 1, max_retries,
                )
                time.sleep(delay)
                continue
            resp.raise_for_status()
            return resp
        except httpx.RequestError as e:
            last_error = e
            if attempt < max_retries:
                delay = retry_base_delay * (2**attempt)
                logger.warning(
                    "%s request error, retrying in %.1fs: %s",
                    label, delay, type(e).__name__,
                )
                time.sleep(delay)
                continue
            raise

    assert last_error is not None
    raise last_error
