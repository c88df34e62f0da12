"""HTTP client with retries and rate limiting for public exchange endpoints."""
import time
import logging
import requests

logger = logging.getLogger("tradecycle.http")


class APIError(Exception):
    """API request error with status code and response body."""
    def __init__(self, message, status_code=None, response_body=None, source=None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body
        self.source = source


class HTTPClient:
    """HTTP client with retry logic and token-bucket rate limiting.

    Timeouts are retried like connection errors; once retries are exhausted
    the last ``requests`` exception is re-raised unchanged so callers can
    tell a timeout apart from other failures.
    """

    RETRYABLE_STATUS = {418, 429, 500, 502, 503, 504}
    NON_RETRYABLE_STATUS = {400, 401, 403, 404}

    def __init__(self, base_url, rate_limiter=None, timeout=10, max_retries=2,
                 session=None, sleep=time.sleep):
        self.base_url = base_url.rstrip("/")
        self.rate_limiter = rate_limiter
        self.timeout = timeout
        self.max_retries = max_retries
        self._sleep = sleep
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": "TradeCycle/1.0"})

    def get(self, path="", params=None):
        return self._request("GET", path, params)

    def _request(self, method, path, params=None):
        url = f"{self.base_url}/{path.lstrip('/')}" if path else self.base_url

        last_error = None
        for attempt in range(self.max_retries + 1):
            if self.rate_limiter:
                self.rate_limiter.wait()

            try:
                start = time.monotonic()
                resp = self.session.request(method, url, params=params, timeout=self.timeout)
                latency = int((time.monotonic() - start) * 1000)
                logger.debug(f"{method} {url} -> {resp.status_code} ({latency}ms)")

                if resp.status_code == 200:
                    return resp.json()

                if resp.status_code in self.NON_RETRYABLE_STATUS:
                    raise APIError(
                        f"HTTP {resp.status_code} from {url}",
                        status_code=resp.status_code,
                        response_body=resp.text,
                    )

                if resp.status_code in self.RETRYABLE_STATUS:
                    retry_after = resp.headers.get("Retry-After")
                    wait = float(retry_after) if retry_after else min(2 ** attempt, 30)
                    logger.warning(f"Retryable {resp.status_code} from {url}, waiting {wait:.1f}s (attempt {attempt + 1})")
                    last_error = APIError(f"HTTP {resp.status_code}", status_code=resp.status_code)
                    self._sleep(wait)
                    continue

                raise APIError(f"Unexpected HTTP {resp.status_code}", status_code=resp.status_code)

            except requests.exceptions.RequestException as e:
                logger.warning(f"Request error for {url}: {e} (attempt {attempt + 1})")
                last_error = e
                if attempt < self.max_retries:
                    self._sleep(min(2 ** attempt, 30))

        raise last_error or APIError(f"Max retries exceeded for {url}")
