"""Liveness checks for external media references."""

import time
from dataclasses import dataclass
from typing import Optional

import requests
from requests.adapters import HTTPAdapter

from . import __version__
from .config import DEFAULT_PROBE_RETRIES, DEFAULT_PROBE_TIMEOUT
from .errors import NetworkUnreachable
from .logger import get_logger
from .retry import RetryError, RetryableStatus, exponential_backoff, should_retry_http_status

logger = get_logger()

USER_AGENT = f"votorank-media-probe/{__version__}"

# Hosts that refuse HEAD get a streamed GET instead
HEAD_REFUSED = {405, 501}


@dataclass(frozen=True)
class ProbeResult:
    url: str
    reachable: bool
    status: int = 0
    content_type: Optional[str] = None
    error: Optional[str] = None
    elapsed: float = 0.0


class Prober:
    """
    Issues one lightweight existence check per URL.

    ``probe`` never raises: transport failures (timeout, DNS, TLS) come back
    as an unreachable result with status 0.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_PROBE_TIMEOUT,
        retries: int = DEFAULT_PROBE_RETRIES,
        retry_delay: float = 0.5,
        pool_size: int = 30,
        session: Optional[requests.Session] = None,
    ):
        if retries < 0:
            raise ValueError("retries cannot be negative")
        self.timeout = timeout
        self.session = session or self._build_session(pool_size)
        self._request_with_retry = exponential_backoff(
            max_retries=retries,
            base_delay=retry_delay,
            max_delay=5.0,
            exceptions=(requests.exceptions.ConnectionError, RetryableStatus),
            on_retry=self._on_retry,
        )(self._request)

    @staticmethod
    def _build_session(pool_size: int) -> requests.Session:
        session = requests.Session()
        adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        session.headers["User-Agent"] = USER_AGENT
        return session

    @staticmethod
    def _on_retry(attempt: int, error: Exception, delay: float):
        logger.debug("Retrying probe", attempt=attempt, error=str(error), delay=delay)

    def _request(self, url: str) -> requests.Response:
        resp = self.session.head(url, allow_redirects=True, timeout=self.timeout)
        if resp.status_code in HEAD_REFUSED:
            resp = self.session.get(url, allow_redirects=True, timeout=self.timeout, stream=True)
            resp.close()
        if should_retry_http_status(resp.status_code):
            raise RetryableStatus(resp.status_code)
        return resp

    def _check(self, url: str) -> ProbeResult:
        """
        Raises:
            NetworkUnreachable: if no HTTP response could be obtained
        """
        try:
            resp = self._request_with_retry(url)
        except RetryError as e:
            cause = e.__cause__
            if isinstance(cause, RetryableStatus):
                return ProbeResult(url, False, cause.status_code, error=str(cause))
            raise NetworkUnreachable(f"{url}: {cause}") from e
        except requests.exceptions.RequestException as e:
            raise NetworkUnreachable(f"{url}: {e}") from e

        return ProbeResult(
            url=url,
            reachable=resp.status_code < 400,
            status=resp.status_code,
            content_type=resp.headers.get("Content-Type"),
        )

    def probe(self, url: str) -> ProbeResult:
        start = time.monotonic()
        try:
            result = self._check(url)
        except NetworkUnreachable as e:
            logger.debug("Probe could not complete", url=url, error=str(e))
            result = ProbeResult(url, False, 0, error=str(e))
        elapsed = round(time.monotonic() - start, 3)
        return ProbeResult(
            url=result.url,
            reachable=result.reachable,
            status=result.status,
            content_type=result.content_type,
            error=result.error,
            elapsed=elapsed,
        )

    def __call__(self, url: str) -> ProbeResult:
        return self.probe(url)

    def close(self):
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
