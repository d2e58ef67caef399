# src/ekiden_client/connection/rest_client.py

import logging
import time
from typing import Any, Optional

import requests

from ekiden_client.auth import Auth
from ekiden_client.config import EkidenConfig
from ekiden_client.exceptions import (
    APIError,
    AuthError,
    RateLimitError,
    SerializationError,
    ServiceUnavailableError,
)
from ekiden_client.logging_config import structured_log_extra
from ekiden_client.types import RequestConfig

logger = logging.getLogger(__name__)


class EkidenRESTClient:
    """
    Thin wrapper over a ``requests.Session`` that speaks the Ekiden REST API.

    Transient failures (HTTP 5xx, timeouts, network errors) are retried up to
    ``config.max_retries`` times with ``config.retry_delay`` between attempts.
    Everything else is mapped to the exception hierarchy on the first try.
    """

    def __init__(
        self,
        config: EkidenConfig,
        auth: Optional[Auth] = None,
        session: Optional[requests.Session] = None,
    ):
        self.config = config
        self.auth = auth or Auth()
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": config.user_agent})

    def request(self, path: str, request_config: Optional[RequestConfig] = None) -> Any:
        """Performs the call and returns the decoded JSON body."""
        request_config = request_config or RequestConfig.get()
        attempts = max(0, self.config.max_retries) + 1

        for attempt in range(1, attempts + 1):
            try:
                return self._send(path, request_config)
            except ServiceUnavailableError as exc:
                if attempt >= attempts:
                    raise
                logger.warning(
                    f"Request to {path} failed ({exc}); retrying in {self.config.retry_delay}s "
                    f"[{attempt}/{attempts - 1}]",
                    extra=structured_log_extra(event="rest_retry", path=path, attempt=attempt),
                )
                time.sleep(self.config.retry_delay)

        raise ServiceUnavailableError(f"Request to {path} failed")

    def _send(self, path: str, request_config: RequestConfig) -> Any:
        url = self.config.api_url(path)
        headers = dict(request_config.headers)

        if request_config.auth_required:
            self.auth.ensure_authenticated()
            headers.update(self.auth.auth_headers())

        try:
            response = self.session.request(
                request_config.method,
                url,
                params=request_config.query,
                json=request_config.body,
                headers=headers,
                timeout=self.config.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise ServiceUnavailableError(f"Request timed out: {e}") from e
        except requests.exceptions.RequestException as e:
            raise ServiceUnavailableError(f"Network Error: {e}") from e

        status = response.status_code
        if status == 429:
            raise RateLimitError("Rate limit exceeded")
        if 500 <= status < 600:
            raise ServiceUnavailableError(f"Ekiden API Service Error: HTTP {status}")
        if status in (401, 403):
            raise AuthError(f"HTTP {status}: {response.text}")
        if not 200 <= status < 300:
            logger.error(
                f"API error {status}: {response.text}",
                extra=structured_log_extra(event="rest_api_error", path=path, status=status),
            )
            raise APIError(status, response.text)

        logger.debug(f"API response: {response.text}")
        try:
            return response.json()
        except ValueError as e:
            raise SerializationError(f"Invalid JSON in response from {path}: {e}") from e
