"""HTTP client used to crawl the legacy site."""
from __future__ import annotations

from typing import Any, Dict, Optional

import requests
from requests import Response
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import DEFAULT_USER_AGENT


class HttpClient:
    """Session used to crawl listing pages, articles and images.

    Every request carries the importer user agent and a timeout. A failed
    request surfaces immediately: the mounted retry policy defaults to zero
    attempts, and pacing between requests is done by the callers.
    """

    def __init__(
        self,
        timeout: int = 30,
        max_retries: int = 0,
        backoff_factor: float = 0.3,
        user_agent: str = DEFAULT_USER_AGENT,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self._timeout = timeout
        self._session = requests.Session()
        self._session.headers.update({"User-Agent": user_agent})
        if headers:
            self._session.headers.update(headers)

        retry_strategy = Retry(
            total=max_retries,
            read=max_retries,
            connect=max_retries,
            backoff_factor=backoff_factor,
            status_forcelist=(500, 502, 503, 504),
            allowed_methods=("GET", "HEAD"),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self._session.mount("http://", adapter)
        self._session.mount("https://", adapter)

    def get(self, url: str, **kwargs: Any) -> Response:
        """Perform an HTTP GET request, raising for non-success statuses."""

        timeout = kwargs.pop("timeout", self._timeout)
        response = self._session.get(url, timeout=timeout, **kwargs)
        response.raise_for_status()
        return response

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()
