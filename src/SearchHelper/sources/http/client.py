"""HTTP transport for multi-query search requests."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Mapping, Sequence

import requests

from SearchHelper.core.models import SearchRequest, SearchResponse
from SearchHelper.sources.http.parser import parse_multi_response
from SearchHelper.utils.log import log

DEFAULT_TIMEOUT = 10.0

HEADERS = {
    "User-Agent": "search-helper/0.1",
    "Accept": "application/json",
    "Content-Type": "application/json",
}


class HttpSearchClient:
    """Send request batches to a multi-query endpoint.

    The whole batch goes out as one POST ``{"requests": [...]}``; the
    service answers ``{"results": [...]}`` in the same order. Calls return
    a ``Future`` resolved from a background worker.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        headers: Mapping[str, str] | None = None,
        max_workers: int = 1,
    ) -> None:
        """Initialize the client with a reusable HTTP session.

        Args:
            endpoint: Multi-query endpoint URL.
            timeout: Request timeout in seconds.
            headers: Extra headers sent with each request.
            max_workers: Number of batches that may be in flight at once.
        """
        if not endpoint:
            raise ValueError("endpoint cannot be empty")
        self.endpoint = endpoint
        self.timeout = timeout
        self._session = requests.Session()
        self._session.headers.update(HEADERS)
        if headers:
            self._session.headers.update(headers)
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="search-helper")

    def close(self) -> None:
        """Stop the worker and close the underlying HTTP session."""
        self._executor.shutdown(wait=True)
        self._session.close()

    def __enter__(self) -> HttpSearchClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def search(self, requests_: Sequence[SearchRequest]) -> Future:
        """Submit a batch and return a future of its positional responses."""
        batch = tuple(requests_)
        return self._executor.submit(self.search_sync, batch)

    def search_sync(self, requests_: Sequence[SearchRequest]) -> list[SearchResponse]:
        """Send a batch and block until the responses are parsed.

        Raises:
            requests.HTTPError: If the service answers with an error status.
            ValueError: If the payload does not match the batch.
        """
        payload = {"requests": [request.to_payload() for request in requests_]}
        log.debug("POST %s requests=%d", self.endpoint, len(payload["requests"]))
        response = self._session.post(self.endpoint, json=payload, timeout=self.timeout)
        response.raise_for_status()
        return parse_multi_response(response.json(), expected=len(payload["requests"]))
