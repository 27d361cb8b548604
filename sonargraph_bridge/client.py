"""SonarQube Web API client used by the server host.

Usage:
    client  = SonarClient(url="https://sonar.example.com", token="squ_xxx")
    data    = client.get("/api/qualityprofiles/search", {"project": "com.bank:bank"})
    metrics = client.get_paginated("/api/metrics/search", {}, results_key="metrics")
"""

import warnings
from collections.abc import Iterator
from typing import Any

import requests

PAGE_SIZE = 500
PAGINATION_LIMIT = 10_000


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class SonarClientError(Exception):
    """Base exception for all client errors."""


class AuthenticationError(SonarClientError):
    """Raised on HTTP 401 or 403 — token invalid or lacking permission."""


class NotFoundError(SonarClientError):
    """Raised on HTTP 404 — project, profile or component unknown."""


class NetworkError(SonarClientError):
    """Raised on connection timeout or unreachable server."""


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class SonarClient:
    """Read-only access to the parts of the Web API the bridge needs."""

    def __init__(self, url: str, token: str, timeout: int = 30) -> None:
        self.base_url = url.rstrip("/")
        self._timeout = timeout
        self._session = requests.Session()
        # token as user name, empty password
        self._session.auth = (token, "")

    def get(self, endpoint: str, params: dict[str, Any] | None = None) -> dict:
        """Perform a single GET request and return the decoded JSON body.

        Raises:
            AuthenticationError: HTTP 401/403
            NotFoundError:       HTTP 404
            SonarClientError:    any other non-2xx response
            NetworkError:        timeout or connection failure
        """
        return self._request(endpoint, params or {})

    def iter_responses(self, endpoint: str, params: dict[str, Any], results_key: str) -> Iterator[dict]:
        """Yield every page body until ``paging.total`` results of *results_key* are read.

        SonarQube refuses to page past 10 000 results; a ``UserWarning`` is
        issued once when the reported total is above that limit.
        """
        fetched = 0
        page = 1
        warned = False
        while True:
            data = self._request(endpoint, {**params, "p": page, "ps": PAGE_SIZE})
            results = data.get(results_key, [])
            fetched += len(results)
            total = data.get("paging", {}).get("total", fetched)

            if total > PAGINATION_LIMIT and not warned:
                warnings.warn(
                    f"'{endpoint}' reports {total} results; SonarQube only pages through the "
                    f"first {PAGINATION_LIMIT}, the remainder is not visible to the bridge.",
                    UserWarning,
                    stacklevel=4,
                )
                warned = True

            yield data
            if not results or fetched >= total or fetched >= PAGINATION_LIMIT:
                return
            page += 1

    def iter_pages(self, endpoint: str, params: dict[str, Any], results_key: str) -> Iterator[list[dict]]:
        """Yield the *results_key* list of every page."""
        for data in self.iter_responses(endpoint, params, results_key):
            yield data.get(results_key, [])

    def get_paginated(self, endpoint: str, params: dict[str, Any], results_key: str) -> list[dict]:
        """Collect every page of *endpoint* into one flat list."""
        collected: list[dict] = []
        for results in self.iter_pages(endpoint, params, results_key):
            collected.extend(results)
        return collected

    def _request(self, endpoint: str, params: dict[str, Any]) -> dict:
        url = f"{self.base_url}{endpoint}"
        try:
            response = self._session.get(url, params=params, timeout=self._timeout)
        except requests.exceptions.Timeout as exc:
            raise NetworkError(f"Request to '{url}' timed out after {self._timeout}s") from exc
        except requests.exceptions.ConnectionError as exc:
            raise NetworkError(f"Unable to reach SonarQube server at '{self.base_url}'") from exc

        if response.status_code in (401, 403):
            raise AuthenticationError(
                f"Access to '{endpoint}' denied (HTTP {response.status_code}) — "
                "check that the token is valid and allowed to browse the project."
            )
        if response.status_code == 404:
            raise NotFoundError(f"Resource not found: {url}")
        if not response.ok:
            raise SonarClientError(
                f"Unexpected response {response.status_code} from {url}: {response.text[:200]}"
            )
        return response.json()
