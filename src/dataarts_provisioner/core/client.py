"""Region-scoped HTTP client for the DataArts Studio management API."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from dataarts_provisioner.core.errors import NotFoundError, RequestError

if TYPE_CHECKING:
    from collections.abc import Mapping
    from types import TracebackType

logger = logging.getLogger(__name__)


class ServiceClient:
    """Thin wrapper over ``httpx.Client`` bound to one region and project.

    ``endpoint`` always ends with ``/`` so relative API paths such as
    ``v1/{project_id}/...`` can be appended directly.
    """

    def __init__(
        self,
        endpoint: str,
        project_id: str,
        *,
        region: str,
        http: httpx.Client,
    ) -> None:
        self.endpoint = endpoint if endpoint.endswith("/") else endpoint + "/"
        self.project_id = project_id
        self.region = region
        self._http = http

    @classmethod
    def create(
        cls,
        endpoint: str,
        project_id: str,
        *,
        region: str,
        token: str,
        timeout: float = 60.0,
        transport: httpx.BaseTransport | None = None,
    ) -> ServiceClient:
        """Build a client that authenticates every request with an IAM token."""
        http = httpx.Client(
            headers={"X-Auth-Token": token, "Content-Type": "application/json;charset=UTF-8"},
            timeout=timeout,
            transport=transport,
        )
        return cls(endpoint, project_id, region=region, http=http)

    def url(self, template: str, **params: str) -> str:
        """Render an API path template into a full URL.

        ``{project_id}`` is always substituted; other placeholders come from *params*.
        """
        path = template.replace("{project_id}", self.project_id)
        for key, value in params.items():
            path = path.replace(f"{{{key}}}", value)
        return self.endpoint + path.lstrip("/")

    def request(
        self,
        method: str,
        url: str,
        *,
        json: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        """Send one request and return the response if it is 2xx.

        Raises:
            NotFoundError: On HTTP 404.
            RequestError: On any other non-2xx status or a transport failure.
        """
        try:
            resp = self._http.request(method, url, json=json, headers=headers)
        except httpx.HTTPError as exc:
            raise RequestError(f"{method} {url} failed: {exc}") from exc

        logger.debug("%s %s -> %d", method, url, resp.status_code)
        if resp.is_success:
            return resp

        msg = f"{method} {url} returned HTTP {resp.status_code}: {resp.text}"
        error_cls = NotFoundError if resp.status_code == 404 else RequestError
        raise error_cls(msg, status_code=resp.status_code, body=resp.text)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> ServiceClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
