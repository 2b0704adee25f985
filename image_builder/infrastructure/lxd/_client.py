"""
HTTP client for the LXD REST API.

Every call goes through `call()`, which returns the parsed LXD envelope:

    {"type": "sync" | "async" | "error", "status_code": ..., "metadata": ..., "operation": ...}

Asynchronous actions return an operation path that must be polled with the
`OperationPoller` to learn their outcome.

Errors are never retried here: a connection failure surfaces as
`TransportError`, a non-2xx answer as `APIError` carrying LXD's message
verbatim (`NotFoundError` for 404).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import requests

from ...entities.exceptions import APIError, NotFoundError, TransportError
from ...utils.logging_utils import get_logger
from ._auth import Authenticator

logger = get_logger()


@dataclass
class LxdResponse:
    type: str
    status_code: int
    metadata: Any = None
    operation: str | None = None
    raw: dict = field(default_factory=dict)

    @property
    def operation_id(self) -> str | None:
        if not self.operation:
            return None
        return self.operation.rstrip("/").rsplit("/", 1)[-1]


class LxdClient:
    """
    Authenticated transport to the LXD API.

    URL pattern:
        https://<host>:<port>/<api-version><endpoint>
    """

    def __init__(
        self,
        base_url: str,
        authenticator: Authenticator | None = None,
        api_version: str = "1.0",
        verify: bool | str = True,
        timeout: int = 30,
        session: requests.Session | None = None,
    ):
        """
        Args:
            base_url: Server URL without API prefix, e.g. "https://lxd.example.com:8443"
            authenticator: Strategy configuring the session credentials.
            api_version: Prefix of every endpoint ("1.0").
            verify: TLS verification flag or path to a CA bundle.
            timeout: HTTP request timeout in seconds.
        """
        self._base_url = base_url.rstrip("/")
        self._prefix = f"/{api_version.strip('/')}"
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.verify = verify
        self._authenticator = authenticator

        if authenticator:
            authenticator.apply(self._session)

    @property
    def prefix(self) -> str:
        return self._prefix

    def _url(self, endpoint: str) -> str:
        if endpoint.startswith(self._prefix + "/"):
            return f"{self._base_url}{endpoint}"
        return f"{self._base_url}{self._prefix}{endpoint}"

    def _send(self, method: str, endpoint: str, **kwargs) -> requests.Response:
        url = self._url(endpoint)
        kwargs.setdefault("timeout", self._timeout)

        logger.trace("%s %s", method, url)

        try:
            return self._session.request(method, url, **kwargs)
        except requests.exceptions.SSLError as e:
            raise TransportError(f"TLS handshake with {self._base_url} failed: {e}") from e
        except requests.ConnectionError as e:
            raise TransportError(f"Connection to {self._base_url} failed: {e}") from e
        except requests.Timeout as e:
            raise TransportError(f"Request {method} {endpoint} timed out: {e}") from e
        except requests.RequestException as e:
            raise TransportError(f"Request {method} {endpoint} failed: {e}") from e

    @staticmethod
    def _raise_for_status(method: str, endpoint: str, response: requests.Response, body: dict | None) -> None:
        if response.status_code < 400:
            return

        message = None
        if isinstance(body, dict):
            message = body.get("error") or None
        if not message:
            message = response.text or response.reason or "no error message"

        error_class = NotFoundError if response.status_code == 404 else APIError
        raise error_class(response.status_code, message, method=method, endpoint=endpoint)

    @staticmethod
    def _parse_json(response: requests.Response) -> dict | None:
        try:
            body = response.json()
        except ValueError:
            return None
        return body if isinstance(body, dict) else None

    def call(
        self,
        method: str,
        endpoint: str,
        payload: dict | None = None,
        *,
        data: bytes | None = None,
        headers: dict[str, str] | None = None,
        params: dict[str, Any] | None = None,
    ) -> LxdResponse:
        """
        Issue a request and return the parsed LXD envelope.

        Raises:
            TransportError: On connection, TLS or timeout failures.
            NotFoundError: On 404.
            APIError: On any other non-2xx status or an unparseable body.
        """
        kwargs: dict[str, Any] = {}
        if payload is not None:
            kwargs["json"] = payload
        if data is not None:
            kwargs["data"] = data
            headers = {"Content-Type": "application/octet-stream", **(headers or {})}
        if headers:
            kwargs["headers"] = headers
        if params:
            kwargs["params"] = params

        response = self._send(method, endpoint, **kwargs)
        body = self._parse_json(response)
        self._raise_for_status(method, endpoint, response, body)

        if body is None:
            raise APIError(response.status_code, f"Unexpected non JSON response: {response.text[:200]}", method=method, endpoint=endpoint)

        if body.get("type") == "error":
            raise APIError(int(body.get("error_code") or response.status_code), body.get("error") or "unknown error", method=method, endpoint=endpoint)

        return LxdResponse(
            type=body.get("type", ""),
            status_code=int(body.get("status_code") or response.status_code),
            metadata=body.get("metadata"),
            operation=body.get("operation") or None,
            raw=body,
        )

    def get_raw(self, endpoint: str) -> str:
        """Fetch a non JSON resource, such as a recorded exec output log."""
        response = self._send("GET", endpoint)
        self._raise_for_status("GET", endpoint, response, self._parse_json(response) if response.status_code >= 400 else None)
        return response.text

    def close(self) -> None:
        self._session.close()
        if self._authenticator:
            self._authenticator.close()

    def __enter__(self) -> LxdClient:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()
