"""Authenticated transport over a shared aiohttp session.

Every outbound call gets the current bearer credential injected at send
time. Failures are classified here, once: no response becomes
TransportError, 401 enters the refresh protocol and is retried at most
once (a second 401 ends the session), every other error status is mapped
by ``classify_response``.
"""

import contextlib
import json
import logging
from dataclasses import dataclass, field
from typing import Any

import aiohttp

from flo.core.config import ApiConfig
from flo.core.constants import AUTH_HEADER, BEARER_PREFIX
from flo.core.credentials import Credential, CredentialStore
from flo.core.errors import TransportError, classify_response
from flo.core.refresh import RefreshCoordinator

logger = logging.getLogger(__name__)


@dataclass
class ApiRequest:
    """One logical call to the backing API."""
    method: str
    path: str
    params: dict[str, Any] | None = None
    json: Any = None
    headers: dict[str, str] = field(default_factory=dict)
    timeout: float | None = None
    authenticate: bool = True

    @property
    def has_explicit_credential(self) -> bool:
        return any(name.lower() == AUTH_HEADER.lower() for name in self.headers)


@dataclass
class ApiResponse:
    status: int
    data: Any
    headers: dict[str, str] = field(default_factory=dict)


class TransportPipeline:
    """Sends ApiRequests, attaching credentials and classifying outcomes."""

    def __init__(
        self,
        config: ApiConfig,
        credentials: CredentialStore,
        coordinator: RefreshCoordinator,
        session: aiohttp.ClientSession | None = None,
    ):
        self.config = config
        self.credentials = credentials
        self.coordinator = coordinator
        self.default_headers: dict[str, str] = dict(config.headers)
        self._session = session
        self._owns_session = session is None
        credentials.add_listener(self._on_credential_changed)
        self._on_credential_changed(credentials.credential)

    def _on_credential_changed(self, credential: Credential | None) -> None:
        if credential:
            self.default_headers[AUTH_HEADER] = credential.header_value
        else:
            self.default_headers.pop(AUTH_HEADER, None)

    async def open(self) -> None:
        """Create the shared HTTP session (no-op if one was supplied)."""
        if self._session is None:
            self._session = aiohttp.ClientSession()

    async def close(self) -> None:
        if self._session and self._owns_session:
            with contextlib.suppress(Exception):
                await self._session.close()
            self._session = None

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.config.base_url.rstrip('/')}/{path.lstrip('/')}"

    def _build_headers(self, request: ApiRequest, token: str | None) -> dict[str, str]:
        headers = dict(self.default_headers)
        if not request.authenticate:
            headers.pop(AUTH_HEADER, None)
        headers.update(request.headers)
        if request.authenticate and token and not request.has_explicit_credential:
            headers[AUTH_HEADER] = f"{BEARER_PREFIX}{token}"
        return headers

    async def _dispatch(self, request: ApiRequest, token: str | None) -> ApiResponse:
        if self._session is None:
            raise RuntimeError("Transport not opened. Call open() first.")
        timeout = aiohttp.ClientTimeout(total=request.timeout or self.config.timeout)
        try:
            async with self._session.request(
                request.method,
                self._url(request.path),
                params=request.params,
                json=request.json,
                headers=self._build_headers(request, token),
                timeout=timeout,
            ) as resp:
                text = await resp.text()
                return ApiResponse(status=resp.status, data=_decode_body(text), headers=dict(resp.headers))
        except TimeoutError as e:
            raise TransportError(f"Request timed out: {request.method} {request.path}") from e
        except aiohttp.ClientError as e:
            raise TransportError(f"Network error during {request.method} {request.path}: {e}") from e

    async def send(self, request: ApiRequest) -> ApiResponse:
        """Perform one logical call.

        Returns:
            The successful response, unchanged

        Raises:
            ApiError: A subclass chosen by status code, TransportError when no
                response arrived, AuthenticationError when 401 survives one retry
                (the session is ended in that case)
        """
        token = self.credentials.token if request.authenticate else None
        response = await self._dispatch(request, token)

        if response.status == 401 and request.authenticate and not request.has_explicit_credential:
            logger.debug("401 on %s %s, entering refresh protocol", request.method, request.path)
            new_token = await self.coordinator.recover(token)
            response = await self._dispatch(request, new_token)
            if response.status == 401:
                error = classify_response(401, response.data, "Session expired. Please login again.")
                await self.coordinator.reject(new_token, error.message)
                raise error

        if response.status >= 400:
            raise classify_response(response.status, response.data, f"Request failed with status {response.status}")
        return response

    async def get(self, path: str, params: dict | None = None, **kwargs) -> ApiResponse:
        return await self.send(ApiRequest("GET", path, params=params, **kwargs))

    async def post(self, path: str, data: Any = None, **kwargs) -> ApiResponse:
        return await self.send(ApiRequest("POST", path, json=data, **kwargs))

    async def put(self, path: str, data: Any = None, **kwargs) -> ApiResponse:
        return await self.send(ApiRequest("PUT", path, json=data, **kwargs))

    async def patch(self, path: str, data: Any = None, **kwargs) -> ApiResponse:
        return await self.send(ApiRequest("PATCH", path, json=data, **kwargs))

    async def delete(self, path: str, **kwargs) -> ApiResponse:
        return await self.send(ApiRequest("DELETE", path, **kwargs))


def _decode_body(text: str) -> Any:
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return text
