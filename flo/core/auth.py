"""Auth endpoints: login, signup, logout, refresh exchange, profile."""

import logging
from typing import Any

from flo.core.constants import (
    AUTH_LOGIN_PATH,
    AUTH_LOGOUT_PATH,
    AUTH_REFRESH_PATH,
    AUTH_SIGNUP_PATH,
    USER_PROFILE_PATH,
)
from flo.core.credentials import CredentialStore
from flo.core.errors import ApiError
from flo.core.refresh import TokenPair
from flo.core.transport import TransportPipeline

logger = logging.getLogger(__name__)


def unwrap_data(body: Any) -> Any:
    """Strip the ``{success, message, data}`` envelope some endpoints use."""
    if isinstance(body, dict) and "data" in body:
        return body["data"]
    return body


class AuthService:
    """Session lifecycle calls.

    Login, signup and refresh are sent with credential injection suppressed:
    a 401 from them means bad input, not an expired session, and must not
    re-enter the refresh protocol.
    """

    def __init__(self, transport: TransportPipeline, credentials: CredentialStore):
        self.transport = transport
        self.credentials = credentials

    async def _establish(self, body: Any) -> dict[str, Any]:
        payload = unwrap_data(body) or {}
        tokens = payload.get("tokens") or {}
        pair = TokenPair.from_response(tokens)
        await self.credentials.set(pair.access_token, pair.refresh_token)
        return payload

    async def login(self, email: str, password: str) -> dict[str, Any]:
        """Authenticate and install the returned credential.

        Returns:
            The ``{user, tokens}`` payload
        """
        resp = await self.transport.post(
            AUTH_LOGIN_PATH, {"email": email, "password": password}, authenticate=False
        )
        payload = await self._establish(resp.data)
        logger.info("Logged in as %s", email)
        return payload

    async def signup(self, email: str, password: str, company_name: str, **extra: Any) -> dict[str, Any]:
        body = {"email": email, "password": password, "companyName": company_name, **extra}
        resp = await self.transport.post(AUTH_SIGNUP_PATH, body, authenticate=False)
        payload = await self._establish(resp.data)
        logger.info("Signed up %s", email)
        return payload

    async def logout(self) -> None:
        """Tell the backend, then clear the credential regardless of the outcome."""
        try:
            if self.credentials.token:
                await self.transport.post(AUTH_LOGOUT_PATH, {})
        except ApiError as e:
            logger.warning("Logout request failed, clearing credential anyway: %s", e)
        finally:
            await self.credentials.clear()

    async def refresh(self, refresh_token: str) -> TokenPair:
        """Exchange a refresh token for a new access token.

        The caller (RefreshCoordinator) installs the result.
        """
        resp = await self.transport.post(
            AUTH_REFRESH_PATH, {"refreshToken": refresh_token}, authenticate=False
        )
        return TokenPair.from_response(unwrap_data(resp.data) or {})

    async def get_me(self) -> dict[str, Any]:
        resp = await self.transport.get(USER_PROFILE_PATH)
        return unwrap_data(resp.data)
