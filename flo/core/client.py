"""FloClient - the single service object wiring the request layer together."""

import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

import aiohttp

from flo.core.auth import AuthService
from flo.core.config import AppConfig
from flo.core.constants import TTL_LONG, TTL_SHORT
from flo.core.credentials import Credential, CredentialStore, KeyValueStore, MemoryKeyValueStore
from flo.core.errors import UnknownResourceError
from flo.core.refresh import RefreshCoordinator
from flo.core.transport import TransportPipeline
from flo.domains.base import DomainFacade

SessionEndedHook = Callable[[], Awaitable[None]]


class FloClient:
    """Owns the credential, refresh coordinator, transport and every domain facade.

    One instance per process replaces the module-level globals a browser
    client would use. Facades receive it in their constructor.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        storage: KeyValueStore | None = None,
        on_session_ended: SessionEndedHook | None = None,
        enable_refresh: bool = True,
        session: aiohttp.ClientSession | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize client.

        Args:
            config: Application config (defaults to built-in defaults)
            storage: Durable key-value store for credentials
            on_session_ended: Hook awaited once per terminal auth failure
            enable_refresh: Wire the refresh exchange; False makes every 401 terminal
            session: Externally owned aiohttp session (tests, embedding apps)
            clock: Monotonic time source shared by every cache
        """
        self.config = config or AppConfig()
        self.clock = clock
        self.logger = logging.getLogger("client")
        self.credentials = CredentialStore(storage if storage is not None else MemoryKeyValueStore())
        self.coordinator = RefreshCoordinator(self.credentials, on_session_ended=self._session_ended)
        self.transport = TransportPipeline(self.config.api, self.credentials, self.coordinator, session=session)
        self.auth = AuthService(self.transport, self.credentials)
        if enable_refresh:
            self.coordinator.exchange = self.auth.refresh
        self.domains: dict[str, DomainFacade] = {}
        self._on_session_ended = on_session_ended
        self.credentials.add_listener(self._on_credential_changed)

    def _on_credential_changed(self, credential: Credential | None) -> None:
        if credential is None:
            self.clear_caches()

    async def _session_ended(self) -> None:
        self.logger.warning("Session ended, login required")
        self.clear_caches()
        if self._on_session_ended:
            await self._on_session_ended()

    async def initialize(self):
        """Open the HTTP session, restore any persisted credential, start facades."""
        self.logger.info("Initializing Flo client (%s)", self.config.api.base_url)
        await self.transport.open()
        await self.credentials.restore()
        for domain_id, facade in self.domains.items():
            try:
                await facade.initialize()
            except Exception as e:
                self.logger.error(f"Error initializing domain {domain_id}: {e}")
                raise

    async def shutdown(self):
        for domain_id, facade in self.domains.items():
            try:
                await facade.shutdown()
            except Exception as e:
                self.logger.error(f"Error shutting down domain {domain_id}: {e}")
        await self.coordinator.close()
        await self.transport.close()
        self.logger.info("Flo client shutdown complete")

    async def __aenter__(self) -> "FloClient":
        await self.initialize()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.shutdown()

    def ttl(self, tier: str) -> float:
        if tier == TTL_LONG:
            return self.config.cache.long_ttl
        if tier == TTL_SHORT:
            return self.config.cache.short_ttl
        raise ValueError(f"Unknown TTL tier: {tier}")

    def register_domain(self, facade: DomainFacade) -> DomainFacade:
        """Register a facade under its domain id.

        Raises:
            ValueError: A facade with the same id is already registered
        """
        if facade.domain_id in self.domains:
            raise ValueError(f"Domain {facade.domain_id} already registered")
        self.domains[facade.domain_id] = facade
        self.logger.info(f"Registered domain: {facade.domain_id}")
        return facade

    def register_default_domains(self) -> None:
        """Register the six business-module facades."""
        from flo.domains.assets import AssetsFacade
        from flo.domains.crm import CrmFacade
        from flo.domains.finance import FinanceFacade
        from flo.domains.hr import HrFacade
        from flo.domains.projects import ProjectsFacade
        from flo.domains.vendor import VendorFacade

        for facade_cls in (AssetsFacade, CrmFacade, FinanceFacade, HrFacade, VendorFacade, ProjectsFacade):
            self.register_domain(facade_cls(self))

    def domain(self, domain_id: str) -> DomainFacade:
        try:
            return self.domains[domain_id]
        except KeyError:
            raise UnknownResourceError(f"Unknown domain '{domain_id}'") from None

    def clear_caches(self) -> None:
        for facade in self.domains.values():
            facade.clear_cache()

    @property
    def is_authenticated(self) -> bool:
        return self.credentials.token is not None

    async def login(self, email: str, password: str) -> dict[str, Any]:
        return await self.auth.login(email, password)

    async def logout(self) -> None:
        await self.auth.logout()

    def status(self) -> dict[str, Any]:
        """Snapshot of authentication, refresh and cache state."""
        credential = self.credentials.credential
        return {
            "base_url": self.config.api.base_url,
            "authenticated": credential is not None,
            "credential_source": credential.source if credential else None,
            "has_refresh_token": self.credentials.refresh_token is not None,
            "refresh_enabled": self.coordinator.exchange is not None,
            "refresh_state": self.coordinator.state.value,
            "refresh_count": self.coordinator.refresh_count,
            "domains": {domain_id: f.cache_stats() for domain_id, f in self.domains.items()},
        }
