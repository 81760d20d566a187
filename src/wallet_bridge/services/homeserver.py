"""Session minting against the messaging server.

Once a wallet has proven control of its key, the bridge asks a
:class:`SessionProvider` to log the derived user in, creating the account on
first sight. Two providers exist:

- :class:`LocalSessionProvider` keeps accounts in process and signs its own
  access tokens, which is enough for a single-node deployment and for tests.
- :class:`HomeserverClient` forwards the verified identity to an external
  homeserver over HTTP and relays the token it returns.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import string
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from threading import Lock
from typing import Any, Protocol

import httpx
from jose import jwt

from wallet_bridge.core.errors import SessionProviderError
from wallet_bridge.core.settings import Settings, settings

# Configure logger for this module
logger = logging.getLogger(__name__)

DEVICE_ID_LENGTH = 10
TOKEN_LENGTH = 32
_DEVICE_ALPHABET = string.ascii_uppercase

SESSION_PATH = "/_wallet_bridge/v1/session"


@dataclass(frozen=True)
class SessionGrant:
    """Credential returned to a client after a successful wallet login."""

    user_id: str
    access_token: str
    device_id: str
    home_server: str
    created: bool = False


class SessionProvider(Protocol):
    """Anything that can turn a verified localpart into a logged-in session."""

    async def login(
        self,
        localpart: str,
        *,
        display_name: str,
        device_id: str | None = None,
        initial_device_display_name: str | None = None,
    ) -> SessionGrant: ...


def _random_device_id() -> str:
    return "".join(secrets.choice(_DEVICE_ALPHABET) for _ in range(DEVICE_ID_LENGTH))


@dataclass
class LocalAccount:
    """Passwordless account created for a wallet."""

    user_id: str
    display_name: str
    created_at: float
    devices: dict[str, str | None] = field(default_factory=dict)


class LocalSessionProvider:
    """In-process account registry issuing JWT access tokens."""

    def __init__(
        self,
        server_name: str,
        *,
        secret_key: str,
        algorithm: str = "HS256",
        token_ttl: timedelta = timedelta(days=30),
    ) -> None:
        self.server_name = server_name
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._token_ttl = token_ttl
        self._accounts: dict[str, LocalAccount] = {}
        self._lock = Lock()

    def get_account(self, user_id: str) -> LocalAccount | None:
        with self._lock:
            return self._accounts.get(user_id)

    def decode_token(self, token: str) -> dict[str, Any]:
        """Decode and validate an access token issued by this provider."""
        claims: dict[str, Any] = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        return claims

    async def login(
        self,
        localpart: str,
        *,
        display_name: str,
        device_id: str | None = None,
        initial_device_display_name: str | None = None,
    ) -> SessionGrant:
        user_id = f"@{localpart}:{self.server_name}"
        with self._lock:
            account = self._accounts.get(user_id)
            created = account is None
            if account is None:
                account = LocalAccount(
                    user_id=user_id,
                    display_name=display_name,
                    created_at=time.time(),
                )
                self._accounts[user_id] = account
                logger.info("New wallet user registered: %s (%s)", display_name, user_id)

            device = device_id or _random_device_id()
            if device not in account.devices:
                account.devices[device] = initial_device_display_name

        token = self._issue_token(user_id, device)
        logger.info("%s logged in via wallet signature", user_id)
        return SessionGrant(
            user_id=user_id,
            access_token=token,
            device_id=device,
            home_server=self.server_name,
            created=created,
        )

    def _issue_token(self, user_id: str, device_id: str) -> str:
        expire = datetime.now(UTC) + self._token_ttl
        claims: dict[str, object] = {
            "sub": user_id,
            "device_id": device_id,
            "jti": secrets.token_hex(TOKEN_LENGTH // 2),
            "exp": expire,
        }
        encoded: str = jwt.encode(claims, self._secret_key, algorithm=self._algorithm)
        return encoded


@dataclass(frozen=True)
class HomeserverConfig:
    """Immutable configuration for homeserver calls."""

    base_url: str
    server_name: str
    shared_secret: str | None
    audience: str
    token_ttl_seconds: int
    timeout_seconds: float


def load_homeserver_config(config: Settings = settings) -> HomeserverConfig:
    """Build configuration object from global settings."""
    if not config.homeserver_base_url:
        raise SessionProviderError("HOMESERVER_BASE_URL is not configured")
    return HomeserverConfig(
        base_url=config.homeserver_base_url,
        server_name=config.server_name,
        shared_secret=config.homeserver_shared_secret,
        audience=config.homeserver_audience,
        token_ttl_seconds=config.homeserver_token_ttl_seconds,
        timeout_seconds=float(config.homeserver_http_timeout_seconds),
    )


class HomeserverClient:
    """HTTP client that asks an external homeserver to provision and log in a user."""

    def __init__(
        self,
        config: HomeserverConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.config.base_url,
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    def _build_auth_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {}
        if self.config.shared_secret:
            now = int(time.time())
            payload = {
                "iss": self.config.server_name,
                "aud": self.config.audience,
                "iat": now,
                "exp": now + max(1, self.config.token_ttl_seconds),
                "jti": secrets.token_hex(8),
            }
            token = jwt.encode(payload, self.config.shared_secret, algorithm="HS256")
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def login(
        self,
        localpart: str,
        *,
        display_name: str,
        device_id: str | None = None,
        initial_device_display_name: str | None = None,
    ) -> SessionGrant:
        client = await self._ensure_client()
        payload = {
            "localpart": localpart,
            "displayname": display_name,
            "device_id": device_id,
            "initial_device_display_name": initial_device_display_name,
        }
        try:
            response = await client.post(
                SESSION_PATH,
                json=payload,
                headers=self._build_auth_headers(),
            )
        except httpx.HTTPError as exc:
            logger.warning("Homeserver session request failed: %s", exc)
            raise SessionProviderError(f"Homeserver request failed: {exc}") from exc

        if response.status_code not in (200, 201):
            logger.warning(
                "Homeserver rejected session for %s with status %d",
                localpart,
                response.status_code,
            )
            raise SessionProviderError(
                f"Unexpected homeserver response ({response.status_code})"
            )

        try:
            body = response.json()
        except ValueError as exc:
            logger.warning("Homeserver returned a non-JSON session body for %s", localpart)
            raise SessionProviderError("Homeserver response is not valid JSON") from exc
        if not isinstance(body, dict):
            raise SessionProviderError("Homeserver response must be a JSON object")

        try:
            return SessionGrant(
                user_id=str(body["user_id"]),
                access_token=str(body["access_token"]),
                device_id=str(body["device_id"]),
                home_server=str(body.get("home_server", self.config.server_name)),
                created=bool(body.get("created", False)),
            )
        except KeyError as exc:
            raise SessionProviderError(f"Homeserver response missing {exc}") from exc

    async def close(self) -> None:
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


_PROVIDER: SessionProvider | None = None


def build_session_provider(config: Settings = settings) -> SessionProvider:
    """Construct the provider selected by ``SESSION_PROVIDER``."""
    if config.homeserver_enabled:
        return HomeserverClient(load_homeserver_config(config))
    return LocalSessionProvider(
        config.server_name,
        secret_key=config.secret_key,
        algorithm=config.jwt_algorithm,
        token_ttl=timedelta(minutes=config.access_token_expire_minutes),
    )


def get_session_provider() -> SessionProvider:
    """Return the process-wide session provider instance."""
    global _PROVIDER
    if _PROVIDER is None:
        _PROVIDER = build_session_provider()
    return _PROVIDER
