"""Bearer credential acquisition for provider calls."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Callable

from pydantic import BaseModel, ConfigDict

from medpay.common.errors import AuthenticationError, CheckoutError
from medpay.common.logging import logger
from medpay.services.checkout.paypal import PayPalClient


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Credential(BaseModel):
    """Short-lived bearer token plus the provider-declared lifetime."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    issued_at: datetime
    expires_in: int

    @property
    def expires_at(self) -> datetime:
        return self.issued_at + timedelta(seconds=self.expires_in)

    def is_expired(self, now: datetime, margin_seconds: int = 0) -> bool:
        return now >= self.expires_at - timedelta(seconds=margin_seconds)


class TokenProvider:
    """Hands out credentials, fetching a fresh one per call unless caching is on.

    With caching enabled the credential is reused until `REFRESH_MARGIN_SECONDS`
    before its declared expiry; concurrent refreshes are serialized so only
    one token exchange is in flight.
    """

    REFRESH_MARGIN_SECONDS = 60

    def __init__(
        self,
        client: PayPalClient,
        cache_enabled: bool = False,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.client = client
        self.cache_enabled = cache_enabled
        self.clock = clock
        self._cached: Credential | None = None
        self._lock = asyncio.Lock()

    async def acquire_token(self) -> Credential:
        if not self.cache_enabled:
            return await self._fetch()
        async with self._lock:
            cached = self._cached
            if cached is None or cached.is_expired(self.clock(), self.REFRESH_MARGIN_SECONDS):
                self._cached = await self._fetch()
            return self._cached

    def invalidate(self) -> None:
        self._cached = None

    def discard_if_rejected(self, exc: CheckoutError) -> None:
        """Drop the cached credential when the provider refused it on a bearer call."""

        if exc.status_code == 401 and self._cached is not None:
            logger.warning("paypal_token_rejected: dropping cached credential")
            self.invalidate()

    async def _fetch(self) -> Credential:
        issued_at = self.clock()
        payload = await self.client.fetch_token()
        access_token = payload.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            raise AuthenticationError("Failed to authenticate with PayPal", detail=payload)
        try:
            expires_in = int(payload.get("expires_in") or 0)
        except (TypeError, ValueError) as exc:
            raise AuthenticationError("Failed to authenticate with PayPal", detail=payload) from exc
        logger.info("paypal_token_acquired expires_in=%s cached=%s", expires_in, self.cache_enabled)
        return Credential(access_token=access_token, issued_at=issued_at, expires_in=expires_in)
