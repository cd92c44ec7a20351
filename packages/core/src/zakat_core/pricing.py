"""Silver spot price lookup for the Nisab threshold.

The source reports silver in currency per troy ounce; the worksheet needs
currency per gram. Lookups are best effort: any transport, status or
payload problem raises PriceFetchError and the caller leaves the price
field alone.
"""

import math
import time
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Optional

import httpx
import structlog

from .config import DEFAULT_PRICE_URL
from .exceptions import PriceFetchError
from .models import PriceCacheEntry, PriceQuote
from .storage import LocalStore

logger = structlog.get_logger()

TROY_OUNCE_GRAMS = Decimal("31.1035")
PRICE_PRECISION = Decimal("0.0001")
DEFAULT_CACHE_MAX_AGE_MS = 60 * 60 * 1000


def epoch_ms() -> int:
    return int(time.time() * 1000)


def to_price_per_gram(silver_per_oz: Decimal) -> Decimal:
    """Convert a per-troy-ounce price to per gram, rounded to 4 decimals."""
    return (silver_per_oz / TROY_OUNCE_GRAMS).quantize(PRICE_PRECISION, rounding=ROUND_HALF_UP)


def extract_silver_per_oz(payload: Any, source: Optional[str] = None) -> Decimal:
    """Pull the silver price out of a spot price payload.

    The payload is either an object with a ``silver`` key or a list whose
    first element is such an object.

    Raises:
        PriceFetchError: If the shape is wrong or the price is not a
            positive finite number.
    """
    if isinstance(payload, list):
        payload = payload[0] if payload else None
    if not isinstance(payload, dict):
        raise PriceFetchError(
            "Spot price payload is not an object",
            source=source,
            reason="bad_payload",
        )

    value = payload.get("silver")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise PriceFetchError(
            "Spot price payload has no numeric silver price",
            source=source,
            reason="bad_payload",
            details={"silver": repr(value)},
        )
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        raise PriceFetchError("Silver price is not finite", source=source, reason="bad_payload")
    if value <= 0:
        raise PriceFetchError(
            "Silver price must be positive",
            source=source,
            reason="bad_payload",
            details={"silver": value},
        )
    return Decimal(str(value))


class SilverPriceSource:
    """HTTP client for the spot price endpoint.

    A single GET with no retries; the only timeout is the client's.
    """

    def __init__(
        self,
        url: str = DEFAULT_PRICE_URL,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._client = client

    async def _get(self, client: httpx.AsyncClient) -> Any:
        try:
            response = await client.get(self.url)
        except httpx.HTTPError as e:
            raise PriceFetchError(
                f"Spot price request failed: {e}",
                source=self.url,
                reason="transport",
            ) from e

        if not response.is_success:
            raise PriceFetchError(
                f"Spot price source returned {response.status_code}",
                source=self.url,
                status_code=response.status_code,
                reason="http_status",
            )
        try:
            return response.json()
        except ValueError as e:
            raise PriceFetchError(
                "Spot price response is not JSON",
                source=self.url,
                reason="bad_payload",
            ) from e

    async def fetch_silver_per_oz(self) -> Decimal:
        """Current silver price per troy ounce."""
        if self._client is not None:
            payload = await self._get(self._client)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                payload = await self._get(client)
        return extract_silver_per_oz(payload, source=self.url)


class PriceService:
    """
    Reference price acquisition with a local cache.

    A cached price younger than ``cache_max_age_ms`` is reused instead of
    calling the source. Every successful network fetch refreshes the cache.
    """

    def __init__(
        self,
        store: LocalStore,
        source: Optional[SilverPriceSource] = None,
        cache_max_age_ms: int = DEFAULT_CACHE_MAX_AGE_MS,
        clock: Callable[[], int] = epoch_ms,
    ):
        self.store = store
        self.source = source or SilverPriceSource()
        self.cache_max_age_ms = cache_max_age_ms
        self.clock = clock

    def cached_quote(self) -> Optional[PriceQuote]:
        """Fresh cached quote, or None when absent, stale or zero."""
        entry = self.store.load_price_cache()
        if entry is None:
            return None

        age_ms = self.clock() - entry.fetched_at
        if age_ms >= self.cache_max_age_ms or entry.price_per_gram <= 0:
            logger.debug("price_cache_stale", age_ms=age_ms, price_per_gram=entry.price_per_gram)
            return None

        price = Decimal(str(entry.price_per_gram)).quantize(PRICE_PRECISION, rounding=ROUND_HALF_UP)
        if price <= 0:
            return None
        logger.info("price_cache_hit", age_ms=age_ms, price_per_gram=str(price))
        return PriceQuote(
            silver_per_oz=Decimal(str(max(entry.silver_per_oz, 0.0))),
            price_per_gram=price,
            fetched_at=entry.fetched_at,
            from_cache=True,
        )

    async def fetch_live(self) -> PriceQuote:
        """Fetch from the source and write the cache.

        Raises:
            PriceFetchError: On any transport or payload failure.
        """
        silver_per_oz = await self.source.fetch_silver_per_oz()
        price_per_gram = to_price_per_gram(silver_per_oz)
        if price_per_gram <= 0:
            raise PriceFetchError(
                "Silver price rounds to zero per gram",
                source=self.source.url,
                reason="bad_payload",
            )
        fetched_at = self.clock()
        quote = PriceQuote(
            silver_per_oz=silver_per_oz,
            price_per_gram=price_per_gram,
            fetched_at=fetched_at,
        )
        self.store.save_price_cache(PriceCacheEntry(
            price_per_gram=float(quote.price_per_gram),
            silver_per_oz=float(silver_per_oz),
            fetched_at=fetched_at,
        ))
        logger.info(
            "price_fetched",
            source=self.source.url,
            silver_per_oz=str(silver_per_oz),
            price_per_gram=str(quote.price_per_gram),
        )
        return quote

    async def lookup(self, use_cache: bool = True) -> PriceQuote:
        """Cached quote when fresh, otherwise a live fetch."""
        if use_cache:
            quote = self.cached_quote()
            if quote is not None:
                return quote
        return await self.fetch_live()
