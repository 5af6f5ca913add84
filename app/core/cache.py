"""TTL cache for resolved lookups."""

from typing import Generic, TypeVar

from prometheus_client import Counter
from pydantic import BaseModel, ValidationError

from app.core.logging import get_logger
from app.core.store import KeyValueStore

logger = get_logger(__name__)

CACHE_LOOKUPS_TOTAL = Counter(
    "app_lookup_cache_total",
    "Lookup cache reads by result",
    labelnames=["result"],
)

ModelT = TypeVar("ModelT", bound=BaseModel)


class ResultCache(Generic[ModelT]):
    """Stores pydantic models as JSON in a key-value store.

    Entries expire passively: the store drops them when read after their
    TTL. A payload that no longer parses is deleted and reported as a miss.
    """

    def __init__(
        self,
        store: KeyValueStore,
        model: type[ModelT],
        ttl_seconds: int = 3600,
        degraded_ttl_seconds: int = 300,
        prefix: str = "geo:",
    ) -> None:
        self.store = store
        self.model = model
        self.ttl_seconds = ttl_seconds
        self.degraded_ttl_seconds = degraded_ttl_seconds
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def get(self, key: str) -> ModelT | None:
        """Return the cached value for ``key`` or None on a miss."""
        raw = await self.store.get(self._key(key))
        if raw is None:
            CACHE_LOOKUPS_TOTAL.labels(result="miss").inc()
            return None

        try:
            value = self.model.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("cache_entry_corrupt", key=key, error=str(e))
            await self.store.delete(self._key(key))
            CACHE_LOOKUPS_TOTAL.labels(result="miss").inc()
            return None

        CACHE_LOOKUPS_TOTAL.labels(result="hit").inc()
        logger.debug("cache_hit", key=key)
        return value

    async def put(self, key: str, value: ModelT, ttl_seconds: int | None = None) -> None:
        """Store ``value`` under ``key`` for ``ttl_seconds`` (default: full TTL)."""
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        await self.store.set(self._key(key), value.model_dump_json(by_alias=True), ttl)
        logger.debug("cache_put", key=key, ttl_seconds=ttl)

    async def put_degraded(self, key: str, value: ModelT) -> None:
        """Store a degraded result with the short TTL."""
        await self.put(key, value, self.degraded_ttl_seconds)

    async def size(self) -> int:
        """Number of live entries."""
        return await self.store.size(self.prefix)
