"""
Channel factory cache.

Owns the process-wide channel factories, keyed by contract, endpoint and
transport signature. Construct one cache at startup, share it between
bridges, and close it at shutdown; tests build isolated instances.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any

from ..config import TransportConfig, TransportConfigSignature
from ..logger import get_logger
from .base import ChannelFactory, ChannelFactoryBuilder

logger = get_logger(__name__)


@dataclass(frozen=True)
class ChannelFactoryKey:
    """Cache key of a channel factory."""

    contract: type
    endpoint_url: str
    signature: TransportConfigSignature

    @classmethod
    def create(cls, contract: type, endpoint_url: str, transport: TransportConfig) -> "ChannelFactoryKey":
        return cls(contract, endpoint_url, transport.signature_for(endpoint_url))


@dataclass(frozen=True)
class ChannelFactoryEntry:
    """A cached factory. Inserted once per key, never mutated."""

    key: ChannelFactoryKey
    factory: ChannelFactory
    created_at: float = field(default_factory=time.time)


class ChannelFactoryCache:
    """Get-or-create cache of channel factories with exactly-once construction per key."""

    def __init__(self, builder: ChannelFactoryBuilder):
        self._builder = builder
        self._entries: dict[ChannelFactoryKey, ChannelFactoryEntry] = {}
        self._key_locks: dict[ChannelFactoryKey, asyncio.Lock] = {}
        self._closed = False

        # Metrics
        self.hits = 0
        self.misses = 0
        self.factories_created = 0
        self.factories_failed = 0

    async def get_or_create(
        self, contract: type, endpoint_url: str, transport: TransportConfig
    ) -> ChannelFactoryEntry:
        """Return the entry for the key, building its factory on first use.

        Concurrent first requests for one key wait on a per-key lock, so the
        builder runs once; a failed build leaves no entry behind.
        """
        if self._closed:
            raise RuntimeError("Channel factory cache is closed")

        key = ChannelFactoryKey.create(contract, endpoint_url, transport)
        entry = self._entries.get(key)
        if entry is not None:
            self.hits += 1
            return entry

        lock = self._key_locks.setdefault(key, asyncio.Lock())
        async with lock:
            entry = self._entries.get(key)
            if entry is not None:
                self.hits += 1
                return entry

            self.misses += 1
            try:
                factory = await self._builder(contract, endpoint_url, transport)
            except Exception as e:
                self.factories_failed += 1
                logger.error(
                    "Failed to build channel factory",
                    contract=contract.__qualname__,
                    endpoint=endpoint_url,
                    error=str(e),
                )
                raise

            if self._closed:
                # close() ran while the factory was being built.
                await self._close_factory(factory, endpoint_url)
                raise RuntimeError("Channel factory cache is closed")

            entry = ChannelFactoryEntry(key=key, factory=factory)
            self._entries[key] = entry
            self.factories_created += 1
            logger.info(
                "Created channel factory",
                contract=contract.__qualname__,
                endpoint=endpoint_url,
                transport=key.signature.kind.value,
            )
            return entry

    def get(self, contract: type, endpoint_url: str, transport: TransportConfig) -> ChannelFactoryEntry | None:
        """Return a cached entry without building one."""
        return self._entries.get(ChannelFactoryKey.create(contract, endpoint_url, transport))

    def __len__(self) -> int:
        return len(self._entries)

    async def close(self) -> None:
        """Close every cached factory. The cache cannot be used afterwards."""
        self._closed = True
        entries = list(self._entries.values())
        self._entries.clear()
        self._key_locks.clear()
        for entry in entries:
            await self._close_factory(entry.factory, entry.key.endpoint_url)
        logger.info("Channel factory cache closed", factories=len(entries))

    @staticmethod
    async def _close_factory(factory: ChannelFactory, endpoint_url: str) -> None:
        try:
            await factory.close()
        except Exception as e:
            logger.warning("Failed to close channel factory", endpoint=endpoint_url, error=str(e))

    def get_metrics(self) -> dict[str, Any]:
        """Get cache metrics."""
        return {
            "entries": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "factories_created": self.factories_created,
            "factories_failed": self.factories_failed,
            "closed": self._closed,
        }
