"""
Invocation facade.

SoapBridge ties the registry, the overload resolver and the channel
lifecycle together: one request is looked up, resolved, routed to its
configured endpoint and invoked on a fresh channel.
"""

import asyncio
from dataclasses import dataclass
from typing import Any

from pydantic_core import to_jsonable_python

from .binding import ArgumentBinder, OverloadResolver, Resolution
from .channels import ChannelFactoryCache, ChannelLifecycleManager
from .clients import ZeepChannelFactoryBuilder
from .config import BridgeConfig
from .contracts import ContractRegistry, OperationDescriptor
from .exceptions import BridgeError, TransportError
from .logger import get_correlation_id, get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class InvocationResult:
    """Structured outcome of a bridged call."""

    value: Any = None
    error: BridgeError | None = None
    operation: OperationDescriptor | None = None
    score: int | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any, resolution: Resolution) -> "InvocationResult":
        return cls(value=value, operation=resolution.operation, score=resolution.score)

    @classmethod
    def failure(cls, error: BridgeError, resolution: Resolution | None = None) -> "InvocationResult":
        if resolution is None:
            return cls(error=error)
        return cls(error=error, operation=resolution.operation, score=resolution.score)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"ok": self.ok}
        if self.ok:
            data["value"] = self.value
        else:
            data["error"] = self.error.to_dict()
        if self.operation is not None:
            data["operation"] = self.operation.signature()
            data["score"] = self.score
        return data


class SoapBridge:
    """Dispatches (service, operation, JSON document) requests to SOAP endpoints."""

    def __init__(
        self,
        registry: ContractRegistry,
        config: BridgeConfig,
        lifecycle: ChannelLifecycleManager | None = None,
        binder: ArgumentBinder | None = None,
    ):
        self.registry = registry
        self.config = config
        self.resolver = OverloadResolver(binder or ArgumentBinder(strict=config.binding.strict))
        if lifecycle is None:
            builder = ZeepChannelFactoryBuilder(config.wsdl_locations)
            lifecycle = ChannelLifecycleManager(
                ChannelFactoryCache(builder),
                enable_tracing=config.observability.enable_tracing,
            )
        self.lifecycle = lifecycle

    async def call(
        self,
        service: str,
        operation: str,
        document: Any,
        endpoint_url: str | None = None,
        cancellation: asyncio.Event | None = None,
    ) -> Any:
        """Invoke ``service.operation`` with arguments bound from ``document``.

        Returns the JSON-ready result value.

        Raises:
            BridgeError: A subclass describing why the call failed.
        """
        result = await self.invoke(service, operation, document, endpoint_url, cancellation)
        if not result.ok:
            raise result.error
        return result.value

    async def invoke(
        self,
        service: str,
        operation: str,
        document: Any,
        endpoint_url: str | None = None,
        cancellation: asyncio.Event | None = None,
    ) -> InvocationResult:
        """Like call(), but reports failures in the returned InvocationResult."""
        log = logger.bind(service=service, operation=operation, correlation_id=get_correlation_id())
        resolution: Resolution | None = None
        try:
            descriptor = self.registry.get_service(service)
            resolution = self.resolver.resolve(descriptor, operation, document)
            endpoint_url = endpoint_url or self.config.endpoint_for(descriptor.name)
            value = await self.lifecycle.invoke(
                descriptor.contract,
                endpoint_url,
                self.config.transport,
                resolution.operation,
                resolution.arguments,
                cancellation,
            )
            if resolution.operation.return_type is None:
                value = None
            value = to_jsonable_python(value)
        except BridgeError as e:
            log.warning("Bridged call failed", error_code=e.error_code, error=e.message)
            return InvocationResult.failure(e, resolution)
        except Exception as e:
            log.exception("Unexpected error during bridged call")
            error = TransportError(f"Unexpected error: {e}", details={"exception": type(e).__name__})
            return InvocationResult.failure(error, resolution)

        log.info("Bridged call succeeded", remote_operation=resolution.operation.remote_name, score=resolution.score)
        return InvocationResult.success(value, resolution)

    def catalog(self) -> dict[str, list[str]]:
        """Service name to operation signatures, for discovery endpoints."""
        return {
            descriptor.name: [
                overload.signature()
                for overloads in descriptor.operations.values()
                for overload in overloads
            ]
            for descriptor in self.registry.services
        }

    def get_metrics(self) -> dict[str, Any]:
        return self.lifecycle.get_metrics()

    async def close(self) -> None:
        await self.lifecycle.cache.close()

    async def __aenter__(self) -> "SoapBridge":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
