"""
zeep-backed SOAP channels.

The factory owns the expensive parts: the parsed WSDL, the selected SOAP
binding and a pooled httpx.AsyncClient configured from the transport
settings. Each channel is a lightweight service proxy bound to the
configured endpoint address.
"""

import asyncio
import dataclasses
from collections.abc import Mapping
from enum import Enum
from typing import Any

import httpx
from lxml import etree
from pydantic import BaseModel
from zeep import AsyncClient, Settings
from zeep.exceptions import Error as ZeepError
from zeep.exceptions import Fault
from zeep.exceptions import TransportError as ZeepTransportError
from zeep.helpers import serialize_object
from zeep.proxy import AsyncServiceProxy
from zeep.transports import AsyncTransport
from zeep.wsdl.bindings import Soap11Binding, Soap12Binding

from ..channels.base import ChannelFactory, RemoteChannel
from ..config import TransportConfig, TransportKind
from ..contracts.descriptors import OperationDescriptor
from ..exceptions import RemoteFaultError, TransportError
from ..logger import get_logger

logger = get_logger(__name__)

# lxml refuses very deep or very large trees unless xml_huge_tree is enabled.
HUGE_TREE_THRESHOLD = 10 * 1024 * 1024


class ZeepChannel(RemoteChannel):
    """One call's view of a SOAP endpoint."""

    def __init__(self, proxy: AsyncServiceProxy, endpoint_url: str):
        super().__init__(endpoint_url)
        self._proxy: AsyncServiceProxy | None = proxy

    async def _invoke(self, operation: OperationDescriptor, arguments: tuple[Any, ...]) -> Any:
        try:
            remote = self._proxy[operation.remote_name]
        except AttributeError as e:
            raise RemoteFaultError(
                f"Endpoint {self.endpoint_url} does not expose operation '{operation.remote_name}'",
                details={"endpoint": self.endpoint_url, "operation": operation.remote_name},
            ) from e

        kwargs = {
            name: to_soap_value(value)
            for name, value in zip(operation.parameter_names, arguments)
        }
        try:
            result = await remote(**kwargs)
        except Fault as e:
            raise RemoteFaultError(
                e.message or "SOAP fault",
                details={
                    "endpoint": self.endpoint_url,
                    "operation": operation.remote_name,
                    "fault_code": e.code,
                    "fault_actor": e.actor,
                    "fault_detail": _detail_text(e.detail),
                },
            ) from e
        except TransportError as e:
            self.mark_faulted()
            e.details.setdefault("endpoint", self.endpoint_url)
            e.details.setdefault("operation", operation.remote_name)
            raise
        except (ZeepTransportError, httpx.HTTPError, TimeoutError) as e:
            self.mark_faulted()
            raise TransportError(
                f"SOAP call to '{operation.remote_name}' failed: {e}",
                details={
                    "endpoint": self.endpoint_url,
                    "operation": operation.remote_name,
                    "status_code": getattr(e, "status_code", None),
                },
            ) from e
        except (ZeepError, etree.XMLSyntaxError, AttributeError) as e:
            # zeep's loader fails with AttributeError on bodies lxml cannot parse.
            self.mark_faulted()
            raise TransportError(
                f"Invalid SOAP exchange for '{operation.remote_name}': {e}",
                details={"endpoint": self.endpoint_url, "operation": operation.remote_name},
            ) from e

        return serialize_object(result, target_cls=dict)

    async def _close(self) -> None:
        self._proxy = None

    async def _abort(self) -> None:
        self._proxy = None


class ZeepChannelFactory(ChannelFactory):
    """Channel factory over one parsed WSDL and a pooled HTTP client."""

    def __init__(self, client: AsyncClient, binding: Any, endpoint_url: str, contract: type):
        self.client = client
        self.binding = binding
        self.endpoint_url = endpoint_url
        self.contract = contract

    @classmethod
    def create(
        cls,
        contract: type,
        endpoint_url: str,
        transport: TransportConfig,
        wsdl_location: str | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> "ZeepChannelFactory":
        """Load the WSDL and build the factory. Blocks while the WSDL loads.

        Raises:
            TransportError: If the WSDL cannot be loaded or has no usable port.
        """
        wsdl_location = wsdl_location or f"{endpoint_url}?wsdl"
        http_client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=transport.open_timeout,
                read=transport.receive_timeout,
                write=transport.send_timeout,
                pool=transport.open_timeout,
            ),
            event_hooks={
                "response": [
                    reject_non_soap_errors,
                    response_size_limit(transport.max_received_message_size),
                ]
            },
            transport=http_transport,
        )
        wsdl_client = httpx.Client(timeout=httpx.Timeout(transport.open_timeout))
        settings = Settings(
            strict=False,
            xml_huge_tree=transport.max_received_message_size > HUGE_TREE_THRESHOLD,
        )

        try:
            client = AsyncClient(
                wsdl_location,
                transport=AsyncTransport(client=http_client, wsdl_client=wsdl_client),
                settings=settings,
            )
            binding = select_binding(client, transport.kind)
        except TransportError:
            wsdl_client.close()
            raise
        except Exception as e:
            wsdl_client.close()
            raise TransportError(
                f"Failed to load WSDL from {wsdl_location}: {e}",
                details={"endpoint": endpoint_url, "wsdl": wsdl_location},
            ) from e

        logger.info(
            "Loaded WSDL",
            contract=contract.__qualname__,
            wsdl=wsdl_location,
            binding=str(binding.name),
        )
        return cls(client, binding, endpoint_url, contract)

    def create_channel(self) -> ZeepChannel:
        proxy = AsyncServiceProxy(self.client, self.binding, address=self.endpoint_url)
        return ZeepChannel(proxy, self.endpoint_url)

    async def close(self) -> None:
        transport = self.client.transport
        await transport.client.aclose()
        transport.wsdl_client.close()


class ZeepChannelFactoryBuilder:
    """Builds ZeepChannelFactory instances off the event loop."""

    def __init__(
        self,
        wsdl_locations: Mapping[str, str] | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.wsdl_locations = dict(wsdl_locations or {})
        self.http_transport = http_transport

    async def __call__(
        self, contract: type, endpoint_url: str, transport: TransportConfig
    ) -> ZeepChannelFactory:
        return await asyncio.to_thread(
            ZeepChannelFactory.create,
            contract,
            endpoint_url,
            transport,
            self.wsdl_locations.get(endpoint_url),
            self.http_transport,
        )


def select_binding(client: AsyncClient, kind: TransportKind) -> Any:
    """Return the first port binding matching the transport kind."""
    wanted = Soap12Binding if kind is TransportKind.WS_HTTP else Soap11Binding
    for service in client.wsdl.services.values():
        for port in service.ports.values():
            if isinstance(port.binding, wanted):
                return port.binding
    raise TransportError(
        f"WSDL exposes no {kind.value} port",
        details={"transport": kind.value},
    )


async def reject_non_soap_errors(response: httpx.Response) -> None:
    """httpx response hook failing error responses that carry no SOAP envelope.

    SOAP faults arrive as 500 with an XML body and are left to zeep; a 503
    page or any other non-XML error body is reported with its status code.
    """
    if response.is_success:
        return
    content_type = response.headers.get("content-type", "").lower()
    if "xml" in content_type:
        return
    raise TransportError(
        f"HTTP {response.status_code} {response.reason_phrase} from {response.request.url}",
        details={
            "status_code": response.status_code,
            "content_type": content_type or None,
            "url": str(response.request.url),
        },
    )


def response_size_limit(limit: int):
    """httpx response hook rejecting bodies larger than ``limit`` bytes."""

    async def hook(response: httpx.Response) -> None:
        declared = response.headers.get("content-length")
        if declared is None:
            await response.aread()
            size = len(response.content)
        else:
            size = int(declared) if declared.isdigit() else 0
        if size > limit:
            raise TransportError(
                f"Response of {size} bytes exceeds max_received_message_size ({limit})",
                details={"size": size, "limit": limit, "url": str(response.request.url)},
            )

    return hook


def to_soap_value(value: Any) -> Any:
    """Convert bound arguments into values zeep can serialize."""
    if isinstance(value, BaseModel):
        return to_soap_value(value.model_dump())
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return to_soap_value(dataclasses.asdict(value))
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_soap_value(item) for item in value]
    if isinstance(value, dict):
        return {key: to_soap_value(item) for key, item in value.items()}
    return value


def _detail_text(detail: Any) -> str | None:
    if detail is None:
        return None
    if isinstance(detail, etree._Element):
        return etree.tostring(detail, encoding="unicode")
    return str(detail)
