"""
soapbridge - JSON to SOAP invocation bridge

Lets callers invoke remote SOAP services with a JSON document instead of
hand-written per-service proxies. A caller names a logical service and an
operation; the bridge picks the best matching overload, binds typed
arguments from the document, and calls the remote endpoint over a cached
channel factory.

Key Features:
- Contract discovery from decorated Python classes
- Case-insensitive argument binding with pydantic conversion
- Overload resolution by matched-field score
- Channel factories built exactly once per contract, endpoint and transport
- Per-call channels that are always closed or aborted
- FastAPI ingress and a click CLI

Usage:
    >>> from soapbridge import SoapBridge, ContractRegistry, bridge_contract, load_config
    >>> @bridge_contract("Calculator")
    ... class ICalculator:
    ...     def Add(self, a: int, b: int) -> int: ...
    >>> bridge = SoapBridge(ContractRegistry.from_sources(ICalculator), load_config("bridge.yaml"))
    >>> await bridge.call("Calculator", "Add", {"a": 1, "b": 2})
"""

__version__ = "0.1.0"

from .bridge import InvocationResult, SoapBridge
from .config import BridgeConfig, TransportConfig, TransportKind, load_config
from .contracts import ContractRegistry, bridge_contract, discover, operation
from .exceptions import (
    ArgumentBindingError,
    BridgeError,
    ConfigurationError,
    NoMatchingOverloadError,
    OperationNotFoundError,
    RemoteFaultError,
    ServiceNotFoundError,
    TransportError,
)
from .factories import create_bridge_app

__all__ = [
    "ArgumentBindingError",
    "BridgeConfig",
    "BridgeError",
    "ConfigurationError",
    "ContractRegistry",
    "InvocationResult",
    "NoMatchingOverloadError",
    "OperationNotFoundError",
    "RemoteFaultError",
    "ServiceNotFoundError",
    "SoapBridge",
    "TransportConfig",
    "TransportError",
    "TransportKind",
    "__version__",
    "bridge_contract",
    "create_bridge_app",
    "discover",
    "load_config",
    "operation",
]
