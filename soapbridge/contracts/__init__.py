"""
Contract declaration, description and discovery.

Components:
- bridge_contract / operation: markers for bridgeable classes and their methods
- ServiceDescriptor / OperationDescriptor / ParameterDescriptor: immutable metadata
- discover / ContractRegistry: build-then-freeze lookup of services by name
"""

from .decorators import bridge_contract, operation
from .descriptors import OperationDescriptor, ParameterDescriptor, ServiceDescriptor
from .registry import ContractRegistry, describe_contract, discover

__all__ = [
    "ContractRegistry",
    "OperationDescriptor",
    "ParameterDescriptor",
    "ServiceDescriptor",
    "bridge_contract",
    "describe_contract",
    "discover",
    "operation",
]
