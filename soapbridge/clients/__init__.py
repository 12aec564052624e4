"""
Client transports for soapbridge.

Provides the zeep-based SOAP channel factory used by default:
- ZeepChannelFactoryBuilder: builds factories off the event loop
- ZeepChannelFactory: parsed WSDL plus pooled httpx.AsyncClient
- ZeepChannel: per-call service proxy with fault and transport mapping
"""

from .zeep_channel import (
    ZeepChannel,
    ZeepChannelFactory,
    ZeepChannelFactoryBuilder,
    reject_non_soap_errors,
    response_size_limit,
    select_binding,
    to_soap_value,
)

__all__ = [
    "ZeepChannel",
    "ZeepChannelFactory",
    "ZeepChannelFactoryBuilder",
    "reject_non_soap_errors",
    "response_size_limit",
    "select_binding",
    "to_soap_value",
]
