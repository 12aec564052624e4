"""
Unit test fixtures.

Provides the sample contract registry, a bridge configuration with
endpoints for the sample services, and in-memory channel factories so the
channel lifecycle can be observed without a network.
"""

from pathlib import Path

import pytest

import sample_contracts
from fakes import CALCULATOR_URL, ECHO_URL, FakeFactoryBuilder
from soapbridge.bridge import SoapBridge
from soapbridge.channels import ChannelFactoryCache, ChannelLifecycleManager
from soapbridge.config import BridgeConfig
from soapbridge.contracts import ContractRegistry

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"


@pytest.fixture
def registry() -> ContractRegistry:
    return ContractRegistry.from_sources(sample_contracts)


@pytest.fixture
def config() -> BridgeConfig:
    return BridgeConfig(endpoints={"Calculator": CALCULATOR_URL, "Echo": ECHO_URL})


@pytest.fixture
def builder() -> FakeFactoryBuilder:
    return FakeFactoryBuilder()


@pytest.fixture
def lifecycle(builder) -> ChannelLifecycleManager:
    return ChannelLifecycleManager(ChannelFactoryCache(builder))


@pytest.fixture
def bridge(registry, config, lifecycle) -> SoapBridge:
    return SoapBridge(registry, config, lifecycle=lifecycle)


@pytest.fixture
def calculator(registry):
    return registry.get_service("Calculator")


@pytest.fixture
def echo(registry):
    return registry.get_service("Echo")


@pytest.fixture
def wsdl_path() -> Path:
    return FIXTURES_DIR / "calculator.wsdl"
