"""
Tests for the FastAPI ingress.
"""

import pytest
from fastapi.testclient import TestClient

from fakes import FakeFactoryBuilder, broken_behaviour, fault_behaviour
from soapbridge.bridge import SoapBridge
from soapbridge.channels import ChannelFactoryCache, ChannelLifecycleManager
from soapbridge.exceptions import BridgeError, ConfigurationError
from soapbridge.factories import create_bridge_app, status_for


def make_client(registry, config, builder) -> TestClient:
    bridge = SoapBridge(registry, config, lifecycle=ChannelLifecycleManager(ChannelFactoryCache(builder)))
    return TestClient(create_bridge_app(bridge, configure_logging=False))


@pytest.fixture
def client(registry, config, builder):
    with make_client(registry, config, builder) as client:
        yield client


class TestBridgeApp:
    """Test HTTP routes."""

    def test_invoke(self, client):
        response = client.post("/api/Calculator/Add", json={"a": 1, "b": 2})

        assert response.status_code == 200
        assert response.json() == {"operation": "Add", "arguments": [1, 2]}

    def test_route_names_are_case_insensitive(self, client):
        response = client.post("/api/echo/echo", json={"A": 1, "B": "x"})

        assert response.status_code == 200
        assert response.json()["operation"] == "EchoPair"

    def test_empty_body_binds_zero_values(self, client):
        response = client.post("/api/Calculator/Add")

        assert response.status_code == 200
        assert response.json()["arguments"] == [0, 0]

    def test_void_operation(self, client):
        response = client.post("/api/Calculator/Reset", json={})

        assert response.status_code == 200
        assert response.json() is None

    @pytest.mark.parametrize(
        "path, body, status, code",
        [
            ("/api/Weather/Forecast", {}, 404, "SERVICE_NOT_FOUND"),
            ("/api/Calculator/Divide", {}, 404, "OPERATION_NOT_FOUND"),
            ("/api/Calculator/Add", {"a": "not-a-number"}, 400, "ARGUMENT_BINDING_ERROR"),
            ("/api/Calculator/Add", [1, 2], 400, "NO_MATCHING_OVERLOAD"),
        ],
    )
    def test_error_mapping(self, client, builder, path, body, status, code):
        response = client.post(path, json=body)

        assert response.status_code == status
        assert response.json()["error_code"] == code
        assert builder.builds == 0

    def test_invalid_json(self, client):
        response = client.post(
            "/api/Calculator/Add", content=b"{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_JSON"

    def test_remote_fault(self, registry, config):
        with make_client(registry, config, FakeFactoryBuilder(fault_behaviour)) as client:
            response = client.post("/api/Calculator/Add", json={"a": 1})

        assert response.status_code == 502
        assert response.json()["error_code"] == "REMOTE_FAULT"

    def test_transport_error(self, registry, config):
        with make_client(registry, config, FakeFactoryBuilder(broken_behaviour)) as client:
            response = client.post("/api/Calculator/Add", json={"a": 1})

        assert response.status_code == 503
        assert response.json()["error_code"] == "TRANSPORT_ERROR"

    def test_catalog(self, client):
        response = client.get("/api")

        assert response.status_code == 200
        assert response.json()["services"]["Calculator"][0] == "Add(a: int, b: int) -> int"

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["services"] == 2

    def test_correlation_id_is_echoed(self, client):
        response = client.post("/api/Calculator/Add", json={}, headers={"X-Correlation-ID": "req-42"})

        assert response.headers["X-Correlation-ID"] == "req-42"

    def test_correlation_id_is_generated(self, client):
        response = client.get("/health")

        assert response.headers["X-Correlation-ID"]

    def test_shutdown_closes_bridge(self, registry, config, builder):
        with make_client(registry, config, builder) as client:
            client.post("/api/Calculator/Add", json={"a": 1})

        assert builder.factories[0].closed


class TestStatusMapping:
    def test_known_and_unknown_codes(self):
        assert status_for(ConfigurationError("missing")) == 500
        assert status_for(BridgeError("odd", error_code="SOMETHING_ELSE")) == 500
