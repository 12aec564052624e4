"""
FastAPI ingress for soapbridge.

Exposes every registered service as ``POST {prefix}/{service}/{operation}``
with a JSON body, plus a catalog of services and a health endpoint.
"""

import json
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..bridge import SoapBridge
from ..config import BridgeConfig
from ..exceptions import BridgeError
from ..logger import LogConfig, get_logger, set_correlation_id, setup_logging

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"
INVALID_JSON = "INVALID_JSON"

STATUS_BY_ERROR_CODE = {
    "SERVICE_NOT_FOUND": 404,
    "OPERATION_NOT_FOUND": 404,
    "NO_MATCHING_OVERLOAD": 400,
    "ARGUMENT_BINDING_ERROR": 400,
    INVALID_JSON: 400,
    "CONFIGURATION_ERROR": 500,
    "REMOTE_FAULT": 502,
    "TRANSPORT_ERROR": 503,
}


def status_for(error: BridgeError) -> int:
    """HTTP status for a bridge error; unknown codes map to 500."""
    return STATUS_BY_ERROR_CODE.get(error.error_code, 500)


def error_response(error: BridgeError) -> JSONResponse:
    return JSONResponse(status_code=status_for(error), content=error.to_dict())


def create_bridge_app(
    bridge: SoapBridge,
    config: BridgeConfig | None = None,
    configure_logging: bool = True,
) -> FastAPI:
    """
    Create a FastAPI application fronting a SoapBridge.

    Args:
        bridge: Bridge that performs the calls; closed on application shutdown
        config: Configuration (defaults to the bridge's configuration)
        configure_logging: Set up structured logging from the configuration

    Returns:
        Configured FastAPI application
    """
    if config is None:
        config = bridge.config

    if configure_logging:
        setup_logging(
            LogConfig(
                service_name=config.service.name,
                service_version=config.service.version,
                level=config.observability.log_level,
                format_type=config.observability.log_format,
            )
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Bridge starting", services=bridge.registry.service_names)
        yield
        await bridge.close()
        logger.info("Bridge stopped")

    app = FastAPI(
        title=config.service.name,
        version=config.service.version,
        lifespan=lifespan,
    )
    prefix = config.api.prefix

    @app.middleware("http")
    async def correlation_middleware(request: Request, call_next):
        correlation_id = set_correlation_id(request.headers.get(CORRELATION_HEADER))
        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response

    @app.get("/health", include_in_schema=False)
    async def health_endpoint():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "service": config.service.name,
            "version": config.service.version,
            "services": len(bridge.registry),
        }

    @app.get(prefix or "/")
    async def catalog_endpoint():
        """List bridged services and their operation signatures."""
        return {"services": bridge.catalog()}

    @app.post(prefix + "/{service}/{operation}")
    async def invoke_endpoint(service: str, operation: str, request: Request):
        """Invoke a bridged operation with the JSON request body."""
        body = await request.body()
        try:
            document = json.loads(body) if body.strip() else {}
        except ValueError as e:
            return error_response(
                BridgeError(
                    "Request body is not valid JSON",
                    error_code=INVALID_JSON,
                    details={"reason": str(e)},
                )
            )

        result = await bridge.invoke(service, operation, document)
        if not result.ok:
            return error_response(result.error)
        return JSONResponse(content=result.value)

    app.state.config = config
    app.state.bridge = bridge

    logger.info("FastAPI bridge app created", prefix=prefix or "/")
    return app
