from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from oracle.app.api.credits import router as credits_router
from oracle.app.api.deps import get_ledger_provider
from oracle.app.api.inference import router as inference_router
from oracle.app.api.memory import router as memory_router
from oracle.app.api.users import router as users_router
from oracle.app.core.config import settings
from oracle.app.core.http_client import init_http_client
from oracle.app.core.logging import get_logger, setup_logging
from oracle.app.exceptions import OracleException, ValidationError
from oracle.app.ledger.state import AccessContractStateProvider
from oracle.app.middleware.request_id import RequestIdMiddleware, get_request_id

ENDPOINTS = [
    "GET /health",
    "POST /inference/estimate",
    "POST /inference/authorize",
    "POST /credits/calculate",
    "POST /credits/initial-grant",
    "POST /credits/initial-grant/confirm",
    "POST /memory/update",
    "GET /users/{address}/credits",
    "GET /users/{address}/subscription",
    "GET /users/{address}/has-active-subscription",
    "GET /users/{address}/eligibility",
]


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    setup_logging()
    logger = get_logger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Open the shared HTTP client for ledger RPC and close it on shutdown."""
        async with init_http_client():
            logger.info(
                "Application startup complete",
                extra={
                    "rpc_url": settings.rpc_url,
                    "chain_id": settings.chain_id,
                    "ledger_mock_mode": settings.ledger_mock_mode,
                    "contract_configured": settings.access_contract_configured,
                },
            )
            yield
        logger.info("Application shutdown complete")

    app = FastAPI(
        title="Credit Oracle",
        description="Authorization and billing decisions for inference requests",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Order matters: last added = first executed
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
        max_age=600,
    )
    app.add_middleware(RequestIdMiddleware)

    app.include_router(inference_router)
    app.include_router(credits_router)
    app.include_router(memory_router)
    app.include_router(users_router)

    @app.get("/")
    async def root() -> dict[str, Any]:
        return {
            "status": "ok",
            "service": "Credit Oracle API",
            "hint": "Use /health or documented endpoints",
            "endpoints": ENDPOINTS,
        }

    @app.get("/health")
    async def health() -> dict[str, Any]:
        """Health check with ledger connectivity.

        Never fails: problems are reported as a degraded component.
        """
        health_status: dict[str, Any] = {"status": "ok", "components": {}}

        try:
            ledger = get_ledger_provider()
            if isinstance(ledger, AccessContractStateProvider):
                chain_id = int(await ledger.rpc.call("eth_chainId", []), 16)
                component: dict[str, Any] = {
                    "status": "ok" if chain_id == settings.chain_id else "degraded",
                    "mode": "rpc",
                    "chain_id": chain_id,
                }
            else:
                component = {"status": "ok", "mode": "mock"}
        except Exception as e:
            component = {"status": "error", "error": str(e)[:100]}

        if component["status"] != "ok":
            health_status["status"] = "degraded"
        health_status["components"]["ledger"] = component
        return health_status

    @app.exception_handler(OracleException)
    async def oracle_exception_handler(request: Request, exc: OracleException) -> JSONResponse:
        if exc.status_code >= 500:
            logger.warning(
                f"{type(exc).__name__}: {exc.message}",
                extra={"request_id": get_request_id(request)},
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.error_code, "message": exc.message},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Render malformed payloads with the same envelope as ValidationError."""
        problems = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        ]
        return JSONResponse(
            status_code=ValidationError.status_code,
            content={"error": ValidationError.error_code, "message": "; ".join(problems)},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Log unhandled exceptions; tracebacks never reach the client."""
        request_id = get_request_id(request)
        logger.exception(
            f"Unhandled exception [request_id={request_id}]",
            extra={"request_id": request_id, "exception_type": type(exc).__name__},
        )

        content = {
            "error": "internal_error",
            "message": str(exc) if settings.debug else "Internal server error",
            "request_id": request_id,
        }
        return JSONResponse(status_code=500, content=content)

    return app


# Create the application instance
app = create_app()
