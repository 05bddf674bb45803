"""Achievo FastAPI application."""
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.authentication import AuthenticationMiddleware

from achievo import __version__
from achievo.api import admin, auth, certificates, health, nft, payments, rewards, roles, validation
from achievo.audit.logger import AuditLogger
from achievo.auth.identity import WalletHeaderBackend
from achievo.clients.content import PinataClient
from achievo.clients.index import IndexStore
from achievo.clients.ledger import LedgerClient
from achievo.config import (
    AUDIT_ENABLED,
    CONTRACT_NAME,
    DATABASE_URL,
    DEFAULT_GAS,
    LEDGER_NETWORK_ID,
    LEDGER_RPC_URL,
    LEDGER_SIGNER_TOKEN,
    LEDGER_SIGNER_URL,
    LEDGER_TIMEOUT_SECONDS,
    LEGACY_ADMIN_ACCOUNTS,
    PAYMENT_GAS,
    PAYMENT_MODE,
    PINATA_API_KEY,
    PINATA_BASE_URL,
    PINATA_GATEWAY_URL,
    PINATA_SECRET_API_KEY,
    PINATA_TIMEOUT_SECONDS,
    REWARD_DEFAULT_AMOUNT,
    ROLE_UNAVAILABLE_POLICY,
    SERVICE_PORT,
    validate_config,
)
from achievo.core.exceptions import AchievoError
from achievo.core.logging import configure_logging
from achievo.db.session import build_engine, build_session_factory, init_database
from achievo.services import build_services

configure_logging()
log = logging.getLogger("achievo")

AUTH_EXEMPT_PATHS = {"/healthz", "/version", "/docs", "/openapi.json"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build every store client and orchestrator once, close them on shutdown."""
    log.info("Starting Achievo service...")

    for problem in validate_config():
        log.warning(f"Config: {problem}")

    try:
        engine = build_engine(DATABASE_URL)
        init_database(engine)
        index = IndexStore(build_session_factory(engine))

        ledger = LedgerClient(
            rpc_url=LEDGER_RPC_URL,
            signer_url=LEDGER_SIGNER_URL,
            contract_id=CONTRACT_NAME,
            network_id=LEDGER_NETWORK_ID,
            timeout=LEDGER_TIMEOUT_SECONDS,
            default_gas=DEFAULT_GAS,
            signer_token=LEDGER_SIGNER_TOKEN,
        )
        content = PinataClient(
            api_key=PINATA_API_KEY,
            secret_api_key=PINATA_SECRET_API_KEY,
            base_url=PINATA_BASE_URL,
            gateway_url=PINATA_GATEWAY_URL,
            timeout=PINATA_TIMEOUT_SECONDS,
        )

        app.state.services = build_services(
            ledger,
            content,
            index,
            AuditLogger(enabled=AUDIT_ENABLED),
            allow_set=LEGACY_ADMIN_ACCOUNTS,
            unavailable_policy=ROLE_UNAVAILABLE_POLICY,
            payment_mode=PAYMENT_MODE,
            payment_gas=PAYMENT_GAS,
            reward_default_amount=REWARD_DEFAULT_AMOUNT,
        )
        log.info("Achievo service started")
    except Exception as e:
        log.error(f"Failed to initialize services: {e}")
        raise

    yield

    log.info("Shutting down Achievo service...")
    await app.state.services.aclose()
    engine.dispose()
    log.info("Achievo service stopped")


app = FastAPI(
    title="Achievo",
    version=__version__,
    description="Certificate lifecycle service across ledger, IPFS and index",
    lifespan=lifespan,
)


# -----------------------------------------------------------------------------
# Authentication Middleware
# -----------------------------------------------------------------------------

app.add_middleware(
    AuthenticationMiddleware,
    backend=WalletHeaderBackend(exempt_paths=AUTH_EXEMPT_PATHS),
)


# -----------------------------------------------------------------------------
# API Routers
# -----------------------------------------------------------------------------

app.include_router(health.router)
app.include_router(auth.router, prefix="/api")
app.include_router(admin.router, prefix="/api")
app.include_router(certificates.router, prefix="/api")
app.include_router(nft.router, prefix="/api")
app.include_router(rewards.router, prefix="/api")
app.include_router(roles.router, prefix="/api")
app.include_router(payments.router, prefix="/api")
app.include_router(validation.router, prefix="/api")


@app.middleware("http")
async def request_logging(request: Request, call_next):
    """Log all requests with timing."""
    start = time.time()
    response = await call_next(request)
    duration_ms = int((time.time() - start) * 1000)

    log.info(
        f"request_complete status={response.status_code} duration_ms={duration_ms}",
        extra={
            "route": request.url.path,
            "method": request.method,
            "status": response.status_code,
        },
    )
    return response


# -----------------------------------------------------------------------------
# Error Handlers
# -----------------------------------------------------------------------------

@app.exception_handler(AchievoError)
async def achievo_error_handler(request: Request, exc: AchievoError):
    """Render domain errors as ``{"error": code, "detail": message}``."""
    if exc.status_code >= 500:
        log.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message} {exc.context}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Report malformed requests with one ``{field, code}`` entry per problem."""
    fields = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        code = "required" if error.get("type") == "missing" else error.get("type", "invalid")
        fields.append({"field": ".".join(loc) or "body", "code": code})
    return JSONResponse(
        status_code=400,
        content={"error": "validation_error", "detail": "Invalid request", "fields": fields},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    code = "not_found" if exc.status_code == 404 else "http_error"
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": code, "detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    log.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"error": "internal_error", "detail": "Internal server error"},
    )


def run() -> None:
    """Serve the app with uvicorn on ``ACHIEVO_PORT``."""
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=SERVICE_PORT, log_config=None)


if __name__ == "__main__":
    run()
