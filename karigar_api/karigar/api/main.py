from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple
from uuid import UUID, uuid4

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from jose import JWTError
from sqlalchemy.exc import IntegrityError

from karigar.core.deps import get_merchant_id
from karigar.core.errors import KarigarError
from karigar.core.logging import configure_logging, correlation_id_var, merchant_id_var
from karigar.core.security import decode_token
from karigar.core.settings import get_app_settings
from karigar.db.run_migrations import main as run_alembic
from karigar.db.seed import seed_all
from karigar.db.session import get_session_maker, merchant_context
from karigar.schemas.common import ErrorInfo, ErrorResponse, MerchantEcho, MessageResponse
from karigar.schemas.realtime import WsEnvelope
from karigar.services.production import ManufacturingService
from karigar.services.realtime import broadcast_manager

# Routers
from karigar.api.routes.auth import router as auth_router
from karigar.api.routes.users import router as users_router
# Domain routers
from karigar.api.routes.master_data import router as masterdata_router
from karigar.api.routes.inventory import router as inventory_router
from karigar.api.routes.procurement import router as procurement_router
from karigar.api.routes.orders import router as orders_router
from karigar.api.routes.production import router as production_router
from karigar.api.routes.catalogues import public_router as public_catalogue_router
from karigar.api.routes.catalogues import router as catalogue_router
from karigar.api.routes.dashboard import router as dashboard_router
from karigar.api.routes.reports import router as reports_router

# Configure structured logging once at import
configure_logging()
logger = logging.getLogger(__name__)

settings = get_app_settings()

openapi_tags = [
    {"name": "Health", "description": "Liveness and merchant header checks."},
    {"name": "Auth", "description": "Merchant sign-up, login and tokens."},
    {"name": "Users", "description": "User administration (admin only)."},
    {"name": "Master Data", "description": "Product configs and bills of materials."},
    {"name": "Inventory", "description": "Raw materials, requirements, finished goods and tags."},
    {"name": "Procurement", "description": "Suppliers, procurement requests and WhatsApp notifications."},
    {"name": "Orders", "description": "Customers, orders and fulfilment."},
    {"name": "Production", "description": "Workers, manufacturing orders and the Kanban board."},
    {"name": "Catalogues", "description": "Shareable catalogues and visitor order requests."},
    {"name": "Public Catalogues", "description": "Unauthenticated catalogue view and order request."},
    {"name": "Dashboard", "description": "Summary figures, critical stock and the activity log."},
    {"name": "Reports", "description": "Exportable business reports (CSV/Excel/PDF)."},
    {"name": "WebSocket", "description": "WebSocket usage, endpoints, and connection details."},
]

app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    openapi_tags=openapi_tags,
)

# CORS - avoid wildcard with credentials
cors_allow_credentials = settings.CORS_ALLOW_CREDENTIALS
if settings.CORS_ORIGINS == ["*"] and cors_allow_credentials:
    logger.warning("CORS_ALLOW_CREDENTIALS=True with '*' origins is not permitted; disabling credentials.")
    cors_allow_credentials = False

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=cors_allow_credentials,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """
    Enrich request context with correlation_id and merchant_id for logging and error responses.
    Adds 'X-Correlation-ID' to every response.
    """
    corr = request.headers.get("X-Correlation-ID") or request.headers.get("X-Request-ID") or str(uuid4())
    merchant = request.headers.get("X-Merchant-ID")
    token_corr = correlation_id_var.set(corr)
    token_merchant = merchant_id_var.set(merchant)
    request.state.correlation_id = corr
    request.state.merchant_id = merchant

    logger.info("Incoming request %s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
    finally:
        correlation_id_var.reset(token_corr)
        merchant_id_var.reset(token_merchant)

    response.headers["X-Correlation-ID"] = corr
    return response


def _build_error_response(
    request: Request,
    status_code: int,
    error_type: str,
    message: str,
    details: Any | None = None,
) -> JSONResponse:
    """Build a standardized ErrorResponse JSONResponse."""
    err = ErrorResponse(
        status=status_code,
        error=ErrorInfo(type=error_type, message=message, details=details),
        correlation_id=getattr(request.state, "correlation_id", None),
        merchant_id=getattr(request.state, "merchant_id", None),
        path=request.url.path,
        method=request.method,
        timestamp=datetime.now(tz=timezone.utc),
    )
    return JSONResponse(status_code=status_code, content=err.model_dump(mode="json"))


@app.exception_handler(KarigarError)
async def domain_exception_handler(request: Request, exc: KarigarError):
    """Map business errors raised by services onto their status and type code."""
    logger.info("%s: %s", exc.error_type, exc.message)
    return _build_error_response(
        request=request,
        status_code=exc.status_code,
        error_type=exc.error_type,
        message=exc.message,
        details=exc.details,
    )


@app.exception_handler(IntegrityError)
async def integrity_exception_handler(request: Request, exc: IntegrityError):
    """Unique or foreign key violations that slipped past service checks."""
    logger.warning("Integrity error: %s", exc.orig)
    return _build_error_response(
        request=request,
        status_code=409,
        error_type="conflict",
        message="The change conflicts with existing data",
        details=None,
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """
    Global handler for HTTPException to produce a standardized error envelope.
    """
    detail = exc.detail if isinstance(exc.detail, str) else "HTTP Error"
    return _build_error_response(
        request=request,
        status_code=exc.status_code,
        error_type="http_error",
        message=str(detail),
        details=None if isinstance(exc.detail, str) else exc.detail,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Global handler for request validation errors with a standard structure.
    """
    return _build_error_response(
        request=request,
        status_code=422,
        error_type="validation_error",
        message="Request validation failed",
        details=_jsonable_errors(exc),
    )


def _jsonable_errors(exc: RequestValidationError) -> list:
    """Validation errors without the raw exception objects pydantic may attach under 'ctx'."""
    errors = []
    for err in exc.errors():
        item = {k: v for k, v in err.items() if k != "ctx"}
        if "ctx" in err:
            item["ctx"] = {k: str(v) for k, v in err["ctx"].items()}
        errors.append(item)
    return errors


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler to avoid leaking stack traces and to return a structured error.
    """
    logger.exception("Unhandled error processing request")
    return _build_error_response(
        request=request,
        status_code=500,
        error_type="internal_error",
        message="An unexpected error occurred",
        details=None,
    )


@app.on_event("startup")
async def on_startup() -> None:
    """
    Run migrations and optional seeding on service startup.

    Failures are logged and the service still starts; readiness is left to the health probes.
    """
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        try:
            logger.info("Running Alembic migrations: upgrade head")
            await run_in_threadpool(run_alembic, ["upgrade", "head"])
            logger.info("Migrations completed.")
        except Exception as exc:
            logger.exception("Migration step failed: %s", exc)

    if settings.AUTO_SEED:
        try:
            logger.info("Running database seeding...")
            await seed_all()
            logger.info("Seeding completed.")
        except Exception as exc:
            logger.exception("Seeding step failed: %s", exc)


# Build API v1 router and include sub-routers
api_v1 = APIRouter(prefix="/api/v1")


# PUBLIC_INTERFACE
@api_v1.get(
    "/health",
    response_model=MessageResponse,
    summary="Health Check",
    tags=["Health"],
)
def health_check() -> MessageResponse:
    """
    Basic liveness health check endpoint.

    Returns:
        MessageResponse: Simple confirmation that the service is running.
    """
    return MessageResponse(message="Healthy")


# PUBLIC_INTERFACE
@api_v1.get(
    "/health/merchant",
    response_model=MerchantEcho,
    summary="Merchant Health Echo",
    description="Echoes the merchant context to verify header handling.",
    tags=["Health"],
)
async def merchant_health_echo(merchant_id: UUID = Depends(get_merchant_id)) -> MerchantEcho:
    """
    Echo the provided merchant ID.

    Parameters:
        X-Merchant-ID (header): UUID of the merchant.
    """
    return MerchantEcho(merchant_id=merchant_id)


# PUBLIC_INTERFACE
@api_v1.get(
    "/websocket-info",
    response_model=Dict[str, Any],
    summary="WebSocket Usage Information",
    description="Connection details for the Kanban WebSocket, which is not part of the OpenAPI schema.",
    tags=["WebSocket"],
)
def websocket_info() -> Dict[str, Any]:
    """Describe how to connect to the WebSocket endpoint of this service."""
    return {
        "usage": (
            "Connect with a valid access token as the 'token' query parameter and include the "
            "'X-Merchant-ID' header. Messages are JSON envelopes: "
            "{ type: string, payload: object, at: ISO-8601, user_id?: string }."
        ),
        "security": {
            "token": "JWT must contain 'sub' (user id) and 'merchant_id' matching the X-Merchant-ID header.",
            "header": "X-Merchant-ID: UUID",
            "close_codes": {"4401": "missing or invalid token", "4403": "merchant mismatch"},
        },
        "endpoints": [
            {
                "path": "/ws/kanban",
                "summary": "Kanban card movements of the merchant (server push).",
                "query": ["token"],
                "headers": ["X-Merchant-ID"],
                "messages": {
                    "client_to_server": ["ping"],
                    "server_to_client": ["kanban.snapshot", "kanban.card.created", "kanban.card.moved"],
                },
            }
        ],
    }


# Include all routers under /api/v1
api_v1.include_router(auth_router)
api_v1.include_router(users_router)
api_v1.include_router(masterdata_router)
api_v1.include_router(inventory_router)
api_v1.include_router(procurement_router)
api_v1.include_router(orders_router)
api_v1.include_router(production_router)
api_v1.include_router(catalogue_router)
api_v1.include_router(public_catalogue_router)
api_v1.include_router(dashboard_router)
api_v1.include_router(reports_router)

# Attach api_v1 to app
app.include_router(api_v1)


def _ws_claims(token: Optional[str], merchant_id: Optional[str]) -> Tuple[Optional[int], Optional[str]]:
    """
    Check the WebSocket credentials.

    Returns:
        (close_code, user_id): close_code is None when the connection may proceed.
    """
    if not token or not merchant_id:
        return 4401, None
    try:
        claims = decode_token(token)
    except JWTError:
        return 4401, None
    if claims.get("type") != "access" or not claims.get("sub"):
        return 4401, None
    if str(claims.get("merchant_id")) != str(merchant_id):
        return 4403, None
    return None, str(claims["sub"])


async def _kanban_snapshot(merchant_id: str) -> WsEnvelope:
    async with get_session_maker()() as session:
        async with merchant_context(session, merchant_id):
            board = await ManufacturingService(session).board()
    return WsEnvelope(type="kanban.snapshot", payload={"totals": board.totals})


# PUBLIC_INTERFACE
@app.websocket("/ws/kanban")
async def ws_kanban(websocket: WebSocket):
    """
    WebSocket endpoint for real-time Kanban updates.

    Security:
      - Query param 'token' must be a valid access JWT.
      - Header 'X-Merchant-ID' must match the token's merchant_id.
    Messages:
      - Server -> Client: 'kanban.snapshot' on connect, then 'kanban.card.created' / 'kanban.card.moved'.
      - Client -> Server: 'ping' is answered with 'pong'; other messages are ignored.
    """
    await websocket.accept()
    merchant_id = websocket.headers.get("x-merchant-id")
    close_code, user_id = _ws_claims(websocket.query_params.get("token"), merchant_id)
    if close_code is not None:
        await websocket.close(code=close_code)
        return

    topic = broadcast_manager.kanban_topic(merchant_id)
    await broadcast_manager.connect(topic, websocket)
    logger.info("User %s subscribed to %s", user_id, topic)

    try:
        env = await _kanban_snapshot(merchant_id)
        await websocket.send_json(env.model_dump(mode="json"))
    except Exception:
        logger.exception("Failed to send initial kanban snapshot")

    try:
        while True:
            msg = await websocket.receive_text()
            if msg and msg.strip().lower() == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        await broadcast_manager.disconnect(topic, websocket)
    except Exception:
        logger.exception("Error on ws_kanban connection")
        await broadcast_manager.disconnect(topic, websocket)
        await websocket.close()
