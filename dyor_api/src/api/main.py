from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict
from uuid import UUID, uuid4

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi import WebSocket, WebSocketDisconnect
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from jose import JWTError

from src.core.errors import DomainError
from src.core.logging import configure_logging, correlation_id_var, user_id_var
from src.core.security import decode_token
from src.core.settings import get_app_settings
from src.db.run_migrations import main as run_alembic
from src.db.seed import seed_all
from src.db.session import dispose_engine, session_scope
from src.repositories.notifications import NotificationRepository
from src.repositories.users import UserRepository
from src.schemas.common import ErrorInfo, ErrorResponse, MessageResponse
from src.schemas.realtime import WsEnvelope
from src.services.realtime import broadcast_manager
from src.services.scheduler import job_scheduler

# Routers
from src.api.routes.admin import router as admin_router
from src.api.routes.auth import router as auth_router
from src.api.routes.comments import router as comments_router
from src.api.routes.feed import router as feed_router
from src.api.routes.gamification import router as gamification_router
from src.api.routes.notifications import router as notifications_router
from src.api.routes.tips import router as tips_router
from src.api.routes.token_calls import router as token_calls_router
from src.api.routes.tokens import router as tokens_router
from src.api.routes.users import router as users_router
from src.api.routes.wallets import router as wallets_router
from src.api.routes.watchlist import router as watchlist_router

settings = get_app_settings()

# Configure structured logging once at import
configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "Health", "description": "Liveness probe."},
    {"name": "Auth", "description": "Wallet sign-in and session endpoints."},
    {"name": "Users", "description": "Profiles, statistics and follows."},
    {"name": "Wallets", "description": "Connecting and verifying Solana wallets."},
    {"name": "Tokens", "description": "Token metadata and Birdeye market data."},
    {"name": "Comments", "description": "Threaded token discussions and votes."},
    {"name": "Token Calls", "description": "Price predictions and their verification results."},
    {"name": "Gamification", "description": "Streaks, reputation, leaderboards and badges."},
    {"name": "Feed", "description": "Activity of followed users."},
    {"name": "Notifications", "description": "In-app notifications and delivery preferences."},
    {"name": "Watchlist", "description": "Watchlisted tokens and token-gated folders."},
    {"name": "Tips", "description": "On-chain $DYORHUB tips between users."},
    {"name": "Admin", "description": "Moderator endpoints."},
    {
        "name": "WebSocket",
        "description": "WebSocket usage, endpoints, and connection details.",
    },
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
    Enrich request context with a correlation_id for logging and error responses.
    Adds 'X-Correlation-ID' to every response.
    """
    corr = request.headers.get("X-Correlation-ID") or request.headers.get("X-Request-ID") or str(uuid4())
    token_corr = correlation_id_var.set(corr)
    token_user = user_id_var.set(None)
    request.state.correlation_id = corr

    logger.info("Incoming request %s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
    finally:
        correlation_id_var.reset(token_corr)
        user_id_var.reset(token_user)

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
        user_id=user_id_var.get(),
        path=request.url.path,
        method=request.method,
        timestamp=datetime.now(tz=timezone.utc),
    )
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(status_code=status_code, content=err.model_dump(mode="json"), headers=headers)


@app.exception_handler(DomainError)
async def domain_exception_handler(request: Request, exc: DomainError):
    """
    Render typed service errors (not found, conflict, upstream failures, ...) into the error envelope.
    """
    if exc.status_code >= 500:
        logger.warning("%s: %s", exc.error_type, exc.message)
    return _build_error_response(
        request=request,
        status_code=exc.status_code,
        error_type=exc.error_type,
        message=exc.message,
        details=exc.details,
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
        details=exc.errors(),
    )


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
    Run migrations, optional seeding and start the background scheduler.

    Seeding and the scheduler are controlled by settings.
    """
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        try:
            logger.info("Running Alembic migrations: upgrade head")
            # env.py drives its own event loop, so it must not run on this one
            await asyncio.to_thread(run_alembic, ["upgrade", "head"])
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

    if settings.ENABLE_SCHEDULER:
        job_scheduler.start()


@app.on_event("shutdown")
async def on_shutdown() -> None:
    """Stop scheduled jobs and release database connections."""
    job_scheduler.shutdown()
    await dispose_engine()


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
    "/websocket-info",
    response_model=Dict[str, Any],
    summary="WebSocket Usage Information",
    description="Provides connection details for the notifications WebSocket endpoint.",
    tags=["WebSocket"],
)
def websocket_info() -> Dict[str, Any]:
    """
    Describe how to connect to WebSocket endpoints in this service.

    Returns:
        JSON object with usage notes and endpoints list describing query params and message format.
    """
    return {
        "usage": (
            "Connect with a valid access JWT as a 'token' query parameter. "
            "Message format is JSON with fields: { type: string, payload: object, at: ISO-8601, user_id?: string }."
        ),
        "security": {
            "token": "JWT issued by /api/v1/auth/wallet/login or /api/v1/auth/wallet/signup; 'sub' is the user id.",
        },
        "endpoints": [
            {
                "path": "/ws/notifications",
                "summary": "Real-time notifications of the connected user (server push).",
                "query": ["token"],
                "messages": {
                    "client_to_server": ["ping"],
                    "server_to_client": ["notification.new", "notification.unread_count"],
                },
            }
        ],
        "notes": "WebSocket endpoints are not represented in OpenAPI schema; refer to this endpoint for usage.",
    }


# Include all routers under /api/v1
api_v1.include_router(auth_router)
api_v1.include_router(users_router)
api_v1.include_router(wallets_router)
api_v1.include_router(tokens_router)
api_v1.include_router(comments_router)
api_v1.include_router(token_calls_router)
api_v1.include_router(gamification_router)
api_v1.include_router(feed_router)
api_v1.include_router(notifications_router)
api_v1.include_router(watchlist_router)
api_v1.include_router(tips_router)
api_v1.include_router(admin_router)

# Attach api_v1 to app
app.include_router(api_v1)


async def _authenticate_ws(websocket: WebSocket) -> UUID:
    """
    Validate the 'token' query param of an accepted WebSocket and return the user id.

    Raises:
        WebSocketDisconnect (after closing with 4401) if the token or user is invalid.
    """
    token = websocket.query_params.get("token")
    user_id: UUID | None = None
    if token:
        try:
            claims = decode_token(token)
            if claims.get("type") == "access":
                user_id = UUID(str(claims.get("sub")))
        except (JWTError, ValueError):
            user_id = None

    if user_id is not None:
        async with session_scope() as session:
            if await UserRepository(session).get_user_by_id(user_id) is None:
                user_id = None

    if user_id is None:
        await websocket.close(code=4401)
        raise WebSocketDisconnect(code=4401)
    return user_id


# PUBLIC_INTERFACE
@app.websocket("/ws/notifications")
async def ws_notifications(websocket: WebSocket):
    """
    WebSocket endpoint for real-time notifications.

    Security:
      - Query param 'token' must be a valid access JWT of an existing user.
    Messages:
      - Server -> Client: 'notification.new' payload=NotificationRead,
        'notification.unread_count' payload={unread_count}
      - Client -> Server: optional 'ping' to keepalive; other messages ignored.
    """
    await websocket.accept()
    try:
        user_id = await _authenticate_ws(websocket)
    except WebSocketDisconnect:
        return

    topic = broadcast_manager.notifications_topic(user_id)
    await broadcast_manager.connect(topic, websocket)

    # Send the current unread count on connect
    try:
        async with session_scope() as session:
            unread = await NotificationRepository(session).unread_count(user_id)
        env = WsEnvelope(type="notification.unread_count", payload={"unread_count": unread}, user_id=user_id)
        await websocket.send_json(env.model_dump(mode="json"))
    except Exception:
        logger.exception("Failed to send initial unread count")

    try:
        while True:
            msg = await websocket.receive_text()
            if msg and msg.lower() == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        await broadcast_manager.disconnect(topic, websocket)
    except Exception:
        logger.exception("Error on ws_notifications connection")
        await broadcast_manager.disconnect(topic, websocket)
        await websocket.close()
