# src/repairdesk/main.py
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import Optional
import logging

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()

from .auth import AuthMiddleware, SESSION_COOKIE, SessionStore
from .config import RepairDeskConfig, get_config
from .core.container import AppContext
from .core.exceptions import ConfigurationError
from .core.models import UserRole
from .core.ports.database import EquipmentGateway
from .core.ports.storage import KeyValueStore
from .domains.equipment import router as equipment_router
from .domains.repair_status import router as repair_status_router
from .infrastructure.connectivity import ConnectivityMonitor
from .infrastructure.supabase_client import REQUIRED_VARIABLES

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


class LoginRequest(BaseModel):
    role: UserRole
    password: Optional[str] = None


def create_app(
    config: Optional[RepairDeskConfig] = None,
    gateway: Optional[EquipmentGateway] = None,
    store: Optional[KeyValueStore] = None,
    monitor: Optional[ConnectivityMonitor] = None,
) -> FastAPI:
    """
    Build the RepairDesk API.

    Adapters left as None are built from configuration at startup.
    """
    config = config or get_config()
    configure_logging(config.log_level)

    app = FastAPI(title="RepairDesk - Equipment Repair Tracking")
    app.state.config = config
    app.state.sessions = SessionStore(config.auth)
    app.state.context = AppContext(config, gateway=gateway, store=store, monitor=monitor)
    app.state.config_error = None

    # Add authentication middleware
    app.add_middleware(AuthMiddleware)

    @app.middleware("http")
    async def configuration_guard(request: Request, call_next):
        """Answer 503 everywhere while required configuration is missing."""
        error: Optional[ConfigurationError] = request.app.state.config_error
        if error is not None:
            return JSONResponse(
                {
                    "error": "Configuration Missing",
                    "detail": str(error),
                    "required": REQUIRED_VARIABLES,
                    "missing": error.missing,
                },
                status_code=503,
            )
        return await call_next(request)

    @app.exception_handler(Exception)
    async def unhandled_exception(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.url.path}: {exc}")
        return JSONResponse({"error": "Internal server error"}, status_code=500)

    @app.on_event("startup")
    async def startup():
        try:
            await app.state.context.start()
        except ConfigurationError as e:
            app.state.config_error = e
            logger.error(f"❌ Configuration Missing: set {', '.join(REQUIRED_VARIABLES)}")

    @app.on_event("shutdown")
    async def shutdown():
        await app.state.context.stop()

    # -------------------------
    # Authentication Routes
    # -------------------------

    @app.post("/auth/login")
    async def do_login(request: Request, body: LoginRequest):
        """Process login."""
        sessions: SessionStore = request.app.state.sessions
        if not sessions.check_credentials(body.role, body.password):
            return JSONResponse({"error": "Invalid password"}, status_code=401)

        token = sessions.create_session(body.role, request.headers.get("user-agent", ""))
        response = JSONResponse({"role": body.role.value})
        response.set_cookie(
            key=SESSION_COOKIE,
            value=token,
            httponly=True,
            max_age=60 * 60 * config.auth.session_duration_hours,
            samesite="lax",
        )
        return response

    @app.post("/auth/logout")
    async def logout(request: Request):
        """Logout and destroy session."""
        request.app.state.sessions.destroy_session(request.cookies.get(SESSION_COOKIE))
        response = JSONResponse({"ok": True})
        response.delete_cookie(SESSION_COOKIE)
        return response

    @app.get("/health")
    async def health(request: Request):
        engine = request.app.state.context.engine
        return {
            "status": "ok",
            "online": engine.is_online if engine else False,
            "pending": engine.queue.pending_count if engine else 0,
        }

    app.include_router(equipment_router)
    app.include_router(repair_status_router)

    return app


app = create_app()
