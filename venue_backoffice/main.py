from typing import Callable, Optional
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import logging
import os

from venue_backoffice.config import load_config
from venue_backoffice.middleware.session_auth import SessionAuthMiddleware
from venue_backoffice.services.errors import BackofficeError
from venue_backoffice.utils.auth import decode_supabase_jwt, refresh_supabase_token
from venue_backoffice.utils.cache import Cache
from venue_backoffice.utils.database_manager import DatabaseManager
from venue_backoffice.utils.supabase_client import SupabaseClient

logger = logging.getLogger(__name__)


async def backoffice_error_handler(request: Request, exc: BackofficeError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


def create_app(
    backend=None,
    token_decoder: Optional[Callable[[str], Optional[dict]]] = None,
    token_refresher: Optional[Callable[[str], Optional[dict]]] = None,
) -> FastAPI:
    """
    Build the application around one backend.

    ``backend`` defaults to the configured Supabase project; the token
    callables default to JWKS verification and the Supabase refresh endpoint.
    """
    config = load_config()
    logging.basicConfig(level=config.LOG_LEVEL)

    app = FastAPI(title="Venue Back Office")

    app.state.backend = backend if backend is not None else SupabaseClient.from_config(config)
    app.state.database = DatabaseManager(app.state.backend, Cache(), config.PRODUCT_IMAGES_BUCKET)
    app.state.token_decoder = token_decoder or decode_supabase_jwt
    app.state.token_refresher = token_refresher or refresh_supabase_token

    app.add_middleware(SessionAuthMiddleware)
    app.add_exception_handler(BackofficeError, backoffice_error_handler)

    from venue_backoffice.routes import (
        home, login, health, venues, user_management, menu, staff, functions
    )

    app.include_router(health.router)
    app.include_router(login.router)
    app.include_router(home.router)
    app.include_router(venues.router)
    app.include_router(user_management.router)
    app.include_router(menu.router)
    app.include_router(staff.router)
    app.include_router(functions.router)

    logger.info("All routes loaded successfully")
    return app


if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(create_app(), host="0.0.0.0", port=port)
