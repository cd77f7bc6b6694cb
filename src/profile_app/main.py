import logging
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Add the 'src' directory to the Python path to allow importing 'codex_profiles'
sys.path.append(str(Path(__file__).resolve().parent.parent))

from codex_profiles import CodexProfileManager, ProfileError, load_settings
from profile_app.profile_errors import profile_error_response
from profile_app.request_logger import log_requests
from profile_app.routers import auth_router, legacy_refresh_router
from profile_app.server_config import load_cors_policy, load_server_bind

# Configure logging
logging.basicConfig(level=logging.INFO)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("uvicorn").setLevel(logging.WARNING)

# Load environment variables from .env file
load_dotenv()

API_PREFIX = "/api"


def create_app(manager: Optional[CodexProfileManager] = None) -> FastAPI:
    """
    Build the API application.

    A prebuilt manager may be passed in (tests use one wired to a mock
    transport); otherwise one is created from the environment at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Create the profile manager with the app's lifespan."""
        app.state.profile_manager = manager or CodexProfileManager(load_settings())
        settings = app.state.profile_manager.settings
        logging.info(f"Profile manager ready (auth dir: {settings.auth_dir}).")
        yield

    app = FastAPI(title="codex-profiles", lifespan=lifespan)

    cors = load_cors_policy()
    if cors.enabled:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors.origins,
            allow_credentials=cors.credentials,
            allow_methods=cors.methods,
            allow_headers=cors.headers,
        )
    app.middleware("http")(log_requests)

    @app.exception_handler(ProfileError)
    async def handle_profile_error(request: Request, exc: ProfileError):
        logging.warning(f"{request.method} {request.url.path} failed: {exc.message}")
        return profile_error_response(exc)

    @app.get("/")
    def read_root():
        return {"status": "ok"}

    app.include_router(auth_router, prefix=API_PREFIX)
    app.include_router(legacy_refresh_router, prefix=API_PREFIX)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    host, port = load_server_bind()
    logging.info(f"codex-profiles server listening on http://{host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level=os.getenv("LOG_LEVEL", "info").lower())
