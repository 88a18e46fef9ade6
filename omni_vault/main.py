from contextlib import asynccontextmanager
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette import status

from omni_vault.routes.vault import router as vault_router
from omni_vault.services.config import VaultConfig
from omni_vault.services.dependencies import build_vault_runtime
from omni_vault.services.errors import (
    DuplicateNameError,
    InvalidInputError,
    S3ServiceError,
    UnauthorizedError,
    VaultLockedError,
    VaultServiceError,
)

logger = logging.getLogger(__name__)


def _ensure_logging() -> None:
    formatter = logging.Formatter("%(levelname)s: %(message)s")
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    else:
        root.setLevel(logging.INFO)
        for handler in root.handlers:
            handler.setFormatter(formatter)


def _error(status_code: int, exc: Exception, headers: Optional[dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": str(exc)}, headers=headers)


def create_app(config: Optional[VaultConfig] = None) -> FastAPI:
    """Build the vault control-plane app.

    Vault state is created in the lifespan, so every start (or restart)
    begins Locked with an empty catalog.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _ensure_logging()
        app.state.vault = build_vault_runtime(config or VaultConfig.from_env())
        logger.info("Vault service started (locked)")
        yield
        app.state.vault = None

    app = FastAPI(title="Omni Vault", lifespan=lifespan)
    app.include_router(vault_router)

    @app.exception_handler(UnauthorizedError)
    async def unauthorized_handler(request: Request, exc: UnauthorizedError) -> JSONResponse:
        return _error(status.HTTP_401_UNAUTHORIZED, exc, headers={"WWW-Authenticate": "Bearer"})

    @app.exception_handler(VaultLockedError)
    async def locked_handler(request: Request, exc: VaultLockedError) -> JSONResponse:
        return _error(status.HTTP_423_LOCKED, exc)

    @app.exception_handler(DuplicateNameError)
    async def duplicate_handler(request: Request, exc: DuplicateNameError) -> JSONResponse:
        return _error(status.HTTP_409_CONFLICT, exc)

    @app.exception_handler(InvalidInputError)
    async def invalid_input_handler(request: Request, exc: InvalidInputError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, exc)

    @app.exception_handler(S3ServiceError)
    async def s3_service_error_handler(request: Request, exc: S3ServiceError) -> JSONResponse:
        """Map cloud-tier failures to 502 without leaking AWS details."""
        return _error(status.HTTP_502_BAD_GATEWAY, exc)

    @app.exception_handler(VaultServiceError)
    async def vault_error_handler(request: Request, exc: VaultServiceError) -> JSONResponse:
        logger.error("Unhandled vault error: %s", exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, exc)

    return app


app = create_app()
