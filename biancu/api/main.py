"""FastAPI application exposing the public JSON API."""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from .. import __version__
from ..config import CONFIG, reload_config
from ..services.errors import AIServiceError, ServiceError
from .routes import api_customizations, auth, bian, companies, data_sources, schemas, single_api, use_cases


load_dotenv()
reload_config()

logger = logging.getLogger(__name__)

app = FastAPI(
    title=os.getenv("API_TITLE", "BIAN-CU Platform API"),
    version=os.getenv("API_VERSION", __version__),
    description=(
        "JSON API for authoring banking use cases and mapping them to BIAN v13 "
        "service domains and APIs. Authenticate with the bearer token issued "
        "after Google sign-in."
    ),
)

_STATUS_CODES = {
    status.HTTP_400_BAD_REQUEST: "VALIDATION_ERROR",
    status.HTTP_401_UNAUTHORIZED: "UNAUTHORIZED",
    status.HTTP_403_FORBIDDEN: "FORBIDDEN",
    status.HTTP_404_NOT_FOUND: "NOT_FOUND",
    status.HTTP_409_CONFLICT: "CONFLICT",
    status.HTTP_502_BAD_GATEWAY: "AI_SERVICE_ERROR",
    status.HTTP_503_SERVICE_UNAVAILABLE: "SERVICE_UNAVAILABLE",
}


def error_response(status_code: int, code: str, message: str, **extra) -> JSONResponse:
    body = {"success": False, "message": message, "error": {"code": code, "message": message, **extra}}
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def _configure_cors(api_app: FastAPI) -> None:
    origins = list(CONFIG.cors_origins) or [CONFIG.frontend_url]
    api_app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


_configure_cors(app)


@app.exception_handler(HTTPException)
def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    response = error_response(exc.status_code, _STATUS_CODES.get(exc.status_code, "ERROR"), message)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RequestValidationError)
def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        "VALIDATION_ERROR",
        "Invalid request data",
        details=[{"loc": list(error["loc"]), "msg": error["msg"], "type": error["type"]} for error in exc.errors()],
    )


@app.exception_handler(ServiceError)
def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
    if isinstance(exc, AIServiceError):
        logger.warning("AI service failure on %s: %s", request.url.path, exc.message)
        return error_response(exc.status_code, exc.code, "The AI service is unavailable, please retry")
    if exc.status_code >= 500:
        logger.error("Service failure on %s: %s", request.url.path, exc.message)
    return error_response(exc.status_code, exc.code, exc.message)


@app.get("/health", tags=["health"])
def healthcheck() -> dict[str, str]:
    """Simple health endpoint for load balancers and smoke tests."""

    return {"status": "ok", "version": __version__, "environment": CONFIG.environment}


app.include_router(auth.router, prefix="/api/v1", tags=["auth"])
app.include_router(use_cases.router, prefix="/api/v1", tags=["use-cases"])
app.include_router(bian.router, prefix="/api/v1", tags=["bian"])
app.include_router(schemas.router, prefix="/api/v1", tags=["schemas"])
app.include_router(data_sources.router, prefix="/api/v1", tags=["data-sources"])
app.include_router(companies.router, prefix="/api/v1", tags=["companies"])
app.include_router(api_customizations.router, prefix="/api/v1", tags=["api-customizations"])
app.include_router(single_api.router, prefix="/api/v1", tags=["single-api"])
