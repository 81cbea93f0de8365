# app/main.py
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.core.config import settings
from app.core.version import VERSION
from app.api.endpoints import gateway, translate
from app.settlement import audit
from app.settlement.errors import GatewayError, MissingBodyError
from app.settlement.guard import get_client_ip
from app.settlement.service import SettlementService
from app.settlement.types import now_sec
import logging

# Configure basic logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    """Render protocol rejections as {"ok": false, "error": code}."""
    return JSONResponse(status_code=exc.status_code, content={"ok": False, "error": exc.code})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Map malformed request bodies onto the missing-body code."""
    logger.warning(f"Malformed request to {request.url.path}: {len(exc.errors())} errors")
    return await gateway_error_handler(request, MissingBodyError())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected faults and answer with a generic server-error."""
    logger.error(f"Unexpected error handling {request.url.path}: {exc}", exc_info=exc)
    audit.log_error(get_client_ip(request), type(exc).__name__, str(exc), context={"path": request.url.path})
    return await gateway_error_handler(request, GatewayError())


def create_app(service: Optional[SettlementService] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        service: Settlement service to serve. Built from settings when omitted,
            which fails fast on a misconfigured gateway seed.
    """
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=VERSION,
        openapi_url=f"{settings.API_PREFIX}/openapi.json"
    )
    app.state.settlement = service or SettlementService.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(gateway.router, prefix=settings.API_PREFIX, tags=["settlement"])
    app.include_router(translate.router, prefix=settings.API_PREFIX, tags=["resources"])

    @app.get("/health", summary="Health Check", tags=["default"])
    def health():
        """ Basic health check endpoint. """
        return {"ok": True, "t": now_sec()}

    logger.info(f"CORS origins: {', '.join(settings.cors_origin_list)}")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
