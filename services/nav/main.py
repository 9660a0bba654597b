from __future__ import annotations

from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings
from .errors import ConfigError, PersistenceError, UpstreamError
from .models import ErrorResponse, HealthResponse, MessageResponse, NavResponse, NavSample, PriceResponse
from .service import QuoteService
from .util import logger


def _error(error: str, details: Optional[str] = None, status_code: int = 500) -> JSONResponse:
    body = ErrorResponse(error=error, details=details).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=body)


def create_app(settings: Optional[Settings] = None, service: Optional[QuoteService] = None) -> FastAPI:
    settings = settings or Settings()
    service = service or QuoteService(settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        await service.aclose()

    app = FastAPI(title="spy-nav-proxy", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.origins,
        allow_methods=["GET", "DELETE"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info(
            {
                "msg": "request",
                "method": request.method,
                "path": request.url.path,
                "origin": request.headers.get("origin", "unknown"),
            }
        )
        return await call_next(request)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            logger.info({"msg": "not_found", "method": request.method, "path": request.url.path})
            return _error("Not Found", status_code=404)
        return _error(str(exc.detail), status_code=exc.status_code)

    @app.get("/", response_model=HealthResponse)
    def health():
        return {"status": "OK"}

    @app.get("/api/spy-nav", response_model=NavResponse, responses={500: {"model": ErrorResponse}})
    @app.get("/api/spy-nav/", include_in_schema=False)
    async def spy_nav():
        try:
            sample = await service.get_nav()
        except ConfigError as e:
            return _error("API key missing", str(e))
        except UpstreamError as e:
            logger.error({"msg": "nav_failed", "symbol": e.symbol, "attempts": e.attempts, "error": e.details})
            return _error("Failed to compute NAV", e.details)
        except Exception as e:
            logger.error({"msg": "nav_failed", "error": str(e)})
            return _error("Failed to compute NAV", str(e) or type(e).__name__)
        return {"nav": sample.nav}

    @app.get("/api/spy-price", response_model=PriceResponse, responses={500: {"model": ErrorResponse}})
    @app.get("/api/spy-price/", include_in_schema=False)
    async def spy_price():
        try:
            quote = await service.get_price()
        except ConfigError as e:
            return _error("API key missing", str(e))
        except UpstreamError as e:
            logger.error({"msg": "price_failed", "symbol": e.symbol, "attempts": e.attempts, "error": e.details})
            return _error(f"Failed to fetch {settings.price_symbol.upper()} price", e.details)
        except Exception as e:
            logger.error({"msg": "price_failed", "error": str(e)})
            return _error(f"Failed to fetch {settings.price_symbol.upper()} price", str(e) or type(e).__name__)
        return {"price": quote.price}

    @app.get("/api/spy-history", response_model=List[NavSample], responses={500: {"model": ErrorResponse}})
    def spy_history():
        try:
            history = service.get_history()
        except PersistenceError as e:
            logger.error({"msg": "history_read_failed", "path": e.path, "error": e.details})
            return _error("Failed to read history", e.details)
        logger.info({"msg": "history_returned", "entries": len(history)})
        return history

    @app.delete("/api/spy-history", response_model=MessageResponse, responses={500: {"model": ErrorResponse}})
    def reset_spy_history():
        try:
            service.reset_history()
        except PersistenceError as e:
            logger.error({"msg": "history_reset_failed", "path": e.path, "error": e.details})
            return _error("Failed to reset history", e.details)
        return {"message": "History reset"}

    return app


app = create_app()
