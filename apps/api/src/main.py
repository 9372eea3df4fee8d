from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging, time

from config import settings
from api.responses import method_not_allowed, not_found
from api.v1.router import router as v1_router
from services.weather import weather_service

logger = logging.getLogger("weatherstation.api")
if not logger.handlers:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

def create_app() -> FastAPI:
    app = FastAPI(title=settings.app_name, version=settings.app_version)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["content-type", "authorization"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        dur_ms = (time.perf_counter() - start) * 1000.0
        logger.info("%s %s -> %s (%.1f ms)", request.method, request.url.path, response.status_code, dur_ms)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def routing_errors(request: Request, exc: StarletteHTTPException):
        # Only reshape errors raised by routing itself; handler-raised ones keep {"detail": ...}
        if exc.status_code == 404 and exc.detail == "Not Found":
            return not_found()
        if exc.status_code == 405:
            return method_not_allowed(headers=exc.headers)
        return await http_exception_handler(request, exc)

    app.include_router(v1_router)

    @app.on_event("shutdown")
    async def _shutdown():
        await weather_service.close()

    return app

app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=settings.port)
