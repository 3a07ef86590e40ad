from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
from logging.handlers import RotatingFileHandler

from app.config import DEV_JWT_SECRET, Settings
from app.models.base import create_db_engine, init_db
from app.api.auth import router as auth_router
from app.api.languages import router as languages_router
from app.api.sessions import router as sessions_router
from app.api.transcribe import router as transcribe_router
from app.services.relay import connect_assemblyai
from app.services.translation import LemurTranslator


def configure_logging(settings: Settings) -> None:
    root = logging.getLogger()
    root.setLevel(settings.log_level.upper())
    if any(isinstance(h, RotatingFileHandler) for h in root.handlers):
        return
    log_file = settings.logs_dir / "backend.log"
    handler = RotatingFileHandler(str(log_file), maxBytes=5_000_000, backupCount=2)
    formatter = logging.Formatter(
        fmt='%(asctime)s %(levelname)s %(name)s %(message)s'
    )
    handler.setFormatter(formatter)
    root.addHandler(handler)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()
    app = FastAPI(title="Live Translate Backend", version="0.1.0")

    app.state.settings = settings
    app.state.engine = create_db_engine(settings)
    app.state.translator = LemurTranslator(settings)
    app.state.upstream_connector = connect_assemblyai

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    def _startup() -> None:
        settings.ensure_dirs()
        try:
            configure_logging(settings)
        except OSError:
            logging.getLogger("app").exception("Could not open log file; logging to stderr only")
        if settings.jwt_secret == DEV_JWT_SECRET:
            logging.getLogger("app").warning("Using the development JWT secret; set LT_JWT_SECRET in production")
        if not settings.assemblyai_api_key:
            logging.getLogger("app").warning("LT_ASSEMBLYAI_API_KEY is not set; live transcription is disabled")
        init_db(app.state.engine)

    @app.on_event("shutdown")
    def _shutdown() -> None:
        app.state.engine.dispose()

    @app.get("/healthz")
    def healthz() -> dict[str, str]:
        return {"status": "ok"}

    app.include_router(auth_router, prefix="/api")
    app.include_router(sessions_router, prefix="/api")
    app.include_router(languages_router, prefix="/api")
    app.include_router(transcribe_router)

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):  # type: ignore[override]
        logging.getLogger("app").exception("Unhandled exception")
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    return app


app = create_app()


if __name__ == "__main__":
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(description="Live Translate Backend Server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload (dev only)")

    args = parser.parse_args()

    uvicorn.run(
        "app.main:app" if args.reload else app,
        host=args.host,
        port=args.port,
        reload=args.reload
    )
