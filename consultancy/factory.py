"""
FastAPI application factory.
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .core.config import get_settings
from .core.database import init_db, close_db
from .core.redis import close_redis
from .api.router import router

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="Consultores Empresariales IA",
        description="Two-agent business consultancy",
        version="1.0.0",
        docs_url="/docs" if settings.env == "development" else None,
        redoc_url="/redoc" if settings.env == "development" else None,
    )

    # ── CORS ─────────────────────────────────────────────────────────
    origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Startup ──────────────────────────────────────────────────────
    @app.on_event("startup")
    async def on_startup():
        logging.basicConfig(
            level=getattr(logging, settings.log_level.upper(), logging.INFO),
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )
        logger.info("Starting Consultores (env=%s)", settings.env)

        await init_db()

        from .core.flags import get_flags
        from .services.llm import get_llm_client

        flags = get_flags()
        logger.info(
            "Flags: redis=%s anonymous_auth=%s",
            flags.use_redis, flags.use_anonymous_auth,
        )
        llm = get_llm_client()
        if not llm.is_configured:
            logger.warning("GEMINI_API_KEY / API_KEY not set; messages will be rejected")
        logger.info("Consultores is ready (model=%s)", llm.model)

    # ── Shutdown ─────────────────────────────────────────────────────
    @app.on_event("shutdown")
    async def on_shutdown():
        await close_db()
        await close_redis()
        logger.info("Consultores shut down")

    # ── Routes ───────────────────────────────────────────────────────
    app.include_router(router)

    return app
