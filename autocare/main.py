import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from autocare.api.routes import router as api_router
from autocare.config import Settings, public_settings, settings, setup_logging
from autocare.embeddings.client import EmbeddingsClient
from autocare.llm.client import LLMClient
from autocare.rag.pipeline import ChatService
from autocare.sessions.cache import SessionCache
from autocare.vector_store import get_vector_store

logger = setup_logging()


def build_session_cache(settings_: Settings) -> SessionCache:
    return SessionCache(
        max_size=settings_.session_max_size,
        max_age=settings_.session_max_age_sec,
        max_messages_per_session=settings_.session_max_messages,
        max_requests_per_minute=settings_.session_max_requests_per_minute,
        sweep_interval=settings_.session_sweep_interval_sec,
    )


def create_app(settings_: Settings | None = None) -> FastAPI:
    cfg = settings_ or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        embeddings_client = EmbeddingsClient.from_settings(cfg)
        vector_store = get_vector_store(embeddings_client, cfg)
        session_cache = build_session_cache(cfg)

        app.state.settings = cfg
        app.state.vector_store = vector_store
        app.state.session_cache = session_cache
        app.state.chat_service = ChatService(
            vector_store=vector_store,
            session_cache=session_cache,
            llm_client=LLMClient.from_settings(cfg),
            top_k=cfg.search_top_k,
            threshold=cfg.search_threshold,
        )

        session_cache.start()
        logger.info(
            "Application started",
            extra={"embedding_provider": embeddings_client.provider.name, "documents": vector_store.size()},
        )
        try:
            yield
        finally:
            await session_cache.stop()
            logger.info("Application stopped")

    app = FastAPI(title="AutoCare Retrieval Service", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error", extra={"path": request.url.path})
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    app.include_router(api_router, prefix="/api")
    return app


logger.info("Loaded settings: %s", public_settings())
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.app_host, port=settings.app_port)
