from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from .config import Settings, load_settings
from .dialog import SupportAgent
from .formatter import ERROR_REPLY
from .knowledge.knowledge_store import KnowledgeStore
from .knowledge.knowledge_updater import KnowledgeUpdater
from .knowledge.scheduler import RefreshScheduler
from .models import ChatRequest, ChatResponse, RefreshResponse
from .resource_loader import KnowledgeLoader

BASE_DIR = Path(__file__).resolve().parent

ENV_PATH = BASE_DIR / ".env"
if ENV_PATH.exists():
    load_dotenv(ENV_PATH, override=True)

logger = logging.getLogger("kasbot.api")


def configure_logging(level_name: str) -> None:
    log_level = getattr(logging, level_name, logging.INFO)
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=log_level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )
    logging.getLogger("kasbot").setLevel(log_level)


class PreflightCORSMiddleware(CORSMiddleware):
    """CORS middleware whose preflight answers carry no body."""

    def preflight_response(self, request_headers) -> Response:
        response = super().preflight_response(request_headers)
        headers = {
            key: value
            for key, value in response.headers.items()
            if key.lower() not in ("content-length", "content-type")
        }
        status_code = 204 if response.status_code == 200 else response.status_code
        return Response(status_code=status_code, headers=headers)


def create_app(settings: Settings, store: Optional[KnowledgeStore] = None) -> FastAPI:
    """Purpose: Build the FastAPI app with its knowledge store, agent, and refresher.
    Inputs/Outputs: Inputs are Settings and an optional pre-built KnowledgeStore;
        output is a configured FastAPI instance.
    Side Effects / State: Loads the knowledge file when no store is given; the
        lifespan starts/stops the refresh scheduler when scraping is enabled.
    Dependencies: KnowledgeLoader/Store/Updater, RefreshScheduler, SupportAgent.
    Failure Modes: A broken knowledge file is reported by /debug, not raised.
    If Removed: Tests cannot build isolated apps and the module-level app is lost.
    Testing Notes: Build with a temp knowledge file and drive it with TestClient.
    """
    if store is None:
        store = KnowledgeStore(KnowledgeLoader(settings.knowledge_path))
        store.load()
    updater = KnowledgeUpdater(
        store,
        timeout=settings.scrape_timeout,
        user_agent=settings.scrape_user_agent,
        contact_url=settings.contact_url,
        max_spec_bullets=settings.max_spec_bullets,
    )
    scheduler = RefreshScheduler(updater, settings.refresh_interval_hours)
    agent = SupportAgent(store.current, strip_emoji_replies=settings.strip_emoji)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        if settings.scrape_enabled:
            scheduler.start()
        try:
            yield
        finally:
            scheduler.shutdown()

    app = FastAPI(title="KAS Support Bot", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.updater = updater
    app.state.scheduler = scheduler
    app.state.agent = agent

    app.add_middleware(
        PreflightCORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    def run_chat(chat_request: ChatRequest) -> JSONResponse:
        # Any fault becomes the generic retry reply; the caller keeps its context.
        try:
            turn = agent.handle_message(chat_request.message, chat_request.context)
        except Exception:
            logger.exception("chat turn failed")
            return JSONResponse(
                status_code=settings.error_status_code,
                content={"reply": ERROR_REPLY, "context": dict(chat_request.context)},
            )
        fields = {"reply": turn.reply, "context": turn.context_payload()}
        if turn.suggestions:
            fields["suggestions"] = turn.suggestions
        return JSONResponse(content=ChatResponse(**fields).model_dump(exclude_unset=True))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        # Unparseable chat bodies are answered as an empty first turn.
        if request.url.path == "/chat":
            logger.info("chat body rejected by validation, treating as empty: %s", exc.errors())
            return run_chat(ChatRequest())
        return JSONResponse(status_code=422, content={"detail": "invalid request"})

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled error path=%s", request.url.path)
        return JSONResponse(status_code=500, content={"reply": ERROR_REPLY, "context": {}})

    @app.get("/", response_class=PlainTextResponse)
    def liveness() -> str:
        return "KAS Bot is running"

    @app.post("/chat", response_model=ChatResponse, response_model_exclude_unset=True)
    def chat(chat_request: ChatRequest) -> JSONResponse:
        """Purpose: Handle one chat turn and return reply, context, and suggestions.
        Inputs/Outputs: Input is ChatRequest; output is a ChatResponse-shaped JSON body.
        Side Effects / State: None server side; the context is owned by the caller.
        Dependencies: Uses SupportAgent.handle_message.
        Failure Modes: Exceptions become the retry reply with ERROR_STATUS_CODE.
        If Removed: Core chat functionality is unavailable.
        Testing Notes: Send "عنوان" and verify awaiting=branch_address is returned.
        """
        return run_chat(chat_request)

    @app.get("/debug")
    def debug() -> dict:
        status = store.status()
        status["scheduler_running"] = scheduler.running
        status["scrape_enabled"] = settings.scrape_enabled
        status["routes"] = agent.route_names
        return status

    @app.post("/refresh", response_model=RefreshResponse)
    def refresh() -> JSONResponse:
        try:
            report = updater.refresh()
        except Exception:
            logger.exception("forced knowledge refresh failed")
            return JSONResponse(status_code=500, content={"ok": False})
        return JSONResponse(content=RefreshResponse(**report.as_dict()).model_dump())

    return app


settings = load_settings()
configure_logging(settings.log_level)
app = create_app(settings)
