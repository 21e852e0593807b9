"""FastAPI host bridge for Interview Copilot."""

import asyncio
import json
from contextlib import asynccontextmanager
from typing import Literal, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from interview_copilot.answer import AnswerGenerator
from interview_copilot.config import Config, ConfigStore
from interview_copilot.deepgram_engine import create_engine
from interview_copilot.errors import ConfigError, CopilotError, LanguageNotSelected, ProviderCallFailed
from interview_copilot.logs import configure_logging, get_logger
from interview_copilot.providers import create_provider
from interview_copilot.recognition import SpeechCaptureSession, loop_scheduler
from interview_copilot.session import SessionController
from interview_copilot.transcript import TranscriptStore

logger = get_logger("main")

HEARTBEAT_SECONDS = 15.0

_DEFAULT = object()


# Request models
class AppendRequest(BaseModel):
    text: str


class StartRequest(BaseModel):
    language: Optional[Literal["pl-PL", "en-US"]] = None


class LanguageRequest(BaseModel):
    language: Literal["pl-PL", "en-US"]


class ConfigUpdate(BaseModel):
    api_provider: Optional[Literal["openai", "gemini", "anthropic"]] = None
    api_key: Optional[str] = None
    solution_model: Optional[str] = None
    transcription_language: Optional[Literal["pl-PL", "en-US"]] = None


def create_app(
    config_store: Optional[ConfigStore] = None,
    engine=_DEFAULT,
    provider_factory=create_provider,
    scheduler=loop_scheduler,
) -> FastAPI:
    """Build the app and its session objects.

    Args:
        config_store: Settings store (defaults to Config.CONFIG_PATH)
        engine: Recognition engine; None means recognition is unavailable
        provider_factory: Builds provider clients from a ProviderConfig
        scheduler: Timer factory used for recognition restarts
    """
    configure_logging(Config.LOG_LEVEL)
    config_store = config_store or ConfigStore()
    if engine is _DEFAULT:
        engine = create_engine()

    config = config_store.load_config()
    capture = SpeechCaptureSession(engine, TranscriptStore(), config.transcription_language, scheduler)
    answers = AnswerGenerator(config_store, provider_factory)
    controller = SessionController(capture, answers, config_store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        answers.bind()
        missing = Config.validate()
        for item in missing:
            logger.warning(f"Missing setting: {item}")
        yield
        controller.close()
        await answers.aclose()

    app = FastAPI(title="Interview Copilot", lifespan=lifespan)
    app.state.controller = controller
    app.state.config_store = config_store

    # CORS for the local overlay UI
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ─── Transcript ──────────────────────────────────────────────────────

    @app.post("/transcript/append")
    async def transcript_append(request: AppendRequest):
        controller.append_transcript(request.text)
        return {"success": True}

    @app.post("/transcript/clear")
    async def transcript_clear():
        controller.clear_transcript()
        return {"success": True}

    @app.get("/transcript")
    async def transcript_get():
        return {"success": True, "transcript": controller.store.read()}

    @app.post("/transcript/reply")
    async def transcript_reply():
        """Answer the latest question in the transcript (the global shortcut calls this)."""
        try:
            answer = await controller.reply_to_question()
        except (CopilotError, *ProviderCallFailed) as e:
            return {"success": False, "error": str(e)}
        return {"success": True, "answer": answer}

    @app.get("/transcript/replies/stream")
    async def reply_stream(request: Request):
        """Stream replies and reply errors via Server-Sent Events."""
        queue = controller.subscribe_replies()

        async def event_generator():
            try:
                while True:
                    if await request.is_disconnected():
                        break
                    try:
                        event = await asyncio.wait_for(queue.get(), timeout=HEARTBEAT_SECONDS)
                    except asyncio.TimeoutError:
                        # Send heartbeat to keep connection alive
                        yield ": heartbeat\n\n"
                        continue
                    yield f"event: {event.type}\ndata: {json.dumps(event.to_dict())}\n\n"
            finally:
                controller.unsubscribe_replies(queue)

        return StreamingResponse(
            event_generator(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable buffering for nginx
            },
        )

    # ─── Session ─────────────────────────────────────────────────────────

    @app.post("/session/start")
    async def session_start(request: StartRequest):
        try:
            started = controller.start_session(request.language)
        except LanguageNotSelected as e:
            return {"success": False, "error": str(e)}
        if not started:
            return {"success": False, "error": controller.capture.error}
        return {"success": True}

    @app.post("/session/stop")
    async def session_stop():
        controller.stop_session()
        return {"success": True}

    @app.post("/session/language")
    async def session_language(request: LanguageRequest):
        controller.choose_language(request.language)
        return {"success": True}

    @app.get("/session/status")
    async def session_status():
        return controller.status()

    # ─── Config ──────────────────────────────────────────────────────────

    @app.get("/config")
    async def config_get():
        return config_store.load_config().public_dict()

    @app.put("/config")
    async def config_put(update: ConfigUpdate):
        changes = update.model_dump(exclude_none=True)
        try:
            updated = config_store.update_config(**changes)
        except ConfigError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return updated.public_dict()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=Config.HOST, port=Config.PORT)
