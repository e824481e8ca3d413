"""FastAPI operator surface — start/stop/test/status/health routes."""

import sys
from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from channel_digest.app import DigestBot
from channel_digest.config import AppConfig
from channel_digest.errors import ConfigurationError


def _log(msg: str):
    print(msg, file=sys.stderr)


class CommandResponse(BaseModel):
    ok: bool
    message: str


class DigestResponse(BaseModel):
    status: str
    messageCount: int
    chunksSent: int
    reason: Optional[str] = None


class StatusResponse(BaseModel):
    enabled: bool
    connected: bool
    sessionId: Optional[str]
    messagesStored: int
    reconnectAttempts: int
    gateway: Dict[str, Any]
    trigger: Dict[str, Any]


class OneShotRequest(BaseModel):
    delaySeconds: Optional[float] = None


def _default_factory() -> DigestBot:
    return DigestBot.from_config(AppConfig.from_env())


def create_app(
    bot_factory: Callable[[], DigestBot] = _default_factory,
    auto_start: bool = False,
) -> FastAPI:
    """Build the operator app. The bot is created lazily on first use,
    or at startup when auto_start is set."""
    app = FastAPI(title="Channel Digest Bot")
    app.state.bot = None

    @app.on_event("startup")
    async def startup_event():
        if not auto_start:
            return
        try:
            app.state.bot = bot_factory()
            await app.state.bot.start()
        except ConfigurationError as e:
            _log(f"[Server] not starting bot: {e}")

    @app.on_event("shutdown")
    async def shutdown_event():
        if app.state.bot is not None:
            await app.state.bot.stop()

    def get_bot(request: Request) -> DigestBot:
        if request.app.state.bot is None:
            try:
                request.app.state.bot = bot_factory()
            except ConfigurationError as e:
                _log(f"[Server] configuration error: {e}")
                raise HTTPException(status_code=503, detail=str(e))
        return request.app.state.bot

    @app.get("/health", response_class=PlainTextResponse)
    async def health():
        return "OK"

    @app.post("/start", response_model=CommandResponse)
    async def start(request: Request):
        bot = get_bot(request)
        await bot.start()
        return CommandResponse(ok=True, message="Bot started")

    @app.post("/test", response_model=CommandResponse)
    async def test(request: Request, req: Optional[OneShotRequest] = None):
        bot = get_bot(request)
        delay = req.delaySeconds if req else None
        try:
            await bot.test(delay)
        except ConfigurationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        seconds = bot.config.schedule.test_delay_seconds if delay is None else delay
        return CommandResponse(ok=True, message=f"Test mode started - summary will be sent in {seconds:g} seconds")

    @app.post("/stop", response_model=CommandResponse)
    async def stop(request: Request):
        bot = get_bot(request)
        await bot.stop()
        return CommandResponse(ok=True, message="Bot stopped")

    @app.post("/digest", response_model=DigestResponse)
    async def digest(request: Request):
        """Render and deliver the current window immediately."""
        bot = get_bot(request)
        outcome = await bot.send_digest_now()
        if outcome.status == "failed":
            raise HTTPException(status_code=502, detail=outcome.reason)
        return DigestResponse(
            status=outcome.status,
            messageCount=outcome.message_count,
            chunksSent=outcome.chunks_sent,
            reason=outcome.reason,
        )

    @app.get("/status", response_model=StatusResponse)
    async def status(request: Request):
        return StatusResponse(**get_bot(request).status())

    @app.get("/", response_class=PlainTextResponse)
    async def root():
        return "Discord Summary Bot - Endpoints: /start, /test, /stop, /digest, /status, /health"

    return app


app = create_app()
