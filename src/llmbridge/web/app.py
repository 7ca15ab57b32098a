from __future__ import annotations

import threading
import uuid
from pathlib import Path
from typing import Dict, Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from llmbridge.bootstrap import build_app
from llmbridge.bridge import LLMBridge
from llmbridge.core.errors import GenerationActiveError, ProviderClientError, ProviderError


class ChatRequest(BaseModel):
    session_id: Optional[str] = None
    message: str
    image: Optional[str] = None  # base64
    model: Optional[str] = None


class SessionRequest(BaseModel):
    session_id: str


def _status_for(e: ProviderError) -> int:
    status = getattr(e, "status_code", None)
    if status is not None:
        return 502
    return 400 if isinstance(e, ProviderClientError) else 503


def create_app(
    config_path: Path,
    *,
    target: Optional[str] = None,
    model: Optional[str] = None,
    transport=None,
) -> FastAPI:
    ctx = build_app(Path(config_path), transport=transport, overrides={"target": target, "model": model})
    template: LLMBridge = ctx["bridge"]
    cfg = ctx["cfg"]

    app = FastAPI()
    app.state.template = template
    app.state.model = ctx["model"]
    app.state.warnings = ctx["warnings"]
    app.state.sessions: Dict[str, LLMBridge] = {}
    app.state.lock = threading.Lock()

    def _create_session() -> str:
        # one bridge per session: same settings, own history, own generation
        bridge = template.reconfigure()
        session_id = uuid.uuid4().hex
        with app.state.lock:
            app.state.sessions[session_id] = bridge
        return session_id

    def _get_session(session_id: Optional[str]) -> tuple[str, LLMBridge]:
        if session_id:
            with app.state.lock:
                bridge = app.state.sessions.get(session_id)
            if bridge is not None:
                return session_id, bridge
        # unknown or missing id: start a fresh session
        new_id = _create_session()
        return new_id, app.state.sessions[new_id]

    def _existing(session_id: str) -> LLMBridge:
        with app.state.lock:
            bridge = app.state.sessions.get(session_id)
        if bridge is None:
            raise HTTPException(status_code=404, detail="Unknown session")
        return bridge

    @app.get("/api/config")
    def api_config():
        return JSONResponse(
            {
                "target": template.target.value,
                "base_url": template.base_url,
                "model": app.state.model,
                "stream": bool((cfg.get("runtime") or {}).get("stream", False)),
                "warnings": app.state.warnings or [],
            }
        )

    @app.post("/api/session")
    def api_session():
        return JSONResponse({"session_id": _create_session()})

    @app.get("/api/models")
    def api_models():
        try:
            return JSONResponse({"models": template.list_models()})
        except ProviderError as e:
            raise HTTPException(status_code=_status_for(e), detail=str(e))

    @app.get("/api/messages/{session_id}")
    def api_messages(session_id: str):
        bridge = _existing(session_id)
        return JSONResponse({"session_id": session_id, "messages": [m.as_dict() for m in bridge.messages]})

    @app.post("/api/chat")
    def api_chat(req: ChatRequest):
        if not req.message.strip():
            raise HTTPException(status_code=400, detail="Empty message")
        session_id, bridge = _get_session(req.session_id)
        try:
            reply = bridge.send_message(req.message, image=req.image, model=req.model or app.state.model)
        except ProviderError as e:
            raise HTTPException(status_code=_status_for(e), detail=str(e))
        return JSONResponse({"session_id": session_id, "reply": reply.content})

    @app.post("/api/stream")
    def api_stream(req: ChatRequest):
        if not req.message.strip():
            raise HTTPException(status_code=400, detail="Empty message")
        session_id, bridge = _get_session(req.session_id)
        try:
            chunks = bridge.send_message_stream(req.message, image=req.image, model=req.model or app.state.model)
        except ProviderError as e:
            raise HTTPException(status_code=_status_for(e), detail=str(e))

        def gen():
            try:
                for chunk in chunks:
                    yield chunk
            except ProviderError as e:
                yield f"\n[error] {e}"

        return StreamingResponse(gen(), media_type="text/plain", headers={"X-Session-Id": session_id})

    @app.post("/api/cancel")
    def api_cancel(req: SessionRequest):
        _existing(req.session_id).cancel_generation()
        return JSONResponse({"session_id": req.session_id, "cancelled": True})

    @app.post("/api/clear")
    def api_clear(req: SessionRequest):
        try:
            _existing(req.session_id).clear_messages()
        except GenerationActiveError as e:
            raise HTTPException(status_code=409, detail=str(e))
        return JSONResponse({"session_id": req.session_id, "cleared": True})

    return app


def run(
    *,
    config: Path,
    host: str = "127.0.0.1",
    port: int = 8000,
    target: Optional[str] = None,
    model: Optional[str] = None,
) -> None:
    import uvicorn

    app = create_app(config, target=target, model=model)
    uvicorn.run(app, host=host, port=port)


def main() -> None:
    import typer

    typer.run(run)
