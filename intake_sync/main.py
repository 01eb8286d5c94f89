"""FastAPI entry-point for the intake kiosk display."""
from __future__ import annotations

import asyncio
import logging

import psutil
from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

from .config import Settings, get_settings
from .display_runtime import DisplayRuntime
from .logging_config import configure_logging
from .transport.relay import BroadcastRelay, build_relay_router

logger = logging.getLogger(__name__)

settings: Settings = get_settings()
configure_logging(
    settings.log_level,
    settings.log_directory,
    settings.log_retention_days,
    relay_log=settings.relay_enabled,
)
app = FastAPI(title="intake-sync", version="0.1.0")
runtime = DisplayRuntime(settings=settings)

if settings.relay_enabled:
    relay = BroadcastRelay(settings.relay_prefixes)
    app.include_router(build_relay_router(relay))
    logger.info("Broadcast relay enabled for prefixes %s", settings.relay_prefixes)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> PlainTextResponse:
    """Catch-all exception handler to prevent application crashes."""
    logger.exception("Unhandled exception in %s: %s", request.url.path, exc)
    return PlainTextResponse(
        f"Internal server error: {str(exc)}",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors gracefully."""
    logger.warning("Validation error in %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": str(exc)},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def on_startup() -> None:
    try:
        await runtime.start()
        logger.info("Application started successfully")
    except Exception as e:
        logger.exception("Failed to start display runtime: %s", e)
        # Stay up in degraded mode; the supervisor keeps retrying on its own


@app.on_event("shutdown")
async def on_shutdown() -> None:
    try:
        await runtime.stop()
        logger.info("Application shutdown complete")
    except Exception as e:
        logger.exception("Error during shutdown: %s", e)


@app.get("/healthz")
async def healthcheck() -> JSONResponse:
    return JSONResponse({"status": "ok", "mode": runtime.mode.value, "connection": runtime.connection.value})


@app.get("/debug/performance")
async def debug_performance() -> JSONResponse:
    """Get real-time CPU and memory usage."""
    try:
        cpu_percent = psutil.cpu_percent(interval=0.1)
        memory = psutil.virtual_memory()

        return JSONResponse({
            "cpu_percent": round(cpu_percent, 1),
            "memory_percent": round(memory.percent, 1),
            "memory_used_mb": round(memory.used / (1024 * 1024), 1),
            "memory_total_mb": round(memory.total / (1024 * 1024), 1),
        })
    except Exception as e:
        logger.error("Performance monitoring error: %s", e)
        return JSONResponse({"error": str(e)}, status_code=500)


@app.get("/display/state")
async def display_state() -> JSONResponse:
    return JSONResponse(runtime.snapshot())


class PasswordRequest(BaseModel):
    password: str


class SignatureRequest(BaseModel):
    signature_data: str


def _action_result(sent: bool) -> JSONResponse:
    if sent:
        return JSONResponse({"status": "sent", "mode": runtime.mode.value})
    return JSONResponse(
        {"status": "ignored", "mode": runtime.mode.value},
        status_code=status.HTTP_409_CONFLICT,
    )


@app.post("/display/confirm")
async def confirm_data() -> JSONResponse:
    return _action_result(await runtime.responder.confirm_data())


@app.post("/display/password")
async def submit_password(payload: PasswordRequest) -> JSONResponse:
    try:
        sent = await runtime.responder.submit_password(payload.password)
    except ValueError as e:
        return JSONResponse({"status": "error", "message": str(e)}, status_code=status.HTTP_400_BAD_REQUEST)
    return _action_result(sent)


@app.post("/display/password/skip")
async def skip_password() -> JSONResponse:
    return _action_result(await runtime.responder.skip_password())


@app.post("/display/signature")
async def submit_signature(payload: SignatureRequest) -> JSONResponse:
    try:
        sent = await runtime.responder.submit_signature(payload.signature_data)
    except ValueError as e:
        return JSONResponse({"status": "error", "message": str(e)}, status_code=status.HTTP_400_BAD_REQUEST)
    return _action_result(sent)


@app.websocket("/ws/ui")
async def ui_socket(ws: WebSocket) -> None:
    await ws.accept()
    queue = runtime.register_ui()
    try:
        await ws.send_json({"type": "snapshot", "mode": runtime.mode.value, "data": runtime.snapshot()})
        while True:
            try:
                event = await queue.get()
            except asyncio.CancelledError:
                break  # Clean shutdown

            payload = {
                "type": event.type,
                "mode": event.mode.value,
                "data": event.data,
            }
            if event.error:
                payload["error"] = event.error

            try:
                await ws.send_json(payload)
            except Exception as e:
                logger.debug("WebSocket send failed (client disconnected): %s", e)
                break
    except WebSocketDisconnect:
        pass
    except asyncio.CancelledError:
        pass  # Clean shutdown
    except Exception as e:
        logger.error("Unexpected error in UI websocket: %s", e)
    finally:
        runtime.unregister_ui(queue)
        try:
            await ws.close()
        except Exception:
            pass
