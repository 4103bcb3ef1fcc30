# drone_teleop/server.py
from typing import Any, Dict, Optional

from fastapi import Body, FastAPI, Request, WebSocket
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from loguru import logger

from .app_settings import AppSettings
from .errors import ConfigStoreError, SchemaError, SchemaIssue
from .gamepad import GamepadRecorder, label_for, labels_payload
from .logger import add_ws, broadcast, remove_ws, setup_logging
from .settings import ControlSource, default_config, dump_config, load_config
from .store import ConfigStore

SERVER_KEYS = ("ip", "streamPort", "controlPort")


# ---------- Modelos ----------

class RecordBody(BaseModel):
    joystick: bool = False
    timeout: Optional[float] = None


def _require_keys(body: Dict[str, Any], keys) -> None:
    missing = [k for k in keys if k not in body]
    if missing:
        raise SchemaError([SchemaIssue(kind="missing", path=(k,), message="Field required") for k in missing])


def create_app(
    settings: Optional[AppSettings] = None,
    store: Optional[ConfigStore] = None,
    recorder: Optional[GamepadRecorder] = None,
) -> FastAPI:
    settings = settings or AppSettings()
    setup_logging(settings.log_level)

    store = store or ConfigStore(settings.config_path, fallback_to_default=settings.fallback_to_default)
    recorder = recorder or GamepadRecorder(
        threshold=settings.axis_threshold,
        poll_interval=settings.record_poll_interval,
        right_stick_axes=settings.joy_right_stick_axes,
        trigger_axes=settings.joy_trigger_axes,
        button_map=settings.joy_button_map,
    )

    app = FastAPI(title="Drone Teleop Settings")
    app.state.settings = settings
    app.state.store = store
    app.state.recorder = recorder

    @app.on_event("startup")
    async def startup_event():
        store.load()
        logger.info(f"Servidor de ajustes listo (config={store.path}).")

    @app.on_event("shutdown")
    async def shutdown_event():
        recorder.close()
        logger.info("Shutdown completo.")

    @app.exception_handler(SchemaError)
    async def schema_error_handler(request: Request, exc: SchemaError):
        logger.warning(f"Configuración rechazada en {request.url.path}: {exc}")
        return JSONResponse(status_code=422, content=exc.to_dict())

    @app.exception_handler(ConfigStoreError)
    async def store_error_handler(request: Request, exc: ConfigStoreError):
        logger.error(str(exc))
        return JSONResponse(status_code=500, content={"error": "store", "detail": str(exc)})

    async def _saved(config):
        data = dump_config(config)
        await broadcast("config", data)
        return JSONResponse(data)

    # ---------- Config ----------

    @app.get("/api/config")
    async def get_config():
        return JSONResponse(dump_config(store.current))

    @app.get("/api/config/default")
    async def get_default_config():
        return JSONResponse(dump_config(default_config()))

    @app.put("/api/config")
    async def save_config(body: Dict[str, Any] = Body(...)):
        config = load_config(body)
        return await _saved(await store.asave(config))

    @app.put("/api/config/server")
    async def update_server(body: Dict[str, Any] = Body(...)):
        _require_keys(body, SERVER_KEYS)
        patch = {k: body[k] for k in SERVER_KEYS}
        return await _saved(await store.aupdate(patch))

    @app.put("/api/config/keyboard")
    async def update_keyboard(body: Dict[str, Any] = Body(...)):
        return await _saved(await store.aupdate({"keyboard": body}))

    @app.put("/api/config/gamepad")
    async def update_gamepad(body: Dict[str, Any] = Body(...)):
        return await _saved(await store.aupdate({"gamepad": body}))

    @app.post("/api/config/reset")
    async def reset_config():
        logger.info("Restableciendo configuración por defecto.")
        return await _saved(await store.areset())

    # ---------- Mando ----------

    @app.get("/api/gamepad/labels")
    async def gamepad_labels():
        return JSONResponse(labels_payload())

    @app.post("/api/gamepad/record")
    async def gamepad_record(body: RecordBody):
        if not recorder.connected() and not recorder.open():
            return JSONResponse(status_code=409, content={"error": "no_gamepad"})
        timeout = body.timeout if body.timeout is not None else settings.record_timeout
        bind = await recorder.record(body.joystick, timeout=timeout)
        if bind is None:
            return JSONResponse(status_code=408, content={"error": "timeout"})
        value = bind.value if isinstance(bind, ControlSource) else bind
        return JSONResponse({"bind": value, "label": label_for(bind)})

    # ---------- WebSocket de logs ----------

    @app.websocket("/ws/logs")
    async def ws_logs(ws: WebSocket):
        await ws.accept()
        await add_ws(ws)
        logger.info("Cliente WS conectado.")
        try:
            while True:
                await ws.receive_text()
        except Exception:
            pass
        finally:
            await remove_ws(ws)
            logger.info("Cliente WS desconectado.")

    return app
