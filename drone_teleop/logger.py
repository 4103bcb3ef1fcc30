import asyncio
import json
import sys
from typing import Any

from loguru import logger

# Clientes WS que reciben logs y cambios de configuración
_ws_clients = set()
_lock = asyncio.Lock()
# referencias a los broadcast en curso (el loop sólo guarda referencias débiles)
_pending = set()

LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}"


def setup_logging(level: str = "INFO"):
    # Un único sink: consola + broadcast WS programado en el loop si lo hay
    def sink(msg):
        text = msg if isinstance(msg, str) else str(msg)
        text = text.rstrip("\n")
        try:
            loop = asyncio.get_running_loop()
            task = loop.create_task(broadcast("log", text))
            _pending.add(task)
            task.add_done_callback(_pending.discard)
        except RuntimeError:
            # sin loop (CLI), sólo consola
            pass
        print(text, file=sys.stderr)
    logger.remove()
    logger.add(sink, level=level.upper(), format=LOG_FORMAT)


async def broadcast(kind: str, payload: Any):
    if not _ws_clients:
        return
    text = json.dumps({"type": kind, "data": payload})
    dead = []
    for ws in list(_ws_clients):
        try:
            await ws.send_text(text)
        except Exception:
            dead.append(ws)
    for ws in dead:
        _ws_clients.discard(ws)


async def add_ws(ws):
    async with _lock:
        _ws_clients.add(ws)


async def remove_ws(ws):
    async with _lock:
        _ws_clients.discard(ws)


def ws_client_count() -> int:
    return len(_ws_clients)
