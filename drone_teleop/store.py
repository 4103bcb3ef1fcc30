import asyncio
import os
import tempfile
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from loguru import logger

from .errors import ConfigStoreError, SchemaError
from .settings import (
    Config,
    GamepadBindings,
    KeyboardBindings,
    config_from_json,
    config_to_json,
    default_config,
)

Bindings = Union[KeyboardBindings, GamepadBindings, Mapping[str, Any]]


class ConfigStore:
    """
    Lee y escribe el Config en disco (JSON camelCase).

    La política de "volver a los valores por defecto" vive aquí y no en el
    modelo: un fichero inexistente siempre da el default; un fichero inválido
    lanza SchemaError salvo que ``fallback_to_default`` esté activo, en cuyo
    caso se guarda una copia ``.bak`` y se devuelve el default.
    """

    def __init__(self, path: Union[str, Path], fallback_to_default: bool = False):
        self._path = Path(path).expanduser()
        self.fallback_to_default = fallback_to_default
        self._current: Optional[Config] = None
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def current(self) -> Config:
        if self._current is None:
            self._current = self.load()
        return self._current

    # ---------- Lectura / escritura ----------

    def load(self) -> Config:
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError:
            logger.info(f"No hay configuración en {self._path}, usando valores por defecto.")
            self._current = default_config()
            return self._current
        except OSError as e:
            raise ConfigStoreError(self._path, e) from e

        try:
            config = config_from_json(raw)
        except SchemaError as e:
            if not self.fallback_to_default:
                raise
            backup = self._backup_broken()
            logger.warning(f"Configuración inválida en {self._path} ({e}); copia en {backup}, usando valores por defecto.")
            config = default_config()

        self._current = config
        logger.debug(f"Configuración cargada desde {self._path}")
        return config

    def save(self, config: Config) -> Config:
        if not isinstance(config, Config):
            raise TypeError(f"expected Config, got {type(config).__name__}")
        text = config_to_json(config) + "\n"
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            # escritura atómica: temporal en el mismo directorio + replace
            fd, tmp = tempfile.mkstemp(prefix=f".{self._path.name}.", dir=str(self._path.parent))
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(text)
                os.replace(tmp, self._path)
            except BaseException:
                Path(tmp).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise ConfigStoreError(self._path, e) from e
        self._current = config
        logger.info(f"Configuración guardada en {self._path}")
        return config

    def reset(self) -> Config:
        return self.save(default_config())

    def _backup_broken(self) -> Path:
        backup = self._path.with_name(self._path.name + ".bak")
        try:
            os.replace(self._path, backup)
        except OSError as e:
            raise ConfigStoreError(self._path, e) from e
        return backup

    # ---------- Actualizaciones parciales (campo completo) ----------

    def update_server_settings(self, ip: str, stream_port: int, control_port: int) -> Config:
        config = self.current.replace(ip=ip, stream_port=stream_port, control_port=control_port)
        return self.save(config)

    def update_keyboard_bindings(self, bindings: Bindings) -> Config:
        return self.save(self.current.replace(keyboard=bindings))

    def update_gamepad_bindings(self, bindings: Bindings) -> Config:
        return self.save(self.current.replace(gamepad=bindings))

    def update(self, patch: Mapping[str, Any]) -> Config:
        """Reemplaza sólo las claves de primer nivel presentes en ``patch``."""
        known = self.current.to_dict()
        changes = {}
        # actualiza solo las claves conocidas
        for k, v in patch.items():
            if k in known or k in Config.model_fields:
                changes[k] = v
            else:
                logger.debug(f"Clave de configuración desconocida ignorada: {k}")
        return self.save(self.current.replace(**changes))

    # ---------- Variantes async (serializadas) ----------

    async def asave(self, config: Config) -> Config:
        async with self._lock:
            return await asyncio.to_thread(self.save, config)

    async def aupdate(self, patch: Mapping[str, Any]) -> Config:
        async with self._lock:
            return await asyncio.to_thread(self.update, patch)

    async def areset(self) -> Config:
        async with self._lock:
            return await asyncio.to_thread(self.reset)
