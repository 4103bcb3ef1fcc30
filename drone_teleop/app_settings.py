import os
import platform
from pathlib import Path
from typing import Dict, Tuple

from pydantic import BaseModel, Field

APP_DIR_NAME = "drone-teleop"
CONFIG_FILE_NAME = "config.json"
CONFIG_PATH_ENV = "DRONE_TELEOP_CONFIG"


def default_config_dir() -> Path:
    system = platform.system()
    home = Path.home()
    if system == "Darwin":
        base = home / "Library" / "Application Support"
    elif system == "Windows":
        base = Path(os.environ.get("APPDATA") or home / "AppData" / "Roaming")
    else:
        # Linux / Raspberry
        base = Path(os.environ.get("XDG_CONFIG_HOME") or home / ".config")
    return base / APP_DIR_NAME


def default_config_path() -> Path:
    override = os.environ.get(CONFIG_PATH_ENV)
    if override:
        return Path(override).expanduser()
    return default_config_dir() / CONFIG_FILE_NAME


class AppSettings(BaseModel):
    # Persistencia
    config_path: Path = Field(default_factory=default_config_path)
    fallback_to_default: bool = True

    # Servidor HTTP de ajustes
    host: str = "127.0.0.1"
    port: int = 8700

    # Logs
    log_level: str = "INFO"

    # Grabación de bindings del mando
    record_timeout: float = 10.0
    record_poll_interval: float = 0.016
    axis_threshold: float = 0.7

    # Joystick clásico (fallback sin SDL2): ejes y botones forzables
    joy_right_stick_axes: Tuple[int, int] = (3, 4)
    joy_trigger_axes: Tuple[int, int] | None = (2, 5)
    joy_button_map: Dict[int, int] | None = None
