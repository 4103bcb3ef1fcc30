import json
from enum import Enum
from typing import Annotated, Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError
from pydantic.alias_generators import to_camel

from .errors import SchemaError

# Puertos e índices de botón: u16, sin coerción desde str/float/bool
U16 = Annotated[int, Field(strict=True, ge=0, le=65535)]


class ControlSource(str, Enum):
    """Clase de entrada analógica/direccional (no un eje concreto)."""
    LEFT_STICK = "leftStick"
    RIGHT_STICK = "rightStick"
    D_PAD = "dPad"
    FACE_BUTTONS = "faceButtons"


class _Schema(BaseModel):
    # camelCase en el exterior, snake_case en Python; inmutable
    model_config = ConfigDict(
        alias_generator=to_camel,
        validate_by_name=True,
        validate_by_alias=True,
        frozen=True,
        extra="ignore",
    )


class KeyboardBindings(_Schema):
    move_forward: StrictStr
    move_backward: StrictStr
    move_left: StrictStr
    move_right: StrictStr
    move_up: StrictStr
    move_down: StrictStr
    yaw_left: StrictStr
    yaw_right: StrictStr
    pitch_up: StrictStr
    pitch_down: StrictStr
    roll_left: StrictStr
    roll_right: StrictStr


class GamepadBindings(_Schema):
    move_horizontal: ControlSource
    move_up: U16
    move_down: U16
    pitch_yaw: ControlSource
    roll_left: U16
    roll_right: U16


class Config(_Schema):
    # Conexión
    ip: StrictStr
    stream_port: U16
    control_port: U16

    # Controles
    keyboard: KeyboardBindings
    gamepad: GamepadBindings

    @classmethod
    def default(cls) -> "Config":
        return default_config()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Config":
        return load_config(data)

    @classmethod
    def from_json(cls, text) -> "Config":
        return config_from_json(text)

    def to_dict(self) -> dict:
        return dump_config(self)

    def to_json(self, indent: int | None = 2) -> str:
        return config_to_json(self, indent=indent)

    def replace(self, **changes: Any) -> "Config":
        """
        Sustitución de campos completos -> nuevo Config validado.
        Acepta nombres Python (stream_port) o camelCase (streamPort); los
        sub-modelos pueden pasarse como instancia o como dict camelCase.
        """
        data = self.to_dict()
        for name, value in changes.items():
            key = name if name in data else to_camel(name)
            if key not in data:
                raise TypeError(f"Config has no field {name!r}")
            if isinstance(value, BaseModel):
                value = value.model_dump(by_alias=True, mode="json")
            elif isinstance(value, Enum):
                value = value.value
            data[key] = value
        return load_config(data)


def default_config() -> Config:
    """Valores de una instalación limpia."""
    return Config(
        ip="10.10.10.10",
        stream_port=8889,
        control_port=5000,
        keyboard=KeyboardBindings(
            move_forward="W",
            move_backward="S",
            move_left="A",
            move_right="D",
            move_up="Space",
            move_down="LShift",
            pitch_up="I",
            pitch_down="K",
            yaw_left="J",
            yaw_right="L",
            roll_left="Q",
            roll_right="E",
        ),
        gamepad=GamepadBindings(
            move_horizontal=ControlSource.LEFT_STICK,
            move_up=9,
            move_down=10,
            pitch_yaw=ControlSource.RIGHT_STICK,
            roll_left=7,
            roll_right=8,
        ),
    )


def dump_config(config: Config) -> dict:
    return config.model_dump(by_alias=True, mode="json")


def load_config(data: Mapping[str, Any]) -> Config:
    if isinstance(data, Config):
        return data
    try:
        # datos externos: sólo claves camelCase
        return Config.model_validate(data, by_alias=True, by_name=False)
    except ValidationError as e:
        raise SchemaError.from_validation_error(e) from e


def config_to_json(config: Config, indent: int | None = 2) -> str:
    return json.dumps(dump_config(config), indent=indent)


def config_from_json(text) -> Config:
    # acepta str o bytes; bytes no UTF-8 -> UnicodeDecodeError (ValueError) -> syntax
    # json.loads primero: así los enteros quedan como int y el modo estricto aplica igual
    try:
        data = json.loads(text)
    except ValueError as e:
        raise SchemaError.syntax(str(e)) from e
    return load_config(data)
