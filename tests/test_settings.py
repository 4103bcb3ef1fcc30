import json

import pytest
from pydantic import ValidationError

from drone_teleop.errors import SchemaError
from drone_teleop.settings import (
    Config,
    ControlSource,
    GamepadBindings,
    KeyboardBindings,
    config_from_json,
    config_to_json,
    default_config,
    dump_config,
    load_config,
)

from .data import GAMEPAD, KEYBOARD


def test_default_is_deterministic():
    assert default_config() == default_config()
    assert Config.default() == default_config()
    assert hash(default_config()) == hash(default_config())


def test_default_values():
    c = default_config()
    assert c.ip == "10.10.10.10"
    assert c.stream_port == 8889
    assert c.control_port == 5000

    kb = c.keyboard
    assert (kb.move_forward, kb.move_backward, kb.move_left, kb.move_right) == ("W", "S", "A", "D")
    assert (kb.move_up, kb.move_down) == ("Space", "LShift")
    assert (kb.pitch_up, kb.pitch_down) == ("I", "K")
    assert (kb.yaw_left, kb.yaw_right) == ("J", "L")
    assert (kb.roll_left, kb.roll_right) == ("Q", "E")

    gp = c.gamepad
    assert gp.move_horizontal is ControlSource.LEFT_STICK
    assert (gp.move_up, gp.move_down) == (9, 10)
    assert gp.pitch_yaw is ControlSource.RIGHT_STICK
    assert (gp.roll_left, gp.roll_right) == (7, 8)


def test_default_serializes_exact_keys():
    data = dump_config(default_config())
    assert set(data) == {"ip", "streamPort", "controlPort", "keyboard", "gamepad"}
    assert set(data["keyboard"]) == set(KEYBOARD)
    assert set(data["gamepad"]) == set(GAMEPAD)
    assert data["keyboard"] == KEYBOARD
    assert data["gamepad"] == GAMEPAD


def test_round_trip_default():
    c = default_config()
    assert load_config(dump_config(c)) == c
    assert config_from_json(config_to_json(c)) == c


def test_round_trip_hand_built():
    c = Config(
        ip="drone.local",
        stream_port=0,
        control_port=65535,
        keyboard=KeyboardBindings(**{k: "X" for k in KeyboardBindings.model_fields}),
        gamepad=GamepadBindings(
            move_horizontal=ControlSource.D_PAD,
            move_up=0,
            move_down=65535,
            pitch_yaw=ControlSource.FACE_BUTTONS,
            roll_left=3,
            roll_right=3,
        ),
    )
    assert Config.from_dict(c.to_dict()) == c
    assert Config.from_json(c.to_json()) == c


def test_scenario_document(config_dict):
    c = load_config(config_dict)
    assert c.ip == "192.168.10.1"
    assert c.stream_port == 8889
    assert c.control_port == 5000
    assert c.keyboard.move_down == "LShift"
    assert c.keyboard.yaw_right == "L"
    assert c.gamepad.move_horizontal is ControlSource.LEFT_STICK
    assert c.gamepad.pitch_yaw is ControlSource.RIGHT_STICK
    assert dump_config(c) == config_dict


@pytest.mark.parametrize("source,token", [
    (ControlSource.LEFT_STICK, "leftStick"),
    (ControlSource.RIGHT_STICK, "rightStick"),
    (ControlSource.D_PAD, "dPad"),
    (ControlSource.FACE_BUTTONS, "faceButtons"),
])
def test_control_source_tokens(config_dict, source, token):
    config_dict["gamepad"]["pitchYaw"] = token
    c = load_config(config_dict)
    assert c.gamepad.pitch_yaw is source
    assert dump_config(c)["gamepad"]["pitchYaw"] == token


@pytest.mark.parametrize("token", ["triggerPad", "LeftStick", "DPad", ""])
def test_unknown_control_source_rejected(config_dict, token):
    config_dict["gamepad"]["moveHorizontal"] = token
    with pytest.raises(SchemaError) as exc:
        load_config(config_dict)
    assert exc.value.kind == "enum"
    assert exc.value.path == ("gamepad", "moveHorizontal")
    assert "dPad" in exc.value.issues[0].expected


@pytest.mark.parametrize("value", [0, 65535])
def test_u16_bounds_accepted(config_dict, value):
    config_dict["streamPort"] = value
    config_dict["controlPort"] = value
    config_dict["gamepad"]["rollLeft"] = value
    c = load_config(config_dict)
    assert c.stream_port == c.control_port == c.gamepad.roll_left == value


@pytest.mark.parametrize("field", ["streamPort", "controlPort"])
@pytest.mark.parametrize("value", [65536, -1])
def test_port_out_of_range_rejected(config_dict, field, value):
    config_dict[field] = value
    with pytest.raises(SchemaError) as exc:
        load_config(config_dict)
    assert exc.value.kind == "range"
    assert exc.value.path == (field,)
    assert exc.value.issues[0].actual == value


@pytest.mark.parametrize("field", ["moveUp", "moveDown", "rollLeft", "rollRight"])
@pytest.mark.parametrize("value", [65536, -1, 70000])
def test_button_index_out_of_range_rejected(config_dict, field, value):
    config_dict["gamepad"][field] = value
    with pytest.raises(SchemaError) as exc:
        load_config(config_dict)
    assert exc.value.kind == "range"
    assert exc.value.path == ("gamepad", field)


@pytest.mark.parametrize("camel,snake", [
    ("streamPort", "stream_port"),
    ("controlPort", "control_port"),
])
def test_snake_case_keys_not_accepted(config_dict, camel, snake):
    config_dict[snake] = config_dict.pop(camel)
    with pytest.raises(SchemaError) as exc:
        load_config(config_dict)
    assert exc.value.kind == "missing"
    assert exc.value.path == (camel,)


def test_snake_case_nested_keys_not_accepted(config_dict):
    config_dict["gamepad"]["move_horizontal"] = config_dict["gamepad"].pop("moveHorizontal")
    with pytest.raises(SchemaError) as exc:
        load_config(config_dict)
    assert exc.value.kind == "missing"
    assert exc.value.path == ("gamepad", "moveHorizontal")


def test_python_names_still_work_for_construction():
    c = default_config()
    assert Config(
        ip=c.ip,
        stream_port=c.stream_port,
        control_port=c.control_port,
        keyboard=c.keyboard,
        gamepad=c.gamepad,
    ) == c


@pytest.mark.parametrize("value", ["8889", 8889.0, True, None])
def test_port_wrong_type_rejected(config_dict, value):
    config_dict["streamPort"] = value
    with pytest.raises(SchemaError) as exc:
        load_config(config_dict)
    assert exc.value.kind == "type"
    assert exc.value.path == ("streamPort",)


def test_key_name_must_be_string(config_dict):
    config_dict["keyboard"]["moveUp"] = 32
    with pytest.raises(SchemaError) as exc:
        load_config(config_dict)
    assert exc.value.kind == "type"
    assert exc.value.path == ("keyboard", "moveUp")


def test_missing_fields_reported(config_dict):
    del config_dict["keyboard"]["rollRight"]
    del config_dict["ip"]
    with pytest.raises(SchemaError) as exc:
        load_config(config_dict)
    paths = {i.path for i in exc.value.issues}
    assert paths == {("ip",), ("keyboard", "rollRight")}
    assert all(i.kind == "missing" for i in exc.value.issues)
    assert all(i.actual is None for i in exc.value.issues)


def test_not_an_object():
    with pytest.raises(SchemaError) as exc:
        load_config(["not", "a", "config"])
    assert exc.value.kind == "type"
    assert exc.value.path == ()


def test_malformed_json():
    with pytest.raises(SchemaError) as exc:
        config_from_json("{not json")
    assert exc.value.kind == "syntax"


def test_non_utf8_bytes():
    with pytest.raises(SchemaError) as exc:
        config_from_json(b"\xff\xfe\x00garbage")
    assert exc.value.kind == "syntax"


def test_duplicate_key_bindings_allowed(config_dict):
    config_dict["keyboard"]["moveUp"] = "W"
    assert load_config(config_dict).keyboard.move_up == "W"


def test_extra_keys_ignored_and_not_emitted(config_dict):
    config_dict["theme"] = "dark"
    config_dict["keyboard"]["boost"] = "Tab"
    c = load_config(config_dict)
    data = dump_config(c)
    assert "theme" not in data
    assert "boost" not in data["keyboard"]


def test_config_is_immutable():
    c = default_config()
    with pytest.raises(ValidationError):
        c.ip = "1.2.3.4"
    with pytest.raises(ValidationError):
        c.gamepad.move_up = 1


def test_replace_produces_new_value():
    c = default_config()
    new = c.replace(ip="192.168.10.1", controlPort=6000)
    assert new.ip == "192.168.10.1"
    assert new.control_port == 6000
    assert new.stream_port == 8889
    assert c.ip == "10.10.10.10"


def test_replace_accepts_submodels_and_dicts():
    c = default_config()
    gp = c.gamepad.model_copy(update={"move_horizontal": ControlSource.D_PAD})
    assert c.replace(gamepad=gp).gamepad.move_horizontal is ControlSource.D_PAD

    kb = dict(KEYBOARD, moveForward="Up")
    assert c.replace(keyboard=kb).keyboard.move_forward == "Up"


def test_replace_validates():
    with pytest.raises(SchemaError) as exc:
        default_config().replace(stream_port=65536)
    assert exc.value.path == ("streamPort",)


def test_replace_unknown_field():
    with pytest.raises(TypeError):
        default_config().replace(altitude=10)


def test_json_is_camel_case():
    data = json.loads(default_config().to_json())
    assert data["gamepad"]["moveHorizontal"] == "leftStick"
    assert data["streamPort"] == 8889
