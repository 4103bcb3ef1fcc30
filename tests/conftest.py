import copy

import pytest

from .data import GAMEPAD, KEYBOARD


@pytest.fixture
def config_dict():
    return {
        "ip": "192.168.10.1",
        "streamPort": 8889,
        "controlPort": 5000,
        "keyboard": copy.deepcopy(KEYBOARD),
        "gamepad": copy.deepcopy(GAMEPAD),
    }


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "drone-teleop" / "config.json"
