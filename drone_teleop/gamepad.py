import asyncio
from dataclasses import dataclass
from time import monotonic
from typing import Dict, FrozenSet, Optional, Sequence, Tuple, Union

import pygame
from loguru import logger

from .settings import ControlSource

Binding = Union[int, ControlSource]

# Índice de botón en layout "standard" (A, B, X, Y, LB, RB, LT, RT, Back,
# Start, L3, R3, DPad ↑ ↓ ← →, Guide, extra...) -> código guardado en Config
STANDARD_TO_BINDING: Dict[int, int] = {
    0: 1,
    1: 2,
    2: 5,
    3: 4,
    4: 7,
    5: 8,
    6: 9,
    7: 10,
    8: 11,
    9: 12,
    10: 14,
    11: 15,
    12: 16,
    13: 17,
    14: 18,
    15: 19,
    16: 13,
    17: 3,
    18: 6,
}

BUTTON_LABELS: Dict[int, str] = {
    1: "A / ×",
    2: "B / ○",
    3: "C",
    4: "Y / △",
    5: "X / □",
    6: "Z",
    7: "LB / L1",
    8: "RB / R1",
    9: "LT / L2",
    10: "RT / R2",
    11: "Back / Share",
    12: "Start / Options",
    13: "Xbox / PS Button",
    14: "L3",
    15: "R3",
    16: "DPad Up",
    17: "DPad Down",
    18: "DPad Left",
    19: "DPad Right",
}

CONTROL_SOURCE_LABELS: Dict[ControlSource, str] = {
    ControlSource.LEFT_STICK: "Left Stick",
    ControlSource.RIGHT_STICK: "Right Stick",
    ControlSource.D_PAD: "D-Pad",
    ControlSource.FACE_BUTTONS: "Face Buttons",
}

FACE_BUTTONS = range(0, 4)
DPAD_BUTTONS = range(12, 16)

# SDL2 GameController: botón -> índice standard
SDL_TO_STANDARD: Dict[int, int] = {
    0: 0,    # A
    1: 1,    # B
    2: 2,    # X
    3: 3,    # Y
    4: 8,    # BACK
    5: 16,   # GUIDE
    6: 9,    # START
    7: 10,   # LEFTSTICK
    8: 11,   # RIGHTSTICK
    9: 4,    # LEFTSHOULDER
    10: 5,   # RIGHTSHOULDER
    11: 12,  # DPAD_UP
    12: 13,  # DPAD_DOWN
    13: 14,  # DPAD_LEFT
    14: 15,  # DPAD_RIGHT
}
SDL_AXIS_MAX = 32767.0
TRIGGER_PRESSED = 0.5

# Joystick clásico (xpad en Linux, layout Xbox): botón -> índice standard
JOY_TO_STANDARD: Dict[int, int] = {
    0: 0,    # A
    1: 1,    # B
    2: 2,    # X
    3: 3,    # Y
    4: 4,    # LB
    5: 5,    # RB
    6: 8,    # Back
    7: 9,    # Start
    8: 16,   # Guide
    9: 10,   # L3
    10: 11,  # R3
}
# LT / RT como ejes (reposo en -1)
JOY_TRIGGER_AXES: Tuple[int, int] = (2, 5)

# Hat del joystick clásico -> cruceta standard
HAT_TO_STANDARD: Dict[Tuple[int, int], int] = {
    (0, 1): 12,
    (0, -1): 13,
    (-1, 0): 14,
    (1, 0): 15,
}


def label_for(bind) -> str:
    """Texto para mostrar un binding (código de botón o ControlSource/token)."""
    if isinstance(bind, ControlSource):
        return CONTROL_SOURCE_LABELS[bind]
    if isinstance(bind, str):
        try:
            return CONTROL_SOURCE_LABELS[ControlSource(bind)]
        except ValueError:
            if bind.isdigit():
                return BUTTON_LABELS.get(int(bind), bind)
            return bind
    if isinstance(bind, int) and not isinstance(bind, bool):
        return BUTTON_LABELS.get(bind, str(bind))
    return str(bind)


def labels_payload() -> dict:
    return {
        "buttons": {str(k): v for k, v in BUTTON_LABELS.items()},
        "controlSources": {k.value: v for k, v in CONTROL_SOURCE_LABELS.items()},
    }


def capture_binding(
    pressed: Sequence[int],
    axes: Sequence[float],
    joystick: bool,
    threshold: float = 0.7,
) -> Optional[Binding]:
    """
    Resuelve una lectura del mando a un binding.

    joystick=True: busca una ControlSource (botones frontales, cruceta o un
    stick pasado el umbral). joystick=False: primer botón pulsado, traducido
    con STANDARD_TO_BINDING.
    """
    for i in sorted(pressed):
        if joystick:
            if i in FACE_BUTTONS:
                return ControlSource.FACE_BUTTONS
            if i in DPAD_BUTTONS:
                return ControlSource.D_PAD
        else:
            return STANDARD_TO_BINDING.get(i, i)

    if joystick and len(axes) >= 4:
        lx, ly, rx, ry = axes[:4]
        if abs(lx) > threshold or abs(ly) > threshold:
            return ControlSource.LEFT_STICK
        if abs(rx) > threshold or abs(ry) > threshold:
            return ControlSource.RIGHT_STICK
    return None


@dataclass(frozen=True)
class InputSnapshot:
    pressed: FrozenSet[int]
    axes: Tuple[float, float, float, float]


class GamepadRecorder:
    """
    Lector de mando para grabar bindings desde la pantalla de ajustes.

    Doble backend, como la teleop:
      - SDL2 GameController (pygame._sdl2.controller) si está disponible
      - Joystick clásico (pygame.joystick.Joystick) como fallback
    Ambos se traducen al layout standard antes de resolver el binding.
    """

    def __init__(
        self,
        threshold: float = 0.7,
        poll_interval: float = 0.016,
        right_stick_axes: Tuple[int, int] = (3, 4),
        trigger_axes: Optional[Tuple[int, int]] = JOY_TRIGGER_AXES,
        button_map: Optional[Dict[int, int]] = None,
    ):
        self.threshold = threshold
        self.poll_interval = poll_interval
        self.right_stick_axes = right_stick_axes
        self.trigger_axes = trigger_axes
        self.button_map = dict(JOY_TO_STANDARD if button_map is None else button_map)
        self.gc = None
        self.js = None
        self._pygame_ready = False

    def open(self) -> bool:
        pygame.init()
        pygame.joystick.init()
        self._pygame_ready = True

        self.gc = None
        try:
            from pygame._sdl2 import controller as sdl2c  # type: ignore
            sdl2c.init()
            if sdl2c.get_count() > 0:
                self.gc = sdl2c.Controller(0)
                logger.success(f"🎮 [SDL2] Controlador: {self.gc.name}")
        except Exception as e:
            logger.debug(f"[SDL2] Controller no disponible: {e}")

        self.js = None
        if not self.gc and pygame.joystick.get_count() > 0:
            self.js = pygame.joystick.Joystick(0)
            self.js.init()
            logger.success(f"🎮 [JOY ] Joystick: {self.js.get_name()}")
        if not self.connected():
            logger.warning("⚠️ No se ha detectado ningún mando.")
        return self.connected()

    def close(self):
        self.gc = None
        self.js = None
        if self._pygame_ready:
            try:
                pygame.joystick.quit()
            except Exception as e:
                logger.debug(f"pygame.joystick.quit falló: {e}")
            self._pygame_ready = False

    def connected(self) -> bool:
        return bool(self.gc) or bool(self.js)

    # ---------- Lectura ----------

    def _snapshot_gc(self) -> InputSnapshot:
        pressed = {std for sdl, std in SDL_TO_STANDARD.items() if self.gc.get_button(sdl)}
        raw = [float(self.gc.get_axis(i)) for i in range(6)]
        # SDL2 devuelve enteros en [-32768, 32767]
        norm = [max(-1.0, min(1.0, v / SDL_AXIS_MAX)) for v in raw]
        if norm[4] > TRIGGER_PRESSED:
            pressed.add(6)
        if norm[5] > TRIGGER_PRESSED:
            pressed.add(7)
        return InputSnapshot(frozenset(pressed), (norm[0], norm[1], norm[2], norm[3]))

    def _snapshot_js(self) -> InputSnapshot:
        # índices sin mapear pasan tal cual
        pressed = {
            self.button_map.get(i, i)
            for i in range(self.js.get_numbuttons())
            if self.js.get_button(i)
        }
        if self.js.get_numhats() > 0:
            hx, hy = self.js.get_hat(0)
            for hat, std in HAT_TO_STANDARD.items():
                if (hat[0] and hat[0] == hx) or (hat[1] and hat[1] == hy):
                    pressed.add(std)
        n_axes = self.js.get_numaxes()

        def axis(i: int) -> float:
            return float(self.js.get_axis(i)) if 0 <= i < n_axes else 0.0

        if self.trigger_axes:
            lt_i, rt_i = self.trigger_axes
            if axis(lt_i) > TRIGGER_PRESSED:
                pressed.add(6)
            if axis(rt_i) > TRIGGER_PRESSED:
                pressed.add(7)

        rx_i, ry_i = self.right_stick_axes
        return InputSnapshot(frozenset(pressed), (axis(0), axis(1), axis(rx_i), axis(ry_i)))

    def snapshot(self) -> InputSnapshot:
        if self._pygame_ready:
            # Pump de eventos siempre (importante en macOS)
            pygame.event.pump()
        if self.gc:
            return self._snapshot_gc()
        if self.js:
            return self._snapshot_js()
        return InputSnapshot(frozenset(), (0.0, 0.0, 0.0, 0.0))

    def poll(self, joystick: bool) -> Optional[Binding]:
        snap = self.snapshot()
        return capture_binding(snap.pressed, snap.axes, joystick, self.threshold)

    async def record(self, joystick: bool, timeout: float = 10.0) -> Optional[Binding]:
        """Espera a la primera entrada válida; None si vence ``timeout``."""
        deadline = monotonic() + timeout
        while monotonic() < deadline:
            try:
                bind = self.poll(joystick)
            except Exception as e:
                logger.warning(f"Lectura del mando falló: {e}")
                bind = None
            if bind is not None:
                logger.info(f"🎮 Binding grabado: {label_for(bind)}")
                return bind
            await asyncio.sleep(self.poll_interval)
        logger.info("Grabación de binding sin entrada (timeout).")
        return None
