"""Blocking motion commands built on top of the attitude controller."""

from __future__ import annotations

from enum import IntEnum
from typing import Callable, Optional, Protocol

from micromouse.attitude import AttitudeState

MOVE_SPEED = 700
SPRINT_GRID_COUNT = 15

Condition = Callable[[], bool]
Waiter = Callable[[Condition], None]


def _spin(done: Condition) -> None:
    while not done():
        pass


class MoveCommand(IntEnum):
    STOP = 0
    FORWARD = 1
    LEFT_90 = 2
    RIGHT_90 = 3
    LEFT_180 = 4
    RIGHT_180 = 5


# command -> (rotation requested from the controller, heading change)
_ROTATIONS = {
    MoveCommand.LEFT_90: (-90, 90),
    MoveCommand.RIGHT_90: (90, -90),
    MoveCommand.LEFT_180: (-180, 180),
    MoveCommand.RIGHT_180: (180, -180),
}


class _Attitude(Protocol):
    state: AttitudeState

    def set_searcher_speed(self, left: int, right: int) -> None: ...

    def set_rotation(self, angle: int) -> None: ...

    def rotate_fast_pending(self) -> bool: ...

    def set_fast_grid_count(self, num: int) -> None: ...

    def set_fast_encoder(self, num: int) -> None: ...


class _Motor(Protocol):
    def motor_running(self) -> bool: ...


class _Odometer(Protocol):
    def update_direction(self, th: int) -> None: ...

    def advance(self, num: int) -> None: ...

    def set_encoder(self, num: int) -> None: ...


class MoveController:
    """Executes motion commands, blocking until each one has taken effect.

    ``wait`` is called with a condition and must return once the condition
    holds; it defaults to spinning on the condition.
    """

    def __init__(
        self,
        attitude: _Attitude,
        motor: _Motor,
        odometer: _Odometer,
        wait: Optional[Waiter],
        speed: int,
        grid_encoder: int,
        turn_position: float,
    ) -> None:
        self.attitude = attitude
        self.motor = motor
        self.odometer = odometer
        self.wait: Waiter = wait if wait is not None else _spin
        self.speed = speed
        self.grid_encoder = grid_encoder
        self.turn_position = turn_position

    @property
    def turn_encoder(self) -> int:
        """Encoder travel left in the cell after a sprint turn."""
        return int(self.grid_encoder * (1 - self.turn_position))

    def _stopped(self) -> bool:
        return not self.motor.running() if hasattr(self.motor, "running") else not self.motor.motor_running()

    def _stop(self) -> None:
        self.attitude.set_searcher_speed(0, 0)
        self.attitude.state = AttitudeState.STOP
        self.wait(lambda: not self.motor.motor_running())

    def move(self, command: MoveCommand) -> None:
        """Execute ``command`` with the default (fast) strategy."""
        self.move_fast(command)

    def move_fast(self, command: MoveCommand) -> None:
        """Search-mode motion: corrected straight runs and fast in-place turns."""
        command = MoveCommand(command)
        if command is MoveCommand.STOP:
            self._stop()
            return
        if command is MoveCommand.FORWARD:
            self.attitude.set_searcher_speed(self.speed, self.speed)
            self.attitude.state = AttitudeState.SEARCH_STRAIGHT
            return
        rotation, heading_change = _ROTATIONS[command]
        self.attitude.state = AttitudeState.STOP
        self.wait(lambda: not self.motor.motor_running())
        self.attitude.set_rotation(rotation)
        self.attitude.state = AttitudeState.ROTATE_FAST
        self.wait(lambda: not self.attitude.rotate_fast_pending())
        self.odometer.update_direction(heading_change)

    def move_sprint(self, command: MoveCommand) -> None:
        """Sprint-mode motion: quarter turns are taken while moving."""
        command = MoveCommand(command)
        if command is MoveCommand.STOP:
            self._stop()
        elif command is MoveCommand.FORWARD:
            return
        elif command in (MoveCommand.LEFT_90, MoveCommand.RIGHT_90):
            rotation, heading_change = _ROTATIONS[command]
            self.attitude.set_rotation(rotation)
            self.attitude.state = AttitudeState.FAST_ROTATE
            self.wait(lambda: self.attitude.state != AttitudeState.FAST_ROTATE)
            self.odometer.advance(1)
            self.attitude.set_fast_encoder(self.turn_encoder)
            self.odometer.update_direction(heading_change)
            self.odometer.set_encoder(self.turn_encoder)
            self.attitude.set_fast_grid_count(SPRINT_GRID_COUNT)
            self.attitude.state = AttitudeState.FAST_STRAIGHT
        else:
            # Both half turns are taken to the left.
            self.move_fast(MoveCommand.LEFT_180)