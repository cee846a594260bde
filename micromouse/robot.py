"""Top-level wiring: the millisecond interrupt, start-up and a fixed test route."""

from __future__ import annotations

from typing import Protocol, Sequence

from micromouse.attitude import AttitudeController, AttitudeState
from micromouse.grid import OccupancyGrid
from micromouse.infrared import InfraredSensors
from micromouse.movectrl import MoveCommand
from micromouse.odometer import Odometer
from micromouse.pid import MotorSpeedController

DEFAULT_STEPS = (
    15, 15, 2, 12, 1, 2, 1, 1, 1, 1, 2, 1, 1, 1, 1, 1, 1, 1,
    2, 1, 1, 6, 3, 1, 1, 1, 1, 2, 1, 1, 1, 1, 1, 2, 1, 1,
)
DEFAULT_TURNS = "RRRLLRRLRLLRLRRLRLLRLLLLRLRRRLRLLRRB"

_TURN_COMMANDS = {
    "R": MoveCommand.RIGHT_90,
    "L": MoveCommand.LEFT_90,
    "B": MoveCommand.LEFT_180,
}


class _Mover(Protocol):
    def move(self, command: MoveCommand) -> None: ...


class _Odometer(Protocol):
    def take_update(self) -> bool: ...


class _Attitude(Protocol):
    state: AttitudeState


class StaticPath:
    """Drives a fixed route: ``steps[i]`` cells forward, then turn ``turns[i]``.

    Turns are ``"L"``, ``"R"`` or ``"B"`` (about-face). After the last turn
    the route is finished and the robot is left where it stands.
    """

    def __init__(
        self,
        mover: _Mover,
        odometer: _Odometer,
        attitude: _Attitude,
        steps: Sequence[int] = DEFAULT_STEPS,
        turns: Sequence[str] = DEFAULT_TURNS,
    ) -> None:
        if len(steps) != len(turns):
            raise ValueError("steps and turns must have the same length")
        unknown = set(turns) - set(_TURN_COMMANDS)
        if unknown:
            raise ValueError(f"unknown turn codes: {sorted(unknown)}")
        self.mover = mover
        self.odometer = odometer
        self.attitude = attitude
        self.steps = tuple(steps)
        self.turns = tuple(turns)
        self.cells = 0
        self.index = 0

    @property
    def finished(self) -> bool:
        return self.index >= len(self.steps)

    def step(self) -> None:
        """Advance the route whenever the odometer reports a new cell."""
        if self.finished or not self.odometer.take_update():
            return
        self.cells += 1
        if self.cells == self.steps[self.index]:
            self.attitude.state = AttitudeState.STOP
            self.cells = 0
            self.mover.move(_TURN_COMMANDS[self.turns[self.index]])
            self.index += 1
            if self.finished:
                return
        self.mover.move(MoveCommand.FORWARD)


class Robot:
    """Holds the controllers and runs them from the millisecond interrupt."""

    def __init__(
        self,
        infrared: InfraredSensors,
        motor: MotorSpeedController,
        attitude: AttitudeController,
        odometer: Odometer,
        grid: OccupancyGrid,
    ) -> None:
        self.infrared = infrared
        self.motor = motor
        self.attitude = attitude
        self.odometer = odometer
        self.grid = grid

    def setup(self) -> None:
        """Take a fresh reading and record the starting cell in an empty map."""
        self.infrared.reading = self.infrared.sample()
        self.grid.activity = self.infrared.active_directions()
        self.grid.clear()
        pose = self.odometer.pose
        self.grid.record(pose.x, pose.y, pose.th)

    def interrupt(self) -> None:
        """One millisecond of work: motion control first, then odometry."""
        self.motor.tick()
        self.infrared.tick()
        self.attitude.tick()
        self.odometer.tick()

    def run_ticks(self, count: int) -> None:
        """Run ``count`` interrupts back to back."""
        if count < 0:
            raise ValueError("tick count must not be negative")
        for _ in range(count):
            self.interrupt()