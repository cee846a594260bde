"""Grid odometry: heading, cell position and map updates while driving straight."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Protocol

from micromouse.attitude import AttitudeState
from micromouse.grid import OccupancyGrid

ODOMETER_DIVIDER = 10

_COS = {0: 1, 90: 0, 180: -1, 270: 0}
_SIN = {0: 0, 90: 1, 180: 0, 270: -1}


def _int16(value: int) -> int:
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


def _int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def heading_cos(th: int) -> int:
    """Cosine of a right-angle heading."""
    try:
        return _COS[th]
    except KeyError:
        raise ValueError(f"heading {th} is not a multiple of 90 degrees") from None


def heading_sin(th: int) -> int:
    """Sine of a right-angle heading."""
    try:
        return _SIN[th]
    except KeyError:
        raise ValueError(f"heading {th} is not a multiple of 90 degrees") from None


@dataclass(frozen=True)
class Pose:
    """Cell coordinates and heading in degrees (0 along +x, 90 along +y)."""

    x: int = 0
    y: int = 0
    th: int = 90


class OdometerError(RuntimeError):
    """The tracked position has left the maze; the map can no longer be trusted."""


@dataclass(frozen=True)
class OdometerParams:
    grid_encoder: int
    side_start: float
    side_end: float
    fix_offset: float


class _Attitude(Protocol):
    state: AttitudeState


class _Motor(Protocol):
    def encoder(self, side: int) -> int: ...


class _Infrared(Protocol):
    def barrier_active(self) -> bool: ...

    def active_directions(self) -> int: ...


class Odometer:
    """Counts encoder travel into cells and records each new cell in the grid."""

    def __init__(
        self,
        attitude: _Attitude,
        motor: _Motor,
        infrared: _Infrared,
        grid: OccupancyGrid,
        params: OdometerParams,
    ) -> None:
        self.attitude = attitude
        self.motor = motor
        self.infrared = infrared
        self.grid = grid
        self.params = params
        self.pose = Pose()
        self.encoder_sum = 0
        self.fix_offset = params.fix_offset
        self._updated = False
        self._side_scanned = False
        self._divider = 0

    def update_direction(self, th: int) -> None:
        """Turn the heading by ``th`` degrees (positive is counter-clockwise)."""
        total = self.pose.th + th
        angle = _int16(360 + th if total < 0 else total)
        angle = int(math.fmod(angle, 360))
        self.pose = replace(self.pose, th=angle)

    def take_update(self) -> bool:
        """Return whether a new cell was reached since the last call, and clear it."""
        updated = self._updated
        self._updated = False
        return updated

    def advance(self, num: int) -> None:
        """Move ``num`` cells along the current heading."""
        num &= 0xFF
        p = self.pose
        self.pose = replace(
            p, x=p.x + num * heading_cos(p.th), y=p.y + num * heading_sin(p.th)
        )

    def set_encoder(self, num: int) -> None:
        self.encoder_sum = _int32(num)

    def set_fix_offset(self, value: float) -> None:
        self.fix_offset = value

    def _check_bounds(self) -> None:
        size = self.grid.size
        p = self.pose
        if not (0 <= p.x < size and 0 <= p.y < size):
            raise OdometerError(f"position ({p.x}, {p.y}) is outside the maze")

    def _enter_cell(self) -> None:
        self.advance(1)
        self._updated = True
        self._check_bounds()
        self.grid.save_activity(1, self.infrared.active_directions())
        self.grid.record(self.pose.x, self.pose.y, self.pose.th)
        self._side_scanned = False

    def step(self) -> None:
        """Accumulate travel while driving straight and handle cell crossings."""
        straight = (AttitudeState.SEARCH_STRAIGHT, AttitudeState.FAST_STRAIGHT)
        if self.attitude.state in straight:
            p = self.params
            grid = p.grid_encoder
            self.encoder_sum = _int32(
                self.encoder_sum + self.motor.encoder(0) + self.motor.encoder(1)
            )
            if (
                int(grid * p.side_start) <= self.encoder_sum <= int(grid * p.side_end)
                and not self._side_scanned
            ):
                self.grid.save_activity(0, self.infrared.active_directions())
                self._side_scanned = True

            if grid <= self.encoder_sum:
                self.encoder_sum -= grid
                self._enter_cell()
            elif self.infrared.barrier_active() and self.encoder_sum > int(
                grid * self.fix_offset
            ):
                self.encoder_sum = 0
                self._enter_cell()
        else:
            self.encoder_sum = 0
        self._check_bounds()

    def tick(self) -> None:
        """Called every millisecond; steps the odometer every tenth call."""
        self._divider += 1
        if self._divider >= ODOMETER_DIVIDER:
            self._divider = 0
            self.step()