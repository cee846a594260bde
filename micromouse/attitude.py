"""Attitude state machine: straight-line correction, in-place rotation and turns."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Protocol

CONTROL_DIVIDER = 10
TURN_SPEED_CAP = 3000

_INT32_MIN = -(1 << 31)
_INT32_MAX = (1 << 31) - 1


def _int16(value: int) -> int:
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


def _int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def _trunc_div(numerator: int, denominator: int) -> int:
    quotient = abs(numerator) // abs(denominator)
    return -quotient if (numerator < 0) != (denominator < 0) else quotient


def _fdiv(numerator: float, denominator: float) -> float:
    """Floating division that yields inf or nan on a zero denominator."""
    if denominator == 0:
        if numerator == 0 or math.isnan(numerator):
            return math.nan
        return math.copysign(math.inf, numerator)
    return numerator / denominator


def _to_int(value: float) -> int:
    """Truncate toward zero; non-finite values saturate (nan becomes 0)."""
    if math.isnan(value):
        return 0
    if math.isinf(value):
        return _INT32_MAX if value > 0 else _INT32_MIN
    return int(value)


def _clamp(value: int, limit: int) -> int:
    return max(-limit, min(limit, value))


class AttitudeState(IntEnum):
    STOP = 0
    WAITING = 1
    SEARCH_STRAIGHT = 2
    ROTATE = 3
    ROTATE_FAST = 4
    FAST_STRAIGHT = 5
    FAST_ROTATE = 6


@dataclass(frozen=True)
class AttitudeParams:
    """Tuning of the attitude controllers."""

    straight_kp: float
    straight_error_max: int
    straight_fast_kp: float
    straight_speed_limit: int
    straight_fast_bias: int
    grid_encoder: int
    rotation_output_max: int
    rotation_tolerance: int
    rotation_encoder_90: int
    rotation_encoder_180: int
    rotation_kp: float
    rotation_fast_scale: float
    turn_encoder_outer: int
    turn_encoder_inner: int
    turn_kp: float
    turn_tolerance: float
    turn_outer_ratio: float


class _Motor(Protocol):
    def encoder(self, side: int) -> int: ...

    def set_target(self, left: int, right: int) -> None: ...


class _Infrared(Protocol):
    def offset(self) -> int: ...


class AttitudeController:
    """Runs the controller matching ``state`` and publishes wheel speed targets."""

    def __init__(self, motor: _Motor, infrared: _Infrared, params: AttitudeParams) -> None:
        self.motor = motor
        self.infrared = infrared
        self.params = params
        self.state = AttitudeState.STOP
        self.searcher_speed = (0, 0)
        self.rotate_degrees = 0
        self.fast_grid_count = 0
        self.fast_encoder = [0, 0]
        self._rotate_done = False
        self._rotate_encoder = [0, 0]
        self._rotate_fast_encoder = [0, 0]
        self._turn_left_sum = [0, 0]
        self._turn_right_sum = [0, 0]
        self._dividers = {state: 0 for state in AttitudeState}

    # configuration -------------------------------------------------------

    def set_searcher_speed(self, left: int, right: int) -> None:
        self.searcher_speed = (left & 0xFFFF, right & 0xFFFF)

    def set_rotation(self, angle: int) -> None:
        self.rotate_degrees = _int16(angle)

    def rotate_fast_pending(self) -> bool:
        """True until the fast rotation has finished; consumes the completion."""
        if self._rotate_done:
            self._rotate_done = False
            return False
        return True

    def set_fast_grid_count(self, num: int) -> None:
        self.fast_grid_count = _int16(num & 0xFFFF)

    def set_fast_encoder(self, num: int) -> None:
        value = _int32(num)
        self.fast_encoder = [value, value]

    def _clear_fast_line(self) -> None:
        self.fast_grid_count = 0
        self.fast_encoder = [0, 0]

    # controllers ---------------------------------------------------------

    def _clamped_offset(self) -> int:
        limit = self.params.straight_error_max
        return _clamp(self.infrared.offset(), limit)

    def searcher_step(self) -> tuple[int, int]:
        """Proportional lateral correction around the searcher speed."""
        p = self.params
        left, right = self.searcher_speed
        kp = _fdiv(p.straight_kp * float(_trunc_div(left + right, 2)), p.straight_error_max)
        offset = self._clamped_offset()
        out_left = _to_int(left + kp * offset)
        out_right = _to_int(right - kp * offset)
        self.motor.set_target(out_left, out_right)
        return out_left, out_right

    def fast_line_step(self) -> tuple[int, int]:
        """Position-controlled straight run over ``fast_grid_count`` cells."""
        p = self.params
        m = self.motor
        self.fast_encoder[0] = _int32(self.fast_encoder[0] + m.encoder(0))
        self.fast_encoder[1] = _int32(self.fast_encoder[1] + m.encoder(1))

        target = _trunc_div(self.fast_grid_count * p.grid_encoder, 2)
        speeds = []
        for travelled in self.fast_encoder:
            error = float(target - travelled)
            speed = _clamp(_to_int(p.straight_fast_kp * error), p.straight_speed_limit)
            start = _fdiv(float(travelled), float(target)) / 0.2
            end = _fdiv(error, float(target)) / 0.1
            start = 1.0 if start > 1.0 else start
            end = 1.0 if end > 1.0 else end
            speed = _to_int(speed * start * end)
            speed = _to_int(speed + p.straight_fast_bias)
            speeds.append(speed)
        left, right = speeds

        offset = self.infrared.offset()
        top = p.straight_speed_limit + p.straight_fast_bias
        mean_encoder = float(m.encoder(0) + m.encoder(1)) / 2
        kv = 0.1 + 0.2 * _fdiv(float(top - mean_encoder), float(top))
        kp = _fdiv(kv * float(_trunc_div(left + right, 2)), p.straight_error_max)
        offset = _clamp(offset, p.straight_error_max)

        left = _to_int(left + kp * offset)
        right = _to_int(right - kp * offset)
        self.motor.set_target(left, right)
        return left, right

    def _rotation_target(self, degrees: int) -> int:
        p = self.params
        return {
            90: p.rotation_encoder_90,
            -90: -p.rotation_encoder_90,
            180: p.rotation_encoder_180,
            -180: -p.rotation_encoder_180,
        }.get(degrees, 0)

    def _within(self, errors: list[int]) -> bool:
        tol = self.params.rotation_tolerance
        return all(-tol < error < tol for error in errors)

    def rotate_step(self, degrees: int) -> None:
        """Proportional in-place rotation; returns to STOP once reached."""
        p = self.params
        half = _trunc_div(self._rotation_target(degrees), 2)
        enc = self._rotate_encoder
        enc[0] = _int32(enc[0] + self.motor.encoder(0))
        enc[1] = _int32(enc[1] - self.motor.encoder(1))

        speeds = [
            _clamp(_int32(_to_int(p.rotation_kp * (half - e))), p.rotation_output_max)
            for e in enc
        ]
        if self._within([half - e for e in enc]):
            self.state = AttitudeState.STOP
            self._rotate_encoder = [0, 0]
            return
        self.motor.set_target(speeds[0], -speeds[1])

    def rotate_fast_step(self, degrees: int) -> None:
        """Faster rotation that raises the completion flag instead of stopping."""
        p = self.params
        angle = _to_int(self._rotation_target(degrees) * p.rotation_fast_scale * 0.5)
        enc = self._rotate_fast_encoder
        enc[0] = _int32(enc[0] + self.motor.encoder(0) * 2)
        enc[1] = _int32(enc[1] - self.motor.encoder(1) * 2)

        speeds = [
            _clamp(_int32(_to_int(p.rotation_kp * (angle - e))), p.rotation_output_max)
            for e in enc
        ]
        if self._within([angle - e for e in enc]):
            self._rotate_fast_encoder = [0, 0]
            self._rotate_done = True
            return
        self.motor.set_target(speeds[0], -speeds[1])

    def _turn(self, sums: list[int], goals: tuple[int, int], outer_side: int) -> None:
        p = self.params
        sums[0] = _int32(sums[0] + self.motor.encoder(0))
        sums[1] = _int32(sums[1] + self.motor.encoder(1))
        errors = [float(goals[i]) - float(sums[i]) for i in range(2)]
        tol = p.turn_tolerance
        if all(-tol < e < tol for e in errors):
            sums[0] = 0
            sums[1] = 0
            self.state = AttitudeState.STOP
            return
        speeds = [_to_int(p.turn_kp * e) for e in errors]
        speeds[outer_side] = min(
            _to_int(speeds[outer_side] * p.turn_outer_ratio), TURN_SPEED_CAP
        )
        self.motor.set_target(speeds[0], speeds[1])

    def turn_step(self, degrees: int) -> None:
        """Smooth 90° turn while moving: 90 turns right, -90 turns left."""
        p = self.params
        if degrees == 90:
            self._turn(
                self._turn_right_sum, (p.turn_encoder_outer, p.turn_encoder_inner), 0
            )
        elif degrees == -90:
            self._turn(
                self._turn_left_sum, (p.turn_encoder_inner, p.turn_encoder_outer), 1
            )

    # state machine -------------------------------------------------------

    def _divided(self, state: AttitudeState) -> bool:
        self._dividers[state] += 1
        if self._dividers[state] >= CONTROL_DIVIDER:
            self._dividers[state] = 0
            return True
        return False

    def tick(self) -> None:
        """Called every millisecond; runs the controller of the current state."""
        state = self.state
        if state == AttitudeState.STOP:
            self.motor.set_target(0, 0)
        elif state == AttitudeState.SEARCH_STRAIGHT:
            if self._divided(state):
                self.searcher_step()
        elif state == AttitudeState.FAST_STRAIGHT:
            if self._divided(state):
                self.fast_line_step()
        elif state == AttitudeState.ROTATE:
            if self._divided(state):
                self.rotate_step(self.rotate_degrees)
        elif state == AttitudeState.ROTATE_FAST:
            if self._divided(state):
                self.rotate_fast_step(self.rotate_degrees)
        elif state == AttitudeState.FAST_ROTATE:
            if self._divided(state):
                self.turn_step(self.rotate_degrees)

        if self.state != AttitudeState.FAST_STRAIGHT:
            self._clear_fast_line()