"""Closed-loop wheel speed control from encoder counts to PWM output."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

PID_DIVIDER = 10
LARGE_ERROR = 100
BRAKE_DAMPING_MS = 3000


def _int16(value: int) -> int:
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


def _trunc_div(numerator: int, denominator: int) -> int:
    quotient = abs(numerator) // abs(denominator)
    return -quotient if (numerator < 0) != (denominator < 0) else quotient


@dataclass(frozen=True)
class PIDGains:
    kp: float
    ki: float
    kd: float


class MotorSpeedController:
    """Positional discrete PID for the left (0) and right (1) motors.

    ``encoder_reader`` returns the counts since its last call as a pair,
    ``pwm_writer`` receives the two outputs and ``clock`` gives milliseconds.
    """

    def __init__(
        self,
        gains: PIDGains,
        output_max: int,
        stop_threshold: int,
        encoder_reader: Callable[[], tuple[int, int]],
        pwm_writer: Callable[[int, int], None],
        clock: Callable[[], int],
    ) -> None:
        self.gains = gains
        self.output_max = output_max
        self.stop_threshold = stop_threshold
        self._read_encoders = encoder_reader
        self._write_pwm = pwm_writer
        self._clock = clock

        self.target = [0, 0]
        self.encoders = [0, 0]
        self.output = [0, 0]
        self._error = [0.0, 0.0]
        self._error_sum = [0.0, 0.0]
        self._error_1 = [0.0, 0.0]
        self._error_2 = [0.0, 0.0]
        # The previous commanded speed is never refreshed, so the braking
        # timer stays at zero and damping applies once the clock passes 3 s.
        self._last_speed = [0, 0]
        self._stop_tick = 0
        self._divider = 0

    def set_target(self, left: int, right: int) -> None:
        self.target = [_int16(int(left)), _int16(int(right))]

    def encoder(self, side: int) -> int:
        """Counts of the last period: side 0 is left, anything else right."""
        return self.encoders[0] if side == 0 else self.encoders[1]

    def motor_running(self) -> bool:
        limit = self.stop_threshold
        stopped = all(-limit < count < limit for count in self.encoders)
        return not stopped

    def update_encoders(self) -> None:
        left, right = self._read_encoders()
        self.encoders = [_int16(left), _int16(right)]

    def step(self) -> tuple[int, int]:
        """Run one PID update, write the PWM outputs and return them."""
        g = self.gains
        for i in range(2):
            self._error_2[i] = self._error_1[i]
            self._error_1[i] = self._error[i]
            error = float(self.target[i] - self.encoder(i))
            self._error[i] = error
            self._error_sum[i] += error

            small = 1.0 if error < LARGE_ERROR else 0.0
            derivative = error - 2 * self._error_1[i] + self._error_2[i]
            out = int(
                g.kp * error
                + g.ki * self._error_sum[i] * small
                + g.kd * derivative * small
            )
            out = max(-self.output_max, min(self.output_max, out))

            if self._last_speed[i] != 0 and self.target[i] == 0:
                self._stop_tick = self._clock()
            elapsed = (self._clock() - self._stop_tick) & 0xFFFFFFFF
            if self.target[i] == 0 and elapsed > BRAKE_DAMPING_MS:
                out = _trunc_div(out * 2, 3)
            self.output[i] = out

        self._write_pwm(_int16(self.output[0]), _int16(self.output[1]))
        return self.output[0], self.output[1]

    def tick(self) -> None:
        """Called every millisecond; runs the controller every tenth call."""
        self._divider += 1
        if self._divider >= PID_DIVIDER:
            self._divider = 0
            self.update_encoders()
            self.step()