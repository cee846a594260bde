"""Infrared proximity sensing and the environment cues derived from it."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

EMITTER_NONE = 0
EMITTER_LF = 1
EMITTER_RF = 2
EMITTER_LS = 4
EMITTER_RS = 8

ADC_LIMIT = 4096
SAMPLE_DIVIDER = 10

EVENT_LF_LEVEL = 2800
EVENT_LS_LEVEL = 2800
EVENT_RS_LEVEL = 3700
EVENT_RF_LEVEL = 2800


def _int16(value: int) -> int:
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


@dataclass(frozen=True)
class SensorReading:
    """One value per sensor: left side, left front, right front, right side."""

    ls: int = 0
    lf: int = 0
    rf: int = 0
    rs: int = 0


@dataclass(frozen=True)
class InfraredParams:
    """Calibration of the sensor group."""

    base_left: int
    base_right: int
    miss_left: int
    miss_right: int
    lost_left: int
    lost_right: int
    offset_lf: int
    offset_rf: int
    active_lf: int
    active_rf: int
    threshold: int
    front_left_active: int
    front_right_active: int
    front_sum_active: int


def compensate(ambient: int, lit: int) -> int:
    """Remove the ambient level from a lit reading; out-of-range results become 0."""
    value = (lit - ambient) & 0xFFFF
    return value if value < ADC_LIMIT else 0


Sampler = Callable[[int], SensorReading]


class InfraredSensors:
    """Samples the four emitter/receiver pairs and interprets the readings.

    ``sampler`` switches on the emitters given by its bit mask argument
    (0 for all off), converts all four receivers and returns the raw values.
    """

    def __init__(self, sampler: Sampler, params: InfraredParams) -> None:
        self._sampler = sampler
        self.params = params
        self.reading = SensorReading()
        self._divider = 0

    def sample(self) -> SensorReading:
        """Take an ambient-compensated reading of all four sensors."""
        ambient = self._sampler(EMITTER_NONE)
        ls = compensate(ambient.ls, self._sampler(EMITTER_LS).ls)
        rs = compensate(ambient.rs, self._sampler(EMITTER_RS).rs)
        lf = compensate(ambient.lf, self._sampler(EMITTER_LF).lf)
        rf = compensate(ambient.rf, self._sampler(EMITTER_RF).rf)
        return SensorReading(ls=ls, lf=lf, rf=rf, rs=rs)

    def tick(self) -> None:
        """Called every millisecond; refreshes the reading every tenth call."""
        self._divider += 1
        if self._divider >= SAMPLE_DIVIDER:
            self._divider = 0
            self.reading = self.sample()

    def _side_values(self) -> tuple[int, int]:
        p = self.params
        left = _int16(self.reading.ls - p.base_left)
        right = _int16(self.reading.rs - p.base_right)
        return left, right

    def offset(self) -> int:
        """Lateral offset from the corridor centre: negative left, positive right."""
        p = self.params
        miss_left = _int16(p.miss_left - p.base_left)
        miss_right = _int16(p.miss_right - p.base_right)
        left, right = self._side_values()

        left_missing = left < miss_left
        right_missing = right < miss_right
        if left_missing and right_missing:
            return 0
        if right_missing:
            return left
        if left_missing:
            return _int16(-right)
        return _int16(left - right)

    def barrier_active(self) -> bool:
        """True when an obstacle ahead is close enough to trigger."""
        p = self.params
        lf = _int16(self.reading.lf + p.offset_lf)
        rf = _int16(self.reading.rf + p.offset_rf)
        total = lf + rf
        return (lf > p.active_lf and total > p.threshold) or (
            rf > p.active_rf and total > p.threshold
        )

    def active_directions(self) -> int:
        """Bits 0b0LFR: left side open, front blocked, right side open."""
        p = self.params
        lost_left = _int16(p.lost_left - p.base_left)
        lost_right = _int16(p.lost_right - p.base_right)
        left, right = self._side_values()

        state = 0
        if left < lost_left:
            state |= 0x04
        if right < lost_right:
            state |= 0x01
        front_sum = _int16(self.reading.lf + self.reading.rf)
        if front_sum > p.front_sum_active and (
            self.reading.lf > p.front_left_active
            or self.reading.rf > p.front_right_active
        ):
            state |= 0x02
        return state

    def event_bits(self) -> int:
        """Bit set of sensors whose reading exceeds its trigger level."""
        bits = 0
        if self.reading.lf > EVENT_LF_LEVEL:
            bits |= 0x01
        if self.reading.ls > EVENT_LS_LEVEL:
            bits |= 0x02
        if self.reading.rs > EVENT_RS_LEVEL:
            bits |= 0x04
        if self.reading.rf > EVENT_RF_LEVEL:
            bits |= 0x08
        return bits