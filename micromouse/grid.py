"""Occupancy grid of the maze and the wall record kept for each cell.

Each cell is a byte. The low nibble holds the open directions in absolute
coordinates (bit 0: 0°, bit 1: 90°, bit 2: 180°, bit 3: 270°); bit 4 of the
high nibble marks the cell as visited.
"""

from __future__ import annotations

VISITED = 0x10


def _c_digit(value: int, divisor: int) -> int:
    quotient = abs(value) // divisor
    digit = quotient % 10
    return -digit if value < 0 else digit


def format_message(x: int, y: int, th: int, walls: int) -> bytes:
    """Build the position report ``<xx,yy,ttt,w>`` where ``w`` is the raw cell byte."""
    chars = [
        ord("<"),
        _c_digit(x, 10) + 0x30,
        _c_digit(x, 1) + 0x30,
        ord(","),
        _c_digit(y, 10) + 0x30,
        _c_digit(y, 1) + 0x30,
        ord(","),
        _c_digit(th, 100) + 0x30,
        _c_digit(th, 10) + 0x30,
        _c_digit(th, 1) + 0x30,
        ord(","),
        walls,
        ord(">"),
    ]
    return bytes(c & 0xFF for c in chars)


class OccupancyGrid:
    """Square grid of cell bytes plus the latest sensed activity state."""

    def __init__(self, size: int = 16) -> None:
        if size <= 0:
            raise ValueError("grid size must be positive")
        self.size = size
        self.activity = 0
        self._cells = [[0] * size for _ in range(size)]

    def _check(self, x: int, y: int) -> None:
        if not (0 <= x < self.size and 0 <= y < self.size):
            raise IndexError(f"cell ({x}, {y}) outside a {self.size}x{self.size} grid")

    def read(self, x: int, y: int) -> int:
        self._check(x, y)
        return self._cells[x][y]

    def write(self, x: int, y: int, value: int) -> None:
        self._check(x, y)
        self._cells[x][y] = value & 0xFF

    def clear(self) -> None:
        for column in self._cells:
            column[:] = [0] * self.size

    def save_activity(self, num: int, act_state: int) -> None:
        """Store sensed activity: sides when ``num`` is 0, otherwise add the front bit."""
        if num == 0:
            self.activity = act_state & 0x05
        else:
            self.activity |= act_state & 0x02

    def record(self, x: int, y: int, th: int) -> int:
        """Mark the cell visited, add its open directions and return the new value."""
        self._check(x, y)
        activity = self.activity
        m0 = ((~activity) & 0x02) >> 1
        m90 = (activity & 0x04) >> 2
        m180 = 0x01
        m270 = activity & 0x01

        rotations = {
            0: (m0, m90, m180, m270),
            90: (m270, m0, m90, m180),
            180: (m180, m270, m0, m90),
            270: (m90, m180, m270, m0),
        }
        cell = self._cells[x][y] | VISITED
        bits = rotations.get(th)
        if bits is not None:
            for shift, bit in enumerate(bits):
                cell |= (bit << shift) & (1 << shift)
        self._cells[x][y] = cell
        return cell