"""Flood-fill route planning over the occupancy grid.

Costs spread outward from the start cell. Each step costs 1, and a change of
heading costs 1 more. The route is then read back from the target by always
stepping to the cheapest neighbour. Only the cells where the heading changes
are kept as navigation nodes.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Optional

from micromouse.grid import OccupancyGrid
from micromouse.odometer import Pose

UNREACHED = 0xFFFF
ROUTE_CAPACITY = 255
QUEUE_SIZE = 256
PATH_LIMIT = 256
TARGET_HEADING = 360

DIRECTIONS = (0x01, 0x02, 0x04, 0x08)

_HEADINGS = {0x01: 0, 0x02: 90, 0x04: 180, 0x08: 270}
_STEPS = {0x01: (1, 0), 0x02: (0, 1), 0x04: (-1, 0), 0x08: (0, -1)}


def dir_to_heading(direction: int) -> int:
    """Heading in degrees of a single direction bit; anything else gives 0."""
    return _HEADINGS.get(direction, 0)


def move_position(pose: Pose, direction: int) -> Pose:
    """Step one cell along ``direction`` and take on its heading."""
    dx, dy = _STEPS.get(direction, (0, 0))
    return Pose(pose.x + dx, pose.y + dy, dir_to_heading(direction))


class Planner:
    """Plans the route from ``start`` to ``target`` on ``grid``."""

    def __init__(
        self,
        grid: OccupancyGrid,
        start: Optional[Pose] = None,
        target: Optional[Pose] = None,
    ) -> None:
        self.grid = grid
        self.start = start if start is not None else Pose()
        self.target = target if target is not None else Pose(7, 7, 180)
        self._costs = [[UNREACHED] * grid.size for _ in range(grid.size)]
        self._route = [(0, 0)] * ROUTE_CAPACITY

    def reset(self, start: Pose) -> None:
        """Return the target to the maze centre and start from ``start``."""
        self.target = Pose(7, 7, 180)
        self.start = start

    def crossed_directions(self, pose: Pose) -> int:
        """Directions open from both sides of the shared wall."""
        grid = self.grid
        edge = grid.size - 1
        x, y = pose.x, pose.y
        directions = grid.read(x, y) & 0x0F
        if x == edge or not grid.read(x + 1, y) & 0x04:
            directions &= ~0x01
        if x == 0 or not grid.read(x - 1, y) & 0x01:
            directions &= ~0x04
        if y == edge or not grid.read(x, y + 1) & 0x08:
            directions &= ~0x02
        if y == 0 or not grid.read(x, y - 1) & 0x02:
            directions &= ~0x08
        return directions

    def cost(self, x: int, y: int) -> int:
        """Movement cost of reaching cell ``(x, y)`` from the start."""
        return self._costs[x][y]

    def flood(self) -> None:
        """Fill the cost map outward from the start cell."""
        size = self.grid.size
        self._costs = [[UNREACHED] * size for _ in range(size)]
        self._costs[self.start.x][self.start.y] = 0

        # Slots never written hold an origin pose facing 0 and still get expanded.
        queue: list[Optional[Pose]] = [Pose(0, 0, 0)] * QUEUE_SIZE
        queue[0] = self.start
        read, write = 0, 1

        while True:
            cur = queue[read]
            queue[read] = None
            read = (read + 1) % QUEUE_SIZE
            if cur is None:
                break
            open_dirs = self.crossed_directions(cur)
            for direction in DIRECTIONS:
                if not open_dirs & direction:
                    continue
                step_cost = (self._costs[cur.x][cur.y] + 1) & 0xFF
                if cur.th != dir_to_heading(direction):
                    step_cost = (step_cost + 1) & 0xFF
                nxt = move_position(cur, direction)
                if self._costs[nxt.x][nxt.y] > step_cost:
                    self._costs[nxt.x][nxt.y] = step_cost
                    queue[write] = nxt
                    write = (write + 1) % QUEUE_SIZE

    def analyse(self) -> list[Pose]:
        """Trace the cheapest path back from the target and store its turning nodes.

        Returns the navigation nodes from start to target.
        """
        path = [replace(self.target, th=TARGET_HEADING)]
        nodes: list[Pose] = []
        while (path[-1].x, path[-1].y) != (self.start.x, self.start.y):
            here = path[-1]
            best = 255
            chosen: Optional[Pose] = None
            open_dirs = self.crossed_directions(here)
            for direction in DIRECTIONS:
                if not open_dirs & direction:
                    continue
                nxt = move_position(here, direction)
                nxt_cost = self._costs[nxt.x][nxt.y]
                if nxt_cost < best:
                    best = nxt_cost & 0xFF
                    chosen = nxt
            if chosen is None:
                raise ValueError(
                    f"no route from ({self.start.x}, {self.start.y}) "
                    f"to ({self.target.x}, {self.target.y})"
                )
            path.append(chosen)
            if len(path) > PATH_LIMIT:
                raise ValueError("route is longer than the path buffer")
            if path[-2].th != path[-1].th:
                nodes.append(path[-2])
        nodes.append(Pose(self.start.x, self.start.y, 0))

        route = list(reversed(nodes))
        for index, node in enumerate(route):
            self.set_route_node(index, node)
        return [self.route_node(index) for index in range(len(route))]

    def search(self) -> bool:
        """Plan the route and store its nodes; returns True once done."""
        self.flood()
        self.analyse()
        return True

    def route_node(self, index: int) -> Pose:
        x, y = self._route[index]
        return Pose(x, y, 0)

    def set_route_node(self, index: int, pose: Pose) -> None:
        self._route[index] = (pose.x & 0xFF, pose.y & 0xFF)