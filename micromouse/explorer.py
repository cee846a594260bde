"""Maze exploration: walks the maze cell by cell until the map is known."""

from __future__ import annotations

import math
from typing import Iterable, Optional, Protocol

from micromouse.grid import VISITED, OccupancyGrid
from micromouse.movectrl import MoveCommand, Waiter, _spin
from micromouse.navigator import direction_between, turn_command
from micromouse.odometer import Pose

RETURNLESS_PLAN = 3

DIRECTIONS = (0x01, 0x02, 0x04, 0x08)
_STEPS = {0x01: (1, 0), 0x02: (0, 1), 0x04: (-1, 0), 0x08: (0, -1)}
_BACKWARD = {0: 0x04, 90: 0x08, 180: 0x01, 270: 0x02}
_PLAN_ORDERS = {0: (0x01, 0x02, 0x04, 0x08), 1: (0x08, 0x04, 0x01, 0x02)}


def direction_count(directions: int) -> int:
    """Number of open directions among the four low bits."""
    return sum(1 for direction in DIRECTIONS if directions & direction)


def next_position(direction: int, pose: Pose) -> Pose:
    """Position reached by stepping along every direction bit set in ``direction``."""
    x, y = pose.x, pose.y
    for bit, (dx, dy) in _STEPS.items():
        if direction & bit:
            x += dx
            y += dy
    return Pose(x, y, pose.th)


class _Odometer(Protocol):
    pose: Pose


class _Mover(Protocol):
    def move(self, command: MoveCommand) -> None: ...


class _Planner(Protocol):
    target: Pose

    def search(self) -> bool: ...


class MapExplorer:
    """Depth-first exploration that records the walk and its open branches.

    ``plan`` chooses among open directions: 0 prefers +x/+y, 1 prefers
    -y/-x, 2 prefers the neighbour nearest the maze centre. With plan 3 the
    start doubles as the goal, so no return trip is driven.
    """

    def __init__(
        self,
        grid: OccupancyGrid,
        odometer: _Odometer,
        mover: _Mover,
        planner: _Planner,
        wait: Optional[Waiter],
        plan: int,
        targets: Iterable[Pose],
        stop_when_complete: bool,
    ) -> None:
        self.grid = grid
        self.odometer = odometer
        self.mover = mover
        self.planner = planner
        self.wait: Waiter = wait if wait is not None else _spin
        self.plan = plan
        self.targets = tuple(targets)
        self.stop_when_complete = stop_when_complete
        self.path: list[Pose] = []
        self.branches: list[tuple[int, int, int]] = []

    def reset(self) -> None:
        """Forget the walked path and the pending branches."""
        self.path = []
        self.branches = []

    # map state -----------------------------------------------------------

    def _cell(self, x: int, y: int) -> int:
        size = self.grid.size
        if 0 <= x < size and 0 <= y < size:
            return self.grid.read(x, y)
        return 0

    def _at(self, x: int, y: int) -> bool:
        pose = self.odometer.pose
        return pose.x == x and pose.y == y

    def reached_goal(self) -> bool:
        """True on a target cell; that target becomes the planner's target."""
        pose = self.odometer.pose
        for target in self.targets:
            if pose.x == target.x and pose.y == target.y:
                self.planner.target = target
                return True
        return False

    def map_complete(self) -> bool:
        """True when no known cell has an open side towards an unknown cell."""
        size = self.grid.size
        for x in range(size):
            for y in range(size):
                cell = self.grid.read(x, y)
                if cell == 0:
                    continue
                for direction, (dx, dy) in _STEPS.items():
                    if not cell & direction:
                        continue
                    nx, ny = x + dx, y + dy
                    if 0 <= nx < size and 0 <= ny < size and self.grid.read(nx, ny) == 0:
                        return False
        return True

    def should_continue(self) -> bool:
        """Whether exploration goes on."""
        goal = self.reached_goal() and not self.stop_when_complete
        return not (goal or self.map_complete())

    def preferred_direction(self, walls: int, plan: int) -> int:
        """Pick one open direction from ``walls`` according to ``plan`` (0 if none)."""
        if plan == 2:
            return self._closest_to_centre(walls)
        try:
            order = _PLAN_ORDERS[plan]
        except KeyError:
            raise ValueError(f"unknown search plan {plan}") from None
        for direction in order:
            if walls & direction:
                return direction
        return 0

    def _closest_to_centre(self, walls: int) -> int:
        centre = (self.grid.size - 1) / 2
        pose = self.odometer.pose
        best_direction = 0
        best_distance = 1000.0
        for direction in DIRECTIONS:
            if not walls & direction:
                continue
            nxt = next_position(direction, pose)
            distance = math.hypot(centre - nxt.x, centre - nxt.y)
            if distance < best_distance:
                best_distance = distance
                best_direction = direction
        return best_direction

    def drop_backward(self, directions: int, pose: Pose) -> int:
        """Remove the direction pointing behind ``pose``."""
        try:
            backward = _BACKWARD[pose.th]
        except KeyError:
            raise ValueError(f"heading {pose.th} is not a multiple of 90 degrees") from None
        return directions & ~backward & 0xFF

    def visited(self, x: int, y: int) -> bool:
        """Whether the cell was walked or is already known.

        With an empty path nothing counts as visited.
        """
        if not self.path:
            return False
        on_path = any(p.x == x and p.y == y for p in self.path)
        return on_path or self._cell(x, y) != 0

    def unvisited_directions(self, pose: Pose, directions: int) -> int:
        """Clear each direction whose neighbour was already visited."""
        for direction, (dx, dy) in _STEPS.items():
            if self.visited(pose.x + dx, pose.y + dy):
                directions &= ~direction
        return directions & 0xFF

    def fill_dead_cells(self) -> int:
        """Mark unknown cells enclosed by known ones; returns how many were filled."""
        size = self.grid.size
        edge = size - 1
        read = self.grid.read
        filled = 0
        for x in range(size):
            for y in range(size):
                if read(x, y) != 0:
                    continue
                enclosed = (
                    (x == edge or read(x + 1, y) != 0)
                    and (x == 0 or read(x - 1, y) != 0)
                    and (y == edge or read(x, y + 1) != 0)
                    and (y == 0 or read(x, y - 1) != 0)
                )
                if not enclosed:
                    continue
                state = VISITED
                if x != edge:
                    state |= (read(x + 1, y) & 0x04) >> 2
                if y != edge:
                    state |= (read(x, y + 1) & 0x08) >> 2
                if x != 0:
                    state |= (read(x - 1, y) & 0x01) << 2
                if y != 0:
                    state |= (read(x, y - 1) & 0x02) << 2
                self.grid.write(x, y, state)
                filled += 1
        return filled

    # motion --------------------------------------------------------------

    def _save_path_point(self, pose: Pose, directions: int) -> None:
        self.path.append(pose)
        if direction_count(directions) > 0:
            self.branches.append((pose.x, pose.y, directions & 0x0F))

    def _move_to_next(self, direction: int, pose: Pose) -> None:
        command = turn_command(direction, pose.th)
        if command is not None:
            self.mover.move(command)
        self.mover.move(MoveCommand.FORWARD)

    def _wait_at(self, x: int, y: int) -> None:
        self.wait(lambda: self._at(x, y))

    def _walk_back(self, x: int, y: int) -> int:
        """Retrace the path until ``(x, y)``; returns the index of the next node back."""
        index = len(self.path) - 1
        while not self._at(x, y):
            if index < 0:
                raise RuntimeError("recorded path ran out before reaching the cell")
            node = self.path[index]
            pose = self.odometer.pose
            self._move_to_next(direction_between(pose, node), pose)
            self._wait_at(node.x, node.y)
            index -= 1
        return index

    def _pop_branch(self) -> tuple[int, int, int]:
        while self.branches:
            x, y, directions = self.branches.pop()
            directions = self.unvisited_directions(Pose(x, y), directions)
            if directions:
                return x, y, directions
        raise RuntimeError("no unexplored branch is left to return to")

    def _back_to_last_active(self) -> None:
        x, y, directions = self._pop_branch()
        index = self._walk_back(x, y)
        del self.path[index + 1:]
        pose = self.odometer.pose
        first = self.preferred_direction(directions, self.plan)
        nxt = next_position(first, pose)
        self._save_path_point(pose, directions & ~first)
        self._move_to_next(first, pose)
        self._wait_at(nxt.x, nxt.y)

    def explore(self) -> None:
        """Walk the maze until the goal is reached or the map is complete."""
        while self.should_continue():
            self.fill_dead_cells()
            pose = self.odometer.pose
            directions = self.grid.read(pose.x, pose.y) & 0x0F
            directions = self.unvisited_directions(pose, directions)
            if direction_count(directions) > 0:
                directions = self.drop_backward(directions, pose)
                first = self.preferred_direction(directions, self.plan)
                nxt = next_position(first, pose)
                self._save_path_point(pose, directions & ~first)
                self._move_to_next(first, pose)
                self._wait_at(nxt.x, nxt.y)
            else:
                self._back_to_last_active()

    def _turn_around(self) -> None:
        self.mover.move(MoveCommand.STOP)
        self.mover.move(MoveCommand.LEFT_180)
        self.mover.move(MoveCommand.STOP)

    def return_to_start(self) -> None:
        """Retrace the walked path to the origin and turn around there."""
        self._walk_back(0, 0)
        self._turn_around()

    def run(self) -> None:
        """Explore, plan the route and come back to the start."""
        self.explore()
        self.mover.move(MoveCommand.STOP)
        self.planner.search()
        if self.plan != RETURNLESS_PLAN:
            self.return_to_start()
        else:
            self._turn_around()