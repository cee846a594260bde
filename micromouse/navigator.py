"""Drives the robot along the planned navigation nodes."""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, Optional, Protocol

from micromouse.attitude import AttitudeState
from micromouse.movectrl import MoveCommand, MoveController, Waiter, _spin
from micromouse.odometer import Odometer, Pose
from micromouse.planner import Planner

STATIC_END = 99

_TURNS = {
    (0x01, 90): MoveCommand.RIGHT_90,
    (0x01, 180): MoveCommand.LEFT_180,
    (0x01, 270): MoveCommand.LEFT_90,
    (0x02, 0): MoveCommand.LEFT_90,
    (0x02, 180): MoveCommand.RIGHT_90,
    (0x02, 270): MoveCommand.LEFT_180,
    (0x04, 0): MoveCommand.LEFT_180,
    (0x04, 90): MoveCommand.LEFT_90,
    (0x04, 270): MoveCommand.RIGHT_90,
    (0x08, 0): MoveCommand.RIGHT_90,
    (0x08, 90): MoveCommand.LEFT_180,
    (0x08, 180): MoveCommand.LEFT_90,
}


def direction_between(pose: Pose, next_pose: Pose) -> int:
    """Direction bit pointing from ``pose`` towards ``next_pose`` (0 if equal)."""
    if pose.x > next_pose.x:
        return 0x04
    if pose.y > next_pose.y:
        return 0x08
    if pose.x < next_pose.x:
        return 0x01
    if pose.y < next_pose.y:
        return 0x02
    return 0


def turn_command(direction: int, heading: int) -> Optional[MoveCommand]:
    """Turn needed to face ``direction`` from ``heading``; None when none is needed."""
    return _TURNS.get((direction, heading))


def grid_distance(pose: Pose, next_pose: Pose) -> int:
    """Cells between two positions on one line; 0 when they are not aligned."""
    if pose.x == next_pose.x:
        return abs(pose.y - next_pose.y) & 0xFF
    if pose.y == next_pose.y:
        return abs(pose.x - next_pose.x) & 0xFF
    return 0


class _Attitude(Protocol):
    state: AttitudeState

    def set_fast_grid_count(self, num: int) -> None: ...


class _Infrared(Protocol):
    def barrier_active(self) -> bool: ...


class Navigator:
    """Follows the planner's route to the target and back to the start.

    ``fan`` receives the suction fan duty; ``wait`` blocks until its
    condition holds.
    """

    def __init__(
        self,
        mover: MoveController,
        odometer: Odometer,
        planner: Planner,
        attitude: _Attitude,
        infrared: _Infrared,
        wait: Optional[Waiter] = None,
        fan: Optional[Callable[[int], None]] = None,
    ) -> None:
        self.mover = mover
        self.odometer = odometer
        self.planner = planner
        self.attitude = attitude
        self.infrared = infrared
        self.wait: Waiter = wait if wait is not None else _spin
        self.fan: Callable[[int], None] = fan if fan is not None else (lambda duty: None)

    def steer(
        self, direction: int, pose: Pose, func: Callable[[MoveCommand], None]
    ) -> None:
        """Turn with ``func`` so that ``pose`` faces ``direction``."""
        command = turn_command(direction, pose.th)
        if command is not None:
            func(command)

    def line_fast(self, distance: int) -> None:
        """Start a fast straight run over ``distance`` cells."""
        self.attitude.set_fast_grid_count(distance & 0xFF)
        self.attitude.state = AttitudeState.FAST_STRAIGHT

    # helpers -------------------------------------------------------------

    def _at(self, node: Pose) -> bool:
        pose = self.odometer.pose
        return pose.x == node.x and pose.y == node.y

    def _leg(self, node: Pose, line: bool) -> None:
        pose = self.odometer.pose
        self.steer(direction_between(pose, node), pose, self.mover.move_fast)
        if line:
            self.line_fast(grid_distance(pose, node))
        else:
            self.mover.move_fast(MoveCommand.FORWARD)
        self.wait(lambda: self._at(node))

    def _go_home(self, cursor: int, line: bool) -> None:
        while not self._at(self.planner.route_node(0)):
            self._leg(self.planner.route_node(cursor), line)
            cursor = (cursor - 1) & 0xFF
        self._leg(Pose(0, 0), line)
        self.mover.move(MoveCommand.STOP)
        self.mover.move(MoveCommand.LEFT_180)
        self.mover.move(MoveCommand.STOP)

    def _to_target(self, line: bool) -> int:
        cursor = 0
        while not self._at(self.planner.target):
            self._leg(self.planner.route_node(cursor), line)
            cursor = (cursor + 1) & 0xFF
        return cursor

    def _near_turn(self) -> bool:
        threshold = self.mover.grid_encoder * self.mover.turn_position
        return not (
            self.odometer.encoder_sum < threshold and not self.infrared.barrier_active()
        )

    def _approach(self, node: Pose, duty: int) -> None:
        self.fan(400)
        self.wait(lambda: grid_distance(self.odometer.pose, node) == 1)
        self.fan(duty)
        self.wait(self._near_turn)

    # runs ----------------------------------------------------------------

    def run_test(self) -> None:
        """Drive node to node to the target with search moves, then return."""
        cursor = self._to_target(line=False)
        self._go_home((cursor - 2) & 0xFF, line=False)

    def run_static(self) -> None:
        """Follow the stored nodes until the end marker, then stop."""
        cursor = 0
        while True:
            node = self.planner.route_node(cursor)
            if node.x == STATIC_END and node.y == STATIC_END:
                break
            self._leg(node, line=False)
            cursor = (cursor + 1) & 0xFF
        self.mover.move(MoveCommand.STOP)

    def run_fast(self) -> None:
        """Drive to the target and back with fast straight runs."""
        self.fan(600)
        cursor = self._to_target(line=True)
        self._go_home((cursor - 2) & 0xFF, line=True)
        self.fan(0)

    def run_fast_sprint(self) -> None:
        """Drive to the target taking turns on the move, then return."""
        planner = self.planner
        cursor = 1

        pose = self.odometer.pose
        node = planner.route_node(cursor)
        self.steer(direction_between(pose, node), pose, self.mover.move_fast)
        self.line_fast(grid_distance(pose, node))
        self._approach(node, 800)

        self.fan(400)
        while not (
            planner.route_node(cursor).x == planner.target.x
            and planner.route_node(cursor).y == planner.target.y
        ):
            here = planner.route_node(cursor)
            pose = replace(self.odometer.pose, x=here.x, y=here.y)
            node = planner.route_node(cursor + 1)
            self.steer(direction_between(pose, node), pose, self.mover.move_sprint)
            self.line_fast(grid_distance(pose, node))
            self._approach(node, 700)
            cursor = (cursor + 1) & 0xFF

        self.wait(lambda: self._at(planner.target))
        self.mover.move_fast(MoveCommand.STOP)

        self.fan(0)
        self._go_home((cursor - 1) & 0xFF, line=True)