import pytest

from micromouse.attitude import AttitudeState
from micromouse.grid import OccupancyGrid
from micromouse.movectrl import SPRINT_GRID_COUNT, MoveCommand, MoveController
from micromouse.odometer import Odometer, OdometerParams, Pose

STRAIGHT = (AttitudeState.SEARCH_STRAIGHT, AttitudeState.FAST_STRAIGHT)


class FakeAttitude:
    def __init__(self):
        self.state = AttitudeState.STOP
        self.searcher_speed = (0, 0)
        self.rotations = []
        self.fast_grid_count = 0
        self.fast_encoder = [0, 0]
        self.rotation_done = False

    def set_searcher_speed(self, left, right):
        self.searcher_speed = (left, right)

    def set_rotation(self, angle):
        self.rotations.append(angle)

    def rotate_fast_pending(self):
        if self.rotation_done:
            self.rotation_done = False
            return False
        return True

    def set_fast_grid_count(self, num):
        self.fast_grid_count = num

    def set_fast_encoder(self, num):
        self.fast_encoder = [num, num]


class FakeMotor:
    def __init__(self, running_steps=0):
        self.running_steps = running_steps

    def motor_running(self):
        return self.running_steps > 0

    def encoder(self, side):
        return 0


class FakeInfrared:
    def barrier_active(self):
        return False

    def active_directions(self):
        return 0


class World:
    def __init__(self, attitude, motor, odometer, grid_encoder):
        self.attitude = attitude
        self.motor = motor
        self.odometer = odometer
        self.grid_encoder = grid_encoder
        self.steps = 0

    def step(self):
        self.steps += 1
        if self.motor.running_steps > 0:
            self.motor.running_steps -= 1
        if self.attitude.state == AttitudeState.ROTATE_FAST:
            self.attitude.rotation_done = True
        if self.attitude.state == AttitudeState.FAST_ROTATE:
            self.attitude.state = AttitudeState.STOP
        if self.attitude.state in STRAIGHT:
            self.odometer.advance(1)
            self.odometer.encoder_sum = self.grid_encoder

    def wait(self, done):
        for _ in range(200):
            if done():
                return
            self.step()
        raise AssertionError("condition never reached")


def make_rig(running_steps=0):
    attitude = FakeAttitude()
    motor = FakeMotor(running_steps)
    odometer = Odometer(
        attitude, motor, FakeInfrared(), OccupancyGrid(), OdometerParams(1000, 0.2, 0.4, 0.5)
    )
    world = World(attitude, motor, odometer, 1000)
    mover = MoveController(attitude, motor, odometer, world.wait, 700, 1000, 0.5)
    return mover, attitude, motor, odometer, world


def test_forward_sets_search_speed_and_state():
    mover, attitude, _, _, _ = make_rig()
    mover.move_fast(MoveCommand.FORWARD)
    assert attitude.searcher_speed == (700, 700)
    assert attitude.state == AttitudeState.SEARCH_STRAIGHT


def test_stop_waits_for_motors():
    mover, attitude, motor, _, world = make_rig(running_steps=3)
    attitude.state = AttitudeState.SEARCH_STRAIGHT
    mover.move_fast(MoveCommand.STOP)
    assert world.steps == 3
    assert motor.motor_running() is False
    assert attitude.state == AttitudeState.STOP
    assert attitude.searcher_speed == (0, 0)


@pytest.mark.parametrize(
    "command, rotation, heading",
    [
        (MoveCommand.LEFT_90, -90, 180),
        (MoveCommand.RIGHT_90, 90, 0),
        (MoveCommand.LEFT_180, -180, 270),
    ],
)
def test_fast_turns_rotate_and_update_heading(command, rotation, heading):
    mover, attitude, _, odometer, _ = make_rig()
    mover.move_fast(command)
    assert attitude.rotations == [rotation]
    assert attitude.state == AttitudeState.ROTATE_FAST
    assert odometer.pose == Pose(0, 0, heading)
    assert attitude.rotation_done is False


def test_move_uses_fast_strategy():
    mover, attitude, _, odometer, _ = make_rig()
    mover.move(MoveCommand.LEFT_90)
    assert attitude.rotations == [-90]
    assert odometer.pose.th == 180


def test_left_then_right_restores_heading():
    mover, _, _, odometer, _ = make_rig()
    mover.move(MoveCommand.LEFT_90)
    mover.move(MoveCommand.RIGHT_90)
    assert odometer.pose == Pose(0, 0, 90)


def test_unknown_command_is_rejected():
    mover, _, _, _, _ = make_rig()
    with pytest.raises(ValueError):
        mover.move_fast(42)


def test_sprint_right_turn_hands_over_to_fast_line():
    mover, attitude, _, odometer, _ = make_rig()
    mover.move_sprint(MoveCommand.RIGHT_90)
    assert attitude.rotations == [90]
    assert odometer.pose == Pose(0, 1, 0)
    assert attitude.state == AttitudeState.FAST_STRAIGHT
    assert attitude.fast_grid_count == SPRINT_GRID_COUNT
    assert attitude.fast_encoder == [odometer.encoder_sum, odometer.encoder_sum]
    assert odometer.encoder_sum == mover.turn_encoder
    assert 0 < mover.turn_encoder < 1000


def test_sprint_left_turn_moves_one_cell():
    mover, attitude, _, odometer, _ = make_rig()
    mover.move_sprint(MoveCommand.LEFT_90)
    assert attitude.rotations == [-90]
    assert odometer.pose == Pose(0, 1, 180)


def test_sprint_half_turns_always_go_left():
    mover, attitude, _, odometer, _ = make_rig()
    mover.move_sprint(MoveCommand.RIGHT_180)
    assert attitude.rotations == [-180]
    assert odometer.pose.th == 270


def test_sprint_forward_changes_nothing():
    mover, attitude, _, odometer, _ = make_rig()
    mover.move_sprint(MoveCommand.FORWARD)
    assert attitude.state == AttitudeState.STOP
    assert attitude.searcher_speed == (0, 0)
    assert odometer.pose == Pose()