import pytest

from micromouse.attitude import AttitudeController, AttitudeParams, AttitudeState
from micromouse.grid import VISITED, OccupancyGrid
from micromouse.infrared import InfraredParams, InfraredSensors, SensorReading
from micromouse.movectrl import MoveCommand
from micromouse.odometer import Odometer, OdometerParams, Pose
from micromouse.pid import MotorSpeedController, PIDGains
from micromouse.robot import DEFAULT_STEPS, DEFAULT_TURNS, Robot, StaticPath

INFRARED = InfraredParams(
    base_left=0,
    base_right=0,
    miss_left=-1000,
    miss_right=-1000,
    lost_left=100,
    lost_right=100,
    offset_lf=0,
    offset_rf=0,
    active_lf=5000,
    active_rf=5000,
    threshold=5000,
    front_left_active=5000,
    front_right_active=5000,
    front_sum_active=5000,
)

ATTITUDE = AttitudeParams(
    straight_kp=0.6,
    straight_error_max=3000,
    straight_fast_kp=1.0,
    straight_speed_limit=2000,
    straight_fast_bias=300,
    grid_encoder=100,
    rotation_output_max=1000,
    rotation_tolerance=10,
    rotation_encoder_90=1000,
    rotation_encoder_180=2000,
    rotation_kp=1.0,
    rotation_fast_scale=1.0,
    turn_encoder_outer=500,
    turn_encoder_inner=200,
    turn_kp=1.0,
    turn_tolerance=10.0,
    turn_outer_ratio=1.5,
)


class Hardware:
    def __init__(self, encoders=(0, 0)):
        self.encoders = encoders
        self.samples = 0
        self.encoder_reads = 0
        self.pwm = []

    def sampler(self, mask):
        self.samples += 1
        return SensorReading()

    def read_encoders(self):
        self.encoder_reads += 1
        return self.encoders

    def write_pwm(self, left, right):
        self.pwm.append((left, right))


def build(encoders=(0, 0)):
    hw = Hardware(encoders)
    infrared = InfraredSensors(hw.sampler, INFRARED)
    motor = MotorSpeedController(
        PIDGains(1.0, 0.0, 0.0), 1000, 5, hw.read_encoders, hw.write_pwm, lambda: 0
    )
    attitude = AttitudeController(motor, infrared, ATTITUDE)
    grid = OccupancyGrid(16)
    odometer = Odometer(
        attitude, motor, infrared, grid, OdometerParams(100, 0.2, 0.8, 0.5)
    )
    return Robot(infrared, motor, attitude, odometer, grid), hw


def test_setup_records_start_cell_from_sensed_activity():
    robot, hw = build()
    robot.grid.write(5, 5, 0x1F)
    robot.setup()
    assert hw.samples == 5
    assert robot.grid.activity == robot.infrared.active_directions()
    assert robot.grid.read(5, 5) == 0

    expected = OccupancyGrid(16)
    expected.activity = robot.infrared.active_directions()
    pose = robot.odometer.pose
    assert robot.grid.read(pose.x, pose.y) == expected.record(pose.x, pose.y, pose.th)
    assert robot.grid.read(pose.x, pose.y) & VISITED


def test_interrupts_run_controllers_every_tenth_tick():
    robot, hw = build()
    robot.run_ticks(9)
    assert hw.pwm == []
    robot.run_ticks(1)
    assert len(hw.pwm) == 1
    assert hw.encoder_reads == 1
    assert hw.samples == 5
    robot.run_ticks(10)
    assert len(hw.pwm) == 2


def test_stopped_attitude_holds_zero_target():
    robot, _ = build()
    robot.motor.set_target(400, 400)
    robot.interrupt()
    assert robot.motor.target == [0, 0]


def test_driving_straight_advances_one_cell():
    robot, _ = build(encoders=(60, 60))
    robot.attitude.state = AttitudeState.SEARCH_STRAIGHT
    robot.run_ticks(10)
    assert robot.odometer.pose == Pose(0, 1, 90)
    assert robot.odometer.take_update() is True
    assert robot.grid.read(0, 1) & VISITED
    assert 0 <= robot.odometer.encoder_sum < 100


def test_run_ticks_rejects_negative_count():
    robot, _ = build()
    with pytest.raises(ValueError):
        robot.run_ticks(-1)


class FakeOdometer:
    def __init__(self, updates):
        self.updates = list(updates)

    def take_update(self):
        return self.updates.pop(0) if self.updates else False


class FakeMover:
    def __init__(self):
        self.commands = []

    def move(self, command):
        self.commands.append(command)


class FakeAttitude:
    state = AttitudeState.SEARCH_STRAIGHT


def test_static_path_turns_after_each_leg_and_finishes():
    mover = FakeMover()
    attitude = FakeAttitude()
    path = StaticPath(mover, FakeOdometer([True] * 4), attitude, (2, 1), "RL")
    for _ in range(4):
        path.step()
    assert mover.commands == [
        MoveCommand.FORWARD,
        MoveCommand.RIGHT_90,
        MoveCommand.FORWARD,
        MoveCommand.LEFT_90,
    ]
    assert attitude.state == AttitudeState.STOP
    assert path.finished is True


def test_static_path_about_face():
    mover = FakeMover()
    path = StaticPath(mover, FakeOdometer([True]), FakeAttitude(), (1,), "B")
    path.step()
    assert mover.commands == [MoveCommand.LEFT_180]


def test_static_path_waits_for_new_cell():
    mover = FakeMover()
    path = StaticPath(mover, FakeOdometer([False]), FakeAttitude(), (2,), "R")
    path.step()
    assert mover.commands == []
    assert path.cells == 0


def test_static_path_default_route_is_consistent():
    path = StaticPath(FakeMover(), FakeOdometer([]), FakeAttitude())
    assert len(path.steps) == len(path.turns) == len(DEFAULT_STEPS) == len(DEFAULT_TURNS)
    assert path.turns[-1] == "B"


def test_static_path_rejects_bad_routes():
    with pytest.raises(ValueError):
        StaticPath(FakeMover(), FakeOdometer([]), FakeAttitude(), (1, 2), "R")
    with pytest.raises(ValueError):
        StaticPath(FakeMover(), FakeOdometer([]), FakeAttitude(), (1,), "X")