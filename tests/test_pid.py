from micromouse.pid import MotorSpeedController, PIDGains


class Hardware:
    """Fake encoder counters, PWM sink and millisecond clock."""

    def __init__(self, now=0):
        self.counts = (0, 0)
        self.written = []
        self.now = now

    def read(self):
        return self.counts

    def write(self, left, right):
        self.written.append((left, right))

    def clock(self):
        return self.now


def test_encoder_round_trip():
    hw = Hardware()
    controller = MotorSpeedController(
        PIDGains(1.0, 0.0, 0.0), 1000, 20, hw.read, hw.write, hw.clock
    )
    hw.counts = (5, -7)
    controller.update_encoders()
    assert controller.encoder(0) == 5
    assert controller.encoder(1) == -7


def test_encoder_wraps_to_signed_16_bit():
    hw = Hardware()
    controller = MotorSpeedController(
        PIDGains(1.0, 0.0, 0.0), 1000, 20, hw.read, hw.write, hw.clock
    )
    hw.counts = (0xFFFF, 0x8000)
    controller.update_encoders()
    assert controller.encoder(0) == -1
    assert controller.encoder(1) == -0x8000


def test_motor_running():
    hw = Hardware()
    controller = MotorSpeedController(
        PIDGains(1.0, 0.0, 0.0), 1000, 20, hw.read, hw.write, hw.clock
    )
    hw.counts = (3, -3)
    controller.update_encoders()
    assert controller.motor_running() is False
    hw.counts = (3, 20)
    controller.update_encoders()
    assert controller.motor_running() is True


def test_proportional_output_follows_target():
    hw = Hardware()
    controller = MotorSpeedController(
        PIDGains(1.0, 0.0, 0.0), 1000, 20, hw.read, hw.write, hw.clock
    )
    controller.set_target(50, -40)
    result = controller.step()
    assert result == (50, -40)
    assert hw.written == [(50, -40)]


def test_output_is_clamped():
    hw = Hardware()
    controller = MotorSpeedController(
        PIDGains(1.0, 0.0, 0.0), 300, 20, hw.read, hw.write, hw.clock
    )
    controller.set_target(2000, -2000)
    assert controller.step() == (300, -300)


def test_integral_accumulates_for_small_error():
    hw = Hardware()
    controller = MotorSpeedController(
        PIDGains(0.0, 1.0, 0.0), 1000, 20, hw.read, hw.write, hw.clock
    )
    controller.set_target(50, 50)
    first = controller.step()
    second = controller.step()
    assert second[0] == 2 * first[0]
    assert first[0] > 0


def test_integral_disabled_for_large_error():
    hw = Hardware()
    controller = MotorSpeedController(
        PIDGains(0.0, 1.0, 1.0), 1000, 20, hw.read, hw.write, hw.clock
    )
    controller.set_target(200, 200)
    controller.step()
    assert controller.step() == (0, 0)


def test_zero_target_is_damped_after_three_seconds():
    early_hw = Hardware(now=0)
    late_hw = Hardware(now=5000)
    early = MotorSpeedController(
        PIDGains(1.0, 0.0, 0.0), 1000, 20, early_hw.read, early_hw.write, early_hw.clock
    )
    late = MotorSpeedController(
        PIDGains(1.0, 0.0, 0.0), 1000, 20, late_hw.read, late_hw.write, late_hw.clock
    )
    for hw, controller in ((early_hw, early), (late_hw, late)):
        hw.counts = (-90, -90)
        controller.update_encoders()
        controller.set_target(0, 0)
    undamped = early.step()
    damped = late.step()
    assert 0 < damped[0] < undamped[0]
    assert damped[0] == damped[1]


def test_tick_runs_every_tenth_call():
    hw = Hardware()
    controller = MotorSpeedController(
        PIDGains(1.0, 0.0, 0.0), 1000, 20, hw.read, hw.write, hw.clock
    )
    controller.set_target(10, 10)
    for _ in range(9):
        controller.tick()
    assert hw.written == []
    controller.tick()
    assert len(hw.written) == 1
    assert hw.written[0] == (10, 10)