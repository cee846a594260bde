# micromouse

This package holds the control and navigation logic for a two-wheeled
maze-solving robot on a square grid, 16 × 16 by default. It has no hardware
code. The robot's control stack is modelled as plain Python objects. You
pass in callables for sensor sampling, encoder reading, PWM output, the
millisecond clock and waiting. A real robot and a simulation can therefore
drive the same code.

## Modules

- `micromouse.infrared`
  - `InfraredSensors` takes ambient-compensated readings of four sensors: left side, left front, right front and right side. Each reading is a `SensorReading`. Calibration comes from an `InfraredParams`.
  - It refreshes its reading on every tenth `tick()`.
  - `offset()` gives the lateral offset from the corridor centre.
  - `barrier_active()` reports an obstacle ahead.
  - `active_directions()` returns the open and blocked bits `0b0LFR`.
  - `event_bits()` returns the sensors that are above their trigger level.
  - `compensate()` subtracts the ambient level from one lit reading.
- `micromouse.pid`
  - `MotorSpeedController` is a discrete positional PID for the left motor (side 0) and the right motor (side 1). Its gains are a `PIDGains`.
  - It runs on every tenth `tick()`. Each run reads the encoders, computes the outputs and passes them to the PWM writer.
  - `motor_running()` reports whether either encoder count is above the stop threshold.
- `micromouse.attitude`
  - `AttitudeController` is a state machine. Its states are the `AttitudeState` members:
    - `STOP`
    - `WAITING`
    - `SEARCH_STRAIGHT`
    - `ROTATE`
    - `ROTATE_FAST`
    - `FAST_STRAIGHT`
    - `FAST_ROTATE`
  - Each state has a controller that publishes wheel speed targets to the motor controller. These are straight-line correction, in-place rotation and smooth quarter turns.
  - Tuning comes from `AttitudeParams`.
- `micromouse.odometer`
  - `Odometer` counts encoder travel into cells while the robot drives straight, and tracks a `Pose` (`x`, `y`, heading `th`).
  - On each new cell it records the sensed walls into the grid.
  - When the position leaves the maze it raises `OdometerError`.
  - `heading_cos()` and `heading_sin()` work only for right-angle headings.
- `micromouse.grid`
  - `OccupancyGrid` holds one byte per cell. The low four bits are the open directions and `0x10` is the visited flag.
  - `format_message()` builds the position report `<xx,yy,ttt,w>` as bytes.
- `micromouse.planner`
  - `Planner.flood()` spreads movement costs out from the start. Each step costs 1, and each change of heading costs 1 more. A direction counts only when the walls on both sides of the border agree.
  - `Planner.analyse()` traces the cheapest path back from the target and keeps only the cells where the heading changes, as route nodes.
  - `Planner.search()` does both. If there is no route, `analyse()` raises `ValueError`.
- `micromouse.movectrl`
  - `MoveController` runs the blocking `MoveCommand`s: `STOP`, `FORWARD`, `LEFT_90`, `RIGHT_90`, `LEFT_180` and `RIGHT_180`.
  - `move_fast()` is the search-mode strategy and `move_sprint()` turns while moving.
- `micromouse.navigator`
  - `Navigator` follows the planner's route nodes out to the target and back to the start.
  - `run_test()` uses search moves.
  - `run_static()` follows nodes until the `(99, 99)` end marker.
  - `run_fast()` uses fast straight runs.
  - `run_fast_sprint()` takes the turns on the move.
  - `direction_between()`, `turn_command()` and `grid_distance()` are helpers.
- `micromouse.explorer`
  - `MapExplorer` explores the maze depth-first, backtracking to the last cell that still has an open branch.
  - It fills in unknown cells that are enclosed by known ones.
  - It stops at a goal cell, or when the map is complete if `stop_when_complete` is set.
  - `run()` explores, plans the route and returns to the start. Plan 3 skips the return.
- `micromouse.robot`
  - `Robot` sets up the starting map with `setup()`.
  - `interrupt()` is one millisecond of work: the motor controller, infrared, attitude and odometer ticks, in that order.
  - `run_ticks(n)` runs `n` interrupts.
  - `StaticPath` drives a fixed list of cell counts and turns (`"L"`, `"R"`, `"B"`).

## Directions and headings

| bit    | direction | heading |
|--------|-----------|---------|
| `0x01` | +x        | 0°      |
| `0x02` | +y        | 90°     |
| `0x04` | −x        | 180°    |
| `0x08` | −y        | 270°    |

The robot starts at (0, 0) facing 90°.

## Planning a route on a known map

This example plans along a straight corridor from (0, 0) up to (0, 3):

```python
from micromouse.grid import OccupancyGrid
from micromouse.odometer import Pose
from micromouse.planner import Planner

grid = OccupancyGrid(16)
grid.write(0, 0, 0x12)  # visited, open towards +y
grid.write(0, 1, 0x1A)  # open towards +y and -y
grid.write(0, 2, 0x1A)
grid.write(0, 3, 0x18)  # open towards -y

planner = Planner(grid, Pose(0, 0, 90), Pose(0, 3, 180))
planner.search()
print(planner.cost(0, 3))     # 3
print(planner.route_node(0))  # Pose(x=0, y=0, th=0)
print(planner.route_node(1))  # Pose(x=0, y=3, th=0)
```

## What it does not do

- There is no command-line program.
- It contains no drivers for ADCs, timers, motors or the fan. All of these come in as callables.
- Nothing is stored between runs. The map and the planned route live only in the objects.
- `format_message()` only builds the report bytes. Sending them is left to the caller.
- When the odometer loses track of the maze it raises `OdometerError`. It does not reset anything.

## Installing and testing

```
pip install .
pip install .[test]
pytest
```