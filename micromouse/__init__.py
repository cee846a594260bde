"""Sensing, motor control, odometry, maze exploration and route planning for a maze-solving robot."""

__version__ = "0.1.0"