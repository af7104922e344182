"""Kinematic vehicle simulation producing true and noisy odometry poses."""

from __future__ import annotations

import math
import random
import threading
import time
from dataclasses import dataclass, replace
from typing import Callable

WHEELBASE = 1.5
_SPEED_NOISE_SIGMA = 0.05
_STEERING_NOISE_SIGMA = 0.1


def remap_angle(angle: float) -> float:
    """Wrap an angle into (-pi, pi]."""
    if not math.isfinite(angle):
        raise ValueError("angle must be finite")
    while True:
        if -math.pi < angle <= math.pi:
            return angle
        if angle <= -math.pi:
            angle += 2 * math.pi
        else:
            angle -= 2 * math.pi


@dataclass(frozen=True)
class StampedPose:
    """Planar pose with a time stamp in seconds."""

    stamp: float
    x: float = 0.0
    y: float = 0.0
    yaw: float = 0.0
    frame_id: str = "world"


class OdometrySimulator:
    """Integrates a bicycle model; the noisy pose gets Gaussian speed and steering noise."""

    def __init__(self, clock: Callable[[], float] = time.time, rng: random.Random | None = None) -> None:
        self._clock = clock
        self._rng = rng if rng is not None else random.Random()
        self._control_lock = threading.Lock()
        self._pose_lock = threading.Lock()
        self._speed = 0.0
        self._steering_angle = 0.0
        now = clock()
        self._last_time = now
        self._pose_true = StampedPose(stamp=now)
        self._pose_noised = StampedPose(stamp=now)
        self._path_true: list[StampedPose] = []

    def set_speed(self, speed: float) -> None:
        with self._control_lock:
            self._speed = float(speed)

    def set_steering_angle(self, steering_angle: float) -> None:
        with self._control_lock:
            self._steering_angle = float(steering_angle)

    def pose_true(self) -> StampedPose:
        with self._pose_lock:
            return self._pose_true

    def pose_noised(self) -> StampedPose:
        with self._pose_lock:
            return self._pose_noised

    def path_true(self) -> tuple[StampedPose, ...]:
        """Every true pose recorded by :meth:`update`, oldest first."""
        with self._pose_lock:
            return tuple(self._path_true)

    def update(self) -> None:
        """Advance both poses by the time elapsed since the previous update."""
        now = self._clock()
        dt = now - self._last_time
        self._last_time = now
        with self._control_lock:
            speed, steering = self._speed, self._steering_angle

        gauss = self._rng.gauss
        with self._pose_lock:
            true = self._pose_true
            rate = speed * math.tan(steering) / WHEELBASE
            self._pose_true = replace(
                true,
                stamp=now,
                x=true.x + speed * math.cos(true.yaw) * dt,
                y=true.y + speed * math.sin(true.yaw) * dt,
                yaw=remap_angle(true.yaw + rate * dt),
            )

            speed_noised = speed + gauss(0.0, _SPEED_NOISE_SIGMA)
            steering_noised = steering + gauss(0.0, _STEERING_NOISE_SIGMA)
            noised = self._pose_noised
            rate_noised = speed_noised * math.tan(steering_noised) / WHEELBASE
            x_scale = 1.0 + gauss(0.0, _SPEED_NOISE_SIGMA)
            y_scale = 1.0 + gauss(0.0, _STEERING_NOISE_SIGMA)
            self._pose_noised = replace(
                noised,
                stamp=now,
                x=noised.x + speed_noised * math.cos(noised.yaw) * dt * x_scale,
                y=noised.y + speed_noised * math.sin(noised.yaw) * dt * y_scale,
                yaw=remap_angle(noised.yaw + rate_noised * dt),
            )
            self._path_true.append(self._pose_true)