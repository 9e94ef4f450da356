"""Pixel to point conversion for canvas coordinates."""

from __future__ import annotations

PX_TO_POINT = 72 / 96


def points_per_pixel(user_scale: float, base: float = PX_TO_POINT) -> float:
    return base * user_scale


def to_points(pixels: float, scale: float) -> float:
    _check_scale(scale)
    return pixels * scale


def to_pixels(points: float, scale: float) -> float:
    _check_scale(scale)
    return points / scale


def _check_scale(scale: float) -> None:
    if scale <= 0:
        raise ValueError(f"Scale must be positive, got {scale}")
