"""
Kinematics: wind components, bulk shear, Bunkers storm motion,
storm-relative helicity and critical angle.

Heights passed in are metres AGL; levels carry MSL heights, so every entry
point takes the surface height used to convert between the two. Levels
without a usable wind are ignored here even when their thermodynamics are
valid.
"""

import math
from dataclasses import dataclass
from typing import NamedTuple

import numpy as np

from .constants import (
    BUNKERS_DEPTH_M,
    BUNKERS_DEVIATION_MS,
    CALM_THRESHOLD_KT,
    MEAN_WIND_STEP_M,
    SHEAR_LAYERS_M,
    SRH_LAYERS_M,
)
from .profile import interpolate_at_height, sort_by_height
from .thermo import knots_to_ms, ms_to_knots


class BulkShear(NamedTuple):
    magnitude: float
    u: float
    v: float


class StormMotion(NamedTuple):
    u: float
    v: float
    direction: float
    speed: float


class BunkersMotion(NamedTuple):
    right: StormMotion
    left: StormMotion
    mean: StormMotion


@dataclass(frozen=True)
class KinematicParameters:
    shear: dict          # layer name -> BulkShear (kt)
    srh: dict            # layer name -> m2/s2, right-mover frame
    storm_motion: BunkersMotion
    critical_angle: float


# ─────────────────────────────────────────────────────────────────────
# WIND COMPONENTS
# ─────────────────────────────────────────────────────────────────────
def wind_to_components(direction_deg, speed):
    """Meteorological direction (blowing from) and speed to ``(u, v)``."""
    rad = np.radians(direction_deg)
    return -speed * np.sin(rad), -speed * np.cos(rad)


def components_to_wind(u, v):
    """``(u, v)`` back to ``(direction, speed)``; calm winds come back as ``(0, 0)``."""
    speed = math.hypot(u, v)
    if speed < CALM_THRESHOLD_KT:
        return 0.0, 0.0
    direction = math.degrees(math.atan2(-u, -v))
    if direction < 0:
        direction += 360.0
    return direction, speed


def _wind_vector(level):
    return np.array(wind_to_components(level.wind_dir_deg, level.wind_speed_kt), dtype=float)


def wind_levels(levels):
    """Levels with a usable wind, sorted by height."""
    return sort_by_height([lvl for lvl in levels if lvl.has_wind()])


def interpolate_wind_at_height(levels, height_agl_m, surface_height_m):
    """``(u, v)`` in knots at a height AGL, or ``None`` outside the profile.

    ``levels`` must come from :func:`wind_levels`.
    """
    uv = interpolate_at_height(levels, height_agl_m + surface_height_m, _wind_vector)
    if uv is None:
        return None
    return float(uv[0]), float(uv[1])


# ─────────────────────────────────────────────────────────────────────
# SHEAR / MEAN WIND
# ─────────────────────────────────────────────────────────────────────
def bulk_shear(levels, bottom_m, top_m, surface_height_m):
    """Vector wind difference (kt) between two heights AGL.

    Zero when either bound is outside the profile.
    """
    levels = wind_levels(levels)
    bottom = interpolate_wind_at_height(levels, bottom_m, surface_height_m)
    top = interpolate_wind_at_height(levels, top_m, surface_height_m)
    if bottom is None or top is None:
        return BulkShear(0.0, 0.0, 0.0)

    du = top[0] - bottom[0]
    dv = top[1] - bottom[1]
    return BulkShear(math.hypot(du, dv), du, dv)


def mean_wind(levels, bottom_m, top_m, surface_height_m, step_m=MEAN_WIND_STEP_M):
    """Mean ``(u, v)`` (kt) sampled every ``step_m`` between two heights AGL."""
    levels = wind_levels(levels)
    n_samples = int((top_m - bottom_m) // step_m) + 1

    samples = []
    for i in range(max(n_samples, 0)):
        uv = interpolate_wind_at_height(levels, bottom_m + i * step_m, surface_height_m)
        if uv is not None:
            samples.append(uv)

    if not samples:
        return 0.0, 0.0
    u, v = np.mean(samples, axis=0)
    return float(u), float(v)


def _motion(u, v):
    direction, speed = components_to_wind(u, v)
    return StormMotion(float(u), float(v), direction, speed)


def bunkers_storm_motion(levels, surface_height_m, depth_m=BUNKERS_DEPTH_M,
                         deviation_ms=BUNKERS_DEVIATION_MS):
    """Bunkers right/left-mover and mean-wind storm motion (kt).

    The movers sit ``deviation_ms`` either side of the 0-``depth_m`` mean
    wind, perpendicular to the 0-``depth_m`` shear; right is clockwise of
    the shear vector.
    """
    mean_u, mean_v = mean_wind(levels, 0.0, depth_m, surface_height_m)
    shear = bulk_shear(levels, 0.0, depth_m, surface_height_m)
    mean = _motion(mean_u, mean_v)

    if shear.magnitude < CALM_THRESHOLD_KT:
        return BunkersMotion(right=mean, left=mean, mean=mean)

    deviation_kt = float(ms_to_knots(deviation_ms))
    unit_u = shear.u / shear.magnitude
    unit_v = shear.v / shear.magnitude

    right = _motion(mean_u + unit_v * deviation_kt, mean_v - unit_u * deviation_kt)
    left = _motion(mean_u - unit_v * deviation_kt, mean_v + unit_u * deviation_kt)
    return BunkersMotion(right=right, left=left, mean=mean)


# ─────────────────────────────────────────────────────────────────────
# HELICITY
# ─────────────────────────────────────────────────────────────────────
def storm_relative_helicity(levels, bottom_m, top_m, surface_height_m, storm_motion):
    """Storm-relative helicity (m2/s2) between two heights AGL.

    Parameters
    ----------
    storm_motion : tuple
        ``(u, v)`` of the storm in knots, e.g. ``BunkersMotion.right[:2]``.

    Each adjacent level pair overlapping the window is clipped to it, with
    the wind interpolated linearly at the clipped bounds, and contributes
    ``du * mean(srv) - dv * mean(sru)`` in m/s.
    """
    levels = wind_levels(levels)
    storm = knots_to_ms(storm_motion[:2])
    srh = 0.0

    for below, above in zip(levels, levels[1:]):
        h1 = below.height_m - surface_height_m
        h2 = above.height_m - surface_height_m
        if h2 < bottom_m or h1 > top_m or h2 <= h1:
            continue

        w1 = _wind_vector(below)
        w2 = _wind_vector(above)
        lo = max(h1, bottom_m)
        hi = min(h2, top_m)
        wind_lo = knots_to_ms(w1 + (lo - h1) / (h2 - h1) * (w2 - w1))
        wind_hi = knots_to_ms(w1 + (hi - h1) / (h2 - h1) * (w2 - w1))

        du, dv = wind_hi - wind_lo
        sru, srv = (wind_lo + wind_hi) / 2.0 - storm
        srh += du * srv - dv * sru

    return float(srh)


def critical_angle(shear_u, shear_v, storm_u, storm_v):
    """Angle (deg) between the low-level shear vector and the storm motion vector.

    Zero when either vector is negligible.
    """
    shear_mag = math.hypot(shear_u, shear_v)
    storm_mag = math.hypot(storm_u, storm_v)
    if shear_mag < CALM_THRESHOLD_KT or storm_mag < CALM_THRESHOLD_KT:
        return 0.0

    cos_angle = (shear_u * storm_u + shear_v * storm_v) / (shear_mag * storm_mag)
    return math.degrees(math.acos(max(-1.0, min(1.0, cos_angle))))


def compute_kinematics(levels, surface_height_m):
    """Shear, SRH, storm motion and critical angle for a profile's levels."""
    shear = {
        name: bulk_shear(levels, 0.0, depth, surface_height_m)
        for name, depth in SHEAR_LAYERS_M.items()
    }
    motion = bunkers_storm_motion(levels, surface_height_m)
    srh = {
        name: storm_relative_helicity(levels, 0.0, depth, surface_height_m, motion.right)
        for name, depth in SRH_LAYERS_M.items()
    }
    low = shear["0_500m"]
    angle = critical_angle(low.u, low.v, motion.right.u, motion.right.v)

    return KinematicParameters(shear=shear, srh=srh, storm_motion=motion, critical_angle=angle)
