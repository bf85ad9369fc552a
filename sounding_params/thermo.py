"""
Thermodynamic primitives for sounding analysis.

Stateless formulas built on numpy so they accept scalars or arrays alike.
Floating-point warnings are silenced and NaN/inf propagate to the caller
instead of raising, so a missing dewpoint never takes a whole profile down.

Units used throughout: pressure in hPa (mb), temperature in degC unless a
name says otherwise, mixing ratio in g/kg, height in metres.
"""

import functools
from typing import NamedTuple

import numpy as np

from .constants import CP, EPS, G, KAPPA, KT_TO_MS, LV, MOIST_STEP_MB, P0, RD, T0


def _quiet(func):
    """Run ``func`` with numpy floating-point warnings suppressed."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        with np.errstate(all="ignore"):
            return func(*args, **kwargs)

    return wrapper


class LCL(NamedTuple):
    height_m: float
    pressure_mb: float
    temp_c: float


# ─────────────────────────────────────────────────────────────────────
# CONVERSIONS
# ─────────────────────────────────────────────────────────────────────
def celsius_to_kelvin(temp_c):
    return np.asarray(temp_c, dtype=float) + T0


def kelvin_to_celsius(temp_k):
    return np.asarray(temp_k, dtype=float) - T0


def knots_to_ms(speed_kt):
    return np.asarray(speed_kt, dtype=float) * KT_TO_MS


def ms_to_knots(speed_ms):
    return np.asarray(speed_ms, dtype=float) / KT_TO_MS


# ─────────────────────────────────────────────────────────────────────
# MOISTURE
# ─────────────────────────────────────────────────────────────────────
@_quiet
def saturation_vapor_pressure(temp_c):
    """Saturation vapor pressure (hPa) over liquid water, Bolton (1980)."""
    temp_c = np.asarray(temp_c, dtype=float)
    return 6.112 * np.exp((17.67 * temp_c) / (temp_c + 243.5))


def vapor_pressure(dewpoint_c):
    """Vapor pressure (hPa) from dewpoint."""
    return saturation_vapor_pressure(dewpoint_c)


@_quiet
def relative_humidity(temp_c, dewpoint_c):
    """Relative humidity (%) clipped to 0-100."""
    rh = vapor_pressure(dewpoint_c) / saturation_vapor_pressure(temp_c) * 100.0
    return np.clip(rh, 0.0, 100.0)


@_quiet
def mixing_ratio(pressure_mb, dewpoint_c):
    """Mixing ratio (g/kg). Not guarded against ``p <= e``."""
    e = vapor_pressure(dewpoint_c)
    return (1000.0 * EPS * e) / (np.asarray(pressure_mb, dtype=float) - e)


@_quiet
def saturation_mixing_ratio(pressure_mb, temp_c):
    """Saturation mixing ratio (g/kg). Not guarded against ``p <= es``."""
    es = saturation_vapor_pressure(temp_c)
    return (1000.0 * EPS * es) / (np.asarray(pressure_mb, dtype=float) - es)


@_quiet
def dewpoint_from_mixing_ratio(mixing_ratio_gkg, pressure_mb):
    """Invert the mixing ratio (g/kg) at ``pressure_mb`` back to a dewpoint (degC)."""
    w = np.asarray(mixing_ratio_gkg, dtype=float)
    e = (w * np.asarray(pressure_mb, dtype=float)) / (1000.0 * EPS + w)
    ln_ratio = np.log(e / 6.112)
    return 243.5 * ln_ratio / (17.67 - ln_ratio)


# ─────────────────────────────────────────────────────────────────────
# TEMPERATURE VARIABLES
# ─────────────────────────────────────────────────────────────────────
@_quiet
def potential_temperature(temp_c, pressure_mb):
    """Potential temperature (K), Poisson's equation."""
    return celsius_to_kelvin(temp_c) * (P0 / np.asarray(pressure_mb, dtype=float)) ** KAPPA


@_quiet
def virtual_temperature(temp_c, mixing_ratio_gkg):
    """Virtual temperature (K) from temperature and mixing ratio (g/kg)."""
    w = np.asarray(mixing_ratio_gkg, dtype=float) / 1000.0
    return celsius_to_kelvin(temp_c) * (1.0 + w / EPS) / (1.0 + w)


@_quiet
def lcl_temperature(temp_c, dewpoint_c):
    """LCL temperature (K), Bolton (1980) Eq. 15."""
    t_k = celsius_to_kelvin(temp_c)
    td_k = celsius_to_kelvin(dewpoint_c)
    return 1.0 / (1.0 / (td_k - 56.0) + np.log(t_k / td_k) / 800.0) + 56.0


@_quiet
def equivalent_potential_temperature(temp_c, dewpoint_c, pressure_mb):
    """Equivalent potential temperature (K), Bolton (1980) Eq. 43."""
    t_k = celsius_to_kelvin(temp_c)
    w = mixing_ratio(pressure_mb, dewpoint_c) / 1000.0
    t_lcl = lcl_temperature(temp_c, dewpoint_c)
    theta_dl = t_k * (P0 / np.asarray(pressure_mb, dtype=float)) ** (0.2854 * (1.0 - 0.28 * w))
    return theta_dl * np.exp((3.376 / t_lcl - 0.00254) * w * 1000.0 * (1.0 + 0.81 * w))


@_quiet
def wet_bulb_temperature(temp_c, rh):
    """Wet-bulb temperature (degC), Stull (2011). ``rh`` in percent."""
    t = np.asarray(temp_c, dtype=float)
    rh = np.asarray(rh, dtype=float)
    return (
        t * np.arctan(0.151977 * np.sqrt(rh + 8.313659))
        + np.arctan(t + rh)
        - np.arctan(rh - 1.676331)
        + 0.00391838 * rh ** 1.5 * np.arctan(0.023101 * rh)
        - 4.686035
    )


# ─────────────────────────────────────────────────────────────────────
# PARCEL PROCESSES
# ─────────────────────────────────────────────────────────────────────
@_quiet
def lcl_height(temp_c, dewpoint_c, pressure_mb, height_m=0.0):
    """Lifted condensation level of a parcel.

    Parameters
    ----------
    temp_c, dewpoint_c : float
        Parcel temperature and dewpoint (degC).
    pressure_mb : float
        Parcel pressure.
    height_m : float
        Parcel height. The returned height uses the same datum, so pass 0
        to get the depth of the dry-adiabatic layer.

    Returns
    -------
    LCL
        ``(height_m, pressure_mb, temp_c)``. A saturated parcel
        (``dewpoint_c >= temp_c``) condenses where it starts.
    """
    if dewpoint_c >= temp_c:
        return LCL(float(height_m), float(pressure_mb), float(temp_c))

    t_k = celsius_to_kelvin(temp_c)
    t_lcl = lcl_temperature(temp_c, dewpoint_c)
    p_lcl = pressure_mb * (t_lcl / t_k) ** (CP / RD)

    # Hypsometric depth using the mean of parcel and LCL temperature
    mean_t = (t_k + t_lcl) / 2.0
    depth = (RD * mean_t / G) * np.log(pressure_mb / p_lcl)

    return LCL(float(height_m + depth), float(p_lcl), float(t_lcl - T0))


@_quiet
def moist_adiabatic_lapse_rate(temp_c, pressure_mb):
    """Saturated adiabatic lapse rate (K/m)."""
    t_k = celsius_to_kelvin(temp_c)
    ws = saturation_mixing_ratio(pressure_mb, temp_c) / 1000.0
    numerator = 1.0 + (LV * ws) / (RD * t_k)
    denominator = 1.0 + (LV * LV * ws * EPS) / (CP * RD * t_k * t_k)
    return (G / CP) * (numerator / denominator)


@_quiet
def lift_dry_adiabatic(temp_c, from_pressure_mb, to_pressure_mb):
    """Temperature (degC) of a parcel moved dry-adiabatically between pressures."""
    theta = potential_temperature(temp_c, from_pressure_mb)
    return kelvin_to_celsius(theta * (np.asarray(to_pressure_mb, dtype=float) / P0) ** KAPPA)


@_quiet
def lift_moist_adiabatic(temp_c, from_pressure_mb, to_pressure_mb, step_mb=MOIST_STEP_MB):
    """Move a saturated parcel between pressures in fixed pressure steps.

    Ascent or descent is inferred from the sign of ``to - from``; the last
    step is clipped so the parcel lands exactly on ``to_pressure_mb``.
    Scalar inputs only.
    """
    temp = float(temp_c)
    p = float(from_pressure_mb)
    target = float(to_pressure_mb)
    step = abs(step_mb) or MOIST_STEP_MB
    ascending = target < p

    while (p > target) if ascending else (p < target):
        next_p = max(p - step, target) if ascending else min(p + step, target)
        dz = -(RD * (temp + T0) / G) * np.log(next_p / p)
        temp = temp - float(moist_adiabatic_lapse_rate(temp, p)) * dz
        p = next_p

    return temp


@_quiet
def lapse_rate(temp_bottom_c, temp_top_c, pressure_bottom_mb, pressure_top_mb):
    """Layer lapse rate (degC/km) with a hypsometric layer depth."""
    mean_t = (temp_bottom_c + temp_top_c) / 2.0 + T0
    dz = (RD * mean_t / G) * np.log(np.float64(pressure_bottom_mb) / pressure_top_mb)
    return (temp_bottom_c - temp_top_c) / dz * 1000.0


# ─────────────────────────────────────────────────────────────────────
# COLUMN QUANTITIES
# ─────────────────────────────────────────────────────────────────────
@_quiet
def precipitable_water(pressure_mb, dewpoint_c):
    """Precipitable water (mm) by trapezoidal integration of mixing ratio over pressure."""
    p = np.asarray(pressure_mb, dtype=float)
    td = np.asarray(dewpoint_c, dtype=float)
    if p.size < 2:
        return 0.0

    order = np.argsort(p)[::-1]
    p = p[order]
    w = mixing_ratio(p, td[order]) / 1000.0

    w_mean = (w[:-1] + w[1:]) / 2.0
    dp = (p[:-1] - p[1:]) * 100.0
    # kg/m^2 of water == mm
    return float(np.sum(w_mean * dp) / G)


def find_isotherm_height(heights_m, temps_c, target_c):
    """Height of the first crossing of ``target_c`` scanning bottom to top.

    Linear interpolation between the bracketing levels; ``None`` when the
    profile never crosses the target.
    """
    heights = np.asarray(heights_m, dtype=float)
    temps = np.asarray(temps_c, dtype=float)
    order = np.argsort(heights)
    heights = heights[order]
    temps = temps[order]

    for i in range(len(heights) - 1):
        t0, t1 = temps[i], temps[i + 1]
        if (t0 >= target_c >= t1) or (t0 <= target_c <= t1):
            if t1 == t0:
                return float(heights[i])
            frac = (target_c - t0) / (t1 - t0)
            return float(heights[i] + frac * (heights[i + 1] - heights[i]))

    return None


# ─────────────────────────────────────────────────────────────────────
# CLASSIC INDICES
# ─────────────────────────────────────────────────────────────────────
def lifted_index(surface_temp_c, surface_dewpoint_c, surface_pressure_mb,
                 env_temp_c, target_pressure_mb=500.0):
    """Lifted index: environment minus parcel temperature at ``target_pressure_mb``.

    The surface parcel rises dry-adiabatically to its LCL, then
    moist-adiabatically. If the LCL lies above the target level the parcel
    never saturates on the way.
    """
    lcl = lcl_height(surface_temp_c, surface_dewpoint_c, surface_pressure_mb)
    if lcl.pressure_mb <= target_pressure_mb:
        parcel_temp = lift_dry_adiabatic(surface_temp_c, surface_pressure_mb, target_pressure_mb)
    else:
        temp_at_lcl = lift_dry_adiabatic(surface_temp_c, surface_pressure_mb, lcl.pressure_mb)
        parcel_temp = lift_moist_adiabatic(temp_at_lcl, lcl.pressure_mb, target_pressure_mb)
    return float(env_temp_c - parcel_temp)


def k_index(t850, t700, t500, td850, td700):
    """K = (T850 - T500) + Td850 - (T700 - Td700)."""
    return (t850 - t500) + td850 - (t700 - td700)


def total_totals(t850, t500, td850):
    """TT = vertical totals + cross totals."""
    return (t850 - t500) + (td850 - t500)


def sweat_index(t850, td850, t500, wind850_dir, wind850_spd, wind500_dir, wind500_spd):
    """Severe Weather Threat index. Winds in degrees and knots."""
    tt = total_totals(t850, t500, td850)

    sweat = 12.0 * max(0.0, td850)
    sweat += 20.0 * max(0.0, tt - 49.0)
    sweat += 2.0 * wind850_spd
    sweat += wind500_spd

    # Shear term only for veering SW-W flow with both winds >= 15 kt
    if (
        130.0 <= wind850_dir <= 250.0
        and 210.0 <= wind500_dir <= 310.0
        and wind500_dir - wind850_dir > 0.0
        and wind850_spd >= 15.0
        and wind500_spd >= 15.0
    ):
        shear_term = 125.0 * (np.sin(np.radians(wind500_dir - wind850_dir)) + 0.2)
        sweat += max(0.0, float(shear_term))

    return max(0.0, float(sweat))
