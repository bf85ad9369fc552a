"""
Parcel theory: lift a parcel through the environment, locate LCL/LFC/EL
and integrate CAPE/CIN.

The ascent is a fold over fixed pressure steps. Each step reads the
environment through log-pressure interpolation, compares virtual
temperatures, and folds the buoyant energy into an immutable ``_Ascent``
accumulator. Nothing here keeps state between calls.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import NamedTuple

import numpy as np

from .constants import (
    DOWNDRAFT_LAYER_MB,
    ENV_MOISTURE_FRACTION,
    G,
    KAPPA,
    MIXED_LAYER_DEPTH_MB,
    MU_SEARCH_DEPTH_MB,
    P0,
    PARCEL_STEP_MB,
    PARCEL_TOP_MB,
    T0,
)
from .profile import interpolate_at_pressure
from .thermo import (
    dewpoint_from_mixing_ratio,
    equivalent_potential_temperature,
    kelvin_to_celsius,
    lcl_height,
    lift_dry_adiabatic,
    lift_moist_adiabatic,
    mixing_ratio,
    potential_temperature,
    saturation_mixing_ratio,
    virtual_temperature,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParcelPathPoint:
    pressure_mb: float
    height_m: float        # AGL
    parcel_temp_c: float
    env_temp_c: float
    buoyancy: float        # parcel minus environment virtual temperature (K)


@dataclass(frozen=True)
class ParcelResult:
    """Outcome of one parcel ascent. Heights are metres AGL; a level that
    was never reached is reported as 0."""

    lcl_m: float
    lcl_pressure_mb: float
    lcl_temp_c: float
    lfc_m: float
    lfc_pressure_mb: float
    el_m: float
    el_pressure_mb: float
    cape: float
    cin: float
    start_pressure_mb: float
    path: tuple = ()


@dataclass(frozen=True)
class DowndraftResult:
    dcape: float
    start_pressure_mb: float
    path: tuple = ()


@dataclass(frozen=True)
class ParcelSet:
    surface_based: ParcelResult
    mixed_layer: ParcelResult
    most_unstable: ParcelResult
    downdraft: DowndraftResult


class _Ascent(NamedTuple):
    cape: float = 0.0
    cin: float = 0.0
    lfc_m: float | None = None
    lfc_pressure_mb: float | None = None
    el_m: float | None = None
    el_pressure_mb: float | None = None
    top_m: float = 0.0
    top_pressure_mb: float = 0.0


def _fold_step(state, pressure_mb, height_m, buoyancy, energy, lcl_pressure_mb, start_pressure_mb):
    """Fold one integration step into the ascent accumulator."""
    if buoyancy > 0:
        if state.lfc_pressure_mb is None and pressure_mb < lcl_pressure_mb:
            state = state._replace(lfc_m=height_m, lfc_pressure_mb=pressure_mb)
        if state.lfc_pressure_mb is not None:
            state = state._replace(cape=state.cape + energy)
        return state

    if state.lfc_pressure_mb is None:
        if pressure_mb < start_pressure_mb:
            state = state._replace(cin=state.cin + energy)
        return state

    # First non-positive step above the LFC
    return state._replace(el_m=height_m, el_pressure_mb=pressure_mb)


def lift_parcel(start_temp_c, start_dewpoint_c, start_pressure_mb, start_height_m, levels,
                surface_height_m=None, top_mb=PARCEL_TOP_MB, step_mb=PARCEL_STEP_MB):
    """Lift a parcel from its starting level and integrate CAPE/CIN.

    Parameters
    ----------
    start_temp_c, start_dewpoint_c, start_pressure_mb, start_height_m : float
        Starting parcel. ``start_height_m`` is MSL, like the levels.
    levels : sequence of ProfileLevel
        Valid environment levels sorted by pressure, descending.
    surface_height_m : float or None
        Height (MSL) used to report AGL heights. Defaults to the lowest level.
    top_mb, step_mb : float
        Integration top and pressure step.

    Returns
    -------
    ParcelResult
    """
    if surface_height_m is None:
        surface_height_m = levels[0].height_m if levels else start_height_m
    start_agl = start_height_m - surface_height_m

    lcl = lcl_height(start_temp_c, start_dewpoint_c, start_pressure_mb, start_agl)
    saturated = start_pressure_mb <= lcl.pressure_mb
    start_w = mixing_ratio(start_pressure_mb, start_dewpoint_c)

    parcel_temp = float(start_temp_c)
    p = float(start_pressure_mb)
    state = _Ascent(top_m=start_agl, top_pressure_mb=p)
    path = []

    while p - step_mb >= top_mb:
        next_p = p - step_mb

        env_temp = interpolate_at_pressure(levels, p, "temp_c")
        env_height = interpolate_at_pressure(levels, p, "height_m")
        if env_temp is None or env_height is None:
            logger.debug("Parcel ascent stopped at %.1f mb: profile does not bracket it", p)
            break

        parcel_w = saturation_mixing_ratio(p, parcel_temp) if saturated else start_w
        env_w = ENV_MOISTURE_FRACTION * saturation_mixing_ratio(p, env_temp)
        tv_parcel = float(virtual_temperature(parcel_temp, parcel_w))
        tv_env = float(virtual_temperature(env_temp, env_w))
        buoyancy = tv_parcel - tv_env
        height_agl = env_height - surface_height_m

        path.append(ParcelPathPoint(p, height_agl, parcel_temp, env_temp, buoyancy))

        if not saturated and next_p <= lcl.pressure_mb:
            # Split the step at the LCL
            parcel_temp = lift_dry_adiabatic(parcel_temp, p, lcl.pressure_mb)
            parcel_temp = lift_moist_adiabatic(parcel_temp, lcl.pressure_mb, next_p)
            saturated = True
        elif saturated:
            parcel_temp = lift_moist_adiabatic(parcel_temp, p, next_p)
        else:
            parcel_temp = lift_dry_adiabatic(parcel_temp, p, next_p)
        parcel_temp = float(parcel_temp)

        next_height = interpolate_at_pressure(levels, next_p, "height_m")
        if next_height is None:
            logger.debug("Parcel ascent stopped at %.1f mb: profile does not bracket it", next_p)
            break

        energy = G * buoyancy / tv_env * (next_height - env_height)
        state = _fold_step(state, p, height_agl, buoyancy, energy,
                           lcl.pressure_mb, start_pressure_mb)
        if state.el_pressure_mb is not None:
            break

        state = state._replace(top_m=next_height - surface_height_m, top_pressure_mb=next_p)
        p = next_p

    # Still buoyant at the top of the integration: EL is the top
    if state.lfc_pressure_mb is not None and state.el_pressure_mb is None:
        state = state._replace(el_m=state.top_m, el_pressure_mb=state.top_pressure_mb)

    return ParcelResult(
        lcl_m=lcl.height_m,
        lcl_pressure_mb=lcl.pressure_mb,
        lcl_temp_c=lcl.temp_c,
        lfc_m=_or_zero(state.lfc_m),
        lfc_pressure_mb=_or_zero(state.lfc_pressure_mb),
        el_m=_or_zero(state.el_m),
        el_pressure_mb=_or_zero(state.el_pressure_mb),
        cape=max(state.cape, 0.0),
        cin=min(state.cin, 0.0),
        start_pressure_mb=float(start_pressure_mb),
        path=tuple(path),
    )


def _or_zero(value):
    return 0.0 if value is None else float(value)


# ─────────────────────────────────────────────────────────────────────
# PARCEL VARIANTS
# ─────────────────────────────────────────────────────────────────────
def surface_based_parcel(levels, **kwargs):
    """Lift the highest-pressure level."""
    sfc = levels[0]
    return lift_parcel(sfc.temp_c, sfc.dewpoint_c, sfc.pressure_mb, sfc.height_m, levels, **kwargs)


def mixed_layer_parcel(levels, depth_mb=MIXED_LAYER_DEPTH_MB, **kwargs):
    """Lift a parcel with the mean theta and mixing ratio of the lowest ``depth_mb``.

    The layer means are converted back to a temperature and dewpoint at
    surface pressure before lifting.
    """
    sfc = levels[0]
    layer = [lvl for lvl in levels if lvl.pressure_mb >= sfc.pressure_mb - depth_mb]

    p = np.array([lvl.pressure_mb for lvl in layer])
    theta = potential_temperature([lvl.temp_c for lvl in layer], p)
    w = mixing_ratio(p, [lvl.dewpoint_c for lvl in layer])

    mean_theta = float(np.mean(theta))
    mean_w = float(np.mean(w))

    temp_c = float(kelvin_to_celsius(mean_theta * (sfc.pressure_mb / P0) ** KAPPA))
    dewpoint_c = float(dewpoint_from_mixing_ratio(mean_w, sfc.pressure_mb))

    return lift_parcel(temp_c, dewpoint_c, sfc.pressure_mb, sfc.height_m, levels, **kwargs)


def most_unstable_parcel(levels, depth_mb=MU_SEARCH_DEPTH_MB, **kwargs):
    """Lift the level with the highest theta-e in the lowest ``depth_mb``."""
    sfc = levels[0]
    layer = [lvl for lvl in levels if lvl.pressure_mb >= sfc.pressure_mb - depth_mb]

    theta_e = equivalent_potential_temperature(
        [lvl.temp_c for lvl in layer],
        [lvl.dewpoint_c for lvl in layer],
        [lvl.pressure_mb for lvl in layer],
    )
    theta_e = np.where(np.isfinite(theta_e), theta_e, -np.inf)
    source = layer[int(np.argmax(theta_e))] if np.any(np.isfinite(theta_e)) else sfc

    return lift_parcel(
        source.temp_c, source.dewpoint_c, source.pressure_mb, source.height_m, levels,
        surface_height_m=sfc.height_m, **kwargs,
    )


def downdraft_cape(levels, layer_mb=DOWNDRAFT_LAYER_MB, step_mb=PARCEL_STEP_MB):
    """Downdraft CAPE.

    The parcel with the lowest theta-e between ``layer_mb`` (top, bottom)
    descends moist-adiabatically to the surface; only the layers where it
    is colder than the environment contribute.
    """
    top_mb, bottom_mb = layer_mb
    candidates = [lvl for lvl in levels if top_mb <= lvl.pressure_mb <= bottom_mb]
    if not candidates:
        logger.debug("No levels between %s and %s mb for a downdraft parcel", top_mb, bottom_mb)
        return DowndraftResult(dcape=0.0, start_pressure_mb=0.0)

    theta_e = equivalent_potential_temperature(
        [lvl.temp_c for lvl in candidates],
        [lvl.dewpoint_c for lvl in candidates],
        [lvl.pressure_mb for lvl in candidates],
    )
    if not np.any(np.isfinite(theta_e)):
        return DowndraftResult(dcape=0.0, start_pressure_mb=0.0)
    source = candidates[int(np.argmin(np.where(np.isfinite(theta_e), theta_e, np.inf)))]

    surface_p = levels[0].pressure_mb
    surface_z = levels[0].height_m
    parcel_temp = source.temp_c
    p = source.pressure_mb
    dcape = 0.0
    path = []

    while p < surface_p:
        next_p = min(p + step_mb, surface_p)
        parcel_temp = lift_moist_adiabatic(parcel_temp, p, next_p)

        env_temp = interpolate_at_pressure(levels, next_p, "temp_c")
        z_top = interpolate_at_pressure(levels, p, "height_m")
        z_bottom = interpolate_at_pressure(levels, next_p, "height_m")
        if env_temp is None or z_top is None or z_bottom is None:
            break

        parcel_k = parcel_temp + T0
        env_k = env_temp + T0
        if parcel_k < env_k:
            dcape += G * (env_k - parcel_k) / env_k * abs(z_top - z_bottom)

        path.append(ParcelPathPoint(next_p, z_bottom - surface_z, parcel_temp, env_temp,
                                    parcel_k - env_k))
        p = next_p

    return DowndraftResult(dcape=float(dcape), start_pressure_mb=float(source.pressure_mb),
                           path=tuple(path))


def compute_parcels(levels):
    """Run every parcel variant over valid, surface-first levels."""
    return ParcelSet(
        surface_based=surface_based_parcel(levels),
        mixed_layer=mixed_layer_parcel(levels),
        most_unstable=most_unstable_parcel(levels),
        downdraft=downdraft_cape(levels),
    )
