"""
Aggregate every diagnostic for one profile into a ``DerivedParameters`` record.

Main entry points:
    compute_derived_parameters(profile) -> DerivedParameters
    analyze_profile(profile)            -> SoundingAnalysis (record + parcel paths)
    annotate_levels(profile)            -> per-level thermodynamic table
"""

import logging
import math
from dataclasses import asdict, dataclass, fields
from typing import NamedTuple

import numpy as np

from .composites import (
    energy_helicity_index,
    significant_hail_parameter,
    significant_tornado_parameter,
    supercell_composite_parameter,
)
from .constants import ISOTHERMS_C, MEAN_RH_DEPTH_M, MIN_VALID_LEVELS, MM_PER_INCH
from .parcel import ParcelSet, compute_parcels
from .profile import interpolate_at_pressure
from .shear import compute_kinematics, components_to_wind, wind_to_components
from .thermo import (
    equivalent_potential_temperature,
    find_isotherm_height,
    k_index,
    lapse_rate,
    lifted_index,
    mixing_ratio,
    potential_temperature,
    precipitable_water,
    relative_humidity,
    sweat_index,
    total_totals,
    virtual_temperature,
    wet_bulb_temperature,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DerivedParameters:
    """Every diagnostic for one profile.

    Energies in J/kg, heights in m AGL, pressures in mb, winds in kt,
    temperatures in degC. Every numeric field is always populated; anything
    that could not be computed is 0.
    """

    station_id: str
    obs_time: str

    # Instability
    cape_jkg: float = 0.0
    cin_jkg: float = 0.0
    sbcape: float = 0.0
    sbcin: float = 0.0
    mlcape: float = 0.0
    mlcin: float = 0.0
    mucape: float = 0.0
    mucin: float = 0.0
    li: float = 0.0
    li_700: float = 0.0

    # Moisture
    pwat_mm: float = 0.0
    pwat_in: float = 0.0
    mean_rh_0_6km: float = 0.0

    # Significant levels
    lcl_m: float = 0.0
    lcl_pressure_mb: float = 0.0
    lfc_m: float = 0.0
    lfc_pressure_mb: float = 0.0
    el_m: float = 0.0
    el_pressure_mb: float = 0.0
    ml_lcl_m: float = 0.0

    # Temperature levels
    t_0c_height_m: float = 0.0
    t_minus10c_height_m: float = 0.0
    t_minus20c_height_m: float = 0.0
    wet_bulb_zero_m: float = 0.0

    # Shear (kt)
    shear_0_500m: float = 0.0
    shear_0_1km: float = 0.0
    shear_0_3km: float = 0.0
    shear_0_6km: float = 0.0
    shear_0_8km: float = 0.0
    shear_0_1km_u: float = 0.0
    shear_0_1km_v: float = 0.0
    shear_0_6km_u: float = 0.0
    shear_0_6km_v: float = 0.0

    # Helicity (m2/s2)
    srh_0_500m: float = 0.0
    srh_0_1km: float = 0.0
    srh_0_3km: float = 0.0

    # Storm motion
    storm_motion_right_dir: float = 0.0
    storm_motion_right_spd: float = 0.0
    storm_motion_left_dir: float = 0.0
    storm_motion_left_spd: float = 0.0
    storm_motion_mean_dir: float = 0.0
    storm_motion_mean_spd: float = 0.0

    # Composites
    stp: float = 0.0
    scp: float = 0.0
    ship: float = 0.0
    ehi_0_1km: float = 0.0
    ehi_0_3km: float = 0.0

    # Classic indices
    k_index: float = 0.0
    totals_totals: float = 0.0
    sweat_index: float = 0.0

    dcape: float = 0.0
    critical_angle: float = 0.0

    # Standard levels
    t850_c: float = 0.0
    td850_c: float = 0.0
    t700_c: float = 0.0
    td700_c: float = 0.0
    t500_c: float = 0.0
    wind_850_dir: float = 0.0
    wind_850_spd: float = 0.0
    wind_500_dir: float = 0.0
    wind_500_spd: float = 0.0
    mixing_ratio_850_gkg: float = 0.0
    lapse_rate_700_500: float = 0.0

    @classmethod
    def build(cls, station_id, obs_time, **values):
        """Construct a record, replacing missing or non-finite numbers with 0."""
        cleaned = {}
        for f in fields(cls):
            if f.name in ("station_id", "obs_time"):
                continue
            value = values.pop(f.name, None)
            value = 0.0 if value is None else float(value)
            cleaned[f.name] = value if math.isfinite(value) else 0.0
        if values:
            raise TypeError(f"Unknown DerivedParameters fields: {', '.join(sorted(values))}")
        return cls(station_id=str(station_id), obs_time=str(obs_time), **cleaned)

    @classmethod
    def empty(cls, station_id, obs_time):
        return cls(station_id=str(station_id), obs_time=str(obs_time))

    def as_dict(self):
        return asdict(self)


class SoundingAnalysis(NamedTuple):
    derived: DerivedParameters
    parcels: ParcelSet = None


@dataclass(frozen=True)
class LevelAnnotation:
    pressure_mb: float
    height_m: float
    temp_c: float
    dewpoint_c: float
    mixing_ratio_gkg: float
    theta_k: float
    theta_e_k: float
    wet_bulb_c: float
    virtual_temp_k: float
    rh: float


# ─────────────────────────────────────────────────────────────────────
# HELPERS
# ─────────────────────────────────────────────────────────────────────
def _level_rh(level):
    if level.rh is not None:
        return level.rh
    return float(relative_humidity(level.temp_c, level.dewpoint_c))


def _wind_at_pressure(levels, pressure_mb):
    """Direction/speed at a pressure, interpolating components in log-p."""
    winds = [lvl for lvl in levels if lvl.has_wind()]
    uv = interpolate_at_pressure(
        winds, pressure_mb,
        lambda lvl: np.array(wind_to_components(lvl.wind_dir_deg, lvl.wind_speed_kt)),
    )
    if uv is None:
        return None
    return components_to_wind(float(uv[0]), float(uv[1]))


def _mean_rh(levels, surface_height_m, depth_m=MEAN_RH_DEPTH_M):
    values = [
        _level_rh(lvl)
        for lvl in levels
        if 0.0 <= lvl.height_m - surface_height_m <= depth_m
    ]
    values = [rh for rh in values if not math.isnan(rh)]
    return sum(values) / len(values) if values else 0.0


def annotate_levels(profile):
    """Thermodynamic quantities for each valid level, surface first."""
    rows = []
    for lvl in profile.valid_levels():
        w = float(mixing_ratio(lvl.pressure_mb, lvl.dewpoint_c))
        rh = _level_rh(lvl)
        rows.append(LevelAnnotation(
            pressure_mb=lvl.pressure_mb,
            height_m=lvl.height_m,
            temp_c=lvl.temp_c,
            dewpoint_c=lvl.dewpoint_c,
            mixing_ratio_gkg=w,
            theta_k=float(potential_temperature(lvl.temp_c, lvl.pressure_mb)),
            theta_e_k=float(equivalent_potential_temperature(
                lvl.temp_c, lvl.dewpoint_c, lvl.pressure_mb)),
            wet_bulb_c=float(wet_bulb_temperature(lvl.temp_c, rh)),
            virtual_temp_k=float(virtual_temperature(lvl.temp_c, w)),
            rh=rh,
        ))
    return tuple(rows)


# ─────────────────────────────────────────────────────────────────────
# MAIN ENTRY POINTS
# ─────────────────────────────────────────────────────────────────────
def analyze_profile(profile):
    """Compute the derived record and keep the parcel results alongside it.

    Returns ``SoundingAnalysis(derived, parcels)``; ``parcels`` is ``None``
    when the profile has too few valid levels to analyse.
    """
    levels = profile.valid_levels()
    if len(levels) < MIN_VALID_LEVELS:
        logger.warning(
            "Station %s: only %d valid levels, returning empty parameters",
            profile.station_id or "?", len(levels),
        )
        return SoundingAnalysis(DerivedParameters.empty(profile.station_id, profile.obs_time))

    sfc = levels[0]
    surface_height_m = sfc.height_m

    # ── Standard levels ─────────────────────────────────────────────
    t850 = interpolate_at_pressure(levels, 850.0, "temp_c")
    td850 = interpolate_at_pressure(levels, 850.0, "dewpoint_c")
    t700 = interpolate_at_pressure(levels, 700.0, "temp_c")
    td700 = interpolate_at_pressure(levels, 700.0, "dewpoint_c")
    t500 = interpolate_at_pressure(levels, 500.0, "temp_c")
    wind850 = _wind_at_pressure(levels, 850.0) or (0.0, 0.0)
    wind500 = _wind_at_pressure(levels, 500.0) or (0.0, 0.0)

    std = {
        "t850_c": t850 or 0.0,
        "td850_c": td850 or 0.0,
        "t700_c": t700 or 0.0,
        "td700_c": td700 or 0.0,
        "t500_c": t500 or 0.0,
    }
    mixing_ratio_850 = float(mixing_ratio(850.0, td850)) if td850 is not None else 0.0
    lapse_700_500 = (
        float(lapse_rate(t700, t500, 700.0, 500.0))
        if t700 is not None and t500 is not None else 0.0
    )

    # ── Parcels and kinematics ──────────────────────────────────────
    parcels = compute_parcels(levels)
    sb, ml, mu = parcels.surface_based, parcels.mixed_layer, parcels.most_unstable
    kin = compute_kinematics(levels, surface_height_m)
    shear = kin.shear
    motion = kin.storm_motion
    shear_0_6km = shear["0_6km"].magnitude

    # ── Moisture and temperature levels ─────────────────────────────
    pwat_mm = precipitable_water(
        [lvl.pressure_mb for lvl in levels], [lvl.dewpoint_c for lvl in levels]
    )
    heights_agl = [lvl.height_m - surface_height_m for lvl in levels]
    temps = [lvl.temp_c for lvl in levels]
    isotherms = [find_isotherm_height(heights_agl, temps, t) for t in ISOTHERMS_C]
    wet_bulbs = [float(wet_bulb_temperature(lvl.temp_c, _level_rh(lvl))) for lvl in levels]
    wet_bulb_zero = find_isotherm_height(heights_agl, wet_bulbs, 0.0)

    # ── Indices ─────────────────────────────────────────────────────
    li = li_700 = 0.0
    if t500 is not None:
        li = lifted_index(sfc.temp_c, sfc.dewpoint_c, sfc.pressure_mb, t500, 500.0)
    if t700 is not None:
        li_700 = lifted_index(sfc.temp_c, sfc.dewpoint_c, sfc.pressure_mb, t700, 700.0)

    derived = DerivedParameters.build(
        profile.station_id,
        profile.obs_time,
        cape_jkg=mu.cape,
        cin_jkg=mu.cin,
        sbcape=sb.cape,
        sbcin=sb.cin,
        mlcape=ml.cape,
        mlcin=ml.cin,
        mucape=mu.cape,
        mucin=mu.cin,
        li=li,
        li_700=li_700,
        pwat_mm=pwat_mm,
        pwat_in=pwat_mm / MM_PER_INCH,
        mean_rh_0_6km=_mean_rh(levels, surface_height_m),
        lcl_m=sb.lcl_m,
        lcl_pressure_mb=sb.lcl_pressure_mb,
        lfc_m=mu.lfc_m,
        lfc_pressure_mb=mu.lfc_pressure_mb,
        el_m=mu.el_m,
        el_pressure_mb=mu.el_pressure_mb,
        ml_lcl_m=ml.lcl_m,
        t_0c_height_m=isotherms[0],
        t_minus10c_height_m=isotherms[1],
        t_minus20c_height_m=isotherms[2],
        wet_bulb_zero_m=wet_bulb_zero,
        shear_0_500m=shear["0_500m"].magnitude,
        shear_0_1km=shear["0_1km"].magnitude,
        shear_0_3km=shear["0_3km"].magnitude,
        shear_0_6km=shear_0_6km,
        shear_0_8km=shear["0_8km"].magnitude,
        shear_0_1km_u=shear["0_1km"].u,
        shear_0_1km_v=shear["0_1km"].v,
        shear_0_6km_u=shear["0_6km"].u,
        shear_0_6km_v=shear["0_6km"].v,
        srh_0_500m=kin.srh["0_500m"],
        srh_0_1km=kin.srh["0_1km"],
        srh_0_3km=kin.srh["0_3km"],
        storm_motion_right_dir=motion.right.direction,
        storm_motion_right_spd=motion.right.speed,
        storm_motion_left_dir=motion.left.direction,
        storm_motion_left_spd=motion.left.speed,
        storm_motion_mean_dir=motion.mean.direction,
        storm_motion_mean_spd=motion.mean.speed,
        stp=significant_tornado_parameter(
            ml.cape, ml.cin, ml.lcl_m, kin.srh["0_1km"], shear_0_6km),
        scp=supercell_composite_parameter(mu.cape, kin.srh["0_3km"], shear_0_6km),
        ship=significant_hail_parameter(
            mu.cape, mixing_ratio_850, lapse_700_500, std["t500_c"], shear_0_6km),
        ehi_0_1km=energy_helicity_index(ml.cape, kin.srh["0_1km"]),
        ehi_0_3km=energy_helicity_index(ml.cape, kin.srh["0_3km"]),
        k_index=k_index(std["t850_c"], std["t700_c"], std["t500_c"],
                        std["td850_c"], std["td700_c"]),
        totals_totals=total_totals(std["t850_c"], std["t500_c"], std["td850_c"]),
        sweat_index=sweat_index(std["t850_c"], std["td850_c"], std["t500_c"],
                                wind850[0], wind850[1], wind500[0], wind500[1]),
        dcape=parcels.downdraft.dcape,
        critical_angle=kin.critical_angle,
        wind_850_dir=wind850[0],
        wind_850_spd=wind850[1],
        wind_500_dir=wind500[0],
        wind_500_spd=wind500[1],
        mixing_ratio_850_gkg=mixing_ratio_850,
        lapse_rate_700_500=lapse_700_500,
        **std,
    )
    return SoundingAnalysis(derived, parcels)


def compute_derived_parameters(profile):
    """Compute every diagnostic for ``profile``.

    Parameters
    ----------
    profile : Profile

    Returns
    -------
    DerivedParameters
        All-zero (station id and time kept) when fewer than five levels
        have finite pressure, height, temperature and dewpoint.
    """
    return analyze_profile(profile).derived
