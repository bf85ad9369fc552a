"""
Composite severe-weather indices.

Closed-form products of normalized ingredients. All functions accept
scalars or numpy arrays; shear inputs are the 0-6 km bulk wind difference
in knots, the same value the derived record reports.
"""

import numpy as np

from .constants import (
    EHI_NORM,
    SCP_CAPE_NORM,
    SCP_SHEAR_MIN,
    SCP_SHEAR_NORM,
    SCP_SRH_NORM,
    SHIP_DIVISOR,
    STP_CAPE_CAP,
    STP_CAPE_NORM,
    STP_CIN_GATE,
    STP_CIN_NORM,
    STP_CIN_WEAK,
    STP_LCL_NORM,
    STP_LCL_REF,
    STP_SHEAR_CAP,
    STP_SHEAR_MIN,
    STP_SHEAR_NORM,
    STP_SRH_NORM,
)


def significant_tornado_parameter(mlcape, mlcin, mllcl_m, srh_0_1km, shear_0_6km_kt):
    """
    Significant Tornado Parameter (fixed layer, with CIN term).

    STP = min(MLCAPE/1500, 2) x LCL term x SRH1/150 x shear term x CIN term

    - LCL term: (2000 - MLLCL)/1000, zero at or above 2000 m AGL
    - shear term: zero at or below 12.5 kt, else min(shear/20, 1.5)
    - CIN term: 1 above -40 J/kg, (200 + MLCIN)/160 down to -200, then 0
    """
    mlcape = np.asarray(mlcape, dtype=float)
    mlcin = np.asarray(mlcin, dtype=float)
    mllcl_m = np.asarray(mllcl_m, dtype=float)
    shear = np.asarray(shear_0_6km_kt, dtype=float)

    cape_term = np.minimum(mlcape / STP_CAPE_NORM, STP_CAPE_CAP)
    lcl_term = np.where(mllcl_m < STP_LCL_REF, (STP_LCL_REF - mllcl_m) / STP_LCL_NORM, 0.0)
    srh_term = np.asarray(srh_0_1km, dtype=float) / STP_SRH_NORM
    shear_term = np.where(
        shear > STP_SHEAR_MIN, np.minimum(shear / STP_SHEAR_NORM, STP_SHEAR_CAP), 0.0
    )
    cin_term = np.select(
        [mlcin >= STP_CIN_WEAK, mlcin > STP_CIN_GATE],
        [1.0, (-STP_CIN_GATE + mlcin) / STP_CIN_NORM],
        default=0.0,
    )

    return cape_term * lcl_term * srh_term * shear_term * cin_term


def supercell_composite_parameter(mucape, srh_0_3km, shear_0_6km_kt):
    """SCP = MUCAPE/1000 x SRH3/50 x (shear/20 above 10 kt, else 0)."""
    shear = np.asarray(shear_0_6km_kt, dtype=float)
    cape_term = np.asarray(mucape, dtype=float) / SCP_CAPE_NORM
    srh_term = np.asarray(srh_0_3km, dtype=float) / SCP_SRH_NORM
    shear_term = np.where(shear > SCP_SHEAR_MIN, shear / SCP_SHEAR_NORM, 0.0)
    return cape_term * srh_term * shear_term


def significant_hail_parameter(mucape, mixing_ratio_gkg, lapse_rate_700_500, t500_c,
                               shear_0_6km_kt):
    """
    Significant Hail Parameter.

    SHIP = MUCAPE x w850 x lapse(700-500) x (-T500) x shear / 42e6, floored at 0.

    Args:
        mucape: most-unstable CAPE (J/kg)
        mixing_ratio_gkg: 850 mb mixing ratio (g/kg)
        lapse_rate_700_500: 700-500 mb lapse rate (degC/km)
        t500_c: 500 mb temperature (degC)
        shear_0_6km_kt: 0-6 km bulk shear (kt)
    """
    ship = (
        np.asarray(mucape, dtype=float)
        * mixing_ratio_gkg
        * lapse_rate_700_500
        * -np.asarray(t500_c, dtype=float)
        * shear_0_6km_kt
        / SHIP_DIVISOR
    )
    return np.maximum(ship, 0.0)


def energy_helicity_index(cape, srh):
    return np.asarray(cape, dtype=float) * srh / EHI_NORM
