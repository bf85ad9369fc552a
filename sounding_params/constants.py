"""
Physical constants and empirical tunables shared by every diagnostic.

Everything the parcel, shear and composite code treats as a fixed number
lives here so a threshold can be revisited in one place.
"""

# ─────────────────────────────────────────────────────────────────────
# PHYSICAL CONSTANTS
# ─────────────────────────────────────────────────────────────────────
RD = 287.05          # J/(kg K)  gas constant, dry air
RV = 461.5           # J/(kg K)  gas constant, water vapor
CP = 1005.7          # J/(kg K)  specific heat of dry air at constant pressure
LV = 2.501e6         # J/kg      latent heat of vaporization
G = 9.80665          # m/s^2
EPS = RD / RV        # ~0.622
P0 = 1000.0          # hPa       reference pressure for theta
T0 = 273.15          # K         0 degC

KAPPA = RD / CP      # Poisson exponent

# ─────────────────────────────────────────────────────────────────────
# UNIT CONVERSIONS
# ─────────────────────────────────────────────────────────────────────
KT_TO_MS = 0.514444
MM_PER_INCH = 25.4

# ─────────────────────────────────────────────────────────────────────
# PARCEL INTEGRATION
# ─────────────────────────────────────────────────────────────────────
MIN_VALID_LEVELS = 5         # fewer than this -> all-zero record
PARCEL_TOP_MB = 100.0        # integration top
PARCEL_STEP_MB = 10.0        # ascent step
MOIST_STEP_MB = 10.0         # sub-step inside lift_moist_adiabatic
MIXED_LAYER_DEPTH_MB = 100.0
MU_SEARCH_DEPTH_MB = 300.0
DOWNDRAFT_LAYER_MB = (400.0, 700.0)

# Environment moisture is not taken from the observed dewpoint; it is
# approximated as this fraction of the environment's saturation mixing ratio.
ENV_MOISTURE_FRACTION = 0.7

# ─────────────────────────────────────────────────────────────────────
# KINEMATICS
# ─────────────────────────────────────────────────────────────────────
BUNKERS_DEVIATION_MS = 7.5   # deviation from the 0-6 km mean wind
BUNKERS_DEPTH_M = 6000.0
MEAN_WIND_STEP_M = 250.0
CALM_THRESHOLD_KT = 0.01     # below this a vector has no usable direction

SHEAR_LAYERS_M = {
    "0_500m": 500.0,
    "0_1km": 1000.0,
    "0_3km": 3000.0,
    "0_6km": 6000.0,
    "0_8km": 8000.0,
}
SRH_LAYERS_M = {
    "0_500m": 500.0,
    "0_1km": 1000.0,
    "0_3km": 3000.0,
}

# ─────────────────────────────────────────────────────────────────────
# STANDARD LEVELS / LAYERS
# ─────────────────────────────────────────────────────────────────────
MEAN_RH_DEPTH_M = 6000.0
ISOTHERMS_C = (0.0, -10.0, -20.0)

# ─────────────────────────────────────────────────────────────────────
# COMPOSITES
# ─────────────────────────────────────────────────────────────────────
# STP
STP_CAPE_NORM = 1500.0       # J/kg
STP_CAPE_CAP = 2.0
STP_LCL_REF = 2000.0         # m AGL, LCL term is zero above this
STP_LCL_NORM = 1000.0
STP_SRH_NORM = 150.0         # m2/s2
STP_SHEAR_MIN = 12.5         # kt
STP_SHEAR_NORM = 20.0        # kt
STP_SHEAR_CAP = 1.5
STP_CIN_WEAK = -40.0         # J/kg, no penalty above this
STP_CIN_GATE = -200.0        # J/kg, full penalty at/below this
STP_CIN_NORM = 160.0

# SCP
SCP_CAPE_NORM = 1000.0       # J/kg
SCP_SRH_NORM = 50.0          # m2/s2
SCP_SHEAR_MIN = 10.0         # kt
SCP_SHEAR_NORM = 20.0        # kt

# SHIP
SHIP_DIVISOR = 42_000_000.0

# EHI
EHI_NORM = 160000.0
