"""Severe-weather diagnostics from a single vertical sounding."""

from .derived import (
    DerivedParameters,
    LevelAnnotation,
    SoundingAnalysis,
    analyze_profile,
    annotate_levels,
    compute_derived_parameters,
)
from .parcel import (
    DowndraftResult,
    ParcelPathPoint,
    ParcelResult,
    ParcelSet,
    compute_parcels,
    downdraft_cape,
    lift_parcel,
    mixed_layer_parcel,
    most_unstable_parcel,
    surface_based_parcel,
)
from .profile import Profile, ProfileError, ProfileLevel, interpolate_at_pressure

__version__ = "0.1.0"
