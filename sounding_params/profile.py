"""
Vertical profile model and the interpolation primitives shared by every
diagnostic.

A ``Profile`` is what the acquisition side hands over: station metadata
plus an unordered bag of ``ProfileLevel`` records. It is frozen; the
diagnostics only ever read ``Profile.valid_levels()``.
"""

from __future__ import annotations

import math
import operator
from dataclasses import dataclass, field

import numpy as np
from metpy.units import units


class ProfileError(ValueError):
    """Raised for malformed profile input at the library boundary."""


# Quantity name -> (level attribute, canonical unit)
COLUMNS = {
    "pressure": ("pressure_mb", "hPa"),
    "height": ("height_m", "meter"),
    "temperature": ("temp_c", "degC"),
    "dewpoint": ("dewpoint_c", "degC"),
    "wind_direction": ("wind_dir_deg", "degree"),
    "wind_speed": ("wind_speed_kt", "knot"),
    "relative_humidity": ("rh", "percent"),
}
REQUIRED_COLUMNS = ("pressure", "height", "temperature", "dewpoint")


@dataclass(frozen=True)
class ProfileLevel:
    pressure_mb: float
    height_m: float
    temp_c: float
    dewpoint_c: float
    wind_dir_deg: float = math.nan
    wind_speed_kt: float = math.nan
    rh: float | None = None

    def is_valid(self):
        """True when the level can take part in thermodynamic calculations."""
        return (
            math.isfinite(self.pressure_mb)
            and self.pressure_mb > 0
            and math.isfinite(self.height_m)
            and math.isfinite(self.temp_c)
            and math.isfinite(self.dewpoint_c)
        )

    def has_wind(self):
        return math.isfinite(self.wind_dir_deg) and math.isfinite(self.wind_speed_kt)


@dataclass(frozen=True)
class Profile:
    station_id: str
    obs_time: str
    levels: tuple = field(default_factory=tuple)
    elevation_m: float | None = None

    def __post_init__(self):
        if not isinstance(self.levels, tuple):
            object.__setattr__(self, "levels", tuple(self.levels))

    def valid_levels(self):
        """Levels with finite p/z/T/Td, sorted surface first (pressure descending)."""
        valid = [lvl for lvl in self.levels if lvl.is_valid()]
        return tuple(sorted(valid, key=lambda lvl: lvl.pressure_mb, reverse=True))

    # ── Constructors ────────────────────────────────────────────────
    @classmethod
    def from_columns(cls, station_id, obs_time, columns, elevation_m=None, column_units=None):
        """Build a profile from parallel columns keyed by quantity name.

        Parameters
        ----------
        columns : dict
            ``{"pressure": ..., "height": ..., "temperature": ...,
            "dewpoint": ..., "wind_direction": ..., "wind_speed": ...,
            "relative_humidity": ...}``. Values are pint quantities or plain
            sequences; ``None`` entries become NaN.
        column_units : dict or None
            Units of the plain sequences, by quantity name. Anything not
            listed is assumed to be in the canonical unit.
        """
        column_units = column_units or {}
        missing = [name for name in REQUIRED_COLUMNS if columns.get(name) is None]
        if missing:
            raise ProfileError(f"Profile is missing required columns: {', '.join(missing)}")

        converted = {}
        n = None
        for name, (attr, canonical) in COLUMNS.items():
            values = columns.get(name)
            if values is None:
                continue
            mags = _magnitudes(values, canonical, column_units.get(name), name)
            if n is None:
                n = mags.size
            elif mags.size != n:
                raise ProfileError(
                    f"Column '{name}' has {mags.size} values, expected {n}."
                )
            converted[attr] = mags

        levels = []
        for i in range(n or 0):
            kwargs = {attr: float(col[i]) for attr, col in converted.items()}
            if "rh" in kwargs and not math.isfinite(kwargs["rh"]):
                kwargs["rh"] = None
            levels.append(ProfileLevel(**kwargs))

        return cls(
            station_id=str(station_id),
            obs_time=str(obs_time),
            levels=tuple(levels),
            elevation_m=None if elevation_m is None else float(elevation_m),
        )

    @classmethod
    def from_unit_arrays(cls, data, station_id="", obs_time=""):
        """Build a profile from a dict of unit arrays.

        ``data`` carries pint quantities under ``pressure``, ``height``,
        ``temperature``, ``dewpoint``, ``wind_direction`` and
        ``wind_speed``, optionally with a ``station_info`` dict holding
        ``elev``. Quantities are converted to hPa, m, degC, degrees and knots.
        """
        info = data.get("station_info") or {}
        columns = {name: data.get(name) for name in COLUMNS}
        return cls.from_columns(
            station_id or info.get("id", ""),
            obs_time,
            columns,
            elevation_m=info.get("elev"),
        )

    @classmethod
    def from_dict(cls, body):
        """Build a profile from the JSON-style input contract.

        Expected shape::

            {
              "station_id": "OUN",
              "obs_time": "2024-05-20T00:00:00Z",
              "elevation_m": 357,
              "levels": [
                {"pressure_mb": 970, "height_m": 357, "temp_c": 28.2,
                 "dewpoint_c": 19.1, "rh": 58, "wind_dir_deg": 170,
                 "wind_speed_kt": 18},
                ...
              ],
              "units": {"temperature": "degF", "wind_speed": "m/s"}
            }

        The optional ``units`` map names the units the level values are in,
        by quantity name.
        """
        if not isinstance(body, dict):
            raise ProfileError("Profile must be a JSON object.")
        raw_levels = body.get("levels")
        if not isinstance(raw_levels, (list, tuple)):
            raise ProfileError("Profile must contain a 'levels' list.")
        if not raw_levels:
            return cls(
                station_id=str(body.get("station_id", "")),
                obs_time=str(body.get("obs_time", "")),
                elevation_m=body.get("elevation_m"),
            )

        columns = {}
        for name, (attr, _) in COLUMNS.items():
            values = []
            for i, lvl in enumerate(raw_levels):
                if not isinstance(lvl, dict):
                    raise ProfileError(f"Level {i} is not an object.")
                if name in REQUIRED_COLUMNS and attr not in lvl:
                    raise ProfileError(f"Level {i} is missing '{attr}'.")
                values.append(lvl.get(attr))
            if values:
                columns[name] = values

        return cls.from_columns(
            body.get("station_id", ""),
            body.get("obs_time", ""),
            columns,
            elevation_m=body.get("elevation_m"),
            column_units=body.get("units"),
        )


def _magnitudes(values, canonical, unit, name):
    """Convert ``values`` to a float array in ``canonical`` units."""
    try:
        if not hasattr(values, "to"):
            values = units.Quantity(np.asarray(values, dtype=float), unit or canonical)
        return np.atleast_1d(np.asarray(values.to(canonical).magnitude, dtype=float))
    except (AttributeError, TypeError, ValueError) as e:
        raise ProfileError(f"Cannot read '{name}' as {canonical}: {e}") from e


# ─────────────────────────────────────────────────────────────────────
# INTERPOLATION
# ─────────────────────────────────────────────────────────────────────
def _accessor(field_):
    return operator.attrgetter(field_) if isinstance(field_, str) else field_


def interpolate_at_pressure(levels, pressure_mb, field_):
    """Interpolate a level field linearly in log-pressure.

    Parameters
    ----------
    levels : sequence of ProfileLevel
        Sorted by pressure, descending.
    pressure_mb : float
        Target pressure.
    field_ : str or callable
        Attribute name or accessor ``level -> value``. The accessor may
        return a numpy array, e.g. wind components.

    Returns
    -------
    The interpolated value, or ``None`` when no pair of levels brackets
    the target. Never extrapolates.
    """
    if not pressure_mb > 0:
        return None
    get = _accessor(field_)
    log_p = math.log(pressure_mb)

    for below, above in zip(levels, levels[1:]):
        if below.pressure_mb >= pressure_mb >= above.pressure_mb:
            log_lo = math.log(below.pressure_mb)
            log_hi = math.log(above.pressure_mb)
            v0 = get(below)
            if log_hi == log_lo:
                return v0
            frac = (log_p - log_lo) / (log_hi - log_lo)
            return v0 + frac * (get(above) - v0)

    return None


def interpolate_at_height(levels, height_m, field_):
    """Interpolate a level field linearly in height.

    ``levels`` must be sorted by height, ascending; ``height_m`` is in the
    same datum as ``ProfileLevel.height_m``. Returns ``None`` outside the
    profile.
    """
    if not math.isfinite(height_m):
        return None
    get = _accessor(field_)

    for below, above in zip(levels, levels[1:]):
        if below.height_m <= height_m <= above.height_m:
            v0 = get(below)
            if above.height_m == below.height_m:
                return v0
            frac = (height_m - below.height_m) / (above.height_m - below.height_m)
            return v0 + frac * (get(above) - v0)

    return None


def sort_by_height(levels):
    return tuple(sorted(levels, key=lambda lvl: lvl.height_m))
