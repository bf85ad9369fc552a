import math

import pytest

from sounding_params import Profile, ProfileLevel

# p (mb), z (m MSL), T (C), Td (C), wind dir (deg), wind speed (kt)
SUPERCELL_ROWS = [
    (1000, 100, 30.0, 22.0, 180, 20),
    (975, 326, 27.8, 21.5, 190, 25),
    (950, 556, 25.5, 21.0, 200, 30),
    (925, 791, 23.3, 20.0, 210, 33),
    (900, 1030, 21.0, 19.0, 220, 36),
    (850, 1524, 18.0, 16.0, 235, 40),
    (800, 2042, 15.0, 12.0, 245, 43),
    (750, 2586, 11.5, 6.0, 250, 46),
    (700, 3160, 8.0, 0.0, 255, 50),
    (600, 4414, 0.0, -12.0, 262, 55),
    (500, 5847, -10.0, -25.0, 270, 60),
    (400, 7527, -22.0, -38.0, 270, 68),
    (300, 9574, -38.0, -50.0, 270, 80),
    (250, 10805, -47.0, -58.0, 265, 85),
    (200, 12253, -56.0, -66.0, 265, 80),
    (150, 14065, -60.0, -70.0, 265, 60),
    (100, 16583, -62.0, -75.0, 265, 40),
]

ISOTHERMAL_PRESSURES = [1000, 950, 900, 850, 800, 750, 700, 600, 500, 400, 300, 200, 100]

# Scale height of a 10 C isothermal atmosphere
_ISOTHERMAL_H = 287.05 * 283.15 / 9.80665


def make_levels(rows):
    return [
        ProfileLevel(
            pressure_mb=float(p), height_m=float(z), temp_c=t, dewpoint_c=td,
            wind_dir_deg=float(wd), wind_speed_kt=float(ws),
        )
        for p, z, t, td, wd, ws in rows
    ]


def make_profile(rows, station_id="TST", obs_time="2024-05-20T00:00:00Z"):
    return Profile(station_id=station_id, obs_time=obs_time, levels=make_levels(rows),
                   elevation_m=float(rows[0][1]))


def isothermal_rows():
    return [
        (p, _ISOTHERMAL_H * math.log(1000.0 / p), 10.0, 10.0, 0.0, 0.0)
        for p in ISOTHERMAL_PRESSURES
    ]


@pytest.fixture
def supercell_profile():
    return make_profile(SUPERCELL_ROWS, station_id="OUN")


@pytest.fixture
def supercell_levels(supercell_profile):
    return supercell_profile.valid_levels()


@pytest.fixture
def supercell_body():
    return {
        "station_id": "OUN",
        "obs_time": "2024-05-20T00:00:00Z",
        "elevation_m": 100,
        "levels": [
            {
                "pressure_mb": p, "height_m": z, "temp_c": t, "dewpoint_c": td,
                "wind_dir_deg": wd, "wind_speed_kt": ws,
            }
            for p, z, t, td, wd, ws in SUPERCELL_ROWS
        ],
    }


@pytest.fixture
def isothermal_profile():
    return make_profile(isothermal_rows(), station_id="ISO")


@pytest.fixture
def degenerate_profile():
    return make_profile(
        [
            (1000, 100, 25.0, 20.0, 180, 10),
            (850, 1500, 15.0, math.nan, 200, 20),
            (700, 3100, 5.0, math.nan, 250, 30),
        ],
        station_id="BAD",
        obs_time="2024-05-21T12:00:00Z",
    )
