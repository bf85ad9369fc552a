import dataclasses
import math

import metpy.calc as mpcalc
import pytest
from metpy.units import units

from conftest import make_levels
from sounding_params import shear


def _column(winds, step_m=500.0, surface_m=0.0):
    """Profile rows with the given (dir, spd) winds every ``step_m`` metres."""
    rows = []
    for i, (wd, ws) in enumerate(winds):
        rows.append((1000.0 - 50.0 * i, surface_m + i * step_m, 20.0 - 3.0 * i, 10.0 - 3.0 * i, wd, ws))
    return tuple(make_levels(rows))


class TestComponents:
    def test_matches_metpy(self):
        u, v = shear.wind_to_components(225.0, 20.0)
        mu, mv = mpcalc.wind_components(units.Quantity(20.0, "knot"), units.Quantity(225.0, "degree"))
        assert u == pytest.approx(mu.m_as("knot"))
        assert v == pytest.approx(mv.m_as("knot"))

    def test_southerly_wind_blows_north(self):
        u, v = shear.wind_to_components(180.0, 10.0)
        assert u == pytest.approx(0.0, abs=1e-9)
        assert v == pytest.approx(10.0)

    @pytest.mark.parametrize("direction", [0.0, 45.0, 135.0, 180.0, 270.0, 359.0])
    @pytest.mark.parametrize("speed", [1.0, 15.0, 80.0])
    def test_round_trip(self, direction, speed):
        d, s = shear.components_to_wind(*shear.wind_to_components(direction, speed))
        assert s == pytest.approx(speed)
        diff = (d - direction + 180.0) % 360.0 - 180.0
        assert diff == pytest.approx(0.0, abs=1e-6)

    def test_calm(self):
        assert shear.components_to_wind(0.001, -0.001) == (0.0, 0.0)


class TestBulkShear:
    def test_same_height_is_zero(self, supercell_levels):
        result = shear.bulk_shear(supercell_levels, 1500.0, 1500.0, 100.0)
        assert result.magnitude == 0.0

    def test_surface_to_6km(self, supercell_levels):
        result = shear.bulk_shear(supercell_levels, 0.0, 6000.0, 100.0)
        assert result.magnitude > 40.0
        assert result.u > 0.0

    def test_out_of_profile_is_zero(self, supercell_levels):
        assert shear.bulk_shear(supercell_levels, 0.0, 20000.0, 100.0) == (0.0, 0.0, 0.0)

    def test_levels_without_wind_are_skipped(self):
        levels = list(_column([(270.0, 10.0), (270.0, 20.0), (270.0, 30.0)]))
        levels[1] = dataclasses.replace(levels[1], wind_dir_deg=math.nan, wind_speed_kt=math.nan)
        result = shear.bulk_shear(levels, 0.0, 1000.0, 0.0)
        assert result.magnitude == pytest.approx(20.0)


class TestMeanWindAndBunkers:
    def test_mean_wind_of_constant_flow(self):
        levels = _column([(270.0, 30.0)] * 14)
        u, v = shear.mean_wind(levels, 0.0, 6000.0, 0.0)
        assert u == pytest.approx(30.0)
        assert v == pytest.approx(0.0, abs=1e-9)

    def test_mean_wind_outside_profile(self):
        assert shear.mean_wind(_column([(270.0, 30.0)] * 3), 5000.0, 6000.0, 0.0) == (0.0, 0.0)

    def test_no_shear_movers_equal_mean(self):
        motion = shear.bunkers_storm_motion(_column([(270.0, 30.0)] * 14), 0.0)
        assert motion.right == motion.left == motion.mean
        assert motion.mean.direction == pytest.approx(270.0)

    def test_right_mover_is_clockwise_of_shear(self):
        # Westerly shear: right mover south of the mean wind
        levels = _column([(270.0, 5.0 * i) for i in range(14)])
        motion = shear.bunkers_storm_motion(levels, 0.0)
        deviation_kt = 7.5 / 0.514444
        assert motion.right.v == pytest.approx(motion.mean.v - deviation_kt)
        assert motion.left.v == pytest.approx(motion.mean.v + deviation_kt)
        assert motion.right.u == pytest.approx(motion.mean.u)


class TestHelicity:
    def test_constant_wind_has_no_helicity(self):
        levels = _column([(250.0, 35.0)] * 8)
        assert shear.storm_relative_helicity(levels, 0.0, 3000.0, 0.0, (10.0, 5.0)) == 0.0

    def test_straight_hodograph_with_storm_on_it(self):
        levels = _column([(270.0, 5.0 * i) for i in range(8)])
        assert shear.storm_relative_helicity(levels, 0.0, 3000.0, 0.0, (12.0, 0.0)) == pytest.approx(
            0.0, abs=1e-9
        )

    def test_veering_profile_positive_for_right_mover(self, supercell_levels):
        motion = shear.bunkers_storm_motion(supercell_levels, 100.0)
        srh1 = shear.storm_relative_helicity(supercell_levels, 0.0, 1000.0, 100.0, motion.right)
        srh3 = shear.storm_relative_helicity(supercell_levels, 0.0, 3000.0, 100.0, motion.right)
        assert srh1 > 150.0
        assert srh3 > srh1

    def test_clipping_splits_layers(self):
        # Clockwise-turning winds through a single 1000 m layer
        levels = _column([(180.0, 20.0), (270.0, 20.0)], step_m=1000.0)
        full = shear.storm_relative_helicity(levels, 0.0, 1000.0, 0.0, (0.0, 0.0))
        lower = shear.storm_relative_helicity(levels, 0.0, 500.0, 0.0, (0.0, 0.0))
        upper = shear.storm_relative_helicity(levels, 500.0, 1000.0, 0.0, (0.0, 0.0))
        assert lower + upper == pytest.approx(full)
        assert 0.0 < lower < full


class TestCriticalAngle:
    def test_perpendicular(self):
        assert shear.critical_angle(10.0, 0.0, 0.0, 10.0) == pytest.approx(90.0)

    def test_parallel_vectors_are_clamped(self):
        assert shear.critical_angle(3.0, 4.0, 6.0, 8.0) == pytest.approx(0.0, abs=1e-6)

    def test_negligible_vectors(self):
        assert shear.critical_angle(0.0, 0.0, 10.0, 10.0) == 0.0
        assert shear.critical_angle(10.0, 10.0, 0.0, 0.001) == 0.0


class TestKinematics:
    def test_layers_present(self, supercell_levels):
        kin = shear.compute_kinematics(supercell_levels, 100.0)
        assert set(kin.shear) == {"0_500m", "0_1km", "0_3km", "0_6km", "0_8km"}
        assert set(kin.srh) == {"0_500m", "0_1km", "0_3km"}
        assert 0.0 <= kin.critical_angle <= 180.0

    def test_calm_profile(self, isothermal_profile):
        levels = isothermal_profile.valid_levels()
        kin = shear.compute_kinematics(levels, levels[0].height_m)
        assert all(s.magnitude == 0.0 for s in kin.shear.values())
        assert all(v == 0.0 for v in kin.srh.values())
        assert kin.storm_motion.right.speed == 0.0
        assert kin.critical_angle == 0.0
        assert not math.isnan(kin.storm_motion.mean.direction)
