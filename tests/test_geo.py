"""Haversine distance tests."""

import math

from tirematch.utils.geo import haversine_km

MONTREAL = (45.5017, -73.5673)
QUEBEC_CITY = (46.8139, -71.2080)
TORONTO = (43.6532, -79.3832)


class TestHaversine:
    def test_same_point_is_zero(self):
        assert haversine_km(*MONTREAL, *MONTREAL) == 0.0

    def test_symmetric(self):
        there = haversine_km(*MONTREAL, *TORONTO)
        back = haversine_km(*TORONTO, *MONTREAL)
        assert math.isclose(there, back)

    def test_montreal_to_quebec_city(self):
        assert 228 < haversine_km(*MONTREAL, *QUEBEC_CITY) < 238

    def test_antipodes_are_half_circumference(self):
        assert math.isclose(haversine_km(0, 0, 0, 180), math.pi * 6371.0, rel_tol=1e-9)

    def test_nan_propagates(self):
        assert math.isnan(haversine_km(float("nan"), 0, 0, 0))
