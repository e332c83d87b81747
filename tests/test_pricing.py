from __future__ import annotations

import pytest

from azanything._constants import clamp_cost
from azanything.models import ServiceType, VehicleType
from azanything.pricing import RandomPriceEstimator, TablePriceEstimator


class TestTablePriceEstimator:
    def test_base_plus_surcharge(self) -> None:
        estimator = TablePriceEstimator()
        assert estimator.estimate(ServiceType.MEDICINE, VehicleType.BIKE) == 80
        assert estimator.estimate(ServiceType.GROCERIES, VehicleType.CAR) == 140

    def test_clamped_to_bounds(self) -> None:
        estimator = TablePriceEstimator()
        assert estimator.estimate(ServiceType.AMBULANCE, VehicleType.MINI_TRUCK) == 249
        assert TablePriceEstimator(min_cost=70).estimate(ServiceType.DOCUMENTS, VehicleType.BIKE) == 70

    def test_invalid_bounds(self) -> None:
        with pytest.raises(ValueError):
            TablePriceEstimator(min_cost=100, max_cost=50)


class TestRandomPriceEstimator:
    def test_seeded_and_bounded(self) -> None:
        first = RandomPriceEstimator(seed=42)
        second = RandomPriceEstimator(seed=42)
        values = [first.estimate(ServiceType.FOOD, VehicleType.BIKE) for _ in range(50)]
        assert values == [second.estimate(ServiceType.FOOD, VehicleType.BIKE) for _ in range(50)]
        assert all(50 <= v <= 249 and v == int(v) for v in values)

    def test_invalid_bounds(self) -> None:
        with pytest.raises(ValueError):
            RandomPriceEstimator(min_cost=-5)


def test_clamp_cost() -> None:
    assert clamp_cost(10) == 50
    assert clamp_cost(1000) == 249
    assert clamp_cost(120.5) == 120.5
    with pytest.raises(ValueError):
        clamp_cost(10, 20, 5)
