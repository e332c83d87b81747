"""Estimated cost collaborators.

The ledger asks a :class:`PriceEstimator` for the estimate of every new
request. The default table estimator is deterministic; the random one
reproduces the demo behaviour of the web client and takes a seed.
"""

from __future__ import annotations

import random
from typing import Protocol

from azanything._constants import MAX_ESTIMATED_COST, MIN_ESTIMATED_COST, clamp_cost
from azanything.models.request import ServiceType, VehicleType


class PriceEstimator(Protocol):
    def estimate(self, service_type: ServiceType, vehicle_type: VehicleType) -> float: ...


_BASE_PRICES: dict[ServiceType, float] = {
    ServiceType.AMBULANCE: 180.0,
    ServiceType.MEDICINE: 80.0,
    ServiceType.GAS: 120.0,
    ServiceType.GROCERIES: 100.0,
    ServiceType.FOOD: 60.0,
    ServiceType.DOCUMENTS: 50.0,
    ServiceType.OTHERS: 90.0,
}

_VEHICLE_SURCHARGES: dict[VehicleType, float] = {
    VehicleType.BIKE: 0.0,
    VehicleType.AUTO: 20.0,
    VehicleType.CAR: 40.0,
    VehicleType.AMBULANCE: 60.0,
    VehicleType.MINI_TRUCK: 70.0,
}


class TablePriceEstimator:
    """Base price per service plus a vehicle surcharge, clamped to the bounds."""

    def __init__(
        self,
        *,
        min_cost: float = MIN_ESTIMATED_COST,
        max_cost: float = MAX_ESTIMATED_COST,
        base_prices: dict[ServiceType, float] | None = None,
        surcharges: dict[VehicleType, float] | None = None,
    ) -> None:
        if min_cost < 0 or max_cost < min_cost:
            raise ValueError(f"invalid cost bounds [{min_cost}, {max_cost}]")
        self._min_cost = min_cost
        self._max_cost = max_cost
        self._base_prices = dict(_BASE_PRICES if base_prices is None else base_prices)
        self._surcharges = dict(_VEHICLE_SURCHARGES if surcharges is None else surcharges)

    def estimate(self, service_type: ServiceType, vehicle_type: VehicleType) -> float:
        base = self._base_prices.get(service_type, self._min_cost)
        surcharge = self._surcharges.get(vehicle_type, 0.0)
        return clamp_cost(base + surcharge, self._min_cost, self._max_cost)


class RandomPriceEstimator:
    """Uniform whole-number estimate in ``[min_cost, max_cost]``."""

    def __init__(
        self,
        *,
        seed: int | None = None,
        min_cost: int = MIN_ESTIMATED_COST,
        max_cost: int = MAX_ESTIMATED_COST,
    ) -> None:
        if min_cost < 0 or max_cost < min_cost:
            raise ValueError(f"invalid cost bounds [{min_cost}, {max_cost}]")
        self._rng = random.Random(seed)
        self._min_cost = min_cost
        self._max_cost = max_cost

    def estimate(self, service_type: ServiceType, vehicle_type: VehicleType) -> float:
        return float(self._rng.randint(self._min_cost, self._max_cost))
