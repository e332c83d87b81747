from __future__ import annotations

from pathlib import Path

from azanything import AzApp, AzConfig, JsonFileStorage, MemoryStorage, RandomPriceEstimator
from azanything.models import RequestStatus


def test_empty_app_without_seed() -> None:
    with AzApp() as app:
        assert len(app.directory) == 0
        assert len(app.ledger) == 0
        assert isinstance(app.storage, MemoryStorage)
        assert not app.sessions.is_authenticated


def test_demo_seed() -> None:
    with AzApp(AzConfig(seed_demo_data=True)) as app:
        assert len(app.directory) == 7
        assert [r.id for r in app.ledger.query()] == ["1", "2"]
        assert app.ledger.get("2").status is RequestStatus.COMPLETED


def test_state_survives_restart(tmp_path: Path) -> None:
    config = AzConfig(storage_path=str(tmp_path), seed_demo_data=True)

    with AzApp(config) as app:
        assert isinstance(app.storage, JsonFileStorage)
        app.login("user@demo.com", "demo123", "requester")
        created = app.access.create_request(
            {
                "serviceType": "documents",
                "vehicleType": "bike",
                "pickupLocation": "Tehsil office",
                "description": "Collect land records",
                "contactNumber": "9876543210",
            }
        )

    with AzApp(config) as app:
        # Persisted data is reused, not re-seeded.
        assert len(app.directory) == 7
        assert [r.id for r in app.ledger.query()] == [created.id, "1", "2"]
        assert app.sessions.current_session().actor_id == "1"
        assert app.access.my_requests().first() == created

    assert (tmp_path / "azAnythingRequests.json").is_file()
    assert (tmp_path / "azAnythingUser.json").is_file()


def test_injected_price_estimator() -> None:
    app = AzApp(
        AzConfig(seed_demo_data=True),
        price_estimator=RandomPriceEstimator(seed=7),
    ).start()
    app.login("user@demo.com", "demo123", "requester")
    request = app.access.create_request(
        {
            "serviceType": "food",
            "vehicleType": "bike",
            "pickupLocation": "Dhaba",
            "description": "Lunch",
            "contactNumber": "9876543210",
        }
    )
    assert 50 <= request.estimated_cost <= 249
    assert request.estimated_cost == int(request.estimated_cost)


def test_start_is_idempotent() -> None:
    app = AzApp(AzConfig(seed_demo_data=True))
    assert app.start() is app
    assert app.start() is app
    assert len(app.directory) == 7
