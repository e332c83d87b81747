"""Demo accounts and requests.

Every demo account logs in with the shared demo secret.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from azanything.models.request import RequestStatus, ServiceRequest, ServiceType, VehicleType
from azanything.models.user import ApprovalStatus, Driver, User, UserRole, UserStatus


def demo_users(now: datetime) -> list[User]:
    return [
        User(
            id="1",
            name="John Doe",
            email="user@demo.com",
            phone="+91 9876543210",
            role=UserRole.REQUESTER,
            address="123 Main St, Village Name",
            created_at=now,
        ),
        Driver(
            id="2",
            name="Driver Singh",
            email="driver@demo.com",
            phone="+91 9876543211",
            vehicle_type=VehicleType.BIKE.value,
            license_number="DL-04-2019-0012345",
            rating=4.6,
            approval=ApprovalStatus.APPROVED,
            created_at=now,
        ),
        User(
            id="3",
            name="Admin User",
            email="admin@demo.com",
            phone="+91 9876543212",
            role=UserRole.ADMINISTRATOR,
            created_at=now,
        ),
        Driver(
            id="4",
            name="Driver Patel",
            email="patel@example.com",
            phone="+91 7766554433",
            vehicle_type=VehicleType.CAR.value,
            license_number="GJ-01-2017-0098765",
            rating=4.8,
            approval=ApprovalStatus.APPROVED,
            created_at=now,
        ),
        Driver(
            id="5",
            name="Driver Kumar",
            email="kumar@example.com",
            phone="+91 9988776655",
            vehicle_type=VehicleType.AUTO.value,
            license_number="KA-05-2021-0045678",
            approval=ApprovalStatus.PENDING,
            created_at=now,
        ),
        User(
            id="6",
            name="Jane Smith",
            email="jane@example.com",
            phone="+91 8765432109",
            role=UserRole.REQUESTER,
            created_at=now,
        ),
        User(
            id="7",
            name="Mike Johnson",
            email="mike@example.com",
            phone="+91 7654321098",
            role=UserRole.REQUESTER,
            status=UserStatus.INACTIVE,
            created_at=now,
        ),
    ]


def demo_requests(now: datetime) -> list[ServiceRequest]:
    """Initial requests, oldest first."""
    return [
        ServiceRequest(
            id="2",
            requester_id="1",
            provider_id="2",
            service_type=ServiceType.GROCERIES,
            vehicle_type=VehicleType.AUTO,
            pickup_location="Super Market, City Center",
            destination="123 Main St, Village Name",
            description="Weekly grocery shopping",
            contact_number="+91 9876543210",
            requested_at=now - timedelta(days=1),
            status=RequestStatus.COMPLETED,
            estimated_cost=200,
            actual_cost=180,
        ),
        ServiceRequest(
            id="1",
            requester_id="1",
            service_type=ServiceType.MEDICINE,
            vehicle_type=VehicleType.BIKE,
            pickup_location="City Medical Store, Main Bazaar",
            destination="123 Main St, Village Name",
            description="Urgent diabetes medicine needed",
            contact_number="+91 9876543210",
            requested_at=now,
            status=RequestStatus.PENDING,
            estimated_cost=150,
        ),
    ]
