import os
from typing import Callable, Generator, Optional

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("RATE_LIMITING_ENABLED", "false")
os.environ.setdefault("ASSISTANT_API_KEY", "")

from classroom.config import reset_settings_cache  # noqa: E402

reset_settings_cache()

from classroom.database import Base, SessionLocal, engine  # noqa: E402
from classroom.dependencies import get_assistant  # noqa: E402
from classroom.models import Room, RoomStatusEnum  # noqa: E402
from classroom.schemas import BookingDraft, MaintenanceAnalysis, SearchIntent  # noqa: E402
from services.assistant.app import app as assistant_app  # noqa: E402
from services.maintenance.app import app as maintenance_app  # noqa: E402
from services.rooms.app import app as rooms_app  # noqa: E402
from services.schedules.app import app as schedules_app  # noqa: E402
from services.users.app import app as users_app  # noqa: E402

ADMIN_PAYLOAD = {
    "full_name": "System Administrator",
    "email": "admin@example.com",
    "password": "Passw0rd!",
    "role": "admin",
}

USER_PAYLOAD = {
    "full_name": "Student One",
    "email": "student@example.com",
    "password": "Passw0rd!",
}


class FakeAssistant:
    """Stands in for the external assistant; answers are set per test."""

    def __init__(self) -> None:
        self.booking: Optional[BookingDraft] = None
        self.search: Optional[SearchIntent] = None
        self.analysis: Optional[MaintenanceAnalysis] = None
        self.queries: list[str] = []

    def parse_booking_intent(self, query: str) -> Optional[BookingDraft]:
        self.queries.append(query)
        return self.booking

    def parse_search_intent(self, query: str) -> Optional[SearchIntent]:
        self.queries.append(query)
        return self.search

    def analyze_maintenance_issue(self, description: str) -> Optional[MaintenanceAnalysis]:
        self.queries.append(description)
        return self.analysis


@pytest.fixture(autouse=True, scope="function")
def _create_test_database() -> Generator[None, None, None]:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session() -> Generator:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def make_room(db_session) -> Callable[..., Room]:
    def factory(
        name: str = "Lab 1",
        capacity: int = 30,
        room_type: str = "Laboratory",
        status: RoomStatusEnum = RoomStatusEnum.AVAILABLE,
        equipment: str = "Projector,Whiteboard",
    ) -> Room:
        room = Room(name=name, capacity=capacity, room_type=room_type, status=status, equipment=equipment)
        db_session.add(room)
        db_session.commit()
        db_session.refresh(room)
        return room

    return factory


@pytest.fixture()
def fake_assistant() -> Generator[FakeAssistant, None, None]:
    fake = FakeAssistant()
    for service_app in (assistant_app, maintenance_app):
        service_app.dependency_overrides[get_assistant] = lambda: fake
    yield fake
    for service_app in (assistant_app, maintenance_app):
        service_app.dependency_overrides.pop(get_assistant, None)


@pytest.fixture()
def users_client() -> Generator[TestClient, None, None]:
    with TestClient(users_app) as client:
        yield client


@pytest.fixture()
def rooms_client() -> Generator[TestClient, None, None]:
    with TestClient(rooms_app) as client:
        yield client


@pytest.fixture()
def schedules_client() -> Generator[TestClient, None, None]:
    with TestClient(schedules_app) as client:
        yield client


@pytest.fixture()
def maintenance_client() -> Generator[TestClient, None, None]:
    with TestClient(maintenance_app) as client:
        yield client


@pytest.fixture()
def assistant_client() -> Generator[TestClient, None, None]:
    with TestClient(assistant_app) as client:
        yield client


def auth_header(users_client: TestClient, email: str, password: str) -> dict[str, str]:
    response = users_client.post(
        "/users/login",
        data={"username": email, "password": password},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin_headers(users_client) -> dict[str, str]:
    users_client.post("/users/register", json=ADMIN_PAYLOAD)
    return auth_header(users_client, ADMIN_PAYLOAD["email"], ADMIN_PAYLOAD["password"])


@pytest.fixture()
def user_headers(users_client) -> dict[str, str]:
    users_client.post("/users/register", json=USER_PAYLOAD)
    return auth_header(users_client, USER_PAYLOAD["email"], USER_PAYLOAD["password"])
