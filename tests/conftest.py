import httpx
import pytest
from fastapi.testclient import TestClient

from fake_api import FakeRoomLoanService
from models import UserSession
from repository import RoomLoanRepository
from synchronizer import LoanViewSynchronizer


@pytest.fixture
def service():
    return FakeRoomLoanService()


@pytest.fixture
def backend(service):
    with TestClient(service.app) as c:
        yield c


def session_for(service, username, full_name, role):
    token = service.add_account(username, full_name, role=role)
    return UserSession(token=token, role=role, username=username, full_name=full_name,
                       email=f"{username}@campus.test")


@pytest.fixture
def admin_session(service):
    return session_for(service, "admin", "Budi Admin", "Admin")


@pytest.fixture
def alice_session(service):
    return session_for(service, "alice", "Alice", "User")


@pytest.fixture
def admin_sync(backend, admin_session):
    return LoanViewSynchronizer(admin_session, RoomLoanRepository(backend, admin_session))


@pytest.fixture
def alice_sync(backend, alice_session):
    return LoanViewSynchronizer(alice_session, RoomLoanRepository(backend, alice_session))


@pytest.fixture
def dead_http():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with httpx.Client(base_url="http://roomloans.invalid", transport=httpx.MockTransport(handler)) as c:
        yield c


@pytest.fixture
def web(backend):
    from app import app
    from ui import get_http

    app.dependency_overrides[get_http] = lambda: backend
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
