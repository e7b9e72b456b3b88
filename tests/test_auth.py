import pytest

from auth import AuthRepository, validate_registration
from errors import ServerRejection, ValidationError


def test_login_returns_session(service, backend):
    service.add_account("budi", "Budi Santoso", role="Admin")
    session = AuthRepository(backend).login("budi", "secret123")
    assert session.is_admin
    assert session.identity == "Budi Santoso"
    assert session.token in service.tokens


def test_login_by_email(service, backend):
    service.add_account("siti", "Siti", email="siti@kampus.test")
    assert AuthRepository(backend).login("siti@kampus.test", "secret123").identity == "Siti"


def test_bad_credentials_are_a_rejection_not_an_auth_error(service, backend):
    service.add_account("budi", "Budi")
    with pytest.raises(ServerRejection) as exc:
        AuthRepository(backend).login("budi", "wrong")
    assert exc.value.message == "Username atau password salah"


def test_login_requires_both_fields(service, backend):
    with pytest.raises(ValidationError):
        AuthRepository(backend).login("", "x")
    assert service.calls == []


def test_register_then_login(service, backend):
    repo = AuthRepository(backend)
    repo.register("Dewi Lestari", "dewi", "dewi@campus.test", "rahasia", "rahasia")
    assert repo.login("dewi", "rahasia").identity == "Dewi Lestari"


def test_register_duplicate_username(service, backend):
    service.add_account("dewi", "Dewi")
    with pytest.raises(ServerRejection):
        AuthRepository(backend).register("Dewi L", "dewi", "d2@campus.test", "rahasia", "rahasia")


@pytest.mark.parametrize("username,password,confirm", [
    ("dewi", "rahasia", "lain"),
    ("dewi", "abc", "abc"),
    ("de", "rahasia", "rahasia"),
])
def test_register_validation(username, password, confirm):
    with pytest.raises(ValidationError):
        validate_registration("Dewi", username, "dewi@campus.test", password, confirm)
