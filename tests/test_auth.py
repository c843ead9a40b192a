from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from linkgate import auth, errors, models

ISSUED = datetime(2026, 1, 1, 9, 30, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def make_claims(role: models.Role) -> auth.Claims:
    return auth.Claims(id=1, username="alice", role=role, issued_at=ISSUED,
                       expires_at=ISSUED + auth.TOKEN_LIFETIME)


@pytest.fixture
def clock():
    return FakeClock(ISSUED)


@pytest.fixture
def service(clock):
    return auth.TokenService("test-secret", clock=clock)


@pytest.fixture
def alice():
    return models.User(id=7, username="alice", role="admin", password_hash="x")


def test_issue_and_verify(service, alice):
    claims = service.verify(service.issue(alice))

    assert claims.id == 7
    assert claims.username == "alice"
    assert claims.role is models.Role.admin
    assert claims.is_admin
    assert claims.issued_at == ISSUED
    assert claims.expires_at - claims.issued_at == timedelta(hours=12)


def test_token_valid_until_exactly_twelve_hours(service, clock, alice):
    token = service.issue(alice)

    clock.now = ISSUED + timedelta(hours=12)
    assert service.verify(token).id == 7

    clock.now = ISSUED + timedelta(hours=12, seconds=1)
    with pytest.raises(errors.InvalidToken):
        service.verify(token)


@pytest.mark.parametrize("token", [None, ""])
def test_missing_token(service, token):
    with pytest.raises(errors.MissingToken):
        service.verify(token)


@pytest.mark.parametrize("token", ["garbage", "a.b.c"])
def test_malformed_token(service, token):
    with pytest.raises(errors.InvalidToken):
        service.verify(token)


def test_token_signed_with_another_secret_is_rejected(service, clock, alice):
    forged = auth.TokenService("other-secret", clock=clock).issue(alice)

    with pytest.raises(errors.InvalidToken):
        service.verify(forged)


def test_token_with_unknown_role_is_rejected(service):
    payload = {"id": 1, "username": "alice", "role": "root",
               "iat": int(ISSUED.timestamp()), "exp": int(ISSUED.timestamp()) + 60}
    token = jwt.encode(payload, "test-secret", algorithm="HS256")

    with pytest.raises(errors.InvalidToken):
        service.verify(token)


def test_empty_secret_is_refused():
    with pytest.raises(RuntimeError):
        auth.TokenService("")


def test_authenticate_delegates_to_token_service(service, alice):
    assert auth.authenticate(service, service.issue(alice)).username == "alice"

    with pytest.raises(errors.MissingToken):
        auth.authenticate(service, None)


def test_authorize_admin_passes():
    claims = make_claims(models.Role.admin)
    assert auth.authorize(claims, models.Role.admin) is claims


def test_authorize_user_denied_for_admin_role():
    with pytest.raises(errors.AccessDenied) as exc:
        auth.authorize(make_claims(models.Role.user), models.Role.admin)

    assert exc.value.status_code == 403
