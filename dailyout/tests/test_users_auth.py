import uuid
from datetime import timedelta

import jwt
import pytest

from dailyout.core.auth import (
    JWT_ALGORITHM,
    create_access_token,
    decode_access_token,
    is_anon_id,
    resolve_user_id,
)
from dailyout.core.errors import (
    AlreadyRegisteredError,
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from dailyout.features.users.service import hash_password, verify_password

SECRET = "test-secret-with-enough-bytes-for-hs256"


def test_password_hashing_round_trip():
    hashed = hash_password("correct horse", rounds=4)
    assert hashed != "correct horse"
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong horse", hashed)
    assert not verify_password("correct horse", "not-a-bcrypt-hash")


def test_get_or_create_user_is_idempotent(services):
    uid = str(uuid.uuid4())
    first = services.users.get_or_create_user(uid)
    second = services.users.get_or_create_user(uid)
    assert first.id == second.id == uid
    assert first.is_anonymous


def test_register_new_account(services):
    user, token = services.users.register("new@example.com", "longenough")

    assert user.email == "new@example.com"
    assert user.has_password
    assert decode_access_token(token, secret=SECRET, now=services.clock.now()) == user.id


def test_login(services):
    registered, _ = services.users.register("me@example.com", "longenough")

    user, token = services.users.login("me@example.com", "longenough")
    assert user.id == registered.id
    assert token

    with pytest.raises(UnauthorizedError) as exc_info:
        services.users.login("me@example.com", "wrong-password")
    assert exc_info.value.message == "Invalid email or password"

    with pytest.raises(UnauthorizedError):
        services.users.login("nobody@example.com", "longenough")


@pytest.mark.parametrize(
    "email,password",
    [("not-an-email", "longenough"), ("a@b", "longenough"), ("ok@example.com", "short"), ("ok@example.com", "x" * 73)],
)
def test_register_validation(services, email, password):
    with pytest.raises(ValidationError):
        services.users.register(email, password)


def test_duplicate_email_conflicts(services):
    services.users.register("taken@example.com", "longenough")
    with pytest.raises(ConflictError) as exc_info:
        services.users.register("taken@example.com", "otherpassword")
    assert exc_info.value.message == "Email already registered"


def test_linking_keeps_identity_and_history(services, user_id):
    assignment = services.assignments.get_or_create_assignment(user_id)

    user, _ = services.users.register("linked@example.com", "longenough", existing_user_id=user_id)

    assert user.id == user_id
    assert user.email == "linked@example.com"
    assert services.assignments.get_assignment(user_id).id == assignment.id
    logged_in, _ = services.users.login("linked@example.com", "longenough")
    assert logged_in.id == user_id


def test_second_link_is_rejected(services, user_id):
    services.users.register("first@example.com", "longenough", existing_user_id=user_id)

    with pytest.raises(AlreadyRegisteredError) as exc_info:
        services.users.register("second@example.com", "longenough", existing_user_id=user_id)
    assert exc_info.value.message == "User already has an email registered"


def test_linking_unknown_user(services):
    with pytest.raises(NotFoundError):
        services.users.register("ghost@example.com", "longenough", existing_user_id=str(uuid.uuid4()))


class TestTokens:
    def test_wrong_secret_rejected(self, clock):
        token = create_access_token("u1", None, secret=SECRET, expires_days=7, now=clock.now())
        assert decode_access_token(token, secret="another-secret-with-enough-bytes-too", now=clock.now()) is None

    def test_expiry_uses_supplied_clock(self, clock):
        token = create_access_token("u1", None, secret=SECRET, expires_days=7, now=clock.now())
        assert decode_access_token(token, secret=SECRET, now=clock.now() + timedelta(days=6)) == "u1"
        assert decode_access_token(token, secret=SECRET, now=clock.now() + timedelta(days=7)) is None

    def test_garbage_and_missing_subject(self, clock):
        assert decode_access_token("not.a.token", secret=SECRET, now=clock.now()) is None
        no_sub = jwt.encode({"exp": 4102444800}, SECRET, algorithm=JWT_ALGORITHM)
        assert decode_access_token(no_sub, secret=SECRET, now=clock.now()) is None


def test_is_anon_id():
    assert is_anon_id(str(uuid.uuid4()))
    assert is_anon_id(str(uuid.uuid4()).upper())
    assert not is_anon_id(str(uuid.uuid1()))
    assert not is_anon_id("not-a-uuid")
    assert not is_anon_id(None)


class TestResolveUserId:
    def test_bearer_wins_over_anon(self, services):
        user, token = services.users.register("bearer@example.com", "longenough")
        anon = str(uuid.uuid4())
        assert resolve_user_id(services, f"Bearer {token}", anon) == user.id
        assert services.users.get_user(anon) is None

    def test_invalid_token_falls_back_to_anon(self, services):
        anon = str(uuid.uuid4())
        assert resolve_user_id(services, "Bearer garbage", anon) == anon

    def test_anon_is_created_and_lowercased(self, services):
        anon = str(uuid.uuid4()).upper()
        resolved = resolve_user_id(services, None, anon)
        assert resolved == anon.lower()
        assert services.users.get_user(resolved) is not None

    def test_malformed_anon_id(self, services):
        with pytest.raises(UnauthorizedError) as exc_info:
            resolve_user_id(services, None, "1234")
        assert exc_info.value.message == "Invalid UUID format"

    def test_token_for_deleted_user_is_ignored(self, services, clock):
        token = create_access_token(str(uuid.uuid4()), None, secret=SECRET, expires_days=7, now=clock.now())
        assert resolve_user_id(services, f"Bearer {token}", None) is None

    def test_no_credentials(self, services):
        assert resolve_user_id(services, None, None) is None
