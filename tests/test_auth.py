import pytest

import auth
from auth import AuthError, AuthService, AuthState, check_role_access, describe_auth_error, normalize_email

ADMIN_KEY = "test-admin-key"
PASSWORD = "secret123"


@pytest.fixture
def service(db):
    return AuthService(db["users"], db["revoked_tokens"])


@pytest.fixture
def state(service):
    return AuthState(service)


def test_known_codes_map_to_messages():
    assert describe_auth_error("auth/email-already-in-use", "register") == "An account with this email already exists."
    assert describe_auth_error("auth/wrong-password", "login") == "Incorrect password. Please try again."


def test_unknown_codes_fall_back_to_generic_message():
    assert describe_auth_error("auth/quota-exceeded", "register") == "Registration failed. Please try again."
    assert describe_auth_error("auth/quota-exceeded", "login").startswith("Login failed")


def test_plain_users_need_no_key(access_keys):
    check_role_access("user", None)


def test_elevated_role_requires_matching_key(access_keys):
    check_role_access("admin", ADMIN_KEY)
    with pytest.raises(AuthError) as excinfo:
        check_role_access("admin", "guess")
    assert excinfo.value.code == "auth/invalid-access-key"
    with pytest.raises(AuthError):
        check_role_access("moderator", ADMIN_KEY)


def test_elevation_disabled_without_configured_key(monkeypatch):
    monkeypatch.setitem(auth.ROLE_ACCESS_KEYS, "admin", None)
    with pytest.raises(AuthError):
        check_role_access("admin", "")


def test_unknown_role_rejected():
    with pytest.raises(AuthError) as excinfo:
        check_role_access("superuser", None)
    assert excinfo.value.code == "auth/invalid-role"


def test_register_writes_profile_and_notifies(state, db):
    seen = []
    state.subscribe(seen.append)
    assert state.loading

    token = state.register("Ana@Example.com", PASSWORD, "Ana")

    assert token
    assert not state.loading
    assert seen == [state.user]
    assert state.user["email"] == "ana@example.com"
    profile = state.profile
    assert profile["role"] == "user"
    assert profile["badge"] == "Bronze"
    assert profile["orders"] == 0
    assert profile["total_spent"] == 0
    assert profile["is_active"] is True
    assert "password_hash" not in profile
    assert db["users"].count_documents({}) == 1


def test_register_with_wrong_key_writes_nothing(state, db, access_keys):
    with pytest.raises(AuthError):
        state.register("boss@example.com", PASSWORD, "Boss", role="admin", access_key="nope")
    assert db["users"].count_documents({}) == 0
    assert state.user is None


def test_register_validation_codes(state):
    with pytest.raises(AuthError) as excinfo:
        state.register("not-an-email", PASSWORD, "X")
    assert excinfo.value.code == "auth/invalid-email"

    with pytest.raises(AuthError) as excinfo:
        state.register("x@example.com", "123", "X")
    assert excinfo.value.code == "auth/weak-password"

    state.register("x@example.com", PASSWORD, "X")
    with pytest.raises(AuthError) as excinfo:
        AuthState(state.service).register("x@example.com", PASSWORD, "X")
    assert excinfo.value.code == "auth/email-already-in-use"


def test_sign_in_errors(service, state):
    service.create_user("ana@example.com", PASSWORD, "Ana")
    with pytest.raises(AuthError) as excinfo:
        state.sign_in("nobody@example.com", PASSWORD)
    assert excinfo.value.code == "auth/user-not-found"
    with pytest.raises(AuthError) as excinfo:
        state.sign_in("ana@example.com", "wrong-password")
    assert excinfo.value.code == "auth/wrong-password"


def test_restore_resolves_token(service):
    first = AuthState(service)
    token = first.register("ana@example.com", PASSWORD, "Ana")

    second = AuthState(service)
    second.restore(token)
    assert second.user == first.user
    assert second.profile["name"] == "Ana"


def test_restore_rejects_bad_token(service):
    with pytest.raises(AuthError) as excinfo:
        AuthState(service).restore("not-a-jwt")
    assert excinfo.value.code == "auth/invalid-token"


def test_sign_out_notifies_and_unsubscribe_stops(state):
    seen = []
    unsubscribe = state.subscribe(seen.append)
    state.register("ana@example.com", PASSWORD, "Ana")
    state.sign_out()
    assert seen[-1] is None
    assert state.profile is None

    unsubscribe()
    state.sign_in("ana@example.com", PASSWORD)
    assert len(seen) == 2


def test_role_checks(service, access_keys):
    moderator = AuthState(service)
    moderator.register("mod@example.com", PASSWORD, "Mod", role="moderator", access_key="test-moderator-key")
    assert moderator.is_moderator()
    assert not moderator.is_admin()
    assert moderator.has_admin_privileges()


def test_normalize_email():
    assert normalize_email("  Ana@Example.COM ") == "ana@example.com"
    for bad in ("ana..lee@example.com", "ana@example", "", None):
        with pytest.raises(AuthError) as excinfo:
            normalize_email(bad)
        assert excinfo.value.code == "auth/invalid-email"


def test_sign_out_revokes_token(service, state, db):
    token = state.register("ana@example.com", PASSWORD, "Ana")
    state.sign_out()
    assert db["revoked_tokens"].count_documents({}) == 1

    with pytest.raises(AuthError) as excinfo:
        AuthState(service).restore(token)
    assert excinfo.value.code == "auth/invalid-token"


def test_new_sign_in_gets_a_fresh_token(service, state):
    first = state.register("ana@example.com", PASSWORD, "Ana")
    state.sign_out()
    second = AuthState(service).sign_in("ana@example.com", PASSWORD)
    assert second != first
    assert service.resolve_token(second)["email"] == "ana@example.com"
