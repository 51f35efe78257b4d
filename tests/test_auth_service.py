"""
tests/test_auth_service.py -- Unit tests for auth.service.AuthService.

Covers the register -> login -> authenticate -> logout lifecycle, including
last-login-wins and logout with an expired or superseded token, on a FixedClock.
"""

from __future__ import annotations

import pytest

from auth.errors import InvalidToken, MalformedHeader, MissingCredentials, UserExists, WrongCredentials
from auth.guard import AccessGuard
from auth.models import Role
from auth.service import AuthService
from auth.sessions import SessionDirectory


@pytest.fixture
def sessions(user_store) -> SessionDirectory:
    return SessionDirectory(user_store.engine)


@pytest.fixture
def service(user_store, sessions, codec, fixed_clock) -> AuthService:
    return AuthService(user_store, sessions, codec, fixed_clock, bcrypt_rounds=4)


@pytest.fixture
def guard(codec, sessions, fixed_clock) -> AccessGuard:
    return AccessGuard(codec, sessions, fixed_clock)


class TestRegister:
    def test_register_returns_stored_user(self, service):
        user = service.register("alice", "alice@example.com", "pw123", Role.USER)
        assert user.id
        assert user.name == "alice"
        assert user.role is Role.USER
        assert user.token is None

    def test_password_stored_hashed(self, service, user_store):
        service.register("alice", "alice@example.com", "pw123", Role.USER)
        stored = user_store.get_by_name("alice")
        assert stored.hashed_password != "pw123"
        assert stored.hashed_password.startswith("$2")

    def test_duplicate_name_rejected(self, service):
        service.register("alice", "alice@example.com", "pw123", Role.USER)
        with pytest.raises(UserExists) as exc_info:
            service.register("alice", "other@example.com", "pw123", Role.USER)
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "user alice already exists!"

    def test_duplicate_mail_rejected(self, service):
        service.register("alice", "alice@example.com", "pw123", Role.USER)
        with pytest.raises(UserExists):
            service.register("alicia", "alice@example.com", "pw123", Role.USER)

    def test_any_role_may_be_registered(self, service):
        assert service.register("root", "root@example.com", "pw", Role.ADMIN).role is Role.ADMIN


class TestLogin:
    def test_unknown_name(self, service):
        with pytest.raises(WrongCredentials) as exc_info:
            service.login("nobody", "pw")
        assert exc_info.value.message == "wrong username"
        assert exc_info.value.status_code == 401

    def test_wrong_password(self, service):
        service.register("alice", "alice@example.com", "pw123", Role.USER)
        with pytest.raises(WrongCredentials) as exc_info:
            service.login("alice", "nope")
        assert exc_info.value.message == "wrong password"

    def test_failed_login_leaves_session_untouched(self, service, guard):
        service.register("alice", "alice@example.com", "pw123", Role.USER)
        token = service.login("alice", "pw123")
        with pytest.raises(WrongCredentials):
            service.login("alice", "nope")
        assert guard.authenticate(f"Bearer {token}").role is Role.USER

    def test_login_token_authenticates(self, service, guard):
        user = service.register("alice", "alice@example.com", "pw123", Role.MODERATOR)
        token = service.login("alice", "pw123")
        principal = guard.authenticate(f"Bearer {token}")
        assert principal.subject_id == user.id
        assert principal.role is Role.MODERATOR

    def test_empty_password_account(self, service, guard):
        service.register("blank", "blank@example.com", "", Role.USER)
        token = service.login("blank", "")
        assert guard.authenticate(f"Bearer {token}").role is Role.USER


class TestLifecycle:
    def test_register_login_relogin_logout(self, service, guard, fixed_clock):
        """Walk the whole session lifecycle for one user."""
        service.register("alice", "a@x.com", "pw", Role.USER)

        t1 = service.login("alice", "pw")
        assert guard.authenticate(f"Bearer {t1}").role is Role.USER

        fixed_clock.advance(1)
        t2 = service.login("alice", "pw")
        assert t2 != t1
        with pytest.raises(InvalidToken) as exc_info:
            guard.authenticate(f"Bearer {t1}")
        assert exc_info.value.reason == "no_live_session"
        assert guard.authenticate(f"Bearer {t2}").role is Role.USER

        service.logout(f"Bearer {t2}")
        with pytest.raises(InvalidToken) as exc_info:
            guard.authenticate(f"Bearer {t2}")
        assert exc_info.value.reason == "no_live_session"

        # Second logout with the same token is harmless.
        service.logout(f"Bearer {t2}")

    def test_expired_token_rejected(self, service, guard, fixed_clock, codec):
        service.register("alice", "a@x.com", "pw", Role.USER)
        token = service.login("alice", "pw")
        fixed_clock.advance(codec.ttl_seconds)
        with pytest.raises(InvalidToken) as exc_info:
            guard.authenticate(f"Bearer {token}")
        assert exc_info.value.reason == "token_expired"

    def test_logout_with_superseded_token_keeps_newer_session(self, service, guard, fixed_clock):
        service.register("alice", "a@x.com", "pw", Role.USER)
        old = service.login("alice", "pw")
        fixed_clock.advance(1)
        new = service.login("alice", "pw")

        service.logout(f"Bearer {old}")

        assert guard.authenticate(f"Bearer {new}").role is Role.USER

    def test_logout_with_expired_token_keeps_newer_session(self, service, guard, fixed_clock, codec):
        service.register("alice", "a@x.com", "pw", Role.USER)
        old = service.login("alice", "pw")
        fixed_clock.advance(codec.ttl_seconds)
        new = service.login("alice", "pw")

        service.logout(f"Bearer {old}")

        assert guard.authenticate(f"Bearer {new}").role is Role.USER

    def test_logout_requires_header(self, service):
        with pytest.raises(MissingCredentials):
            service.logout("")

    def test_logout_rejects_malformed_header(self, service):
        with pytest.raises(MalformedHeader):
            service.logout("Bearer")
