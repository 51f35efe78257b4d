"""
auth/service.py -- Register, login and logout flows.

Composes the four auth components; holds no state of its own.

  register: name/mail uniqueness -> hash_password -> UserStore.create_user
  login:    UserStore.get_by_name -> verify_password -> TokenCodec.issue
            -> SessionDirectory.put
  logout:   extract_token -> TokenCodec.verify -> SessionDirectory.lookup
            -> SessionDirectory.clear

Login reports "wrong username" and "wrong password" separately. Clients of
this service rely on the distinction, so there is no timing equalization for
unknown names either.

Logout with an expired or superseded (but genuine) token succeeds without
touching the session: that token is already dead, and its subject may have
logged in again since.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from auth.errors import Expired, SessionNotFound, UserExists, WrongCredentials
from auth.guard import Clock, extract_token, utc_now
from auth.models import Role, User
from auth.passwords import BCRYPT_ROUNDS, hash_password, verify_password
from auth.sessions import SessionDirectory
from auth.store import UserStore
from auth.tokens import TokenCodec

logger = logging.getLogger("library.auth")


class AuthService:
    def __init__(
        self,
        store: UserStore,
        sessions: SessionDirectory,
        codec: TokenCodec,
        clock: Clock = utc_now,
        bcrypt_rounds: int = BCRYPT_ROUNDS,
    ) -> None:
        self.store = store
        self.sessions = sessions
        self.codec = codec
        self.clock = clock
        self.bcrypt_rounds = bcrypt_rounds

    def register(self, name: str, mail: str, password: str, role: Role) -> User:
        """Create an account. Raises UserExists if the name or mail is taken."""
        if self.store.exists_with_name_or_mail(name, mail):
            raise UserExists(f"user {name} already exists!")

        user = User(
            name=name,
            mail=mail,
            role=role,
            hashed_password=hash_password(password, rounds=self.bcrypt_rounds),
        )
        try:
            user_id = self.store.create_user(user)
        except IntegrityError as exc:
            # Lost a race with a concurrent registration for the same name/mail.
            raise UserExists(f"user {name} already exists!") from exc
        return self.store.get_by_id(user_id)

    def login(self, name: str, password: str) -> str:
        """Return a fresh token and make it the user's only live session."""
        user = self.store.get_by_name(name)
        if user is None:
            logger.info("Login failed for %r: unknown user", name)
            raise WrongCredentials("wrong username")
        if not verify_password(password, user.hashed_password or ""):
            logger.info("Login failed for %r: wrong password", name)
            raise WrongCredentials("wrong password")

        token = self.codec.issue(user.id, user.role, self.clock())
        self.sessions.put(user.id, token)
        logger.info("User %s logged in", user.id)
        return token

    def logout(self, header: str | None) -> None:
        """Revoke the session named by the header's token.

        Raises MissingCredentials / MalformedHeader for a bad header and
        MalformedToken / BadSignature for a bad token. A token that is expired
        or no longer the live session revokes nothing, so a newer login of
        the same user survives.
        """
        token = extract_token(header)
        try:
            subject_id, role = self.codec.verify(token, self.clock())
        except Expired:
            logger.info("Logout with expired token; nothing to revoke")
            return
        try:
            self.sessions.lookup(subject_id, role, token)
        except SessionNotFound:
            logger.info("Logout with a token that is not the live session of %s; nothing to revoke", subject_id)
            return
        self.sessions.clear(subject_id)
        logger.info("User %s logged out", subject_id)
