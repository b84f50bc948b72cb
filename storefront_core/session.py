from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Protocol

ROLE_ADMIN = "ROLE_ADMIN"
ROLE_SELLER = "ROLE_SELLER"
ROLE_USER = "ROLE_USER"

PRIVILEGED_ROLES: FrozenSet[str] = frozenset([ROLE_ADMIN, ROLE_SELLER])


@dataclass(frozen=True, slots=True)
class User:
    username: str
    roles: FrozenSet[str] = field(default_factory=frozenset)


class SessionGate(Protocol):
    @property
    def is_authenticated(self) -> bool: ...

    @property
    def current_user(self) -> Optional[User]: ...


@dataclass(slots=True)
class StaticSession:
    """Session whose facts are fixed by the caller (CLI runs, tests)."""

    user: Optional[User] = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def current_user(self) -> Optional[User]:
        return self.user


def anonymous() -> StaticSession:
    return StaticSession(user=None)


def signed_in(username: str, *roles: str) -> StaticSession:
    return StaticSession(user=User(username=username, roles=frozenset(roles or (ROLE_USER,))))


def is_privileged(session: SessionGate) -> bool:
    user = session.current_user
    return bool(session.is_authenticated and user and user.roles & PRIVILEGED_ROLES)
