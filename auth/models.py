"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and the service
do the work; these only own the domain shape.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class User:
    """A registered account.

    email is the unique login key, compared case-sensitively as stored.
    pass_hash is the raw bcrypt output (salt and cost are embedded in it). It
    is excluded from repr so a stray log line cannot leak it.
    """

    id: int
    email: str
    pass_hash: bytes = field(repr=False)
    is_admin: bool = False


@dataclass(frozen=True)
class App:
    """A tenant application with its own token signing secret.

    Provisioned out-of-band (see main.py add-app); read-only to AuthService.
    secret is excluded from repr for the same reason as User.pass_hash.
    """

    id: int
    name: str
    secret: str = field(repr=False)
