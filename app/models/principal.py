from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """Caller identity extracted from a validated bearer JWT.

    user_id is the token's ``sub`` claim and is what attempt ownership is
    checked against.  The service authorizes (ownership) but never
    authenticates; that happens upstream in the identity provider.
    """

    user_id: str
    roles: frozenset[str] = frozenset()
