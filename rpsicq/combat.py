"""Combat resolution rules.

Pure functions: they classify a clash and never touch the board. The
engine applies the outcome.
"""

from __future__ import annotations

from typing import Dict

from .errors import InvalidStateError
from .models import CombatOutcome, Piece, Role

__all__ = ["BEATS", "resolve_roles", "resolve_contact"]

# Each role mapped to the role it defeats.
BEATS: Dict[Role, Role] = {
    Role.ROCK: Role.SCISSORS,
    Role.SCISSORS: Role.PAPER,
    Role.PAPER: Role.ROCK,
}


def resolve_roles(attacker_role: Role, defender_role: Role) -> CombatOutcome:
    """Compare two roles with the cyclic dominance rule."""
    if attacker_role == defender_role:
        return CombatOutcome.TIE
    if BEATS[attacker_role] == defender_role:
        return CombatOutcome.ATTACKER_WINS
    return CombatOutcome.DEFENDER_WINS


def resolve_contact(attacker: Piece, defender: Piece) -> CombatOutcome:
    """Classify the first contact when ``attacker`` moves onto ``defender``.

    Traps win before anything else is looked at, kings lose to any
    attacker, and everything else falls through to the role comparison.
    Callers must have checked that the roles needed are assigned.
    """
    if defender.is_trap:
        return CombatOutcome.TRAPPED
    if defender.is_king:
        return CombatOutcome.KING_CAPTURED
    if attacker.role is None or defender.role is None:
        raise InvalidStateError("Role comparison needs both roles assigned")
    return resolve_roles(attacker.role, defender.role)
