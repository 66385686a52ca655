import pytest

from rpsicq.combat import BEATS, resolve_contact, resolve_roles
from rpsicq.errors import InvalidStateError
from rpsicq.models import CombatOutcome, Piece, Role


@pytest.mark.parametrize(
    "attacker, defender",
    [(Role.ROCK, Role.SCISSORS), (Role.SCISSORS, Role.PAPER), (Role.PAPER, Role.ROCK)],
)
def test_dominance_is_cyclic(attacker, defender):
    assert resolve_roles(attacker, defender) == CombatOutcome.ATTACKER_WINS
    assert resolve_roles(defender, attacker) == CombatOutcome.DEFENDER_WINS


@pytest.mark.parametrize("role", list(Role))
def test_equal_roles_tie(role):
    assert resolve_roles(role, role) == CombatOutcome.TIE


def test_every_role_beats_exactly_one_other():
    assert set(BEATS) == set(Role)
    assert set(BEATS.values()) == set(Role)


def test_trap_wins_before_roles_are_compared():
    attacker = Piece(owner_id="p1", role=None)
    trap = Piece(owner_id="p2", is_trap=True)
    assert resolve_contact(attacker, trap) == CombatOutcome.TRAPPED


def test_king_loses_to_any_attacker():
    attacker = Piece(owner_id="p1", role=Role.SCISSORS)
    king = Piece(owner_id="p2", role=Role.ROCK, is_king=True)
    assert resolve_contact(attacker, king) == CombatOutcome.KING_CAPTURED


def test_regular_contact_uses_roles():
    attacker = Piece(owner_id="p1", role=Role.PAPER)
    defender = Piece(owner_id="p2", role=Role.SCISSORS)
    assert resolve_contact(attacker, defender) == CombatOutcome.DEFENDER_WINS


def test_missing_role_is_invalid_state():
    attacker = Piece(owner_id="p1", role=Role.PAPER)
    defender = Piece(owner_id="p2")
    with pytest.raises(InvalidStateError):
        resolve_contact(attacker, defender)
