"""
Shared pytest fixtures for rpsicq tests.

Game fixtures are function-scoped so every test works on its own aggregate.
"""

from pathlib import Path
import sys
from typing import Callable, Optional

import pytest

# Ensure the project root is on sys.path so `import rpsicq` works when
# running pytest without installing the package.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from rpsicq.board_manager import BoardManager
from rpsicq.config import reset_engine_config
from rpsicq.game_engine import GameEngine
from rpsicq.models import (
    CombatRecord,
    Game,
    GamePhase,
    Piece,
    Player,
    Position,
    Role,
)


@pytest.fixture(autouse=True)
def _isolated_engine_config(monkeypatch):
    """Keep RPSICQ_* variables from the outer environment out of tests."""
    for name in ("RPSICQ_POST_SETUP_PHASE", "RPSICQ_SEED"):
        monkeypatch.delenv(name, raising=False)
    reset_engine_config()
    yield
    reset_engine_config()


# =============================================================================
# FACTORY FIXTURES
# =============================================================================


@pytest.fixture
def player_factory() -> Callable[..., Player]:
    """Factory for creating Player instances."""

    def _create_player(number: int = 1, username: Optional[str] = None) -> Player:
        return Player(id=f"p{number}", username=username or f"Player {number}")

    return _create_player


@pytest.fixture
def p1(player_factory) -> Player:
    return player_factory(1)


@pytest.fixture
def p2(player_factory) -> Player:
    return player_factory(2)


@pytest.fixture
def initial_game(p1, p2) -> Game:
    """Freshly deployed game in SETUP."""
    return GameEngine.create_initial_game(p1, p2)


@pytest.fixture
def game_factory(p1, p2) -> Callable[..., Game]:
    """Factory for games on an empty board in an arbitrary phase."""

    def _create_game(
        phase: GamePhase = GamePhase.PLAYER_TURN,
        turn: Optional[str] = "p1",
        combat: Optional[CombatRecord] = None,
    ) -> Game:
        return Game(
            id="test-game",
            players=[p1, p2],
            current_phase=phase,
            current_player_turn=turn,
            combat=combat,
            setup_completed={p1.id: True, p2.id: True},
        )

    return _create_game


@pytest.fixture
def place() -> Callable[..., Piece]:
    """Put a new piece on ``game``'s board and return it."""

    def _place(
        game: Game,
        x: int,
        y: int,
        owner: str,
        role: Optional[Role] = None,
        is_king: bool = False,
        is_trap: bool = False,
    ) -> Piece:
        piece = Piece(owner_id=owner, role=role, is_king=is_king, is_trap=is_trap)
        BoardManager.set_piece(Position(x=x, y=y), piece, game.board)
        return piece

    return _place


@pytest.fixture
def roled_game(initial_game) -> Game:
    """Deployed game in SETUP where every piece already holds a role.

    Roles cycle rock, paper, scissors over each army in board order.
    """
    cycle = list(Role)
    game = initial_game
    for player_id in game.player_ids:
        pieces = BoardManager.get_player_pieces(game.board, player_id)
        roles = {position: cycle[i % 3] for i, (position, _) in enumerate(pieces)}
        game = GameEngine.assign_roles(game, player_id, roles)
    return game
