"""Rules engine for rpsicq, a hidden-role Rock-Paper-Scissors board game."""

from .errors import (
    ConfigurationError,
    InvalidStateError,
    RpsicqError,
    RulesViolationError,
)
from .game_engine import GameEngine
from .models import (
    Board,
    CombatOutcome,
    CombatRecord,
    Game,
    GamePhase,
    MoveOption,
    Piece,
    Player,
    PlayerState,
    Position,
    Role,
    Tile,
)

__all__ = [
    "Board",
    "CombatOutcome",
    "CombatRecord",
    "ConfigurationError",
    "Game",
    "GameEngine",
    "GamePhase",
    "InvalidStateError",
    "MoveOption",
    "Piece",
    "Player",
    "PlayerState",
    "Position",
    "Role",
    "RpsicqError",
    "RulesViolationError",
    "Tile",
]
