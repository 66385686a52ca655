"""
Pydantic Models for Rpsicq Game State
Field aliases follow the camelCase wire shape hosts exchange with clients.
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List, Dict
from enum import Enum
from uuid import uuid4


BOARD_WIDTH = 7
BOARD_HEIGHT = 6

# Home rows are indexed by seat: players[0] deploys on rows 0-1,
# players[1] on rows 4-5.
HOME_ROWS = ((0, 1), (4, 5))


def _new_id() -> str:
    return str(uuid4())


class Role(str, Enum):
    """Hidden combat role of a piece"""
    ROCK = "rock"
    PAPER = "paper"
    SCISSORS = "scissors"


class GamePhase(str, Enum):
    """Game phase enumeration"""
    SETUP = "setup"
    COIN_FLIP = "coin_flip"
    PLAYER_TURN = "player_turn"
    BATTLE = "battle"
    END = "end"


class PlayerState(str, Enum):
    """Coarse player lifecycle, owned by matchmaking"""
    IDLE = "idle"
    IN_QUEUE = "in_queue"
    IN_GAME = "in_game"


class CombatOutcome(str, Enum):
    """Result of a single combat resolution"""
    ATTACKER_WINS = "attacker_wins"
    DEFENDER_WINS = "defender_wins"
    TIE = "tie"
    KING_CAPTURED = "king_captured"
    TRAPPED = "trapped"


class Position(BaseModel):
    """Board coordinate"""
    x: int
    y: int

    class Config:
        frozen = True

    def to_key(self) -> str:
        """Convert position to string key"""
        return f"{self.x},{self.y}"


class Player(BaseModel):
    """Participant identity"""
    id: str = Field(default_factory=_new_id)
    username: str
    state: PlayerState = PlayerState.IDLE


class Piece(BaseModel):
    """A game piece.

    ``role`` is ``None`` until the owner assigns one; that unassigned state
    is distinct from every Role value and has to be handled explicitly.
    """
    id: str = Field(default_factory=_new_id)
    owner_id: str = Field(alias="ownerId")
    role: Optional[Role] = None
    is_revealed: bool = Field(False, alias="isRevealed")
    is_king: bool = Field(False, alias="isKing")
    is_trap: bool = Field(False, alias="isTrap")

    class Config:
        populate_by_name = True


class Tile(BaseModel):
    """Board square and its optional occupant"""
    position: Position
    piece: Optional[Piece] = None


def _build_tiles() -> Dict[str, Tile]:
    tiles: Dict[str, Tile] = {}
    for x in range(BOARD_WIDTH):
        for y in range(BOARD_HEIGHT):
            pos = Position(x=x, y=y)
            tiles[pos.to_key()] = Tile(position=pos)
    return tiles


class Board(BaseModel):
    """Fixed 7x6 grid of tiles keyed by ``Position.to_key()``"""
    width: int = BOARD_WIDTH
    height: int = BOARD_HEIGHT
    tiles: Dict[str, Tile] = Field(default_factory=_build_tiles)


class CombatRecord(BaseModel):
    """Tie-break battle in progress.

    ``roles`` is the two-slot commit map keyed by participant id; a slot is
    ``None`` until that participant submits. ``hidden_submissions`` is only
    populated on redacted views and lists participants whose submitted role
    has been masked for the viewer.
    """
    attacker: Position
    defender: Position
    roles: Dict[str, Optional[Role]]
    hidden_submissions: List[str] = Field(
        default_factory=list, alias="hiddenSubmissions"
    )

    class Config:
        populate_by_name = True


class MoveOption(BaseModel):
    """A move ``process_move`` would accept"""
    from_pos: Position = Field(alias="from")
    to: Position
    is_attack: bool = Field(False, alias="isAttack")

    class Config:
        populate_by_name = True
        frozen = True


class Game(BaseModel):
    """Complete game aggregate"""
    id: str = Field(default_factory=_new_id)
    players: List[Player]
    board: Board = Field(default_factory=Board)
    current_phase: GamePhase = Field(GamePhase.SETUP, alias="currentPhase")
    current_player_turn: Optional[str] = Field(
        None, alias="currentPlayerTurn"
    )
    setup_completed: Dict[str, bool] = Field(
        default_factory=dict, alias="setupCompleted"
    )
    combat: Optional[CombatRecord] = Field(None, alias="combatRecord")
    winner: Optional[str] = None

    class Config:
        populate_by_name = True

    @field_validator("players")
    @classmethod
    def _two_distinct_players(cls, players: List[Player]) -> List[Player]:
        if len(players) != 2:
            raise ValueError("A game needs exactly two players")
        if players[0].id == players[1].id:
            raise ValueError("A game needs two distinct players")
        return players

    @model_validator(mode="after")
    def _default_setup_flags(self) -> "Game":
        for player in self.players:
            self.setup_completed.setdefault(player.id, False)
        return self

    @property
    def player_ids(self) -> List[str]:
        return [p.id for p in self.players]

    def opponent_of(self, player_id: str) -> str:
        """Return the id of the other participant."""
        first, second = self.player_ids
        return second if player_id == first else first
