"""Board-level helpers for the rpsicq rules engine."""
from __future__ import annotations

from typing import Iterator, List, Tuple

from .models import (
    BOARD_HEIGHT,
    BOARD_WIDTH,
    Board,
    Piece,
    Position,
)

__all__ = ["BoardManager"]

_ORTHOGONAL_DIRECTIONS = ((1, 0), (-1, 0), (0, 1), (0, -1))


class BoardManager:
    """Helper for board-level operations.

    Provides tile and occupant lookups, geometry queries and a few
    whole-board scans used by the rules engine. Lookups never create
    tiles; callers are expected to check ``is_valid_position`` first.
    """

    @staticmethod
    def is_valid_position(position: Position) -> bool:
        """Return True if ``position`` is on the 7x6 board."""
        return 0 <= position.x < BOARD_WIDTH and 0 <= position.y < BOARD_HEIGHT

    @staticmethod
    def get_piece(position: Position, board: Board) -> Piece | None:
        """Return the piece at ``position`` or ``None`` if empty."""
        tile = board.tiles.get(position.to_key())
        return tile.piece if tile is not None else None

    @staticmethod
    def set_piece(position: Position, piece: Piece, board: Board) -> None:
        board.tiles[position.to_key()].piece = piece

    @staticmethod
    def clear_tile(position: Position, board: Board) -> None:
        board.tiles[position.to_key()].piece = None

    @staticmethod
    def manhattan_distance(a: Position, b: Position) -> int:
        return abs(a.x - b.x) + abs(a.y - b.y)

    @staticmethod
    def is_orthogonally_adjacent(a: Position, b: Position) -> bool:
        """True when ``a`` and ``b`` are exactly one step apart, no diagonals."""
        return BoardManager.manhattan_distance(a, b) == 1

    @staticmethod
    def get_adjacent_positions(position: Position) -> List[Position]:
        """On-board orthogonal neighbours of ``position``."""
        neighbours = []
        for dx, dy in _ORTHOGONAL_DIRECTIONS:
            candidate = Position(x=position.x + dx, y=position.y + dy)
            if BoardManager.is_valid_position(candidate):
                neighbours.append(candidate)
        return neighbours

    @staticmethod
    def iter_pieces(board: Board) -> Iterator[Tuple[Position, Piece]]:
        """Yield ``(position, piece)`` for every occupied tile, column-major."""
        for x in range(BOARD_WIDTH):
            for y in range(BOARD_HEIGHT):
                tile = board.tiles[f"{x},{y}"]
                if tile.piece is not None:
                    yield tile.position, tile.piece

    @staticmethod
    def get_player_pieces(
        board: Board, player_id: str
    ) -> List[Tuple[Position, Piece]]:
        return [
            (pos, piece)
            for pos, piece in BoardManager.iter_pieces(board)
            if piece.owner_id == player_id
        ]

    @staticmethod
    def has_unique_piece_ids(board: Board) -> bool:
        """False when two pieces on the board share an id."""
        seen = set()
        for _, piece in BoardManager.iter_pieces(board):
            if piece.id in seen:
                return False
            seen.add(piece.id)
        return True
