import pytest

from rpsicq.board_manager import BoardManager
from rpsicq.models import Board, Piece, Position


def pos(x, y):
    return Position(x=x, y=y)


def test_board_has_forty_two_tiles():
    board = Board()
    assert len(board.tiles) == 42
    for key, tile in board.tiles.items():
        assert tile.position.to_key() == key
        assert tile.piece is None


@pytest.mark.parametrize(
    "x, y, expected",
    [(0, 0, True), (6, 5, True), (7, 0, False), (0, 6, False), (-1, 2, False)],
)
def test_is_valid_position(x, y, expected):
    assert BoardManager.is_valid_position(pos(x, y)) is expected


@pytest.mark.parametrize(
    "a, b, expected",
    [
        (pos(0, 0), pos(0, 1), True),
        (pos(3, 3), pos(2, 3), True),
        (pos(0, 0), pos(1, 1), False),
        (pos(0, 0), pos(0, 2), False),
        (pos(2, 2), pos(2, 2), False),
    ],
)
def test_orthogonal_adjacency(a, b, expected):
    assert BoardManager.is_orthogonally_adjacent(a, b) is expected


def test_corner_has_two_neighbours():
    assert set(BoardManager.get_adjacent_positions(pos(0, 0))) == {pos(1, 0), pos(0, 1)}
    assert len(BoardManager.get_adjacent_positions(pos(3, 3))) == 4


def test_set_get_and_clear():
    board = Board()
    piece = Piece(owner_id="p1")
    BoardManager.set_piece(pos(2, 4), piece, board)

    assert BoardManager.get_piece(pos(2, 4), board) is piece

    BoardManager.clear_tile(pos(2, 4), board)
    assert BoardManager.get_piece(pos(2, 4), board) is None


def test_get_piece_off_board_is_none():
    assert BoardManager.get_piece(pos(10, 10), Board()) is None


def test_duplicate_piece_ids_are_detected():
    board = Board()
    piece = Piece(owner_id="p1")
    BoardManager.set_piece(pos(0, 0), piece, board)
    BoardManager.set_piece(pos(0, 1), piece.model_copy(), board)
    assert not BoardManager.has_unique_piece_ids(board)


def test_distinct_pieces_have_unique_ids():
    board = Board()
    BoardManager.set_piece(pos(0, 0), Piece(owner_id="p1"), board)
    BoardManager.set_piece(pos(0, 1), Piece(owner_id="p1"), board)
    assert BoardManager.has_unique_piece_ids(board)
