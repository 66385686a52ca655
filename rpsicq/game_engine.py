"""Core rules engine for rpsicq.

The engine owns every mutation of a :class:`~rpsicq.models.Game`: initial
deployment, king/trap setup, role assignment, moves and the tie-break
battle loop. It keeps no state between calls. Each operation takes the
game the host currently holds, validates the request against it and
returns a new game; the instance passed in is never modified, so a
rejected request leaves the host's copy exactly as it was.

Hosts must serialise calls per game (one mutation in flight per game id).
Different games share nothing and can be processed in parallel.

Phase flow::

    SETUP -> COIN_FLIP -> PLAYER_TURN <-> BATTLE
                              |
                              v
                             END
"""

from __future__ import annotations

import logging
import random
from typing import List, Mapping, Optional

from .board_manager import BoardManager
from .combat import resolve_contact, resolve_roles
from .config import EngineConfig, get_engine_config
from .errors import InvalidStateError, RulesViolationError
from .metrics import (
    GAMES_COMPLETED,
    observe_action,
    record_combat,
    record_phase_transition,
)
from .models import (
    BOARD_WIDTH,
    HOME_ROWS,
    CombatOutcome,
    CombatRecord,
    Game,
    GamePhase,
    MoveOption,
    Piece,
    Player,
    Position,
    Role,
)

logger = logging.getLogger(__name__)

__all__ = ["GameEngine"]


class GameEngine:
    """Rules engine entry points.

    All methods are static; the engine is a namespace over the rules, not
    a holder of state.

    - ``create_initial_game`` deploys both armies.
    - ``assign_roles`` / ``assign_random_roles`` and ``process_setup_phase``
      run the SETUP phase.
    - ``resolve_coin_flip`` picks the first turn owner.
    - ``process_move`` and ``process_battle`` run the game proper.
    - ``get_valid_moves`` and ``get_visible_state`` are read-only views.
    """

    # ═══════════════════════════════════════════════════════════════════
    # Deployment
    # ═══════════════════════════════════════════════════════════════════

    @staticmethod
    def create_initial_game(player_a: Player, player_b: Player) -> Game:
        """Create a game in SETUP with both armies on their home rows.

        ``player_a`` fills rows 0-1 and ``player_b`` rows 4-5, one unroled,
        unrevealed piece per tile. Rows 2-3 start empty.
        """
        if player_a.id == player_b.id:
            raise RulesViolationError(
                "A game needs two distinct players",
                rule_ref="game.players",
                context={"player_id": player_a.id},
            )

        game = Game(players=[player_a, player_b])
        for seat, player in enumerate(game.players):
            for y in HOME_ROWS[seat]:
                for x in range(BOARD_WIDTH):
                    BoardManager.set_piece(
                        Position(x=x, y=y), Piece(owner_id=player.id), game.board
                    )

        logger.info(
            "Created game %s for %s vs %s",
            game.id,
            player_a.id,
            player_b.id,
        )
        return game

    # ═══════════════════════════════════════════════════════════════════
    # Setup phase
    # ═══════════════════════════════════════════════════════════════════

    @staticmethod
    def assign_roles(
        game: Game,
        player_id: str,
        roles: Mapping[Position, Role],
    ) -> Game:
        """Privately assign roles to some of ``player_id``'s pieces.

        May be repeated until the player completes setup; later calls
        overwrite earlier assignments for the same tiles.
        """
        with observe_action("assign_roles"):
            return GameEngine._apply_roles(game, player_id, roles)

    @staticmethod
    def assign_random_roles(
        game: Game,
        player_id: str,
        rng: Optional[random.Random] = None,
        *,
        config: Optional[EngineConfig] = None,
    ) -> Game:
        """Give every unroled, movable piece of ``player_id`` a random role."""
        config = config or get_engine_config()
        rng = rng or config.make_rng()

        with observe_action("assign_random_roles"):
            GameEngine._require_phase(game, GamePhase.SETUP)
            GameEngine._require_setup_pending(game, player_id)

            choices = list(Role)
            roles = {
                pos: rng.choice(choices)
                for pos, piece in BoardManager.get_player_pieces(game.board, player_id)
                if piece.role is None and not piece.is_king and not piece.is_trap
            }
            return GameEngine._apply_roles(game, player_id, roles)

    @staticmethod
    def _apply_roles(
        game: Game, player_id: str, roles: Mapping[Position, Role]
    ) -> Game:
        GameEngine._require_phase(game, GamePhase.SETUP)
        GameEngine._require_setup_pending(game, player_id)

        checked = {}
        for position, role in roles.items():
            GameEngine._require_on_board(position, "roles.bounds")
            GameEngine._require_own_piece(
                game, player_id, position, "roles.ownership"
            )
            checked[position] = GameEngine._coerce_role(role, "roles.role")

        new_game = game.model_copy(deep=True)
        for position, role in checked.items():
            BoardManager.get_piece(position, new_game.board).role = role

        logger.debug(
            "Game %s: %s assigned %d roles", game.id, player_id, len(checked)
        )
        return new_game

    @staticmethod
    def process_setup_phase(
        game: Game,
        player_id: str,
        king: Position,
        trap: Position,
        *,
        rng: Optional[random.Random] = None,
        config: Optional[EngineConfig] = None,
    ) -> Game:
        """Record ``player_id``'s secret king and trap placement.

        Every other piece of the player must already hold a role, so that
        any later combat against them can be resolved.

        When this completes the second player's setup the game leaves
        SETUP for ``config.post_setup_phase``. If that is PLAYER_TURN the
        coin flip happens right here using ``rng``.
        """
        config = config or get_engine_config()
        with observe_action("setup"):
            GameEngine._require_phase(game, GamePhase.SETUP)
            GameEngine._require_on_board(king, "setup.bounds")
            GameEngine._require_on_board(trap, "setup.bounds")
            GameEngine._require_participant(game, player_id, "setup.participant")
            GameEngine._require_setup_pending(game, player_id)

            if king == trap:
                raise RulesViolationError(
                    "Placing trap and king on the same tile is illegal",
                    rule_ref="setup.same_tile",
                    context={"position": king.to_key()},
                )

            GameEngine._require_own_piece(game, player_id, king, "setup.king")
            GameEngine._require_own_piece(game, player_id, trap, "setup.trap")

            unroled = [
                pos.to_key()
                for pos, piece in BoardManager.get_player_pieces(
                    game.board, player_id
                )
                if piece.role is None and pos not in (king, trap)
            ]
            if unroled:
                raise RulesViolationError(
                    "Every movable piece needs a role before setup completes",
                    rule_ref="setup.roles",
                    context={"unroled": len(unroled)},
                )

            new_game = game.model_copy(deep=True)
            BoardManager.get_piece(king, new_game.board).is_king = True
            BoardManager.get_piece(trap, new_game.board).is_trap = True
            new_game.setup_completed[player_id] = True
            logger.debug("Game %s: %s completed setup", game.id, player_id)

            if all(new_game.setup_completed.values()):
                if config.post_setup_phase == GamePhase.PLAYER_TURN:
                    GameEngine._flip_coin(new_game, rng or config.make_rng())
                else:
                    GameEngine._transition(new_game, GamePhase.COIN_FLIP)

            return new_game

    # ═══════════════════════════════════════════════════════════════════
    # Coin flip
    # ═══════════════════════════════════════════════════════════════════

    @staticmethod
    def resolve_coin_flip(
        game: Game,
        rng: Optional[random.Random] = None,
        *,
        config: Optional[EngineConfig] = None,
    ) -> Game:
        """Pick the first turn owner and start play."""
        config = config or get_engine_config()
        with observe_action("coin_flip"):
            GameEngine._require_phase(game, GamePhase.COIN_FLIP)
            new_game = game.model_copy(deep=True)
            GameEngine._flip_coin(new_game, rng or config.make_rng())
            return new_game

    @staticmethod
    def _flip_coin(game: Game, rng: random.Random) -> None:
        game.current_player_turn = rng.choice(game.player_ids)
        logger.info(
            "Game %s: coin flip gives first turn to %s",
            game.id,
            game.current_player_turn,
        )
        GameEngine._transition(game, GamePhase.PLAYER_TURN)

    # ═══════════════════════════════════════════════════════════════════
    # Moves
    # ═══════════════════════════════════════════════════════════════════

    @staticmethod
    def process_move(
        game: Game, player_id: str, from_pos: Position, to: Position
    ) -> Game:
        """Move one of ``player_id``'s pieces a single orthogonal step.

        Moving onto an opponent's piece starts combat:

        - trap: the attacker is removed, the trap stays hidden;
        - king: the attacker takes the tile and the game ends;
        - otherwise both pieces are revealed and their roles compared.
          A decisive result resolves immediately, a tie opens a BATTLE
          with the attacker still on its origin tile.

        The turn passes to the opponent unless the move opened a battle
        or ended the game.
        """
        with observe_action("move"):
            GameEngine._require_phase(game, GamePhase.PLAYER_TURN)
            GameEngine._assert_board_invariants(game)
            GameEngine._require_participant(game, player_id, "move.participant")
            if game.current_player_turn != player_id:
                raise RulesViolationError(
                    "It is not your turn",
                    rule_ref="move.turn",
                    context={"player_id": player_id},
                )
            GameEngine._require_on_board(from_pos, "move.bounds")
            GameEngine._require_on_board(to, "move.bounds")
            if not BoardManager.is_orthogonally_adjacent(from_pos, to):
                raise RulesViolationError(
                    "Pieces move exactly one tile horizontally or vertically",
                    rule_ref="move.adjacent",
                    context={"from": from_pos.to_key(), "to": to.to_key()},
                )

            attacker = GameEngine._require_own_piece(
                game, player_id, from_pos, "move.piece"
            )
            if attacker.is_king or attacker.is_trap:
                raise RulesViolationError(
                    "The king and the trap never move",
                    rule_ref="move.immobile",
                    context={"from": from_pos.to_key()},
                )

            defender = BoardManager.get_piece(to, game.board)
            if defender is not None:
                GameEngine._validate_contact(game, player_id, attacker, defender, to)

            new_game = game.model_copy(deep=True)
            if defender is None:
                moving = BoardManager.get_piece(from_pos, new_game.board)
                BoardManager.set_piece(to, moving, new_game.board)
                BoardManager.clear_tile(from_pos, new_game.board)
                new_game.current_player_turn = new_game.opponent_of(player_id)
                logger.debug(
                    "Game %s: %s moved %s -> %s",
                    game.id,
                    player_id,
                    from_pos.to_key(),
                    to.to_key(),
                )
                return new_game

            GameEngine._resolve_contact(new_game, player_id, from_pos, to)
            return new_game

    @staticmethod
    def _validate_contact(
        game: Game,
        player_id: str,
        attacker: Piece,
        defender: Piece,
        to: Position,
    ) -> None:
        if defender.owner_id == player_id:
            raise RulesViolationError(
                "You can not attack your own pieces",
                rule_ref="move.self_capture",
                context={"to": to.to_key()},
            )
        if defender.is_trap:
            return
        if attacker.role is None:
            raise RulesViolationError(
                "A piece needs a role before it can attack",
                rule_ref="move.no_role",
                context={"piece_id": attacker.id},
            )
        if not defender.is_king and defender.role is None:
            logger.error(
                "Game %s: defending piece %s at %s has no role",
                game.id,
                defender.id,
                to.to_key(),
            )
            raise InvalidStateError(
                "Defending piece has no role",
                context={"game_id": game.id, "position": to.to_key()},
            )

    @staticmethod
    def _resolve_contact(
        game: Game, player_id: str, from_pos: Position, to: Position
    ) -> None:
        """Apply first-contact combat to ``game`` in place."""
        board = game.board
        attacker = BoardManager.get_piece(from_pos, board)
        defender = BoardManager.get_piece(to, board)
        outcome = resolve_contact(attacker, defender)
        record_combat("contact", outcome.value)
        logger.info(
            "Game %s: %s attacked %s -> %s",
            game.id,
            from_pos.to_key(),
            to.to_key(),
            outcome.value,
        )

        if outcome == CombatOutcome.TRAPPED:
            BoardManager.clear_tile(from_pos, board)
            game.current_player_turn = game.opponent_of(player_id)
            return

        attacker.is_revealed = True
        defender.is_revealed = True

        if outcome == CombatOutcome.KING_CAPTURED:
            BoardManager.set_piece(to, attacker, board)
            BoardManager.clear_tile(from_pos, board)
            game.winner = player_id
            GameEngine._transition(game, GamePhase.END)
            GAMES_COMPLETED.inc()
            logger.info("Game %s: %s captured the king and wins", game.id, player_id)
        elif outcome == CombatOutcome.ATTACKER_WINS:
            BoardManager.set_piece(to, attacker, board)
            BoardManager.clear_tile(from_pos, board)
            game.current_player_turn = game.opponent_of(player_id)
        elif outcome == CombatOutcome.DEFENDER_WINS:
            BoardManager.clear_tile(from_pos, board)
            game.current_player_turn = game.opponent_of(player_id)
        elif outcome == CombatOutcome.TIE:
            # The attacker keeps its origin tile until the battle resolves.
            game.combat = CombatRecord(
                attacker=from_pos,
                defender=to,
                roles={attacker.owner_id: None, defender.owner_id: None},
            )
            GameEngine._transition(game, GamePhase.BATTLE)
        else:
            raise InvalidStateError(f"Unhandled combat outcome {outcome}")

    # ═══════════════════════════════════════════════════════════════════
    # Battle
    # ═══════════════════════════════════════════════════════════════════

    @staticmethod
    def process_battle(game: Game, player_id: str, role: Role) -> Game:
        """Submit ``player_id``'s secret role for the current tie-break.

        Nothing resolves until both participants have submitted. A tie
        clears both submissions for another round; a decisive result
        settles the two pieces, closes the battle and passes the turn to
        the attacker's opponent.
        """
        with observe_action("battle"):
            GameEngine._require_phase(game, GamePhase.BATTLE)
            GameEngine._assert_board_invariants(game)
            record = game.combat
            if record is None:
                logger.error("Game %s is in BATTLE without a combat record", game.id)
                raise InvalidStateError(
                    "No active combat record", context={"game_id": game.id}
                )
            attacker = BoardManager.get_piece(record.attacker, game.board)
            if attacker is None:
                logger.error("Game %s: attacking tile is empty", game.id)
                raise InvalidStateError(
                    "Attacker tile has no piece",
                    context={"game_id": game.id, "position": record.attacker.to_key()},
                )
            defender = BoardManager.get_piece(record.defender, game.board)
            if defender is None:
                logger.error("Game %s: defending tile is empty", game.id)
                raise InvalidStateError(
                    "Defender tile has no piece",
                    context={"game_id": game.id, "position": record.defender.to_key()},
                )
            if attacker.owner_id == defender.owner_id or set(record.roles) != {
                attacker.owner_id,
                defender.owner_id,
            }:
                logger.error("Game %s: combat record does not match its pieces", game.id)
                raise InvalidStateError(
                    "Combat participants do not match the pieces in combat",
                    context={"game_id": game.id},
                )

            if player_id not in record.roles:
                raise RulesViolationError(
                    "You are not part of this battle",
                    rule_ref="battle.participant",
                    context={"player_id": player_id},
                )
            if record.roles[player_id] is not None:
                raise RulesViolationError(
                    "You have already submitted a role this round",
                    rule_ref="battle.duplicate",
                    context={"player_id": player_id},
                )
            role = GameEngine._coerce_role(role, "battle.role")

            new_game = game.model_copy(deep=True)
            new_record = new_game.combat
            new_record.roles[player_id] = role

            if any(r is None for r in new_record.roles.values()):
                logger.debug(
                    "Game %s: %s submitted, waiting for opponent", game.id, player_id
                )
                return new_game

            attacker_id = attacker.owner_id
            defender_id = defender.owner_id
            outcome = resolve_roles(
                new_record.roles[attacker_id], new_record.roles[defender_id]
            )
            record_combat("battle", outcome.value)
            logger.info("Game %s: battle round -> %s", game.id, outcome.value)

            board = new_game.board
            if outcome == CombatOutcome.TIE:
                for pid in new_record.roles:
                    new_record.roles[pid] = None
                return new_game

            if outcome == CombatOutcome.ATTACKER_WINS:
                winner = BoardManager.get_piece(new_record.attacker, board)
                BoardManager.set_piece(new_record.defender, winner, board)
                BoardManager.clear_tile(new_record.attacker, board)
            elif outcome == CombatOutcome.DEFENDER_WINS:
                BoardManager.clear_tile(new_record.attacker, board)
            else:
                raise InvalidStateError(f"Unhandled battle outcome {outcome}")

            new_game.combat = None
            new_game.current_player_turn = new_game.opponent_of(attacker_id)
            GameEngine._transition(new_game, GamePhase.PLAYER_TURN)
            return new_game

    # ═══════════════════════════════════════════════════════════════════
    # Read-only views
    # ═══════════════════════════════════════════════════════════════════

    @staticmethod
    def get_valid_moves(game: Game, player_id: str) -> List[MoveOption]:
        """Return every move ``process_move`` would accept from ``player_id``."""
        if game.current_phase != GamePhase.PLAYER_TURN:
            return []
        if game.current_player_turn != player_id:
            return []

        moves: List[MoveOption] = []
        for pos, piece in BoardManager.get_player_pieces(game.board, player_id):
            if piece.is_king or piece.is_trap:
                continue
            for target in BoardManager.get_adjacent_positions(pos):
                occupant = BoardManager.get_piece(target, game.board)
                if occupant is None:
                    moves.append(MoveOption(from_pos=pos, to=target))
                elif GameEngine._can_attack(player_id, piece, occupant):
                    moves.append(MoveOption(from_pos=pos, to=target, is_attack=True))
        return moves

    @staticmethod
    def _can_attack(player_id: str, attacker: Piece, defender: Piece) -> bool:
        """Mirror of the contact checks in ``process_move``."""
        if defender.owner_id == player_id:
            return False
        if defender.is_trap:
            return True
        if attacker.role is None:
            return False
        return defender.is_king or defender.role is not None

    @staticmethod
    def get_visible_state(game: Game, viewer_id: str) -> Game:
        """Return a copy of ``game`` as ``viewer_id`` is allowed to see it.

        Opponent pieces that have not been revealed lose their role and
        their king/trap flags, and an opponent's pending battle submission
        is masked. Finished games are shown in full.
        """
        GameEngine._require_participant(game, viewer_id, "view.participant")
        view = game.model_copy(deep=True)
        if view.current_phase == GamePhase.END:
            return view

        for _, piece in BoardManager.iter_pieces(view.board):
            if piece.owner_id == viewer_id:
                continue
            if not piece.is_revealed:
                piece.role = None
            # A revealed king ends the game, a trap is never revealed.
            piece.is_king = False
            piece.is_trap = False

        if view.combat is not None:
            for pid, submitted in view.combat.roles.items():
                if pid != viewer_id and submitted is not None:
                    view.combat.roles[pid] = None
                    view.combat.hidden_submissions.append(pid)
        return view

    @staticmethod
    def get_winner(game: Game) -> Optional[str]:
        """Return the winner's id once the game has ended."""
        if game.current_phase != GamePhase.END:
            return None
        return game.winner

    # ═══════════════════════════════════════════════════════════════════
    # Helpers
    # ═══════════════════════════════════════════════════════════════════

    @staticmethod
    def _transition(game: Game, phase: GamePhase) -> None:
        previous = game.current_phase
        game.current_phase = phase
        record_phase_transition(previous.value, phase.value)
        logger.info(
            "Game %s: phase %s -> %s", game.id, previous.value, phase.value
        )

    @staticmethod
    def _assert_board_invariants(game: Game) -> None:
        if not BoardManager.has_unique_piece_ids(game.board):
            logger.error("Game %s: piece ids on the board are not unique", game.id)
            raise InvalidStateError(
                "Piece ids on the board are not unique",
                context={"game_id": game.id},
            )

    @staticmethod
    def _require_phase(game: Game, phase: GamePhase) -> None:
        if game.current_phase != phase:
            raise RulesViolationError(
                f"Game must be in {phase.value} phase",
                rule_ref="phase",
                context={"current_phase": game.current_phase.value},
            )

    @staticmethod
    def _require_participant(game: Game, player_id: str, rule_ref: str) -> None:
        if player_id not in game.player_ids:
            raise RulesViolationError(
                "You are not part of this game",
                rule_ref=rule_ref,
                context={"player_id": player_id},
            )

    @staticmethod
    def _require_setup_pending(game: Game, player_id: str) -> None:
        GameEngine._require_participant(game, player_id, "setup.participant")
        if game.setup_completed.get(player_id, False):
            raise RulesViolationError(
                "Player already completed setup",
                rule_ref="setup.duplicate",
                context={"player_id": player_id},
            )

    @staticmethod
    def _require_on_board(position: Position, rule_ref: str) -> None:
        if not BoardManager.is_valid_position(position):
            raise RulesViolationError(
                "Position is outside the board",
                rule_ref=rule_ref,
                context={"position": position.to_key()},
            )

    @staticmethod
    def _require_own_piece(
        game: Game, player_id: str, position: Position, rule_ref: str
    ) -> Piece:
        piece = BoardManager.get_piece(position, game.board)
        if piece is None:
            raise RulesViolationError(
                "There is no piece on this tile",
                rule_ref=rule_ref,
                context={"position": position.to_key()},
            )
        if piece.owner_id != player_id:
            raise RulesViolationError(
                "This piece belongs to your opponent",
                rule_ref=rule_ref,
                context={"position": position.to_key()},
            )
        return piece

    @staticmethod
    def _coerce_role(role: Role | str, rule_ref: str) -> Role:
        try:
            return Role(role)
        except ValueError:
            raise RulesViolationError(
                f"Unknown role {role!r}", rule_ref=rule_ref
            ) from None
