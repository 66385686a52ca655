"""
Rpsicq Error Hierarchy

Exception hierarchy for the rules engine. Every error raised by the engine
inherits from RpsicqError so hosts can catch and serialize them uniformly.

Usage:
    from rpsicq.errors import RulesViolationError, InvalidStateError

    try:
        game = GameEngine.process_move(game, player_id, from_pos, to)
    except RulesViolationError as e:
        logger.info(f"Rejected move: {e.message}, rule: {e.rule_ref}")
"""

from typing import Any

__all__ = [
    # Base error
    "RpsicqError",
    # Game rules errors
    "RulesViolationError",
    "InvalidStateError",
    # Configuration errors
    "ConfigurationError",
]


class RpsicqError(Exception):
    """Base exception for all rpsicq errors.

    Attributes:
        code: Machine-readable error code for categorization
        message: Human-readable error description
        context: Additional context for debugging
    """
    code: str = "RPSICQ_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"[{self.code}] {self.message} ({ctx})"
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


# =============================================================================
# Game Rules Errors
# =============================================================================


class RulesViolationError(RpsicqError):
    """Action rejected by the game rules.

    Raised when a setup, move or battle submission fails a precondition.
    The game passed in is left untouched, so the caller may simply report
    the rejection and carry on.

    Attributes:
        rule_ref: Short identifier of the violated rule (e.g., "move.adjacent")
    """
    code: str = "RULES_VIOLATION"

    def __init__(
        self,
        message: str,
        rule_ref: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, context=context)
        self.rule_ref = rule_ref
        if rule_ref:
            self.context["rule_ref"] = rule_ref


class InvalidStateError(RpsicqError):
    """Corrupted or unexpected game state.

    Raised when the game is in a configuration that normal play cannot
    produce, e.g. an active combat record pointing at an empty tile. The
    game should be considered unusable.
    """
    code: str = "INVALID_STATE"


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(RpsicqError):
    """Invalid engine configuration."""
    code: str = "CONFIGURATION_ERROR"
