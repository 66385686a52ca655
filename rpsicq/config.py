"""Engine configuration.

Values come from the environment so hosts can pin rule variants without
code changes:

    RPSICQ_POST_SETUP_PHASE   Phase entered once both players finished
                              setup: ``coin_flip`` (default) or
                              ``player_turn``.
    RPSICQ_SEED               Seed for the engine-owned coin flip source.
"""

from __future__ import annotations

import logging
import os
import random
from dataclasses import dataclass
from typing import Optional

from .errors import ConfigurationError
from .models import GamePhase

logger = logging.getLogger(__name__)

__all__ = [
    "EngineConfig",
    "get_engine_config",
    "reset_engine_config",
]

_ALLOWED_POST_SETUP_PHASES = (GamePhase.COIN_FLIP, GamePhase.PLAYER_TURN)


def _parse_optional_int(name: str) -> int | None:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r", name, raw)
        return None


@dataclass(frozen=True)
class EngineConfig:
    """Rule variant switches for the engine."""

    post_setup_phase: GamePhase = GamePhase.COIN_FLIP
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        try:
            phase = GamePhase(self.post_setup_phase)
        except ValueError as exc:
            raise ConfigurationError(
                f"Unknown phase {self.post_setup_phase!r}",
                context={"setting": "post_setup_phase"},
            ) from exc
        if phase not in _ALLOWED_POST_SETUP_PHASES:
            raise ConfigurationError(
                f"Setup cannot hand over to phase {phase.value!r}",
                context={"setting": "post_setup_phase"},
            )
        # Accept plain strings and normalise to the enum.
        object.__setattr__(self, "post_setup_phase", phase)

    @classmethod
    def from_env(cls) -> "EngineConfig":
        phase_raw = os.environ.get("RPSICQ_POST_SETUP_PHASE", "").strip().lower()
        return cls(
            post_setup_phase=phase_raw or GamePhase.COIN_FLIP,
            seed=_parse_optional_int("RPSICQ_SEED"),
        )

    def make_rng(self) -> random.Random:
        """Return a fresh random source seeded from ``seed``."""
        return random.Random(self.seed)


_engine_config: Optional[EngineConfig] = None


def get_engine_config() -> EngineConfig:
    """Return the process-wide config, loading it from the environment once."""
    global _engine_config
    if _engine_config is None:
        _engine_config = EngineConfig.from_env()
        logger.debug("Loaded engine config: %s", _engine_config)
    return _engine_config


def reset_engine_config() -> None:
    """Forget the cached config so the next lookup re-reads the environment."""
    global _engine_config
    _engine_config = None
