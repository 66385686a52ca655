"""Prometheus metrics for the rpsicq rules engine.

This module centralises counters so that engine operations can record
lightweight telemetry without each operation managing its own metric
instances. Hosts expose them through their own ``/metrics`` endpoint.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Final, Iterator

from prometheus_client import Counter

from .errors import RulesViolationError

logger = logging.getLogger(__name__)


ACTIONS_TOTAL: Final[Counter] = Counter(
    "rpsicq_actions_total",
    (
        "Total engine actions, labeled by action and outcome "
        "(accepted, rejected or error)."
    ),
    labelnames=("action", "outcome"),
)

COMBAT_OUTCOMES: Final[Counter] = Counter(
    "rpsicq_combat_outcomes_total",
    (
        "Combat resolutions, labeled by stage (contact for the first "
        "clash on a move, battle for tie-break rounds) and outcome."
    ),
    labelnames=("stage", "outcome"),
)

PHASE_TRANSITIONS: Final[Counter] = Counter(
    "rpsicq_phase_transitions_total",
    "Game phase transitions, labeled by source and target phase.",
    labelnames=("from_phase", "to_phase"),
)

GAMES_COMPLETED: Final[Counter] = Counter(
    "rpsicq_games_completed_total",
    "Total games that reached the END phase.",
)


@contextmanager
def observe_action(action: str) -> Iterator[None]:
    """Count one engine action.

    Rule violations are counted as ``rejected``, any other exception as
    ``error``; both are re-raised unchanged.
    """
    try:
        yield
    except RulesViolationError as exc:
        ACTIONS_TOTAL.labels(action, "rejected").inc()
        logger.debug("Rejected %s: %s", action, exc)
        raise
    except Exception:
        ACTIONS_TOTAL.labels(action, "error").inc()
        raise
    ACTIONS_TOTAL.labels(action, "accepted").inc()


def record_phase_transition(from_phase: str, to_phase: str) -> None:
    PHASE_TRANSITIONS.labels(from_phase, to_phase).inc()


def record_combat(stage: str, outcome: str) -> None:
    COMBAT_OUTCOMES.labels(stage, outcome).inc()
