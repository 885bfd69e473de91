"""Iteration governor: bounds the number of supervisor rounds."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Tuple

from researchAgent.graph.tasks import Task, TaskOutcome

DEFAULT_MAX_ROUNDS = 6


@dataclass(frozen=True)
class GovernorDecision:
    rounds_completed: int
    max_rounds: int
    exhausted: bool

    @property
    def round_number(self) -> int:
        """1-based number of the round about to run."""
        return self.rounds_completed + 1

    @property
    def remaining(self) -> int:
        return max(0, self.max_rounds - self.rounds_completed)


class IterationGovernor:
    """Checks the round counter before each round.

    Once ``rounds_completed >= max_rounds`` the round still runs reflections
    and finish signals, every delegation is refused with a synthetic outcome,
    and the supervisor loop terminates after the round.
    """

    def __init__(self, max_rounds: int = DEFAULT_MAX_ROUNDS):
        if max_rounds < 1:
            raise ValueError(f"max_rounds must be >= 1, got {max_rounds}")
        self.max_rounds = max_rounds

    def check(self, rounds_completed: int) -> GovernorDecision:
        rounds_completed = max(0, int(rounds_completed or 0))
        return GovernorDecision(
            rounds_completed=rounds_completed,
            max_rounds=self.max_rounds,
            exhausted=rounds_completed >= self.max_rounds,
        )

    def refuse(self, delegations: Iterable[Task]) -> List[Tuple[str, TaskOutcome]]:
        """Synthetic ledger entries for delegations that will not be dispatched."""
        return [(task.id, TaskOutcome.refused()) for task in delegations]


__all__ = ["DEFAULT_MAX_ROUNDS", "GovernorDecision", "IterationGovernor"]
