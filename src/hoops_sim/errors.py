"""Exception hierarchy for the league core.

Rotation problems are collected as plain message lists by
``rotation.validate``; they only become an exception (``RotationRejected``)
when a caller tries to save or simulate with an invalid rotation.
"""

from __future__ import annotations


class SimulationError(Exception):
    """Base class for every error raised by the league core."""


class ConfigurationError(SimulationError):
    """The supplied league cannot satisfy the requested season layout."""


class RotationRejected(SimulationError):
    def __init__(self, team_id: str, violations: list[str]) -> None:
        self.team_id = team_id
        self.violations = list(violations)
        summary = "; ".join(self.violations) if self.violations else "unknown problem"
        super().__init__(f"Rotation for {team_id} rejected: {summary}")


class InvalidStateTransition(SimulationError):
    """An operation does not apply to the current season or bracket state."""


class MissingPlayerError(SimulationError):
    def __init__(self, player_id: str, context: str = "") -> None:
        self.player_id = player_id
        self.context = context
        where = f" ({context})" if context else ""
        super().__init__(f"Player {player_id} is not on the roster{where}")


class SnapshotVersionError(SimulationError):
    """A saved game was written by a newer version of the package."""


class MissingTeamError(SimulationError):
    def __init__(self, team_id: str) -> None:
        self.team_id = team_id
        super().__init__(f"Team {team_id} is not in the league")
