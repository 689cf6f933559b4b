"""
Error taxonomy for the points pipeline.

Each recoverable error has a fixed blast radius and is caught by the service
that owns that scope:

- ConfigMissing: no points table for a tournament -> skip the tournament
- UpstreamUnavailable: provider answered badly -> skip the match this run
- PlayerUnresolvable: player lookup and creation failed -> skip the row
- PersistenceError: a score write failed -> abort the match, mark it failed
- DuplicateArchive: archive already exists -> treated as success

MissingConfiguration is the only fatal error and is raised before any work.
"""

from typing import Optional, Sequence


class DugoutError(Exception):
    """Base class for all pipeline errors."""


class MissingConfiguration(DugoutError):
    """Required store/provider credentials are not configured."""

    def __init__(self, missing: Sequence[str]):
        self.missing = list(missing)
        super().__init__(f"Missing required configuration: {', '.join(self.missing)}")


class ConfigMissing(DugoutError):
    """No PointsConfig row exists for a tournament."""

    def __init__(self, tournament_id: int):
        self.tournament_id = tournament_id
        super().__init__(f"No points config for tournament {tournament_id}")


class UpstreamUnavailable(DugoutError):
    """A provider returned a non-success response or could not be reached."""

    def __init__(self, provider: str, url: str, status_code: Optional[int] = None, detail: str = ""):
        self.provider = provider
        self.url = url
        self.status_code = status_code
        message = f"{provider} request failed: {url}"
        if status_code is not None:
            message += f" (HTTP {status_code})"
        if detail:
            message += f" - {detail}"
        super().__init__(message)


class PlayerUnresolvable(DugoutError):
    """A provider player id could not be found or created."""

    def __init__(self, provider: str, external_id: str, reason: str = ""):
        self.provider = provider
        self.external_id = external_id
        message = f"Cannot resolve {provider} player {external_id}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class PersistenceError(DugoutError):
    """A write to the backing store failed."""


class DuplicateArchive(DugoutError):
    """An archive snapshot for (match, snapshot_type) already exists."""

    def __init__(self, match_id: int, snapshot_type: str):
        self.match_id = match_id
        self.snapshot_type = snapshot_type
        super().__init__(f"Archive already exists for match {match_id} ({snapshot_type})")
