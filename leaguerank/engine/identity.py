"""Manager identity resolution.

Rosters, trade history and display all need a single identity per team. The
precedence is username, display name, stored owner name, owner id, and
finally a positional fallback, so that a team is always nameable.
"""

from ..providers.contracts import RosterRecord


def resolve_manager_identity(roster: RosterRecord) -> str:
    for candidate in (roster.username, roster.display_name, roster.owner_name, roster.owner_id):
        if candidate and str(candidate).strip():
            return str(candidate).strip()
    return f"Team {roster.roster_id}"


def identity_key(roster: RosterRecord) -> str:
    """Case-insensitive join key for trade history lookups."""
    return resolve_manager_identity(roster).lower()
