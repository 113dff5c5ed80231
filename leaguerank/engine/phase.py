"""Season phase detection and league segmentation.

Every ranking run resolves its phase once, from league status first and the
current week second:
1. pre_draft -> offseason, drafting -> postDraft, complete -> postSeason
2. week 0 or earlier -> offseason
3. week 18 or later -> postSeason
4. anything else -> inseason

Leagues are also grouped into classes (dynasty or redraft, superflex or
1QB, or SPC for specialty scoring). A segment key joins class and phase,
e.g. DYN_SF_inseason, and keys snapshots, backtest results and learned
parameters.
"""

from enum import Enum

from ..providers.contracts import LeagueSettings

POST_SEASON_WEEK = 18


class Phase(str, Enum):
    """Closed set of season phases. Resolved once per ranking run."""

    IN_SEASON = "inseason"
    OFFSEASON = "offseason"
    POST_DRAFT = "postDraft"
    POST_SEASON = "postSeason"


class LeagueFormat(str, Enum):
    DYNASTY = "dynasty"
    REDRAFT = "redraft"

    @classmethod
    def of(cls, is_dynasty: bool) -> "LeagueFormat":
        return cls.DYNASTY if is_dynasty else cls.REDRAFT


def detect_phase(week: int, status: str | None) -> Phase:
    """Phase from league status first, then from the current week."""
    status = (status or "").lower()
    if status == "pre_draft":
        return Phase.OFFSEASON
    if status == "drafting":
        return Phase.POST_DRAFT
    if status == "complete":
        return Phase.POST_SEASON
    if week <= 0:
        return Phase.OFFSEASON
    if week >= POST_SEASON_WEEK:
        return Phase.POST_SEASON
    return Phase.IN_SEASON


def league_class(is_dynasty: bool, is_superflex: bool, specialty_format: str | None = None) -> str:
    """DYN_SF, DYN_1QB, RED_SF or RED_1QB, or SPC for any non-standard scoring format."""
    fmt = (specialty_format or "").strip().lower()
    if fmt and fmt != "standard":
        return "SPC"
    prefix = "DYN" if is_dynasty else "RED"
    suffix = "SF" if is_superflex else "1QB"
    return f"{prefix}_{suffix}"


def segment_key(league_cls: str, phase: Phase) -> str:
    return f"{league_cls}_{phase.value}"


def split_segment_key(key: str) -> tuple[str, Phase | None]:
    """Inverse of segment_key. Unknown phase suffix yields (key, None)."""
    head, _, tail = key.rpartition("_")
    try:
        return head, Phase(tail)
    except ValueError:
        return key, None


def league_segment(league: LeagueSettings) -> tuple[Phase, str, str]:
    """Phase, league class and segment key for a league in its current state."""
    phase = detect_phase(league.week, league.status)
    cls = league_class(league.is_dynasty, league.is_superflex, league.specialty_format)
    return phase, cls, segment_key(cls, phase)
