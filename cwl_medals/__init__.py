"""Clan War League bonus-medal scoring."""

from .collector import CollectionResult, collect_war_rounds
from .models import (
    AttackDetail,
    ClanResults,
    DefenseDetail,
    LeagueGroup,
    MemberStats,
    MirrorViolation,
    ScheduledRound,
    WarAttack,
    WarMember,
    WarRound,
    WarSide,
)
from .provider import (
    CocWarDataProvider,
    CwlDataError,
    LeagueNotFoundError,
    WarDataProvider,
)
from .ranking import rank_members
from .scoring import recompute_total_points, score_war_rounds
from .service import (
    ClanEntry,
    MonthOption,
    compute_bonus_medals,
    compute_bonus_medals_for_clans,
    list_selectable_months,
)
from .storage import WarRoundStorage
from .validation import (
    InvalidMonthKeyError,
    InvalidValueError,
    normalize_tag,
    validate_month_key,
)

__all__ = [
    "AttackDetail",
    "ClanEntry",
    "ClanResults",
    "CocWarDataProvider",
    "CollectionResult",
    "CwlDataError",
    "DefenseDetail",
    "InvalidMonthKeyError",
    "InvalidValueError",
    "LeagueGroup",
    "LeagueNotFoundError",
    "MemberStats",
    "MirrorViolation",
    "MonthOption",
    "ScheduledRound",
    "WarAttack",
    "WarDataProvider",
    "WarMember",
    "WarRound",
    "WarRoundStorage",
    "WarSide",
    "collect_war_rounds",
    "compute_bonus_medals",
    "compute_bonus_medals_for_clans",
    "list_selectable_months",
    "normalize_tag",
    "rank_members",
    "recompute_total_points",
    "score_war_rounds",
    "validate_month_key",
]
