from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Final

from .collector import collect_war_rounds
from .models import ClanResults
from .provider import CwlDataError, WarDataProvider
from .ranking import rank_members
from .scoring import score_war_rounds
from .storage import WarRoundStorage
from .validation import current_month_key, format_month_label

log: Final = logging.getLogger("cwl-medals")


@dataclass(slots=True, frozen=True)
class ClanEntry:
    tag: str
    name: str | None = None


@dataclass(slots=True, frozen=True)
class MonthOption:
    month_key: str
    label: str
    description: str
    is_current: bool = False


async def compute_bonus_medals(
    provider: WarDataProvider,
    storage: WarRoundStorage,
    clan_tag: str,
    clan_name: str | None = None,
    month_key: str | None = None,
    *,
    today: datetime | None = None,
) -> ClanResults:
    """Collect, score and rank one clan's CWL rounds.

    Never raises: any failure comes back as an empty member list with
    ``error`` populated.
    """
    try:
        collected = await collect_war_rounds(
            provider, storage, clan_tag, month_key, today=today
        )
        if collected.error is not None:
            return ClanResults.failed(clan_tag, clan_name, collected.error)
        stats_by_tag = score_war_rounds(collected.rounds, clan_tag)
    except Exception as exc:  # pylint: disable=broad-except
        log.exception("Failed to calculate CWL bonus medals for clan %s", clan_tag)
        return ClanResults.failed(clan_tag, clan_name, str(exc) or "Unknown error")

    log.info(
        "Scored %d members across %d rounds for %s",
        len(stats_by_tag),
        len(collected.rounds),
        clan_tag,
    )
    return ClanResults(
        clan_tag=clan_tag,
        clan_name=clan_name or clan_tag,
        members=rank_members(stats_by_tag),
    )


async def compute_bonus_medals_for_clans(
    provider: WarDataProvider,
    storage: WarRoundStorage,
    clans: Iterable[ClanEntry],
    month_key: str | None = None,
    *,
    today: datetime | None = None,
) -> list[ClanResults]:
    results: list[ClanResults] = []
    for clan in clans:
        results.append(
            await compute_bonus_medals(
                provider, storage, clan.tag, clan.name, month_key, today=today
            )
        )
    return results


def list_cached_months(
    storage: WarRoundStorage, clans: Iterable[ClanEntry]
) -> list[str]:
    months: set[str] = set()
    for clan in clans:
        months.update(storage.list_available_months(clan.tag))
    return sorted(months, reverse=True)


async def has_active_league(
    provider: WarDataProvider, clans: Iterable[ClanEntry]
) -> bool:
    for clan in clans:
        try:
            group = await provider.get_league_group(clan.tag)
        except CwlDataError:
            continue
        if group.is_active:
            return True
    return False


async def list_selectable_months(
    provider: WarDataProvider,
    storage: WarRoundStorage,
    clans: Sequence[ClanEntry],
    *,
    today: datetime | None = None,
) -> list[MonthOption]:
    """Months a leaderboard can be built for, newest first.

    Cached months are always offered; the current month is added (and
    marked as ongoing) while any configured clan is in an active league.
    """
    cached = list_cached_months(storage, clans)
    current = current_month_key(today)
    active = await has_active_league(provider, clans)

    options: list[MonthOption] = []
    for month in cached:
        label = format_month_label(month)
        if month == current and active:
            options.append(
                MonthOption(
                    month_key=month,
                    label=f"{label} (Current/Ongoing)",
                    description="Current month - active CWL in progress",
                    is_current=True,
                )
            )
        else:
            options.append(
                MonthOption(
                    month_key=month,
                    label=label,
                    description=f"CWL data for {label}",
                )
            )

    if active and current not in cached:
        options.insert(
            0,
            MonthOption(
                month_key=current,
                label=f"{format_month_label(current)} (Current/Ongoing)",
                description="Current month - active CWL in progress",
                is_current=True,
            ),
        )
    return options


__all__ = [
    "ClanEntry",
    "MonthOption",
    "compute_bonus_medals",
    "compute_bonus_medals_for_clans",
    "list_cached_months",
    "has_active_league",
    "list_selectable_months",
]
