"""Assemble the ordered list of CWL rounds to score for one clan."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Final

from .models import MAX_CWL_ROUNDS, ScheduledRound, WarRound
from .provider import CwlDataError, LeagueNotFoundError, WarDataProvider
from .storage import WarRoundStorage
from .validation import current_month_key

log: Final = logging.getLogger("cwl-medals")

NOT_ACTIVE_ERROR: Final = "Clan is not currently in an active CWL"
NO_WARS_ERROR: Final = "No CWL wars found. CWL may not have started yet."
NO_ROUNDS_ERROR: Final = (
    "No CWL wars with member data found. Wars may not have started yet or data "
    "is not available."
)


def no_month_data_error(month_key: str) -> str:
    return (
        f"No CWL data available for {month_key}. The clan may not have "
        "participated in CWL that month."
    )


@dataclass(slots=True)
class CollectionResult:
    rounds: list[ScheduledRound] = field(default_factory=list)
    error: str | None = None


class _RoundCollector:
    def __init__(self, clan_tag: str) -> None:
        self.clan_tag = clan_tag
        self.rounds: list[ScheduledRound] = []
        self.seen_end_times: set[str] = set()

    def is_duplicate(self, war: WarRound) -> bool:
        return bool(war.end_time) and war.end_time in self.seen_end_times

    def add(self, war: WarRound) -> ScheduledRound:
        if war.end_time:
            self.seen_end_times.add(war.end_time)
        scheduled = ScheduledRound(
            war=war,
            round_index=len(self.rounds),
            opponent_name=war.opponent_name_for(self.clan_tag),
        )
        self.rounds.append(scheduled)
        return scheduled

    def result(self, error: str | None = None) -> CollectionResult:
        if self.rounds:
            return CollectionResult(rounds=list(self.rounds))
        return CollectionResult(error=error or NO_ROUNDS_ERROR)


def _is_usable(war: WarRound, clan_tag: str) -> bool:
    return war.includes_clan(clan_tag) and war.has_member_lists


def _collect_cached(
    collector: _RoundCollector, storage: WarRoundStorage, month_key: str
) -> None:
    cached = storage.list_finished_rounds_for_month(collector.clan_tag, month_key)
    for slot in sorted(cached):
        war = cached[slot]
        if collector.is_duplicate(war):
            log.debug("Skipping cached day %s: duplicate end time", slot)
            continue
        if war.end_time:
            collector.seen_end_times.add(war.end_time)
        if not _is_usable(war, collector.clan_tag):
            continue
        collector.add(war)


async def _resolve_round(
    provider: WarDataProvider,
    storage: WarRoundStorage,
    collector: _RoundCollector,
    war_tags: list[str],
    month_key: str | None,
    round_number: int,
) -> None:
    if month_key:
        cached = storage.load_finished_round(
            collector.clan_tag, month_key, round_number + 1
        )
        if (
            cached is not None
            and cached.is_finished
            and _is_usable(cached, collector.clan_tag)
            and not collector.is_duplicate(cached)
        ):
            collector.add(cached)
            return

    for war_tag in war_tags:
        try:
            war = await provider.get_war(war_tag)
            if not war.includes_clan(collector.clan_tag):
                continue
            if not war.is_finished:
                log.debug("War %s has not finished; skipping", war_tag)
                return
            if not war.has_member_lists:
                log.debug("War %s has no member data; skipping", war_tag)
                return
            if collector.is_duplicate(war):
                return
            storage.save_finished_round(war, collector.clan_tag, len(collector.rounds))
            collector.add(war)
            return
        except Exception as exc:  # pylint: disable=broad-except
            log.warning(
                "Failed to process CWL war %s for %s: %s",
                war_tag,
                collector.clan_tag,
                exc,
            )


async def collect_war_rounds(
    provider: WarDataProvider,
    storage: WarRoundStorage,
    clan_tag: str,
    month_key: str | None = None,
    *,
    today: datetime | None = None,
) -> CollectionResult:
    """Return the clan's finished CWL rounds in day order.

    Cached rounds for ``month_key`` are used first; missing days are filled
    from the live league group. "No data" conditions come back as
    ``CollectionResult.error`` instead of being raised.
    """
    collector = _RoundCollector(clan_tag)
    if month_key:
        _collect_cached(collector, storage, month_key)
        if len(collector.rounds) >= MAX_CWL_ROUNDS:
            return collector.result()
        if not collector.rounds and month_key != current_month_key(today):
            return CollectionResult(error=no_month_data_error(month_key))

    try:
        group = await provider.get_league_group(clan_tag)
    except LeagueNotFoundError as exc:
        log.info("No league group for %s: %s", clan_tag, exc)
        return collector.result(str(exc))
    except CwlDataError as exc:
        log.warning("Failed to fetch league group for %s: %s", clan_tag, exc)
        return collector.result(f"Failed to fetch CWL data: {exc}")

    if not group.is_active:
        if month_key and month_key != current_month_key(today):
            return collector.result(no_month_data_error(month_key))
        return collector.result(NOT_ACTIVE_ERROR)

    rounds_of_tags = group.resolvable_war_tags()
    if not any(rounds_of_tags):
        return collector.result(NO_WARS_ERROR)

    already_cached = len(collector.rounds)
    for round_number, war_tags in enumerate(rounds_of_tags):
        if round_number < already_cached or not war_tags:
            continue
        await _resolve_round(
            provider, storage, collector, war_tags, month_key, round_number
        )

    return collector.result()


__all__ = [
    "CollectionResult",
    "collect_war_rounds",
    "no_month_data_error",
    "NOT_ACTIVE_ERROR",
    "NO_WARS_ERROR",
    "NO_ROUNDS_ERROR",
]
