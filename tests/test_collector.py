from datetime import UTC, datetime

import pytest

from builders import CLAN_TAG, hit, make_war, player
from cwl_medals.collector import (
    NO_ROUNDS_ERROR,
    NO_WARS_ERROR,
    NOT_ACTIVE_ERROR,
    collect_war_rounds,
    no_month_data_error,
)
from cwl_medals.models import LeagueGroup
from cwl_medals.provider import CwlDataError, LeagueNotFoundError

DECEMBER = datetime(2025, 12, 10, tzinfo=UTC)


class FakeProvider:
    def __init__(self, group=None, wars=None, group_error=None, war_errors=None):
        self.group = group
        self.wars = wars or {}
        self.group_error = group_error
        self.war_errors = war_errors or {}
        self.group_calls = 0
        self.war_calls: list[str] = []

    async def get_league_group(self, clan_tag):
        self.group_calls += 1
        if self.group_error is not None:
            raise self.group_error
        return self.group

    async def get_war(self, war_tag):
        self.war_calls.append(war_tag)
        if war_tag in self.war_errors:
            raise self.war_errors[war_tag]
        return self.wars[war_tag]


def group(*rounds, state="inWar"):
    return LeagueGroup(state=state, season="2025-12", rounds=tuple(tuple(r) for r in rounds))


def our_war(day, opponent_name="Rivals", state="warEnded"):
    return make_war(
        [player("#M1", 15, 1, [hit("#O1", 3)])],
        [player("#O1", 15, 1)],
        opponent_name=opponent_name,
        state=state,
        end_time=f"202512{day:02d}T081925.000Z",
    )


def other_war(day):
    return make_war(
        [player("#X1", 15, 1)],
        [player("#Y1", 15, 1)],
        clan_tag="#OTHER",
        opponent_tag="#ELSE",
        end_time=f"202512{day:02d}T081925.000Z",
    )


@pytest.mark.asyncio
async def test_live_rounds_pick_the_clans_war_and_cache_it(storage, fake_table):
    """
    GIVEN an active league group with four wars per round
    WHEN the current rounds are collected without a month
    THEN only the war involving the clan is kept and each is cached
    """
    provider = FakeProvider(
        group=group(["#X1", "#W1"], ["#W2", "#X2"]),
        wars={
            "#X1": other_war(3),
            "#W1": our_war(3, "Alpha"),
            "#W2": our_war(4, "Bravo"),
            "#X2": other_war(4),
        },
    )

    result = await collect_war_rounds(provider, storage, CLAN_TAG, today=DECEMBER)

    assert result.error is None
    assert [(r.round_index, r.opponent_name) for r in result.rounds] == [
        (0, "Alpha"),
        (1, "Bravo"),
    ]
    assert provider.war_calls == ["#X1", "#W1", "#W2"]
    assert sorted(sk for _, sk in fake_table.items) == [
        "MONTH#2025-12#DAY#1",
        "MONTH#2025-12#DAY#2",
    ]


@pytest.mark.asyncio
async def test_unfinished_wars_are_skipped_and_not_cached(storage, fake_table):
    provider = FakeProvider(
        group=group(["#W1"], ["#W2"]),
        wars={"#W1": our_war(3), "#W2": our_war(4, state="inWar")},
    )

    result = await collect_war_rounds(provider, storage, CLAN_TAG, today=DECEMBER)

    assert len(result.rounds) == 1
    assert fake_table.put_calls == 1


@pytest.mark.asyncio
async def test_duplicate_end_times_are_dropped(storage):
    provider = FakeProvider(
        group=group(["#W1"], ["#W2"]),
        wars={"#W1": our_war(3), "#W2": our_war(3, "Echo")},
    )

    result = await collect_war_rounds(provider, storage, CLAN_TAG, today=DECEMBER)

    assert [r.opponent_name for r in result.rounds] == ["Rivals"]


@pytest.mark.asyncio
async def test_failed_war_fetch_moves_to_next_tag(storage):
    provider = FakeProvider(
        group=group(["#BAD", "#W1"]),
        wars={"#W1": our_war(3)},
        war_errors={"#BAD": CwlDataError("boom")},
    )

    result = await collect_war_rounds(provider, storage, CLAN_TAG, today=DECEMBER)

    assert len(result.rounds) == 1
    assert provider.war_calls == ["#BAD", "#W1"]


@pytest.mark.asyncio
async def test_full_month_in_cache_skips_provider(storage):
    for index in range(7):
        storage.save_finished_round(our_war(index + 1, f"Day {index + 1}"), CLAN_TAG, index)
    provider = FakeProvider(group_error=AssertionError("provider should not be called"))

    result = await collect_war_rounds(
        provider, storage, CLAN_TAG, "2025-12", today=DECEMBER
    )

    assert [r.round_index for r in result.rounds] == list(range(7))
    assert result.rounds[6].opponent_name == "Day 7"
    assert provider.group_calls == 0


@pytest.mark.asyncio
async def test_past_month_without_cache_reports_no_data(storage):
    provider = FakeProvider(group=group(["#W1"]))

    result = await collect_war_rounds(
        provider, storage, CLAN_TAG, "2025-11", today=DECEMBER
    )

    assert result.rounds == []
    assert result.error == no_month_data_error("2025-11")
    assert provider.group_calls == 0


@pytest.mark.asyncio
async def test_partial_cache_is_completed_from_live_rounds(storage, fake_table):
    storage.save_finished_round(our_war(3, "Alpha"), CLAN_TAG, 0)
    storage.save_finished_round(our_war(4, "Bravo"), CLAN_TAG, 1)
    provider = FakeProvider(
        group=group(["#W1"], ["#W2"], ["#W3"]),
        wars={"#W3": our_war(5, "Charlie")},
    )

    result = await collect_war_rounds(
        provider, storage, CLAN_TAG, "2025-12", today=DECEMBER
    )

    assert [r.opponent_name for r in result.rounds] == ["Alpha", "Bravo", "Charlie"]
    assert provider.war_calls == ["#W3"]
    assert ("CLAN#CLAN", "MONTH#2025-12#DAY#3") in fake_table.items


@pytest.mark.asyncio
async def test_league_not_found_keeps_cached_rounds(storage):
    storage.save_finished_round(our_war(3), CLAN_TAG, 0)
    provider = FakeProvider(group_error=LeagueNotFoundError("no league"))

    result = await collect_war_rounds(
        provider, storage, CLAN_TAG, "2025-12", today=DECEMBER
    )

    assert result.error is None
    assert len(result.rounds) == 1


@pytest.mark.asyncio
async def test_league_not_found_without_cache_is_an_error(storage):
    provider = FakeProvider(group_error=LeagueNotFoundError("no league"))

    result = await collect_war_rounds(provider, storage, CLAN_TAG, today=DECEMBER)

    assert result.rounds == []
    assert result.error == "no league"


@pytest.mark.asyncio
async def test_provider_failure_is_reported(storage):
    provider = FakeProvider(group_error=CwlDataError("boom"))

    result = await collect_war_rounds(provider, storage, CLAN_TAG, today=DECEMBER)

    assert result.error == "Failed to fetch CWL data: boom"


@pytest.mark.asyncio
async def test_inactive_league(storage):
    provider = FakeProvider(group=group(["#W1"], state="notInWar"))

    result = await collect_war_rounds(provider, storage, CLAN_TAG, today=DECEMBER)

    assert result.error == NOT_ACTIVE_ERROR


@pytest.mark.asyncio
async def test_only_placeholder_tags(storage):
    provider = FakeProvider(group=group(["#0", "#0"], ["#0"]))

    result = await collect_war_rounds(provider, storage, CLAN_TAG, today=DECEMBER)

    assert result.error == NO_WARS_ERROR
    assert provider.war_calls == []


@pytest.mark.asyncio
async def test_unexpected_war_failure_skips_only_that_round(storage):
    """
    GIVEN one league war whose fetch times out
    WHEN the rounds are collected
    THEN that round is skipped and the remaining round is still returned
    """
    provider = FakeProvider(
        group=group(["#W1"], ["#W2"]),
        wars={"#W2": our_war(4, "Bravo")},
        war_errors={"#W1": TimeoutError("socket timed out")},
    )

    result = await collect_war_rounds(provider, storage, CLAN_TAG, today=DECEMBER)

    assert result.error is None
    assert [(r.round_index, r.opponent_name) for r in result.rounds] == [(0, "Bravo")]


@pytest.mark.asyncio
async def test_rounds_without_member_lists_are_not_collected(storage, fake_table):
    memberless = make_war(
        None, [player("#O1", 15, 1)], end_time="20251203T081925.000Z"
    )
    provider = FakeProvider(group=group(["#W1"]), wars={"#W1": memberless})

    result = await collect_war_rounds(provider, storage, CLAN_TAG, today=DECEMBER)

    assert result.rounds == []
    assert result.error == NO_ROUNDS_ERROR
    assert fake_table.put_calls == 0


@pytest.mark.asyncio
async def test_cached_rounds_dedupe_skip_foreign_and_renumber(storage):
    """
    GIVEN cached days 1 and 2 sharing an end time, a foreign day 3 and day 4
    WHEN the month is collected from the cache
    THEN the first duplicate wins, the foreign round is skipped and
    round indexes are renumbered from zero
    """
    storage.save_finished_round(our_war(3, "Alpha"), CLAN_TAG, 0)
    storage.save_finished_round(our_war(3, "Bravo"), CLAN_TAG, 1)
    storage.save_finished_round(other_war(4), CLAN_TAG, 2)
    storage.save_finished_round(our_war(5, "Charlie"), CLAN_TAG, 3)
    storage.save_finished_round(
        make_war(None, [player("#O1", 15, 1)], end_time="20251206T081925.000Z"),
        CLAN_TAG,
        4,
    )
    provider = FakeProvider(group_error=LeagueNotFoundError("no league"))

    result = await collect_war_rounds(
        provider, storage, CLAN_TAG, "2025-12", today=DECEMBER
    )

    assert result.error is None
    assert [(r.round_index, r.opponent_name) for r in result.rounds] == [
        (0, "Alpha"),
        (1, "Charlie"),
    ]
