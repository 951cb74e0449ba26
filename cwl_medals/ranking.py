from __future__ import annotations

from collections.abc import Iterable, Mapping

from .models import MemberStats


def rank_members(stats_by_tag: Mapping[str, MemberStats]) -> list[MemberStats]:
    """Qualified members first, each group by normalised points descending."""
    return sorted(
        stats_by_tag.values(),
        key=lambda stats: (stats.disqualified, -stats.normalized_points),
    )


def split_qualified(
    members: Iterable[MemberStats],
) -> tuple[list[MemberStats], list[MemberStats]]:
    qualified: list[MemberStats] = []
    disqualified: list[MemberStats] = []
    for member in members:
        (disqualified if member.disqualified else qualified).append(member)
    return qualified, disqualified


__all__ = ["rank_members", "split_qualified"]
