"""Bonus-medal scoring for Clan War League rounds.

Each member earns attack points (two per star, plus one per star when they
beat a higher town hall that is not sitting below a rushed base) and defense
points (two per star the opponent failed to take from them). Totals are
normalised by the number of attacks made when ranking.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from types import MappingProxyType
from typing import Final

from .models import (
    AttackDetail,
    DefenseDetail,
    MemberRoundOutcome,
    MemberStats,
    MirrorViolation,
    ScheduledRound,
    WarMember,
    WarSide,
)

log: Final = logging.getLogger("cwl-medals")

MAX_STARS: Final = 3
POINTS_PER_STAR: Final = 2
BONUS_POINTS_PER_STAR: Final = 1
DEFENSE_POINTS_PER_STAR: Final = 2
UNTOUCHED_DEFENSE_POINTS: Final = 2


def attack_points(stars: int, bonus_awarded: bool) -> int:
    bonus = stars * BONUS_POINTS_PER_STAR if bonus_awarded else 0
    return stars * POINTS_PER_STAR + bonus


def defense_points(detail: DefenseDetail) -> int:
    if not detail.was_attacked:
        return UNTOUCHED_DEFENSE_POINTS
    if detail.stars_defended <= 0:
        return 0
    # Stars given up to a weaker attacker cost the whole round's credit.
    if (detail.attacker_town_hall or 0) < detail.defender_town_hall:
        return 0
    return detail.stars_defended * DEFENSE_POINTS_PER_STAR


def should_award_bonus(
    defender: WarMember | None,
    attacker_town_hall: int,
    opponents: Iterable[WarMember],
) -> bool:
    """Return True when beating ``defender`` earns the higher town hall bonus.

    The defender must out-level the attacker and have a known map position,
    and no opponent placed above the defender may have a lower town hall.
    """
    if defender is None or defender.map_position is None:
        return False
    defender_town_hall = defender.town_hall_level
    if defender_town_hall <= attacker_town_hall:
        return False
    for opponent in opponents:
        if opponent.map_position is None:
            continue
        if (
            opponent.map_position < defender.map_position
            and opponent.town_hall_level < defender_town_hall
        ):
            return False
    return True


def _opponents_by_position(side: WarSide) -> Mapping[int, WarMember]:
    lookup = {
        member.map_position: member
        for member in side.members or ()
        if member.map_position is not None
    }
    return MappingProxyType(lookup)


def _worst_hit(
    member: WarMember, opponents: Sequence[WarMember]
) -> tuple[int, int, int | None] | None:
    """Return ``(stars, attacker_th, attacker_position)`` of the best attack
    against ``member``; ties go to the highest town hall attacker."""
    worst: tuple[int, int, int | None] | None = None
    for opponent in opponents:
        for attack in opponent.attacks:
            if attack.defender_tag != member.tag:
                continue
            candidate = (attack.stars, opponent.town_hall_level, opponent.map_position)
            if (
                worst is None
                or candidate[0] > worst[0]
                or (candidate[0] == worst[0] and candidate[1] > worst[1])
            ):
                worst = candidate
    return worst


def _defense_detail(
    member: WarMember,
    opponents: Sequence[WarMember],
    round_index: int,
    opponent_name: str,
) -> DefenseDetail:
    worst = _worst_hit(member, opponents)
    if worst is None:
        return DefenseDetail(
            round_index=round_index,
            opponent_name=opponent_name,
            stars_defended=MAX_STARS,
            was_attacked=False,
            defender_town_hall=member.town_hall_level,
        )
    stars_lost, attacker_town_hall, attacker_position = worst
    return DefenseDetail(
        round_index=round_index,
        opponent_name=opponent_name,
        stars_defended=max(0, MAX_STARS - stars_lost),
        was_attacked=True,
        defender_town_hall=member.town_hall_level,
        attacker_town_hall=attacker_town_hall or None,
        attacker_map_position=attacker_position,
    )


def score_member_round(
    member: WarMember,
    theirs: WarSide,
    *,
    round_index: int,
    opponent_name: str,
    attacks_per_member: int = 1,
    opponents_by_position: Mapping[int, WarMember] | None = None,
) -> MemberRoundOutcome:
    """Score one member's attacks and defense for a single round."""
    opponents = theirs.members or ()
    if opponents_by_position is None:
        opponents_by_position = _opponents_by_position(theirs)

    mirror = (
        opponents_by_position.get(member.map_position)
        if member.map_position is not None
        else None
    )

    points = 0
    attacked_mirror = False
    first_off_mirror: str | None = None
    details: list[AttackDetail] = []
    for attack in member.attacks:
        defender = theirs.find_member(attack.defender_tag)
        defender_town_hall = defender.town_hall_level if defender else 0
        was_mirror = mirror is not None and attack.defender_tag == mirror.tag
        if was_mirror:
            attacked_mirror = True
        elif first_off_mirror is None:
            first_off_mirror = attack.defender_tag
        bonus = should_award_bonus(defender, member.town_hall_level, opponents)
        points += attack_points(attack.stars, bonus)
        details.append(
            AttackDetail(
                round_index=round_index,
                opponent_name=opponent_name,
                stars=attack.stars,
                defender_tag=attack.defender_tag,
                defender_town_hall=defender_town_hall or None,
                defender_map_position=defender.map_position if defender else None,
                was_higher_th=defender_town_hall > member.town_hall_level,
                bonus_awarded=bonus,
                was_mirror=was_mirror,
            )
        )

    violation = None
    if member.attacks and not attacked_mirror:
        violation = MirrorViolation(
            round_index=round_index,
            opponent_name=opponent_name,
            attacked_tag=first_off_mirror,
            mirror_tag=mirror.tag if mirror else None,
        )

    defense = _defense_detail(member, opponents, round_index, opponent_name)
    points += defense_points(defense)

    return MemberRoundOutcome(
        tag=member.tag,
        name=member.name,
        town_hall_level=member.town_hall_level,
        round_index=round_index,
        points=float(points),
        attack_count=len(member.attacks),
        missed_attacks=attacks_per_member > 0 and not member.attacks,
        attacked_mirror=attacked_mirror,
        attack_details=tuple(details),
        defense_detail=defense,
        mirror_violation=violation,
    )


def score_war_rounds(
    rounds: Iterable[ScheduledRound], clan_tag: str
) -> dict[str, MemberStats]:
    """Aggregate per-member bonus-medal statistics across ``rounds``."""
    stats_by_tag: dict[str, MemberStats] = {}
    for scheduled in sorted(rounds, key=lambda item: item.round_index):
        war = scheduled.war
        if not war.includes_clan(clan_tag):
            log.debug(
                "Round %s does not include clan %s; skipping",
                scheduled.round_index,
                clan_tag,
            )
            continue
        ours, theirs = war.sides_for(clan_tag)
        if ours.members is None or theirs.members is None:
            log.debug("Round %s has no member list; skipping", scheduled.round_index)
            continue

        by_position = _opponents_by_position(theirs)
        for member in ours.members:
            outcome = score_member_round(
                member,
                theirs,
                round_index=scheduled.round_index,
                opponent_name=scheduled.opponent_name,
                attacks_per_member=war.attacks_per_member,
                opponents_by_position=by_position,
            )
            stats = stats_by_tag.get(member.tag)
            if stats is None:
                stats = MemberStats.seed(member)
                stats_by_tag[member.tag] = stats
            stats.apply(outcome)

    for stats in stats_by_tag.values():
        if stats.needs_mirror_review():
            stats.flagged_for_review = True
    return stats_by_tag


def recompute_total_points(stats: MemberStats) -> float:
    """Rebuild a member's total from their attack and defense rows."""
    total = sum(
        attack_points(detail.stars, detail.bonus_awarded)
        for detail in stats.attack_details
    )
    total += sum(defense_points(detail) for detail in stats.defense_details)
    return float(total)


__all__ = [
    "MAX_STARS",
    "attack_points",
    "defense_points",
    "should_award_bonus",
    "score_member_round",
    "score_war_rounds",
    "recompute_total_points",
]
