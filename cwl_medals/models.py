from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from .validation import month_key_from_timestamp, tags_match

WAR_ENDED = "warEnded"
NOT_IN_WAR = "notInWar"
PLACEHOLDER_WAR_TAG = "#0"
MAX_CWL_ROUNDS = 7
MISSED_ATTACKS_REASON = "Missed attack(s)"
ISO_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now_iso() -> str:
    """Return current UTC timestamp in ISO-8601 format (ms precision)."""
    return datetime.now(UTC).strftime(ISO_FORMAT)


def _int_or_none(value: object) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


@dataclass(slots=True, frozen=True)
class WarAttack:
    attacker_tag: str
    defender_tag: str
    stars: int
    destruction_percentage: float = 0.0
    order: int | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> WarAttack:
        return cls(
            attacker_tag=str(data.get("attackerTag", "")),
            defender_tag=str(data.get("defenderTag", "")),
            stars=_int_or_none(data.get("stars")) or 0,
            destruction_percentage=float(data.get("destructionPercentage") or 0.0),
            order=_int_or_none(data.get("order")),
        )

    def to_dict(self) -> dict[str, Any]:
        item: dict[str, Any] = {
            "attackerTag": self.attacker_tag,
            "defenderTag": self.defender_tag,
            "stars": self.stars,
            "destructionPercentage": self.destruction_percentage,
        }
        if self.order is not None:
            item["order"] = self.order
        return item


@dataclass(slots=True, frozen=True)
class WarMember:
    tag: str
    name: str
    town_hall_level: int = 0
    map_position: int | None = None
    attacks: tuple[WarAttack, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> WarMember:
        tag = str(data.get("tag", ""))
        return cls(
            tag=tag,
            name=str(data.get("name") or tag),
            town_hall_level=_int_or_none(data.get("townhallLevel")) or 0,
            map_position=_int_or_none(data.get("mapPosition")),
            attacks=tuple(
                WarAttack.from_dict(attack) for attack in data.get("attacks") or []
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        item: dict[str, Any] = {"tag": self.tag, "name": self.name}
        if self.town_hall_level:
            item["townhallLevel"] = self.town_hall_level
        if self.map_position is not None:
            item["mapPosition"] = self.map_position
        if self.attacks:
            item["attacks"] = [attack.to_dict() for attack in self.attacks]
        return item


@dataclass(slots=True, frozen=True)
class WarSide:
    tag: str
    name: str
    members: tuple[WarMember, ...] | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> WarSide:
        data = data or {}
        raw_members = data.get("members")
        members = (
            tuple(WarMember.from_dict(member) for member in raw_members if member)
            if raw_members is not None
            else None
        )
        return cls(
            tag=str(data.get("tag", "")),
            name=str(data.get("name") or ""),
            members=members,
        )

    def to_dict(self) -> dict[str, Any]:
        item: dict[str, Any] = {"tag": self.tag, "name": self.name}
        if self.members is not None:
            item["members"] = [member.to_dict() for member in self.members]
        return item

    def find_member(self, tag: str) -> WarMember | None:
        for member in self.members or ():
            if member.tag == tag:
                return member
        return None


@dataclass(slots=True, frozen=True)
class WarRound:
    state: str
    clan: WarSide
    opponent: WarSide
    attacks_per_member: int = 1
    team_size: int | None = None
    start_time: str | None = None
    end_time: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> WarRound:
        attacks_per_member = _int_or_none(data.get("attacksPerMember"))
        return cls(
            state=str(data.get("state") or ""),
            clan=WarSide.from_dict(data.get("clan")),
            opponent=WarSide.from_dict(data.get("opponent")),
            attacks_per_member=1 if attacks_per_member is None else attacks_per_member,
            team_size=_int_or_none(data.get("teamSize")),
            start_time=data.get("startTime") or None,
            end_time=data.get("endTime") or None,
        )

    def to_dict(self) -> dict[str, Any]:
        item: dict[str, Any] = {
            "state": self.state,
            "attacksPerMember": self.attacks_per_member,
            "clan": self.clan.to_dict(),
            "opponent": self.opponent.to_dict(),
        }
        if self.team_size is not None:
            item["teamSize"] = self.team_size
        if self.start_time:
            item["startTime"] = self.start_time
        if self.end_time:
            item["endTime"] = self.end_time
        return item

    @property
    def is_finished(self) -> bool:
        return self.state == WAR_ENDED

    @property
    def month_key(self) -> str | None:
        return month_key_from_timestamp(self.end_time)

    @property
    def has_member_lists(self) -> bool:
        return self.clan.members is not None and self.opponent.members is not None

    def includes_clan(self, clan_tag: str) -> bool:
        return tags_match(self.clan.tag, clan_tag) or tags_match(
            self.opponent.tag, clan_tag
        )

    def sides_for(self, clan_tag: str) -> tuple[WarSide, WarSide]:
        """Return ``(ours, theirs)`` from the point of view of ``clan_tag``."""
        if tags_match(self.clan.tag, clan_tag):
            return self.clan, self.opponent
        return self.opponent, self.clan

    def opponent_name_for(self, clan_tag: str) -> str:
        _, theirs = self.sides_for(clan_tag)
        return theirs.name or "Unknown"


@dataclass(slots=True, frozen=True)
class LeagueGroup:
    state: str
    season: str | None = None
    rounds: tuple[tuple[str, ...], ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> LeagueGroup:
        return cls(
            state=str(data.get("state") or ""),
            season=data.get("season") or None,
            rounds=tuple(
                tuple(str(tag) for tag in round_.get("warTags") or [])
                for round_ in data.get("rounds") or []
            ),
        )

    @property
    def is_active(self) -> bool:
        return self.state != NOT_IN_WAR and bool(self.rounds)

    def resolvable_war_tags(self) -> list[list[str]]:
        """War tags per round with the ``#0`` placeholders removed."""
        return [
            [tag for tag in war_tags if tag and tag != PLACEHOLDER_WAR_TAG]
            for war_tags in self.rounds
        ]


@dataclass(slots=True, frozen=True)
class ScheduledRound:
    war: WarRound
    round_index: int
    opponent_name: str


@dataclass(slots=True, frozen=True)
class AttackDetail:
    round_index: int
    opponent_name: str
    stars: int
    defender_tag: str
    defender_town_hall: int | None
    defender_map_position: int | None
    was_higher_th: bool
    bonus_awarded: bool
    was_mirror: bool

    def to_dict(self) -> dict[str, object]:
        return {
            "round_index": self.round_index,
            "opponent_name": self.opponent_name,
            "stars": self.stars,
            "defender_tag": self.defender_tag,
            "defender_town_hall": self.defender_town_hall,
            "defender_map_position": self.defender_map_position,
            "was_higher_th": self.was_higher_th,
            "bonus_awarded": self.bonus_awarded,
            "was_mirror": self.was_mirror,
        }


@dataclass(slots=True, frozen=True)
class DefenseDetail:
    round_index: int
    opponent_name: str
    stars_defended: int
    was_attacked: bool
    defender_town_hall: int
    attacker_town_hall: int | None = None
    attacker_map_position: int | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "round_index": self.round_index,
            "opponent_name": self.opponent_name,
            "stars_defended": self.stars_defended,
            "was_attacked": self.was_attacked,
            "defender_town_hall": self.defender_town_hall,
            "attacker_town_hall": self.attacker_town_hall,
            "attacker_map_position": self.attacker_map_position,
        }


@dataclass(slots=True, frozen=True)
class MirrorViolation:
    round_index: int
    opponent_name: str
    attacked_tag: str | None = None
    mirror_tag: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "round_index": self.round_index,
            "opponent_name": self.opponent_name,
            "attacked_tag": self.attacked_tag,
            "mirror_tag": self.mirror_tag,
        }


@dataclass(slots=True, frozen=True)
class MemberRoundOutcome:
    """Everything one member contributed in one round."""

    tag: str
    name: str
    town_hall_level: int
    round_index: int
    points: float
    attack_count: int
    missed_attacks: bool
    attacked_mirror: bool
    attack_details: tuple[AttackDetail, ...]
    defense_detail: DefenseDetail
    mirror_violation: MirrorViolation | None = None


@dataclass(slots=True)
class MemberStats:
    tag: str
    name: str
    town_hall_level: int | None = None
    total_points: float = 0.0
    total_attacks: int = 0
    disqualified: bool = False
    disqualification_reason: str | None = None
    flagged_for_review: bool = False
    mirror_rule_violations: list[MirrorViolation] = field(default_factory=list)
    mirror_attacks: set[int] = field(default_factory=set)
    attack_details: list[AttackDetail] = field(default_factory=list)
    defense_details: list[DefenseDetail] = field(default_factory=list)

    @classmethod
    def seed(cls, member: WarMember) -> MemberStats:
        return cls(
            tag=member.tag,
            name=member.name or member.tag,
            town_hall_level=member.town_hall_level or None,
        )

    @property
    def normalized_points(self) -> float:
        if self.total_attacks > 0:
            return self.total_points / self.total_attacks
        return 0.0

    def apply(self, outcome: MemberRoundOutcome) -> None:
        if outcome.town_hall_level:
            self.town_hall_level = outcome.town_hall_level
        if outcome.missed_attacks and not self.disqualified:
            self.disqualified = True
            self.disqualification_reason = MISSED_ATTACKS_REASON
        self.total_points += outcome.points
        self.total_attacks += outcome.attack_count
        self.attack_details.extend(outcome.attack_details)
        self.defense_details.append(outcome.defense_detail)
        if outcome.attacked_mirror:
            self.mirror_attacks.add(outcome.round_index)
        if outcome.mirror_violation is not None:
            self.mirror_rule_violations.append(outcome.mirror_violation)

    def needs_mirror_review(self) -> bool:
        return (
            bool(self.mirror_rule_violations)
            and not self.mirror_attacks
            and self.total_attacks > 0
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "tag": self.tag,
            "name": self.name,
            "town_hall_level": self.town_hall_level,
            "total_points": self.total_points,
            "total_attacks": self.total_attacks,
            "normalized_points": self.normalized_points,
            "disqualified": self.disqualified,
            "disqualification_reason": self.disqualification_reason,
            "flagged_for_review": self.flagged_for_review,
            "mirror_rule_violations": [v.to_dict() for v in self.mirror_rule_violations],
            "mirror_attacks": sorted(self.mirror_attacks),
            "attack_details": [d.to_dict() for d in self.attack_details],
            "defense_details": [d.to_dict() for d in self.defense_details],
        }


@dataclass(slots=True)
class ClanResults:
    clan_tag: str
    clan_name: str
    members: list[MemberStats] = field(default_factory=list)
    error: str | None = None

    @classmethod
    def failed(cls, clan_tag: str, clan_name: str | None, error: str) -> ClanResults:
        return cls(clan_tag=clan_tag, clan_name=clan_name or clan_tag, error=error)

    def find_member(self, tag: str) -> MemberStats | None:
        for member in self.members:
            if member.tag == tag:
                return member
        return None


__all__ = [
    "WAR_ENDED",
    "NOT_IN_WAR",
    "PLACEHOLDER_WAR_TAG",
    "MAX_CWL_ROUNDS",
    "MISSED_ATTACKS_REASON",
    "utc_now_iso",
    "WarAttack",
    "WarMember",
    "WarSide",
    "WarRound",
    "LeagueGroup",
    "ScheduledRound",
    "AttackDetail",
    "DefenseDetail",
    "MirrorViolation",
    "MemberRoundOutcome",
    "MemberStats",
    "ClanResults",
]
