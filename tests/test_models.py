from cwl_medals.models import (
    MISSED_ATTACKS_REASON,
    DefenseDetail,
    LeagueGroup,
    MemberRoundOutcome,
    MemberStats,
    MirrorViolation,
    WarMember,
    WarRound,
)

API_WAR = {
    "state": "warEnded",
    "teamSize": 15,
    "startTime": "20251202T081925.000Z",
    "endTime": "20251203T081925.000Z",
    "clan": {
        "tag": "#CLAN",
        "name": "Home",
        "members": [
            {
                "tag": "#M1",
                "name": "One",
                "townhallLevel": 15,
                "mapPosition": 1,
                "attacks": [
                    {
                        "attackerTag": "#M1",
                        "defenderTag": "#O1",
                        "stars": 2,
                        "destructionPercentage": 88,
                        "order": 4,
                    }
                ],
            }
        ],
    },
    "opponent": {"tag": "#OPP", "name": "Rivals"},
}


class TestWarRound:
    def test_from_dict_parses_api_shape(self):
        war = WarRound.from_dict(API_WAR)

        assert war.is_finished
        assert war.month_key == "2025-12"
        assert war.attacks_per_member == 1
        assert war.opponent.members is None
        member = war.clan.members[0]
        assert member.town_hall_level == 15
        assert member.attacks[0].stars == 2
        assert member.attacks[0].destruction_percentage == 88.0

    def test_explicit_zero_attacks_per_member_is_kept(self):
        war = WarRound.from_dict({**API_WAR, "attacksPerMember": 0})

        assert war.attacks_per_member == 0

    def test_to_dict_round_trips(self):
        war = WarRound.from_dict(API_WAR)

        assert WarRound.from_dict(war.to_dict()) == war

    def test_sides_for_either_clan(self):
        war = WarRound.from_dict(API_WAR)

        ours, theirs = war.sides_for("#opp")
        assert ours.tag == "#OPP"
        assert theirs.tag == "#CLAN"
        assert war.opponent_name_for("#CLAN") == "Rivals"
        assert war.includes_clan("#clan")
        assert not war.includes_clan("#OTHER")


class TestLeagueGroup:
    def test_placeholder_war_tags_are_dropped(self):
        group = LeagueGroup.from_dict(
            {
                "state": "inWar",
                "season": "2025-12",
                "rounds": [{"warTags": ["#W1", "#W2"]}, {"warTags": ["#0", "#0"]}],
            }
        )

        assert group.is_active
        assert group.resolvable_war_tags() == [["#W1", "#W2"], []]

    def test_not_in_war_is_inactive(self):
        group = LeagueGroup.from_dict({"state": "notInWar", "rounds": [{"warTags": ["#W1"]}]})

        assert not group.is_active

    def test_empty_rounds_is_inactive(self):
        assert not LeagueGroup.from_dict({"state": "preparation"}).is_active


def outcome(round_index, *, town_hall=15, missed=False, points=4.0, mirror=True):
    return MemberRoundOutcome(
        tag="#M1",
        name="One",
        town_hall_level=town_hall,
        round_index=round_index,
        points=points,
        attack_count=0 if missed else 1,
        missed_attacks=missed,
        attacked_mirror=mirror and not missed,
        attack_details=(),
        defense_detail=DefenseDetail(round_index, "Rivals", 3, False, town_hall),
        mirror_violation=None if mirror else MirrorViolation(round_index, "Rivals"),
    )


class TestMemberStats:
    def test_seed_uses_tag_when_name_missing(self):
        stats = MemberStats.seed(WarMember(tag="#M1", name="", town_hall_level=0))

        assert stats.name == "#M1"
        assert stats.town_hall_level is None

    def test_apply_accumulates_and_keeps_first_reason(self):
        stats = MemberStats(tag="#M1", name="One")

        stats.apply(outcome(0, missed=True, points=2.0))
        stats.apply(outcome(1, town_hall=0, mirror=False))

        assert stats.disqualified
        assert stats.disqualification_reason == MISSED_ATTACKS_REASON
        assert stats.total_points == 6.0
        assert stats.total_attacks == 1
        assert stats.town_hall_level == 15
        assert len(stats.defense_details) == 2
        assert len(stats.mirror_rule_violations) == 1
        assert stats.needs_mirror_review()

    def test_normalized_points_without_attacks(self):
        assert MemberStats(tag="#M1", name="One", total_points=10).normalized_points == 0
