from cwl_medals.models import MemberStats
from cwl_medals.ranking import rank_members, split_qualified


def stats(tag, points, attacks, *, disqualified=False):
    return MemberStats(
        tag=tag,
        name=tag,
        total_points=points,
        total_attacks=attacks,
        disqualified=disqualified,
    )


def test_qualified_members_rank_before_disqualified():
    ranked = rank_members(
        {
            "#A": stats("#A", 40, 4, disqualified=True),
            "#B": stats("#B", 20, 4),
            "#C": stats("#C", 27, 3),
        }
    )

    assert [member.tag for member in ranked] == ["#C", "#B", "#A"]


def test_ranking_uses_points_per_attack():
    ranked = rank_members(
        {
            "#BIG": stats("#BIG", 56, 7),
            "#SMALL": stats("#SMALL", 9, 1),
        }
    )

    assert [member.tag for member in ranked] == ["#SMALL", "#BIG"]


def test_ties_keep_insertion_order():
    ranked = rank_members(
        {
            "#FIRST": stats("#FIRST", 16, 2),
            "#SECOND": stats("#SECOND", 8, 1),
        }
    )

    assert [member.tag for member in ranked] == ["#FIRST", "#SECOND"]


def test_zero_attack_members_sort_last_within_tier():
    ranked = rank_members(
        {
            "#NONE": stats("#NONE", 14, 0),
            "#ONE": stats("#ONE", 2, 1),
        }
    )

    assert ranked[-1].tag == "#NONE"
    assert ranked[-1].normalized_points == 0


def test_split_qualified():
    members = [stats("#A", 8, 1), stats("#B", 0, 0, disqualified=True), stats("#C", 4, 1)]

    qualified, disqualified = split_qualified(members)

    assert [m.tag for m in qualified] == ["#A", "#C"]
    assert [m.tag for m in disqualified] == ["#B"]
