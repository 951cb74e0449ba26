"""Discord embeds and components for CWL bonus-medal results."""

from __future__ import annotations

import json
from typing import Final

import discord

from .models import ClanResults, MemberStats, WarRound
from .ranking import split_qualified
from .scoring import attack_points, defense_points

FIELD_LIMIT: Final = 1024
MEMBERS_PER_FIELD: Final = 18
OPTIONS_PER_SELECT: Final = 25
MAX_INSPECT_SELECTS: Final = 3

RESULTS_COLOR: Final = 0x00AE86
WARNING_COLOR: Final = 0xFF9900
ERROR_COLOR: Final = 0xFF0000

NO_DATA_HINT: Final = (
    "\n\nThis is normal for:\n"
    "• New clans that haven't participated in CWL yet\n"
    "• Clans not currently in an active CWL\n"
    "• CWL wars that haven't started yet"
)


def truncate(value: str, limit: int = FIELD_LIMIT) -> str:
    if len(value) <= limit:
        return value
    return value[: limit - 4] + "..."


def town_hall_label(member: MemberStats) -> str:
    return f"TH{member.town_hall_level}" if member.town_hall_level else "TH?"


def member_status(member: MemberStats) -> str:
    if member.disqualified:
        return "❌ Disqualified"
    if member.flagged_for_review:
        return "⚠️ Flagged for Review"
    return "✅ Qualified"


def _qualified_line(position: int, member: MemberStats) -> str:
    flagged = " ⚠️" if member.flagged_for_review else ""
    return (
        f"{position}. **{member.name}** ({town_hall_label(member)}) - "
        f"{member.normalized_points:.2f} pts ({member.total_attacks} attacks){flagged}"
    )


def _disqualified_line(member: MemberStats) -> str:
    line = (
        f"**{member.name}** ({town_hall_label(member)}) - "
        f"{member.disqualification_reason or 'Unknown'}"
    )
    if member.mirror_rule_violations:
        rounds = ", ".join(
            f"War {v.round_index + 1} vs {v.opponent_name}"
            for v in member.mirror_rule_violations
        )
        line += f"\n   Mirror violations: {rounds}"
    return line


def build_clan_results_embed(result: ClanResults) -> discord.Embed:
    embed = discord.Embed(
        title=f"{result.clan_name} - CWL Bonus Medals",
        description=f"Clan Tag: {result.clan_tag}",
        color=RESULTS_COLOR,
    )

    if not result.members:
        embed.color = WARNING_COLOR
        embed.add_field(
            name="⚠️ No Data Available",
            value=truncate((result.error or "No member data available") + NO_DATA_HINT),
            inline=False,
        )
        return embed

    qualified, disqualified = split_qualified(result.members)
    if qualified:
        flagged_count = sum(1 for member in qualified if member.flagged_for_review)
        heading = (
            f"✅ Qualified ({len(qualified)}, {flagged_count} flagged ⚠️)"
            if flagged_count
            else f"✅ Qualified ({len(qualified)})"
        )
        for start in range(0, len(qualified), MEMBERS_PER_FIELD):
            chunk = qualified[start : start + MEMBERS_PER_FIELD]
            lines = "\n".join(
                _qualified_line(start + offset + 1, member)
                for offset, member in enumerate(chunk)
            )
            embed.add_field(
                name=heading if start == 0 else "\u200b",
                value=truncate(lines) or "None",
                inline=False,
            )

    if disqualified:
        lines = "\n".join(_disqualified_line(member) for member in disqualified)
        embed.add_field(
            name=f"❌ Disqualified ({len(disqualified)})",
            value=truncate(lines) or "None",
            inline=False,
        )
    return embed


def build_member_breakdown_embed(member: MemberStats, clan_name: str) -> discord.Embed:
    if member.disqualified:
        color = ERROR_COLOR
    elif member.flagged_for_review:
        color = WARNING_COLOR
    else:
        color = RESULTS_COLOR
    embed = discord.Embed(
        title=f"Score Breakdown: {member.name}",
        description=f"**{clan_name}** • {town_hall_label(member)}",
        color=color,
    )
    embed.add_field(
        name="📊 Summary",
        value=(
            f"**Total Points:** {member.total_points:.2f}\n"
            f"**Total Attacks:** {member.total_attacks}\n"
            f"**Normalized Points:** {member.normalized_points:.2f} pts\n"
            f"**Status:** {member_status(member)}"
        ),
        inline=False,
    )

    if member.disqualification_reason:
        embed.add_field(
            name="❌ Disqualification Reason",
            value=member.disqualification_reason,
            inline=False,
        )

    if member.attack_details:
        lines = []
        for attack in member.attack_details:
            base = attack.stars * 2
            total = attack_points(attack.stars, attack.bonus_awarded)
            mirror = " 🪞" if attack.was_mirror else ""
            bonus = f" + {total - base} TH bonus ⬆️" if total > base else ""
            lines.append(
                f"**War {attack.round_index + 1}** vs {attack.opponent_name}{mirror}\n"
                f"   {attack.stars}⭐ → {total} pts ({base} base{bonus})"
            )
        embed.add_field(
            name=f"⚔️ Attacks ({len(member.attack_details)})",
            value=truncate("\n".join(lines)),
            inline=False,
        )

    if member.defense_details:
        lines = []
        for defense in member.defense_details:
            if defense.was_attacked:
                attacker = (
                    f" (vs TH{defense.attacker_town_hall})"
                    if defense.attacker_town_hall
                    else ""
                )
                summary = f"{defense.stars_defended}⭐ defended{attacker}"
            else:
                summary = "Not attacked"
            lines.append(
                f"**War {defense.round_index + 1}** vs {defense.opponent_name}\n"
                f"   {summary} → {defense_points(defense)} pts"
            )
        embed.add_field(
            name=f"🛡️ Defenses ({len(member.defense_details)})",
            value=truncate("\n".join(lines)),
            inline=False,
        )

    if member.flagged_for_review and member.mirror_rule_violations:
        lines = []
        for violation in member.mirror_rule_violations:
            details = f"**War {violation.round_index + 1}** vs {violation.opponent_name}"
            if violation.mirror_tag and violation.attacked_tag:
                details += (
                    f"\n   Expected: {violation.mirror_tag}"
                    f"\n   Attacked: {violation.attacked_tag}"
                )
            lines.append(details)
        embed.add_field(
            name=f"⚠️ Mirror Rule Review ({len(member.mirror_rule_violations)})",
            value=truncate("\n".join(lines)),
            inline=False,
        )

    embed.add_field(
        name="🧮 Calculation",
        value=(
            "**Point Formula:**\n"
            "• Attack: +2 pts per star\n"
            "• Attack Bonus: +1 pt per star vs a higher TH with no lower TH above it\n"
            "• Defense: +2 pts per star defended vs an equal or higher TH\n"
            "• Not attacked: +2 pts\n"
            "• Normalized: Total points ÷ Total attacks"
        ),
        inline=False,
    )
    return embed


def inspect_option_chunks(result: ClanResults) -> list[list[discord.SelectOption]]:
    """Select options for inspecting members, 25 per menu, at most three menus."""
    if not result.members or result.error:
        return []
    chunks: list[list[discord.SelectOption]] = []
    for start in range(0, len(result.members), OPTIONS_PER_SELECT):
        if len(chunks) >= MAX_INSPECT_SELECTS:
            break
        options = []
        for member in result.members[start : start + OPTIONS_PER_SELECT]:
            markers = (" ⚠️" if member.flagged_for_review else "") + (
                " ❌" if member.disqualified else ""
            )
            options.append(
                discord.SelectOption(
                    label=f"{member.name}{markers}"[:100],
                    value=member.tag,
                    description=(
                        f"{town_hall_label(member)} - {member.normalized_points:.2f} pts"
                    ),
                )
            )
        chunks.append(options)
    return chunks


def inspect_placeholder(result: ClanResults, chunk_index: int, chunk_count: int) -> str:
    total = len(result.members)
    if chunk_count <= 1:
        return f"Inspect {result.clan_name} member ({total} total)"[:150]
    start = chunk_index * OPTIONS_PER_SELECT + 1
    end = min(start + OPTIONS_PER_SELECT - 1, total)
    return f"Inspect {result.clan_name} member ({start}-{end} of {total})"[:150]


def export_round_json(
    war: WarRound, clan_tag: str, month_key: str, day: int
) -> tuple[bytes, str]:
    """Return the cached round as pretty JSON bytes plus an attachment name."""
    payload = json.dumps(war.to_dict(), indent=2).encode("utf-8")
    filename = f"cwl-{clan_tag.lstrip('#')}-{month_key}-day{day}.json"
    return payload, filename


def page_label(page: int, total: int) -> str:
    return f"Page {page + 1}/{max(total, 1)}"


__all__ = [
    "build_clan_results_embed",
    "build_member_breakdown_embed",
    "inspect_option_chunks",
    "inspect_placeholder",
    "export_round_json",
    "page_label",
    "truncate",
]
