import logging

import discord
from discord import app_commands

from cwl_medals import (
    InvalidMonthKeyError,
    compute_bonus_medals_for_clans,
    list_selectable_months,
    validate_month_key,
)
from cwl_medals.service import list_cached_months
from cwl_medals.validation import current_month_key, format_month_label

from .clients import provider, storage, tree
from .config import CWL_CLANS, GUILD_ID, LEADER_ROLE_IDS, SETTINGS_ADMIN_IDS
from .permissions import can_manage_medals
from .views import LeaderboardView, MonthSelectView

log = logging.getLogger("cwl-bot")

cwl_group = app_commands.Group(name="cwl", description="Clan War League tools")


def _is_allowed(interaction: discord.Interaction) -> bool:
    return can_manage_medals(
        interaction.user,
        interaction.guild,
        admin_ids=SETTINGS_ADMIN_IDS,
        leader_role_ids=LEADER_ROLE_IDS,
    )


async def send_leaderboard(interaction: discord.Interaction, month_key: str) -> None:
    """Compute results for every configured clan and post the paged view.

    The interaction must already be deferred.
    """
    results = await compute_bonus_medals_for_clans(
        provider, storage, CWL_CLANS, month_key
    )
    if not results:
        await interaction.followup.send("No clans configured.", ephemeral=True)
        return
    view = LeaderboardView(interaction.user.id, results, month_key, storage)
    view.message = await interaction.followup.send(
        embed=view.current_embed(), view=view, wait=True
    )


async def _on_month_selected(interaction: discord.Interaction, month_key: str) -> None:
    await interaction.response.edit_message(
        content=f"Calculating bonus medals for **{format_month_label(month_key)}**...",
        view=None,
    )
    await send_leaderboard(interaction, month_key)


@cwl_group.command(
    name="bonus-medals", description="Calculate CWL bonus medal standings"
)
@app_commands.describe(month="Month to calculate for, YYYY-MM (defaults to a picker)")
async def bonus_medals(interaction: discord.Interaction, month: str | None = None):
    if interaction.guild is None:
        await interaction.response.send_message(
            "This command can only be used inside a server.", ephemeral=True
        )
        return
    if not _is_allowed(interaction):
        await interaction.response.send_message(
            "Only the server owner, settings admins or leaders can use this command.",
            ephemeral=True,
        )
        return
    if not CWL_CLANS:
        await interaction.response.send_message(
            "No clans configured. Set `CWL_CLANS` to `#TAG=Name,...`.",
            ephemeral=True,
        )
        return

    month_key: str | None = None
    if month:
        try:
            month_key = validate_month_key(month)
        except InvalidMonthKeyError as exc:
            await interaction.response.send_message(str(exc), ephemeral=True)
            return

    await interaction.response.defer()
    if month_key is not None:
        await send_leaderboard(interaction, month_key)
        return

    try:
        options = await list_selectable_months(provider, storage, CWL_CLANS)
    except RuntimeError as exc:
        log.error("Cannot list CWL months: %s", exc)
        await interaction.followup.send(
            "CWL storage is not configured. Contact an admin.", ephemeral=True
        )
        return
    if not options:
        await interaction.followup.send(
            "No CWL data available. Clans are not in an active CWL and no "
            "previous months are cached.",
            ephemeral=True,
        )
        return

    view = MonthSelectView(interaction.user.id, options, _on_month_selected)
    view.message = await interaction.followup.send(
        "Select a month to calculate bonus medals for:", view=view, wait=True
    )


@bonus_medals.autocomplete("month")
async def month_autocomplete(
    interaction: discord.Interaction, current: str
) -> list[app_commands.Choice[str]]:
    try:
        months = list_cached_months(storage, CWL_CLANS)
    except RuntimeError:
        return []
    this_month = current_month_key()
    if this_month not in months:
        months.insert(0, this_month)

    current_lower = current.strip().lower()
    choices: list[app_commands.Choice[str]] = []
    for month in months:
        label = format_month_label(month)
        if current_lower and current_lower not in f"{month} {label}".lower():
            continue
        choices.append(app_commands.Choice(name=f"{label} ({month})", value=month))
        if len(choices) >= 25:
            break
    return choices


if GUILD_ID:
    tree.add_command(cwl_group, guild=discord.Object(id=GUILD_ID))
else:
    tree.add_command(cwl_group)
