from __future__ import annotations

import io
import logging
from collections.abc import Awaitable, Callable, Sequence

import discord

from cwl_medals import ClanResults, MonthOption, WarRoundStorage
from cwl_medals.embeds import (
    build_clan_results_embed,
    build_member_breakdown_embed,
    export_round_json,
    inspect_option_chunks,
    inspect_placeholder,
    page_label,
)
from cwl_medals.models import MAX_CWL_ROUNDS

log = logging.getLogger("cwl-bot")

MonthCallback = Callable[[discord.Interaction, str], Awaitable[None]]


class _RequesterOnlyView(discord.ui.View):
    def __init__(self, requester_id: int, *, timeout: float = 600) -> None:
        super().__init__(timeout=timeout)
        self.requester_id = requester_id
        self.message: discord.Message | None = None

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if interaction.user.id == self.requester_id:
            return True
        await interaction.response.send_message(
            "Only the member who ran this command can use these controls.",
            ephemeral=True,
        )
        return False

    async def on_timeout(self) -> None:  # pragma: no cover - UI timeout
        for child in self.children:
            if isinstance(child, (discord.ui.Button, discord.ui.Select)):
                child.disabled = True
        if self.message is not None:
            try:
                await self.message.edit(view=self)
            except discord.HTTPException:
                pass


class MonthSelect(discord.ui.Select):
    def __init__(self, options: Sequence[MonthOption], on_select: MonthCallback) -> None:
        self.on_select = on_select
        super().__init__(
            placeholder="Select a month to calculate bonus medals for",
            min_values=1,
            max_values=1,
            options=[
                discord.SelectOption(
                    label=option.label[:100],
                    value=option.month_key,
                    description=option.description[:100],
                )
                for option in options[:25]
            ],
        )

    async def callback(self, interaction: discord.Interaction) -> None:  # type: ignore[override]
        await self.on_select(interaction, self.values[0])


class MonthSelectView(_RequesterOnlyView):
    def __init__(
        self,
        requester_id: int,
        options: Sequence[MonthOption],
        on_select: MonthCallback,
    ) -> None:
        super().__init__(requester_id, timeout=300)
        self.month_select = MonthSelect(options, on_select)
        self.add_item(self.month_select)


class InspectSelect(discord.ui.Select):
    def __init__(
        self,
        leaderboard: LeaderboardView,
        options: list[discord.SelectOption],
        placeholder: str,
        row: int,
    ) -> None:
        self.leaderboard = leaderboard
        super().__init__(
            placeholder=placeholder,
            min_values=1,
            max_values=1,
            options=options,
            row=row,
        )

    async def callback(self, interaction: discord.Interaction) -> None:  # type: ignore[override]
        result = self.leaderboard.current_result
        member = result.find_member(self.values[0])
        if member is None:
            await interaction.response.send_message(
                "That member is no longer in these results.", ephemeral=True
            )
            return
        await interaction.response.send_message(
            embed=build_member_breakdown_embed(member, result.clan_name),
            ephemeral=True,
        )


class ExportDaySelect(discord.ui.Select):
    def __init__(self, storage: WarRoundStorage, result: ClanResults, month_key: str) -> None:
        self.storage = storage
        self.result = result
        self.month_key = month_key
        super().__init__(
            placeholder="Select a CWL day to export",
            min_values=1,
            max_values=1,
            options=[
                discord.SelectOption(label=f"Day {day}", value=str(day))
                for day in range(1, MAX_CWL_ROUNDS + 1)
            ],
        )

    async def callback(self, interaction: discord.Interaction) -> None:  # type: ignore[override]
        day = int(self.values[0])
        try:
            war = self.storage.load_finished_round(
                self.result.clan_tag, self.month_key, day
            )
        except RuntimeError as exc:
            log.warning("Export unavailable: %s", exc)
            war = None
        if war is None:
            await interaction.response.send_message(
                f"No cached data for Day {day} of {self.month_key}.", ephemeral=True
            )
            return
        payload, filename = export_round_json(
            war, self.result.clan_tag, self.month_key, day
        )
        await interaction.response.send_message(
            f"{self.result.clan_name} - Day {day}",
            file=discord.File(io.BytesIO(payload), filename=filename),
            ephemeral=True,
        )


class ExportDayView(_RequesterOnlyView):
    def __init__(
        self,
        requester_id: int,
        storage: WarRoundStorage,
        result: ClanResults,
        month_key: str,
    ) -> None:
        super().__init__(requester_id, timeout=120)
        self.add_item(ExportDaySelect(storage, result, month_key))


class LeaderboardView(_RequesterOnlyView):
    """Pages through per-clan results with export and member inspection."""

    def __init__(
        self,
        requester_id: int,
        results: Sequence[ClanResults],
        month_key: str,
        storage: WarRoundStorage,
    ) -> None:
        super().__init__(requester_id)
        self.results = list(results)
        self.month_key = month_key
        self.storage = storage
        self.page = 0
        self.inspect_selects: list[InspectSelect] = []
        self._sync_components()

    @property
    def current_result(self) -> ClanResults:
        return self.results[self.page]

    def current_embed(self) -> discord.Embed:
        embed = build_clan_results_embed(self.current_result)
        embed.set_footer(text=page_label(self.page, len(self.results)))
        return embed

    def _sync_components(self) -> None:
        total = len(self.results)
        self.previous_page.disabled = self.page <= 0
        self.next_page.disabled = self.page >= total - 1
        self.page_indicator.label = page_label(self.page, total)
        self.export_round.disabled = not total

        for select in self.inspect_selects:
            self.remove_item(select)
        self.inspect_selects = []
        if not total:
            return
        result = self.current_result
        chunks = inspect_option_chunks(result)
        for idx, options in enumerate(chunks):
            select = InspectSelect(
                self,
                options,
                inspect_placeholder(result, idx, len(chunks)),
                row=idx + 1,
            )
            self.inspect_selects.append(select)
            self.add_item(select)

    async def _show_page(self, interaction: discord.Interaction, page: int) -> None:
        self.page = max(0, min(page, len(self.results) - 1))
        self._sync_components()
        await interaction.response.edit_message(embed=self.current_embed(), view=self)

    @discord.ui.button(label="◀ Previous", style=discord.ButtonStyle.secondary, row=0)
    async def previous_page(  # type: ignore[override]
        self, interaction: discord.Interaction, _button: discord.ui.Button
    ) -> None:
        await self._show_page(interaction, self.page - 1)

    @discord.ui.button(
        label="Page 1/1", style=discord.ButtonStyle.secondary, disabled=True, row=0
    )
    async def page_indicator(  # type: ignore[override]
        self, interaction: discord.Interaction, _button: discord.ui.Button
    ) -> None:
        await interaction.response.defer()

    @discord.ui.button(label="Next ▶", style=discord.ButtonStyle.secondary, row=0)
    async def next_page(  # type: ignore[override]
        self, interaction: discord.Interaction, _button: discord.ui.Button
    ) -> None:
        await self._show_page(interaction, self.page + 1)

    @discord.ui.button(label="📥 Export", style=discord.ButtonStyle.primary, row=0)
    async def export_round(  # type: ignore[override]
        self, interaction: discord.Interaction, _button: discord.ui.Button
    ) -> None:
        await interaction.response.send_message(
            f"Export a cached round for **{self.current_result.clan_name}**:",
            view=ExportDayView(
                self.requester_id, self.storage, self.current_result, self.month_key
            ),
            ephemeral=True,
        )


__all__ = [
    "LeaderboardView",
    "MonthSelectView",
    "ExportDayView",
    "InspectSelect",
    "ExportDaySelect",
]
