"""War-data provider backed by the Clash of Clans API."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, Final, Protocol, TypeVar

import coc

from .models import LeagueGroup, WarRound

log: Final = logging.getLogger("cwl-medals")

T = TypeVar("T")


class CwlDataError(Exception):
    """Raised when CWL data cannot be fetched from the provider."""


class LeagueNotFoundError(CwlDataError):
    """Raised when a clan has no current league group."""


class WarDataProvider(Protocol):
    async def get_league_group(self, clan_tag: str) -> LeagueGroup: ...

    async def get_war(self, war_tag: str) -> WarRound: ...


def _raw_time(value: Any) -> str | None:
    if value is None:
        return None
    raw = getattr(value, "raw_time", None)
    return str(raw) if raw else str(value)


def _side_payload(side: Any) -> dict[str, Any]:
    if side is None:
        return {}
    members = getattr(side, "members", None)
    payload: dict[str, Any] = {
        "tag": getattr(side, "tag", ""),
        "name": getattr(side, "name", ""),
    }
    if members is None:
        return payload
    payload["members"] = [
        {
            "tag": member.tag,
            "name": member.name,
            "townhallLevel": getattr(member, "town_hall", 0) or 0,
            "mapPosition": getattr(member, "map_position", None),
            "attacks": [
                {
                    "attackerTag": attack.attacker_tag,
                    "defenderTag": attack.defender_tag,
                    "stars": attack.stars,
                    "destructionPercentage": getattr(attack, "destruction", 0.0),
                    "order": getattr(attack, "order", None),
                }
                for attack in getattr(member, "attacks", None) or []
            ],
        }
        for member in members
    ]
    return payload


def war_payload_from_coc(war: Any) -> dict[str, Any]:
    """Convert a ``coc.ClanWar`` into the API JSON shape used by the cache."""
    return {
        "state": getattr(war, "state", "") or "",
        "teamSize": getattr(war, "team_size", None),
        "attacksPerMember": getattr(war, "attacks_per_member", None),
        "startTime": _raw_time(getattr(war, "start_time", None)),
        "endTime": _raw_time(getattr(war, "end_time", None)),
        "clan": _side_payload(getattr(war, "clan", None)),
        "opponent": _side_payload(getattr(war, "opponent", None)),
    }


def league_group_from_coc(group: Any) -> LeagueGroup:
    rounds = getattr(group, "rounds", None) or []
    return LeagueGroup.from_dict(
        {
            "state": getattr(group, "state", "") or "",
            "season": getattr(group, "season", None),
            "rounds": [{"warTags": list(war_tags)} for war_tags in rounds],
        }
    )


class CocWarDataProvider:
    """Fetch league groups and league wars through ``coc.Client``.

    A 403 from the API triggers a single re-login (when credentials were
    supplied) before the request is retried.
    """

    def __init__(
        self,
        client: coc.Client,
        email: str | None = None,
        password: str | None = None,
        *,
        max_retries: int = 1,
        reauth_cooldown: int = 60,
    ) -> None:
        self._client = client
        self._email = email
        self._password = password
        self._max_retries = max_retries
        self._reauth_cooldown = reauth_cooldown
        self._reauth_lock = asyncio.Lock()
        self._last_reauth_attempt = 0.0

    async def get_league_group(self, clan_tag: str) -> LeagueGroup:
        try:
            group = await self._call(self._client.get_league_group, clan_tag)
        except coc.NotFound as exc:
            raise LeagueNotFoundError(
                "Clan is not currently in CWL or has no CWL history"
            ) from exc
        return league_group_from_coc(group)

    async def get_war(self, war_tag: str) -> WarRound:
        try:
            war = await self._call(self._client.get_league_war, war_tag)
        except coc.NotFound as exc:
            raise CwlDataError(f"CWL war {war_tag} not found") from exc
        return WarRound.from_dict(war_payload_from_coc(war))

    async def _call(self, func: Callable[..., Awaitable[T]], *args: Any) -> T:
        for attempt in range(self._max_retries + 1):
            try:
                return await func(*args)
            except coc.NotFound:
                raise
            except coc.HTTPException as exc:
                status_code = getattr(exc, "status", None)
                if status_code == 403 and attempt < self._max_retries:
                    log.warning(
                        "CoC API 403 error, attempting re-authentication (attempt %d/%d)",
                        attempt + 1,
                        self._max_retries,
                    )
                    if await self._reauthenticate():
                        continue
                log.error("CoC API error: %s", exc)
                raise CwlDataError(str(exc) or "Clash of Clans API request failed") from exc
        raise CwlDataError("Clash of Clans API request failed: retries exhausted")

    async def _reauthenticate(self) -> bool:
        if not self._email or not self._password:
            return False
        async with self._reauth_lock:
            current_time = time.time()
            if current_time - self._last_reauth_attempt <= self._reauth_cooldown:
                log.debug("Skipping re-authentication (too recent)")
                return True
            try:
                await self._client.login(self._email, self._password)
            except coc.HTTPException as exc:
                log.error("CoC API re-authentication failed: %s", exc)
                return False
            self._last_reauth_attempt = current_time
            log.info("CoC API re-authentication successful")
            return True


__all__ = [
    "CwlDataError",
    "LeagueNotFoundError",
    "WarDataProvider",
    "CocWarDataProvider",
    "war_payload_from_coc",
    "league_group_from_coc",
]
