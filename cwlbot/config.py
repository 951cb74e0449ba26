import os
from typing import Final

from cwl_medals.service import ClanEntry
from cwl_medals.validation import InvalidValueError, normalize_tag


def env_int(name: str, *, default: int | None = None) -> int | None:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def env_int_set(name: str) -> frozenset[int]:
    """Parse a comma separated list of Discord IDs, ignoring junk entries."""
    values: set[int] = set()
    for part in (os.getenv(name) or "").split(","):
        part = part.strip()
        if part.isdigit():
            values.add(int(part))
    return frozenset(values)


def parse_clan_entries(raw: str | None) -> list[ClanEntry]:
    """Parse ``#TAG=Name,#TAG2`` into clan entries, keeping order."""
    entries: list[ClanEntry] = []
    seen: set[str] = set()
    for part in (raw or "").split(","):
        part = part.strip()
        if not part:
            continue
        tag_part, _, name = part.partition("=")
        try:
            tag = normalize_tag(tag_part)
        except InvalidValueError:
            continue
        if tag in seen:
            continue
        seen.add(tag)
        entries.append(ClanEntry(tag=tag, name=name.strip() or None))
    return entries


DISCORD_TOKEN: Final[str | None] = os.getenv("DISCORD_TOKEN")
COC_EMAIL: Final[str | None] = os.getenv("COC_EMAIL")
COC_PASSWORD: Final[str | None] = os.getenv("COC_PASSWORD")
CWL_TABLE_NAME: Final[str | None] = os.getenv("CWL_TABLE_NAME")
AWS_REGION: Final[str] = os.getenv("AWS_REGION", "us-east-1")
GUILD_ID: Final[int | None] = env_int("GUILD_ID")
SETTINGS_ADMIN_IDS: Final[frozenset[int]] = env_int_set("SETTINGS_ADMIN_IDS")
LEADER_ROLE_IDS: Final[frozenset[int]] = env_int_set("LEADER_ROLE_IDS")
CWL_CLANS: Final[list[ClanEntry]] = parse_clan_entries(os.getenv("CWL_CLANS"))
LOG_LEVEL: Final[str] = os.getenv("LOG_LEVEL", "INFO").upper()

REQUIRED_VARS = (
    "DISCORD_TOKEN",
    "COC_EMAIL",
    "COC_PASSWORD",
    "CWL_TABLE_NAME",
)
