import asyncio
import logging
import os

import discord

from . import commands  # noqa: F401
from .clients import bot, coc_client, tree
from .config import (
    COC_EMAIL,
    COC_PASSWORD,
    DISCORD_TOKEN,
    GUILD_ID,
    LOG_LEVEL,
    REQUIRED_VARS,
)

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
log = logging.getLogger("cwl-bot")


@bot.event
async def on_ready():
    await coc_client.login(COC_EMAIL, COC_PASSWORD)
    if GUILD_ID:
        await tree.sync(guild=discord.Object(id=GUILD_ID))
    else:
        await tree.sync()
    log.info("Bot ready as %s (%s)", bot.user, bot.user.id)


async def main() -> None:
    missing = [v for v in REQUIRED_VARS if not os.getenv(v)]
    if missing:
        raise RuntimeError(f"Missing env vars: {', '.join(missing)}")

    try:
        async with bot:
            await bot.start(DISCORD_TOKEN)
    finally:
        await coc_client.close()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
