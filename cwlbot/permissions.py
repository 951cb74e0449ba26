from __future__ import annotations

from collections.abc import Collection

import discord


def can_manage_medals(
    member: discord.abc.User | None,
    guild: discord.Guild | None,
    *,
    admin_ids: Collection[int] = (),
    leader_role_ids: Collection[int] = (),
) -> bool:
    """Guild owners, configured admins, administrators and leader roles only."""
    user_id = getattr(member, "id", None)
    if user_id is None:
        return False
    if guild is not None and getattr(guild, "owner_id", None) == user_id:
        return True
    if user_id in admin_ids:
        return True
    guild_perms = getattr(member, "guild_permissions", None)
    if getattr(guild_perms, "administrator", False):
        return True
    roles = getattr(member, "roles", None) or []
    return any(getattr(role, "id", None) in leader_role_ids for role in roles)
