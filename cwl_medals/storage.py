from __future__ import annotations

import json
import logging
from typing import Any, ClassVar, Final

from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from .models import MAX_CWL_ROUNDS, WarRound, utc_now_iso
from .validation import MONTH_KEY_PATTERN

log: Final = logging.getLogger("cwl-medals")


class WarRoundStorage:
    """Finished CWL rounds cached per clan, month and day slot (1-7)."""

    PK_TEMPLATE: ClassVar[str] = "CLAN#%s"
    SK_TEMPLATE: ClassVar[str] = "MONTH#%s#DAY#%d"
    MONTH_PREFIX: ClassVar[str] = "MONTH#"

    def __init__(self, table) -> None:
        self._table = table

    def ensure_table(self) -> None:
        if self._table is None:
            raise RuntimeError("CWL table is not configured")

    @staticmethod
    def clan_key(clan_tag: str) -> str:
        return clan_tag.strip().lstrip("#").upper()

    @classmethod
    def key(cls, clan_tag: str, month_key: str, slot: int) -> dict[str, str]:
        return {
            "pk": cls.PK_TEMPLATE % cls.clan_key(clan_tag),
            "sk": cls.SK_TEMPLATE % (month_key, slot),
        }

    @staticmethod
    def _round_from_item(item: dict[str, Any]) -> WarRound | None:
        payload = item.get("payload")
        if not payload:
            return None
        try:
            return WarRound.from_dict(json.loads(str(payload)))
        except (TypeError, ValueError) as exc:
            log.warning("Discarding unreadable cached round %s: %s", item.get("sk"), exc)
            return None

    def _query_all(self, **kwargs) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        while True:
            resp = self._table.query(**kwargs)
            items.extend(resp.get("Items", []))
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    # ----- Single rounds -----
    def load_finished_round(
        self, clan_tag: str, month_key: str, slot: int
    ) -> WarRound | None:
        self.ensure_table()
        try:
            resp = self._table.get_item(Key=self.key(clan_tag, month_key, slot))
        except ClientError as exc:
            log.warning(
                "Failed to load cached round %s/%s/day%s: %s",
                clan_tag,
                month_key,
                slot,
                exc,
            )
            return None
        item = resp.get("Item")
        if not item:
            return None
        return self._round_from_item(item)

    def save_finished_round(
        self, war: WarRound, clan_tag: str, round_index: int
    ) -> bool:
        """Persist ``war`` under day slot ``round_index + 1``.

        Only finished rounds with a readable end time are stored.
        """
        self.ensure_table()
        if not war.is_finished:
            return False
        month_key = war.month_key
        slot = round_index + 1
        if month_key is None or not 1 <= slot <= MAX_CWL_ROUNDS:
            return False

        item: dict[str, Any] = self.key(clan_tag, month_key, slot)
        item.update(
            {
                "clan_tag": clan_tag.upper(),
                "month_key": month_key,
                "day": slot,
                "end_time": war.end_time or "",
                "payload": json.dumps(war.to_dict()),
                "cached_at": utc_now_iso(),
            }
        )
        try:
            self._table.put_item(Item=item)
        except ClientError as exc:
            log.warning("Failed to cache round for %s: %s", clan_tag, exc)
            return False
        return True

    # ----- Months -----
    def list_finished_rounds_for_month(
        self, clan_tag: str, month_key: str
    ) -> dict[int, WarRound]:
        self.ensure_table()
        prefix = f"{self.MONTH_PREFIX}{month_key}#DAY#"
        try:
            items = self._query_all(
                KeyConditionExpression=Key("pk").eq(
                    self.PK_TEMPLATE % self.clan_key(clan_tag)
                )
                & Key("sk").begins_with(prefix),
                Select="ALL_ATTRIBUTES",
            )
        except ClientError as exc:
            log.warning("Failed to list cached rounds for %s: %s", clan_tag, exc)
            return {}

        rounds: dict[int, WarRound] = {}
        for item in items:
            try:
                slot = int(str(item["sk"])[len(prefix) :])
            except (KeyError, ValueError):
                continue
            if not 1 <= slot <= MAX_CWL_ROUNDS:
                continue
            war = self._round_from_item(item)
            if war is not None:
                rounds[slot] = war
        return dict(sorted(rounds.items()))

    def list_available_months(self, clan_tag: str) -> list[str]:
        """Return cached ``YYYY-MM`` keys for a clan, newest first."""
        self.ensure_table()
        try:
            items = self._query_all(
                KeyConditionExpression=Key("pk").eq(
                    self.PK_TEMPLATE % self.clan_key(clan_tag)
                )
                & Key("sk").begins_with(self.MONTH_PREFIX),
                Select="ALL_ATTRIBUTES",
            )
        except ClientError as exc:
            log.error("Error listing months for clan %s: %s", clan_tag, exc)
            return []

        months = {
            str(item["sk"]).split("#")[1]
            for item in items
            if str(item.get("sk", "")).startswith(self.MONTH_PREFIX)
        }
        return sorted(
            (month for month in months if MONTH_KEY_PATTERN.match(month)),
            reverse=True,
        )


__all__ = ["WarRoundStorage"]
