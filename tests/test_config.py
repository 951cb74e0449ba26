from cwlbot.config import REQUIRED_VARS, env_int, env_int_set, parse_clan_entries
from cwl_medals import ClanEntry


def test_env_int(monkeypatch):
    monkeypatch.setenv("CWL_TEST_INT", "42")
    assert env_int("CWL_TEST_INT") == 42

    monkeypatch.setenv("CWL_TEST_INT", "nope")
    assert env_int("CWL_TEST_INT", default=7) == 7

    monkeypatch.delenv("CWL_TEST_INT")
    assert env_int("CWL_TEST_INT") is None


def test_env_int_set_skips_junk(monkeypatch):
    monkeypatch.setenv("CWL_TEST_IDS", "1, 2,abc,,3")

    assert env_int_set("CWL_TEST_IDS") == frozenset({1, 2, 3})


def test_env_int_set_missing(monkeypatch):
    monkeypatch.delenv("CWL_TEST_IDS", raising=False)

    assert env_int_set("CWL_TEST_IDS") == frozenset()


def test_parse_clan_entries():
    entries = parse_clan_entries("#2pp=Main Clan, 9QQ ,#bad-tag=Broken,#2PP=Dupe")

    assert entries == [ClanEntry("#2PP", "Main Clan"), ClanEntry("#9QQ", None)]


def test_parse_clan_entries_empty():
    assert parse_clan_entries(None) == []
    assert parse_clan_entries("") == []


def test_required_vars():
    assert set(REQUIRED_VARS) == {
        "DISCORD_TOKEN",
        "COC_EMAIL",
        "COC_PASSWORD",
        "CWL_TABLE_NAME",
    }
