import pytest

from market.config import load_settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("QUERY_STALE_SECONDS", "QUERY_RETRY", "DECIMALS"):
            monkeypatch.delenv(name, raising=False)
        s = load_settings()
        assert s.query_stale_seconds == 300.0
        assert s.query_retry == 1
        assert s.decimals == 2

    @pytest.mark.parametrize(
        "name,field,expected",
        [
            ("QUERY_STALE_SECONDS", "query_stale_seconds", 0.0),
            ("QUERY_RETRY", "query_retry", 0),
            ("DECIMALS", "decimals", 0),
        ],
    )
    def test_zero_is_kept(self, monkeypatch, name, field, expected):
        monkeypatch.setenv(name, "0")
        assert getattr(load_settings(), field) == expected

    def test_blank_value_uses_default(self, monkeypatch):
        monkeypatch.setenv("DECIMALS", "  ")
        assert load_settings().decimals == 2
