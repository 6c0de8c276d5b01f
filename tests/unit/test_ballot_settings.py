import pytest

from ballot.settings import Settings, merge_settings


def test_defaults():
    s = Settings()
    assert s.get_strict_delegation() is False
    assert s.as_dict() == {}


def test_as_dict_roundtrip():
    s = Settings(strict_delegation=True, warnings_control="error")
    assert s.as_dict() == {"strict_delegation": True, "warnings_control": "error"}
    assert Settings.from_dict(s.as_dict()) == s


def test_invalid_warnings_control():
    with pytest.raises(ValueError):
        Settings(warnings_control="loud")


def test_from_env(monkeypatch):
    monkeypatch.setenv("BALLOT_STRICT_DELEGATION", "1")
    monkeypatch.setenv("BALLOT_WARNINGS", "none")
    s = Settings.from_env()
    assert s.strict_delegation is True
    assert s.warnings_control == "none"

    monkeypatch.setenv("BALLOT_STRICT_DELEGATION", "0")
    monkeypatch.delenv("BALLOT_WARNINGS")
    s = Settings.from_env()
    assert s.strict_delegation is False
    assert s.warnings_control is None


def test_merge_settings():
    one = Settings(strict_delegation=True)
    two = Settings(warnings_control="error")
    assert merge_settings(one, two) == Settings(strict_delegation=True, warnings_control="error")
    assert merge_settings(one, Settings(strict_delegation=True)) == one


def test_merge_settings_conflict():
    with pytest.raises(ValueError) as excinfo:
        merge_settings(Settings(strict_delegation=True), Settings(strict_delegation=False))
    assert "strict-delegation" in str(excinfo.value)
