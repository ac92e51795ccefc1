"""Tests for CLI configuration loading."""

import logging

import pytest

from licensetoken import CliConfig, ConfigError, load_config
from licensetoken.config import parse_csv, parse_pairs


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home


def test_defaults_without_file_or_env():
    config = load_config(environ={})
    assert config == CliConfig()
    assert config.source is None
    assert config.log_level == "WARNING"


def test_yaml_file(tmp_path):
    cfg = tmp_path / "licensetoken.yaml"
    cfg.write_text(
        "private_key: ~/keys/private.pem\n"
        "type: commercial\n"
        "issuer: Acme\n"
        "expires_at: 2099-01-01\n"
        "audience: [acme-desktop, acme-cli]\n"
        "features: export, sync\n"
        "restrictions:\n"
        "  region: US\n"
        "  seats: 5\n"
    )
    config = load_config(cfg, environ={})

    assert config.source == str(cfg)
    assert config.private_key == "~/keys/private.pem"
    assert config.license_type == "commercial"
    assert config.issuer == "Acme"
    assert config.expires_at == "2099-01-01"
    assert config.audience == ("acme-desktop", "acme-cli")
    assert config.features == ("export", "sync")
    assert dict(config.restrictions) == {"region": "US", "seats": "5"}


def test_default_file_in_home(isolated_home):
    (isolated_home / ".licensetoken.yaml").write_text("issuer: Home Corp\n")
    config = load_config(environ={})
    assert config.issuer == "Home Corp"
    assert config.source == str(isolated_home / ".licensetoken.yaml")


def test_empty_file_is_allowed(tmp_path):
    cfg = tmp_path / "empty.yaml"
    cfg.write_text("")
    assert load_config(cfg, environ={}).issuer == ""


def test_environment_overrides_file(tmp_path):
    cfg = tmp_path / "c.yaml"
    cfg.write_text("issuer: File Corp\nsubject: file-subject\n")
    env = {
        "LICENSETOKEN_ISSUER": "Env Corp",
        "LICENSETOKEN_PLANS": "pro, team",
        "LICENSETOKEN_METADATA": "order=A-1,channel=web",
        "UNRELATED": "x",
    }
    config = load_config(cfg, environ=env)

    assert config.issuer == "Env Corp"
    assert config.subject == "file-subject"
    assert config.plans == ("pro", "team")
    assert dict(config.metadata) == {"order": "A-1", "channel": "web"}


def test_merged_overrides_skip_none():
    base = CliConfig(issuer="Acme", features=("export",))
    merged = base.merged(issuer=None, features=["sync"], restrictions=["region=EU"])

    assert merged.issuer == "Acme"
    assert merged.features == ("sync",)
    assert dict(merged.restrictions) == {"region": "EU"}
    assert base.features == ("export",)


def test_unknown_keys_are_ignored(tmp_path, caplog):
    cfg = tmp_path / "c.yaml"
    cfg.write_text("issuer: Acme\ncolour: blue\n")
    with caplog.at_level(logging.WARNING, logger="licensetoken.config"):
        config = load_config(cfg, environ={})
    assert config.issuer == "Acme"
    assert "colour" in caplog.text


def test_missing_explicit_file(tmp_path):
    with pytest.raises(ConfigError, match="Failed to read"):
        load_config(tmp_path / "missing.yaml", environ={})


@pytest.mark.parametrize(
    "text",
    ["issuer: [unclosed\n", "- just\n- a list\n", "issuer: [1, 2]\n", "features: {a: 1}\n", "metadata: 3\n"],
)
def test_invalid_files(tmp_path, text):
    cfg = tmp_path / "bad.yaml"
    cfg.write_text(text)
    with pytest.raises(ConfigError):
        load_config(cfg, environ={})


def test_parse_helpers():
    assert parse_csv("") == []
    assert parse_csv(" a, ,b ") == ["a", "b"]
    assert parse_pairs("region=US, seats=5") == {"region": "US", "seats": "5"}
    assert parse_pairs(["note=a=b"]) == {"note": "a=b"}
    with pytest.raises(ConfigError):
        parse_pairs(["novalue"])
    with pytest.raises(ConfigError):
        parse_pairs(["=x"])


def test_configure_logging_rejects_unknown_level():
    with pytest.raises(ConfigError):
        CliConfig(log_level="chatty").configure_logging()
    CliConfig(log_level="debug").configure_logging()
