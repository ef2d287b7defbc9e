from __future__ import annotations

import pytest

from utatle.config import Settings, load_settings, parse_origins


@pytest.mark.light
def test_load_settings_uses_defaults_without_file(tmp_path):
    settings = load_settings(str(tmp_path / "missing.yaml"), env={})

    assert settings == Settings()
    assert settings.server.cors_origins == ("http://localhost:3000", "http://127.0.0.1:3000")
    assert not settings.translation.enabled


@pytest.mark.light
def test_load_settings_reads_yaml_and_environment(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text(
        "dataset:\n"
        "  year_min: 2010\n"
        "  year_max: 2012\n"
        "cache:\n"
        "  capacity: 2000\n"
        "sampler:\n"
        "  month_attempts: 60\n"
        "server:\n"
        "  port: 8000\n",
        encoding="utf-8",
    )
    env = {
        "DEEPL_KEY": "abc:fx",
        "GITHUB_TOKEN": "ghp_x",
        "CORS_ORIGINS": "https://a.example, ,https://b.example",
        "PORT": "5000",
    }

    settings = load_settings(str(path), env=env)

    assert (settings.dataset.year_min, settings.dataset.year_max) == (2010, 2012)
    assert settings.dataset.owner == "EX3exp"
    assert settings.dataset.token == "ghp_x"
    assert settings.cache.capacity == 2000
    assert settings.cache.ttl_seconds == 3600
    assert settings.sampler.month_attempts == 60
    assert settings.sampler.genre_attempts == 350
    assert settings.translation.enabled
    assert settings.server.port == 5000
    assert settings.server.cors_origins == ("https://a.example", "https://b.example")


@pytest.mark.light
def test_parse_origins_drops_blanks():
    assert parse_origins(" a , ,b,") == ("a", "b")
