from dotoracle.config import DEFAULT_DB_PATH, load_settings


def test_defaults(monkeypatch):
    for name in ["DOTORACLE_DB_PATH", "DOTORACLE_RATE_LIMIT", "DOTORACLE_AI_MODEL", "OPENAI_API_KEY"]:
        monkeypatch.delenv(name, raising=False)
    settings = load_settings()
    assert settings.db_path == DEFAULT_DB_PATH
    assert settings.rate_limit_per_day == 30
    assert settings.ai_model == "gpt-4o-mini"
    assert settings.max_clarifier_per_day == 1
    assert settings.ad_cooldown_ms == 2500


def test_env_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("DOTORACLE_DB_PATH", str(tmp_path / "x.db"))
    monkeypatch.setenv("DOTORACLE_RATE_LIMIT", "5")
    monkeypatch.setenv("DOTORACLE_LOG_LEVEL", "debug")
    monkeypatch.setenv("OPENAI_API_KEY", "  sk-test  ")
    settings = load_settings()
    assert settings.db_path == str(tmp_path / "x.db")
    assert settings.rate_limit_per_day == 5
    assert settings.log_level == "DEBUG"
    assert settings.openai_api_key == "sk-test"


def test_unsupported_locale_falls_back_to_english(monkeypatch):
    monkeypatch.setenv("DOTORACLE_LOCALE", "fr")
    assert load_settings().locale == "en"


def test_locale_is_normalized(monkeypatch):
    monkeypatch.setenv("DOTORACLE_LOCALE", " KO ")
    assert load_settings().locale == "ko"
