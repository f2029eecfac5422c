from immomatch.config import Settings


def test_settings_read_env_file_and_environment(monkeypatch):
    monkeypatch.setenv("MATCH_CACHE_TTL_MINUTES", "30")
    settings = Settings()
    assert Settings.model_config["env_file"] == ".env"
    assert settings.match_cache_ttl_minutes == 30
