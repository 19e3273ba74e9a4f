import pytest

from model_monitor.config import SERVERLESS_ENV_MARKERS, Settings, load_overrides, override_list


@pytest.fixture
def no_serverless_env(monkeypatch):
    for marker in SERVERLESS_ENV_MARKERS:
        monkeypatch.delenv(marker, raising=False)


def test_defaults(no_serverless_env):
    settings = Settings(api_key="")
    assert settings.cache_ttl_seconds == 120
    assert settings.refresh_interval_seconds == 120
    assert settings.preload_lead_seconds == 60
    assert settings.batch_size == 10
    assert settings.probe_max_tokens == 16
    assert settings.resolved_refresh_mode() == "interval"


@pytest.mark.parametrize("marker", SERVERLESS_ENV_MARKERS)
def test_auto_mode_is_lazy_on_serverless(monkeypatch, no_serverless_env, marker):
    monkeypatch.setenv(marker, "1")
    assert Settings().resolved_refresh_mode() == "lazy"


def test_explicit_mode_wins(monkeypatch):
    monkeypatch.setenv("VERCEL", "1")
    assert Settings(refresh_mode="interval").resolved_refresh_mode() == "interval"


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("MONITOR_BATCH_SIZE", "4")
    monkeypatch.setenv("MONITOR_API_BASE_URL", "http://localhost:9000/v1")
    settings = Settings()
    assert settings.batch_size == 4
    assert settings.api_base_url == "http://localhost:9000/v1"


def test_api_key_falls_back_to_openai_variable(monkeypatch):
    monkeypatch.delenv("MONITOR_API_KEY", raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-from-openai")
    assert Settings().api_key == "sk-from-openai"


def test_load_overrides_reads_yaml(tmp_path):
    path = tmp_path / "overrides.yaml"
    path.write_text("fallback_models:\n  - local-1\n  - ' local-2 '\nchat_indicators: [phi]\n")
    overrides = load_overrides(str(path))
    assert override_list(overrides, "fallback_models") == ["local-1", "local-2"]
    assert override_list(overrides, "chat_indicators") == ["phi"]
    assert override_list(overrides, "non_chat_indicators") is None


def test_load_overrides_empty_path_means_none():
    assert load_overrides("") == {}


def test_load_overrides_empty_file(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_overrides(str(path)) == {}


def test_load_overrides_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_overrides(str(tmp_path / "missing.yaml"))


def test_load_overrides_rejects_non_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ValueError):
        load_overrides(str(path))


def test_override_list_rejects_scalar():
    with pytest.raises(ValueError):
        override_list({"fallback_models": "gpt-4"}, "fallback_models")
