import importlib
from decision_app.core import config

def test_config_values():
    assert config.SESSION_SECRET is not None
    assert config.DECISION_AI_MODEL
    assert config.CONCLUDE_MIN_PATH_NODES >= 1
    assert config.MIN_OPTIONS <= config.MAX_OPTIONS

def test_config_env_loading(monkeypatch):
    monkeypatch.setenv("DECISION_AI_MODEL", "test-model")
    monkeypatch.setenv("CONCLUDE_MIN_PATH_NODES", "4")
    monkeypatch.setenv("DECISION_AI_API_VERSION", "2024-04-01-preview")

    importlib.reload(config)
    try:
        assert config.DECISION_AI_MODEL == "test-model"
        assert config.CONCLUDE_MIN_PATH_NODES == 4
        assert config.DECISION_AI_API_VERSION == "2024-04-01-preview"
    finally:
        monkeypatch.undo()
        importlib.reload(config)
