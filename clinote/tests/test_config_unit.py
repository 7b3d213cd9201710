from clinote.internal_core.config import load_config


def test_load_config_defaults(monkeypatch) -> None:
    for name in (
        "CLINOTE_TEMPLATE_DIR",
        "CLINOTE_EXTRACTION_MODEL",
        "CLINOTE_MAX_TRANSCRIPT_CHARS",
        "CLINOTE_EXTRACTION_DEBUG_LOG",
        "CLINOTE_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)

    config = load_config()
    assert config.CLINOTE_EXTRACTION_MODEL == "openai/gpt-4-turbo"
    assert config.CLINOTE_MAX_TRANSCRIPT_CHARS == 60000
    assert config.CLINOTE_LOG_LEVEL == "INFO"
    assert config.template_dir_path() is None
    assert config.debug_log_path() is None


def test_load_config_env_overrides(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("CLINOTE_TEMPLATE_DIR", str(tmp_path))
    monkeypatch.setenv("CLINOTE_MAX_TRANSCRIPT_CHARS", "5")
    monkeypatch.setenv("CLINOTE_EXTRACTION_DEBUG_LOG", "true")
    monkeypatch.setenv("CLINOTE_LOG_LEVEL", "debug")

    config = load_config()
    assert config.template_dir_path() == tmp_path.resolve()
    assert config.CLINOTE_MAX_TRANSCRIPT_CHARS == 1000
    assert config.debug_log_path() == "/tmp/clinote_extraction_raw.log"
    assert config.CLINOTE_LOG_LEVEL == "DEBUG"
