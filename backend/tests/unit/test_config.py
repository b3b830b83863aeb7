from app.core.config import SentryConfig, ServerConfig, WorkflowConfig, get_frontend_origins


def test_workflow_config_defaults(monkeypatch):
    for key in (
        "AUTO_QUEUE_SUBMISSIONS",
        "STORAGE_BUCKET",
        "SIGNED_URL_TTL_SECONDS",
        "SEARCH_RESULT_LIMIT",
        "LATEST_ARTICLES_LIMIT",
    ):
        monkeypatch.delenv(key, raising=False)

    cfg = WorkflowConfig.from_env()
    assert cfg.auto_queue_submissions is False
    assert cfg.storage_bucket == "manuscripts"
    assert cfg.signed_url_ttl == 3600
    assert cfg.search_result_limit == 20
    assert cfg.latest_articles_limit == 10


def test_workflow_config_from_env(monkeypatch):
    monkeypatch.setenv("AUTO_QUEUE_SUBMISSIONS", "yes")
    monkeypatch.setenv("STORAGE_BUCKET", "  ")
    monkeypatch.setenv("SIGNED_URL_TTL_SECONDS", "5")
    monkeypatch.setenv("SEARCH_RESULT_LIMIT", "not-a-number")
    monkeypatch.setenv("LATEST_ARTICLES_LIMIT", "3")

    cfg = WorkflowConfig.from_env()
    assert cfg.auto_queue_submissions is True
    assert cfg.storage_bucket == "manuscripts"
    assert cfg.signed_url_ttl == 60
    assert cfg.search_result_limit == 20
    assert cfg.latest_articles_limit == 3


def test_sentry_config(monkeypatch):
    monkeypatch.delenv("SENTRY_ENABLED", raising=False)
    monkeypatch.delenv("SENTRY_ENVIRONMENT", raising=False)
    monkeypatch.setenv("SENTRY_DSN", "https://key@sentry.test/1")
    monkeypatch.setenv("APP_ENV", "staging")
    monkeypatch.setenv("SENTRY_TRACES_SAMPLE_RATE", "3")

    cfg = SentryConfig.from_env()
    assert cfg.enabled is True
    assert cfg.environment == "staging"
    assert cfg.traces_sample_rate == 1.0

    monkeypatch.delenv("SENTRY_DSN")
    assert SentryConfig.from_env().enabled is False


def test_frontend_origins(monkeypatch):
    monkeypatch.setenv("FRONTEND_ORIGIN", "https://journal.test/")
    monkeypatch.setenv("FRONTEND_ORIGINS", "https://a.test, https://journal.test,,")
    assert get_frontend_origins() == ["https://journal.test", "https://a.test"]

    monkeypatch.delenv("FRONTEND_ORIGIN")
    monkeypatch.delenv("FRONTEND_ORIGINS")
    assert get_frontend_origins() == ["http://localhost:3000"]


def test_server_config(monkeypatch):
    for key in ("HOST", "PORT", "UVICORN_RELOAD"):
        monkeypatch.delenv(key, raising=False)
    cfg = ServerConfig.from_env()
    assert (cfg.host, cfg.port, cfg.reload) == ("0.0.0.0", 8000, False)

    monkeypatch.setenv("HOST", "127.0.0.1")
    monkeypatch.setenv("PORT", "9001")
    monkeypatch.setenv("UVICORN_RELOAD", "true")
    cfg = ServerConfig.from_env()
    assert (cfg.host, cfg.port, cfg.reload) == ("127.0.0.1", 9001, True)
