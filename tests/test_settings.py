import structlog

from eliza.domain.models.character import Character, CharacterSettings
from eliza.infrastructure.config.settings import RuntimeSettings, load_settings, resolve_character_settings
from eliza.infrastructure.observability.logging import (
    MetricsCollector,
    add_agent_context,
    bind_agent_context,
    setup_logging,
)


def test_defaults():
    settings = RuntimeSettings()
    assert settings.conversation_length == 32
    assert settings.model_provider == "openai"
    assert settings.random_seed is None
    assert not settings.retry_policy().bounded


def test_load_settings_reads_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("ELIZA_CONVERSATION_LENGTH", "12")
    monkeypatch.setenv("ELIZA_RANDOM_SEED", "99")
    monkeypatch.setenv("ELIZA_RETRY_MAX_ATTEMPTS", "4")
    monkeypatch.setenv("ELIZA_GENERATION_TIMEOUT", "")

    settings = load_settings(env_file=str(tmp_path / "missing.env"), log_format="console")

    assert settings.conversation_length == 12
    assert settings.random_seed == 99
    assert settings.generation_timeout is None
    assert settings.log_format == "console"
    assert settings.retry_policy().max_attempts == 4


def test_load_settings_reads_env_file(monkeypatch, tmp_path):
    monkeypatch.delenv("ELIZA_MODEL_PROVIDER", raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text("ELIZA_MODEL_PROVIDER=anthropic\n")

    settings = load_settings(env_file=str(env_file))

    assert settings.model_provider == "anthropic"
    monkeypatch.delenv("ELIZA_MODEL_PROVIDER", raising=False)


def test_retry_policy_from_settings():
    policy = RuntimeSettings(retry_max_elapsed=30.0, retry_initial_delay=0.5, retry_max_delay=4.0).retry_policy()
    assert policy.bounded
    assert policy.max_elapsed == 30.0
    assert policy.initial_delay == 0.5
    assert policy.max_delay == 4.0


def test_character_secrets_override_settings():
    character = Character(
        name="Ada",
        settings=CharacterSettings(secrets={"TOKEN": "from-secrets"}, TOKEN="from-settings", VOICE="calm", EMPTY=None),
    )
    assert resolve_character_settings(character) == {"TOKEN": "from-secrets", "VOICE": "calm"}


def test_add_agent_context_copies_bound_identifiers():
    structlog.contextvars.clear_contextvars()
    bind_agent_context("agent-1", "room-1", message_id=None)
    try:
        event = add_agent_context(None, "info", {"event": "hello"})
    finally:
        structlog.contextvars.clear_contextvars()

    assert event["agent_id"] == "agent-1"
    assert event["room_id"] == "room-1"
    assert "message_id" not in event


def test_metrics_summary():
    metrics = MetricsCollector()
    metrics.record_latency("compose_state", 10.0)
    metrics.record_latency("compose_state", 30.0)
    metrics.increment_counter("actions.failed")

    summary = metrics.get_metrics_summary()
    assert summary["latency.compose_state"] == {"count": 2, "avg": 20.0, "min": 10.0, "max": 30.0}
    assert summary["actions.failed"] == 1


def test_setup_logging_installs_agent_processor():
    try:
        setup_logging(log_level="debug", log_format="console", service_name="test-agent")
        processors = structlog.get_config()["processors"]
        assert add_agent_context in processors
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)
        assert structlog.contextvars.get_contextvars()["service"] == "test-agent"
    finally:
        structlog.reset_defaults()
        structlog.contextvars.clear_contextvars()
