"""
Runtime configuration: explicit settings objects and environment loading.
"""

from typing import Any, Dict, List, Optional
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from eliza.domain.generation.retry import RetryPolicy
from eliza.domain.models.character import Character


class RuntimeSettings(BaseModel):
    """Settings handed to an AgentRuntime; the runtime never reads the environment"""
    model_provider: str = Field(default="openai", description="Used when the character names none")
    conversation_length: int = Field(default=32, description="Recent messages loaded per turn")
    embedding_dimension: int = 384

    # Prompt budget
    lore_count: int = 10
    post_examples_count: int = 50
    message_examples_count: int = 5
    bio_lines: int = 3
    goals_count: int = 10
    recent_interactions_limit: int = 20
    action_examples_count: int = 10
    attachment_window_seconds: int = 3600
    max_context_chars: Optional[int] = None
    random_seed: Optional[int] = Field(default=None, description="Fixed seed for reproducible sampling")

    # Generation
    generation_timeout: Optional[float] = Field(default=None, description="Seconds per model call")
    boolean_stop_sequences: Optional[List[str]] = None
    retry_max_attempts: Optional[int] = None
    retry_max_elapsed: Optional[float] = None
    retry_initial_delay: float = 1.0
    retry_max_delay: Optional[float] = None

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"
    service_name: str = "eliza-runtime"

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.retry_max_attempts,
            max_elapsed=self.retry_max_elapsed,
            initial_delay=self.retry_initial_delay,
            max_delay=self.retry_max_delay,
        )


def _optional(value: Optional[str], cast):
    if value is None or value == "":
        return None
    return cast(value)


def load_settings(env_file: Optional[str] = None, **overrides: Any) -> RuntimeSettings:
    """Load settings from ELIZA_* environment variables with defaults"""
    load_dotenv(env_file)

    values: Dict[str, Any] = {
        "model_provider": os.getenv("ELIZA_MODEL_PROVIDER", "openai"),
        "conversation_length": int(os.getenv("ELIZA_CONVERSATION_LENGTH", "32")),
        "embedding_dimension": int(os.getenv("ELIZA_EMBEDDING_DIMENSION", "384")),
        "random_seed": _optional(os.getenv("ELIZA_RANDOM_SEED"), int),
        "generation_timeout": _optional(os.getenv("ELIZA_GENERATION_TIMEOUT"), float),
        "max_context_chars": _optional(os.getenv("ELIZA_MAX_CONTEXT_CHARS"), int),
        "retry_max_attempts": _optional(os.getenv("ELIZA_RETRY_MAX_ATTEMPTS"), int),
        "retry_max_elapsed": _optional(os.getenv("ELIZA_RETRY_MAX_ELAPSED"), float),
        "retry_initial_delay": float(os.getenv("ELIZA_RETRY_INITIAL_DELAY", "1.0")),
        "retry_max_delay": _optional(os.getenv("ELIZA_RETRY_MAX_DELAY"), float),
        "log_level": os.getenv("ELIZA_LOG_LEVEL", os.getenv("LOG_LEVEL", "INFO")),
        "log_format": os.getenv("ELIZA_LOG_FORMAT", "json"),
    }
    values.update(overrides)
    return RuntimeSettings(**values)


def resolve_character_settings(character: Character) -> Dict[str, Any]:
    """Flatten character settings into one map; secrets override plain settings"""
    resolved = {
        key: value
        for key, value in (character.settings.model_extra or {}).items()
        if value is not None
    }
    resolved.update(character.settings.secrets)
    return resolved
