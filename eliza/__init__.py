from eliza.domain.orchestration.core.agent_runtime import AgentRuntime
from eliza.domain.orchestration.core.message_pipeline import MessagePipeline
from eliza.infrastructure.config.settings import RuntimeSettings, load_settings
from eliza.infrastructure.database.in_memory_adapter import InMemoryDatabaseAdapter
from eliza.infrastructure.observability.logging import setup_logging

__all__ = [
    "AgentRuntime",
    "MessagePipeline",
    "RuntimeSettings",
    "load_settings",
    "InMemoryDatabaseAdapter",
    "setup_logging",
]
