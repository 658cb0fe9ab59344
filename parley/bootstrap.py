"""Engine wiring from settings.

Builds an AlignmentEngine with in-memory stores and the configured
customer mutex backend. Callers that persist configuration elsewhere
construct AlignmentEngine directly with their own stores.
"""

from dataclasses import dataclass

import redis.asyncio as redis

from parley.alignment.engine import AlignmentEngine
from parley.alignment.execution import ToolRegistry
from parley.alignment.matching import ConditionEvaluator
from parley.alignment.stores import InMemoryAgentConfigStore
from parley.config import Settings, get_settings
from parley.conversation.stores import InMemorySessionStore
from parley.errors import ConfigurationError
from parley.loaders import AgentDefinitionLoader
from parley.observability.logging import get_logger, setup_logging
from parley.providers.llm import LLMExecutor
from parley.runtime import CustomerMutex, InMemoryCustomerMutex, RedisCustomerMutex
from parley.variables import InMemoryContextVariableStore

logger = get_logger(__name__)


@dataclass
class BootstrapContext:
    """Everything bootstrap() created, for callers that need the stores."""

    settings: Settings
    engine: AlignmentEngine
    config_store: InMemoryAgentConfigStore
    session_store: InMemorySessionStore
    variable_store: InMemoryContextVariableStore
    mutex: CustomerMutex
    tool_registry: ToolRegistry
    loader: AgentDefinitionLoader


def create_mutex(settings: Settings) -> CustomerMutex:
    """Create the customer mutex selected by storage.mutex.backend."""
    config = settings.storage.mutex
    if config.backend == "redis":
        if not config.redis_url:
            raise ConfigurationError("storage.mutex.redis_url is required for the redis backend")
        client = redis.from_url(config.redis_url)
        logger.info("redis_mutex_configured", url=config.redis_url.split("@")[-1])
        return RedisCustomerMutex(
            client,
            lock_timeout=config.lock_timeout,
            blocking_timeout=config.blocking_timeout,
        )
    return InMemoryCustomerMutex(blocking_timeout=config.blocking_timeout)


def bootstrap(
    settings: Settings | None = None,
    *,
    tool_registry: ToolRegistry | None = None,
    evaluator: ConditionEvaluator | None = None,
    executors: dict[str, LLMExecutor] | None = None,
    configure_logging: bool = True,
) -> BootstrapContext:
    """Build an engine and its stores from settings.

    Args:
        settings: Settings to use (defaults to get_settings())
        tool_registry: Registered tools (defaults to an empty registry)
        evaluator: Condition oracle override
        executors: LLM executor overrides by step name
        configure_logging: Apply observability.logging settings

    Returns:
        BootstrapContext holding the engine and everything it was built from
    """
    settings = settings or get_settings()
    if configure_logging:
        log = settings.observability.logging
        setup_logging(level=log.level, format=log.format, redact_pii=log.redact_pii)

    tool_registry = tool_registry or ToolRegistry()
    config_store = InMemoryAgentConfigStore()
    session_store = InMemorySessionStore()
    variable_store = InMemoryContextVariableStore()
    mutex = create_mutex(settings)

    engine = AlignmentEngine(
        config_store=config_store,
        session_store=session_store,
        variable_store=variable_store,
        evaluator=evaluator,
        tool_registry=tool_registry,
        pipeline_config=settings.pipeline,
        mutex=mutex,
        executors=executors,
    )
    logger.info("alignment_engine_initialized", mutex_backend=settings.storage.mutex.backend)

    return BootstrapContext(
        settings=settings,
        engine=engine,
        config_store=config_store,
        session_store=session_store,
        variable_store=variable_store,
        mutex=mutex,
        tool_registry=tool_registry,
        loader=AgentDefinitionLoader(config_store, tool_registry=tool_registry),
    )
