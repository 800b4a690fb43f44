"""Configuration loader and object wiring for taskweave."""

import json
from pathlib import Path

from loguru import logger

from taskweave.agent.agent import Agent
from taskweave.config.schema import Config
from taskweave.memory.base import MemoryStore
from taskweave.memory.factory import create_memory
from taskweave.providers.base import LLMProvider

DEFAULT_CONFIG_DIR = Path.home() / ".taskweave"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file and environment variables.

    Priority: environment variables > config file > defaults.

    Args:
        config_path: Optional path to config file. Defaults to ~/.taskweave/config.json.

    Returns:
        Loaded configuration.
    """
    path = config_path or DEFAULT_CONFIG_FILE

    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            config = Config(**data)
            logger.debug(f"Config loaded from {path}")
            return config
        except Exception as e:
            logger.warning(f"Failed to load config from {path}: {e}, using defaults")

    return Config()


def save_default_config(config_path: Path | None = None) -> Path:
    """
    Save default configuration to file.

    Args:
        config_path: Optional path to save config. Defaults to ~/.taskweave/config.json.

    Returns:
        Path where config was saved.
    """
    path = config_path or DEFAULT_CONFIG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)

    config = Config()
    data = config.model_dump(mode="json")
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")

    logger.info(f"Default config saved to {path}")
    return path


def build_memory_from_config(config: Config, provider: LLMProvider | None = None) -> MemoryStore:
    """
    Create the configured memory strategy.

    Vector and hybrid memories embed through ``provider``; the Chroma
    backend is used when ``memory.vector_backend`` is ``chroma``.
    """
    mem = config.memory
    kind = mem.type

    if kind in ("window", "buffered"):
        return create_memory(kind, max_messages=mem.max_messages)
    if kind == "file":
        return create_memory(kind, path=Path(mem.file_path).expanduser(), max_messages=mem.max_messages)
    if kind == "summary":
        return create_memory(
            kind,
            provider=provider,
            max_messages=mem.max_messages,
            summary_threshold=mem.summary_threshold,
            summary_model=mem.summary_model,
        )

    store = None
    if mem.vector_backend == "chroma":
        from taskweave.memory.vector_stores.chroma import ChromaVectorStore

        store = ChromaVectorStore(collection_name=mem.chroma_collection, path=Path(mem.chroma_path).expanduser())

    if kind == "vector":
        return create_memory(
            kind,
            provider=provider,
            store=store,
            embedding_model=config.providers.embedding_model,
            min_score=mem.min_score,
            default_limit=mem.semantic_limit,
        )
    return create_memory(
        kind,
        provider=provider,
        store=store,
        embedding_model=config.providers.embedding_model,
        min_score=mem.min_score,
        recent_limit=mem.recent_limit,
        semantic_limit=mem.semantic_limit,
        total_limit=mem.total_limit,
        strict=config.agent.strict_memory,
    )


def build_agent_from_config(
    config: Config,
    provider: LLMProvider,
    memory: MemoryStore | None = None,
) -> Agent:
    """
    Create an agent from the ``agent`` section.

    Args:
        config: Application configuration.
        provider: Model backend.
        memory: Store to attach; built from the ``memory`` section when omitted.

    Returns:
        Configured Agent.
    """
    defaults = config.agent
    return Agent(
        provider,
        name=defaults.name,
        instructions=defaults.instructions,
        model=defaults.model,
        memory=memory if memory is not None else build_memory_from_config(config, provider),
        params={"temperature": defaults.temperature, "max_tokens": defaults.max_tokens},
        max_iterations=defaults.max_iterations,
        model_timeout=defaults.model_timeout,
        tool_timeout=defaults.tool_timeout,
        max_model_retries=defaults.max_model_retries,
        retry_backoff=defaults.retry_backoff,
        strict_memory=defaults.strict_memory,
        parallel_tools=defaults.parallel_tools,
    )
