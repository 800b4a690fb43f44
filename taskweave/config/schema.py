"""Configuration schema using Pydantic."""

from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


class AgentDefaults(BaseModel):
    """Default agent configuration."""

    name: str = "Agent"
    model: str = "openai/gpt-4o-mini"
    instructions: str = ""
    max_tokens: int = 4096
    temperature: float = 0.7
    max_iterations: int = 10
    model_timeout: float | None = 60.0
    tool_timeout: float | None = 30.0
    max_model_retries: int = 2
    retry_backoff: float = 0.5
    strict_memory: bool = False
    parallel_tools: bool = True


class MemoryConfig(BaseModel):
    """Memory strategy configuration."""

    type: Literal["window", "buffered", "summary", "vector", "hybrid", "file"] = "window"
    max_messages: int = 100
    summary_threshold: int = 10
    summary_model: str | None = None
    recent_limit: int = 5
    semantic_limit: int = 5
    total_limit: int = 10
    min_score: float | None = None
    vector_backend: Literal["memory", "chroma"] = "memory"
    chroma_path: str = "~/.taskweave/chroma"
    chroma_collection: str = "taskweave_memory"
    file_path: str = "~/.taskweave/memory.json"


class ProviderConfig(BaseModel):
    """LLM provider configuration."""

    api_key: str = ""
    api_base: str | None = None
    embedding_model: str = "text-embedding-3-small"


class LoggingConfig(BaseModel):
    """Log sink configuration."""

    level: str = "INFO"
    file: str | None = None


class Config(BaseSettings):
    """Root configuration for taskweave."""

    model_config = SettingsConfigDict(env_prefix="TASKWEAVE_", env_nested_delimiter="__")

    agent: AgentDefaults = Field(default_factory=AgentDefaults)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    providers: ProviderConfig = Field(default_factory=ProviderConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # environment variables > config file values > defaults
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    def get_api_key(self) -> str | None:
        return self.providers.api_key or None

    def get_api_base(self) -> str | None:
        return self.providers.api_base or None
