"""Configuration management for Agent Cowork."""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Paths
DEFAULT_HOME_DIR = Path("~/.agent-cowork").expanduser()
DEFAULT_CONFIG_PATH = DEFAULT_HOME_DIR / "config.yaml"
DEFAULT_DB_PATH = DEFAULT_HOME_DIR / "sessions.db"
DEFAULT_LOG_DIR = DEFAULT_HOME_DIR / "logs"
DEFAULT_MEMORY_PATH = DEFAULT_HOME_DIR / "memory.md"
LOCAL_CONFIG_FILENAME = "config.yaml"


class ModelConfig(BaseModel):
    """Chat-completion endpoint configuration."""

    base_url: str = ""
    api_key: str = ""
    model: str = ""
    temperature: float = 0.3


class BashToolConfig(BaseModel):
    """Bash tool configuration."""

    timeout: int = 60
    max_output_chars: int = 30000
    blocked: list[str] = [
        "rm -rf /",
        "mkfs",
        ":(){:|:&};:",
    ]


class ReadToolConfig(BaseModel):
    """Read tool configuration."""

    max_bytes: int = 2_000_000
    default_limit: int = 2000


class GlobToolConfig(BaseModel):
    """Glob tool configuration."""

    max_results: int = 200


class GrepToolConfig(BaseModel):
    """Grep tool configuration."""

    max_results: int = 200
    max_file_bytes: int = 1_000_000


class WebSearchToolConfig(BaseModel):
    """Tavily-backed web search and page extraction configuration."""

    api_key: str = ""
    base_url: str = "https://api.tavily.com"
    max_results: int = 5
    timeout: int = 30
    extract_max_chars: int = 20000


class ToolsConfig(BaseModel):
    """Tools configuration."""

    bash: BashToolConfig = Field(default_factory=BashToolConfig)
    read: ReadToolConfig = Field(default_factory=ReadToolConfig)
    glob: GlobToolConfig = Field(default_factory=GlobToolConfig)
    grep: GrepToolConfig = Field(default_factory=GrepToolConfig)
    web_search: WebSearchToolConfig = Field(default_factory=WebSearchToolConfig)


class FeaturesConfig(BaseModel):
    """Optional feature flags."""

    enable_memory: bool = False
    memory_path: str = str(DEFAULT_MEMORY_PATH)


class RunnerConfig(BaseModel):
    """Agent loop configuration."""

    max_iterations: int = 50
    log_requests: bool = False
    log_dir: str = str(DEFAULT_LOG_DIR)


class SessionConfig(BaseModel):
    """Session store configuration."""

    path: str = str(DEFAULT_DB_PATH)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"


class Config(BaseSettings):
    """Main configuration for Agent Cowork."""

    model: ModelConfig = Field(default_factory=ModelConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    features: FeaturesConfig = Field(default_factory=FeaturesConfig)
    runner: RunnerConfig = Field(default_factory=RunnerConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="COWORK_",
        env_file=".env",
        env_nested_delimiter="__",
    )

    @classmethod
    def resolve_default_config_path(cls) -> Path:
        """Resolve default config path with local-first precedence."""
        local_path = Path.cwd() / LOCAL_CONFIG_FILENAME
        if local_path.exists():
            return local_path
        return DEFAULT_CONFIG_PATH

    @classmethod
    def from_yaml(cls, path: Path | str | None = None) -> "Config":
        """Load configuration from YAML file."""
        config_path = Path(path).expanduser() if path else cls.resolve_default_config_path()

        if not config_path.exists():
            return cls()

        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    @classmethod
    def load(cls) -> "Config":
        """Load the default YAML config; ``COWORK_`` environment variables fill unset fields."""
        return cls.from_yaml()

    def save(self, path: Path | str | None = None) -> None:
        """Save configuration to YAML file."""
        config_path = Path(path) if path else DEFAULT_CONFIG_PATH
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump(exclude_none=True)

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    def normalized_base_url(self) -> str:
        """Return the model endpoint with a trailing ``/v1`` segment."""
        base_url = self.model.base_url.strip()
        if not base_url.endswith("/v1"):
            base_url = base_url.rstrip("/") + "/v1"
        return base_url

    def missing_model_settings(self) -> list[str]:
        """List required model settings that are empty."""
        missing: list[str] = []
        if not self.model.base_url.strip():
            missing.append("base_url")
        if not self.model.model.strip():
            missing.append("model")
        return missing


# Global config instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.load()
    return _config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
