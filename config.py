"""Configuration management for Ledgerly.

Reads configuration from ~/.config/ledgerly.toml and creates default config if needed.
"""

import os
from pathlib import Path
from dataclasses import dataclass, field, fields, asdict
from typing import Optional
import tomllib
import tomli_w


@dataclass
class CategorizationSettings:
    """Thresholds and learning constants for the categorization cascade.

    The confidence steps and seeds are product-tuning values, so they live
    here instead of in the matchers.
    """

    rule_accept: float = 0.9
    vector_accept: float = 0.75
    llm_accept: float = 0.7
    batch_rule_accept: float = 0.85
    batch_vector_accept: float = 0.75
    vector_min_similarity: float = 0.75
    vector_limit: int = 5
    rule_seed_confidence: float = 0.8
    rule_confidence_step: float = 0.1
    corpus_seed_confidence: float = 0.8
    corpus_confidence_step: float = 0.05
    confidence_cap: float = 1.0
    llm_batch_size: int = 25
    contribute_to_community: bool = True

    @classmethod
    def from_dict(cls, data: dict) -> "CategorizationSettings":
        """Build settings from a TOML table, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class Config:
    """Application configuration."""

    base_dir: Path
    db_data_dir: Path
    db_filename: str
    log_level: str
    log_dir: Path
    llm_enabled: bool = False
    llm_provider: Optional[str] = "openai"
    llm_openai_api_key: str = ""
    llm_openai_model: Optional[str] = "gpt-4o-mini"
    llm_embedding_model: str = "text-embedding-3-small"
    llm_timeout_seconds: float = 20.0
    llm_batch_timeout_seconds: float = 60.0
    categorization: CategorizationSettings = field(
        default_factory=CategorizationSettings
    )

    @property
    def db_path(self) -> Path:
        """Get the full database path (data_dir/filename)."""
        return self.db_data_dir / self.db_filename

    @classmethod
    def default(cls) -> "Config":
        """Create a Config with default values."""
        home = Path.home()
        base_dir = home / "data" / "ledgerly"
        return cls(
            base_dir=base_dir,
            db_data_dir=base_dir / "db",
            db_filename="ledgerly.db",
            log_level="INFO",
            log_dir=base_dir / "logs",
        )


def get_config_path() -> Path:
    """Get the path to the config file."""
    return Path.home() / ".config" / "ledgerly.toml"


def get_migrations_dir() -> Path:
    """Get the path to the migrations directory.

    This is always relative to the code location, not configurable.
    """
    return Path(__file__).parent / "db" / "migrations"


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file, creating default if it doesn't exist.

    Args:
        config_path: Optional override of the config file location.

    Returns:
        Config object with loaded or default values.
    """
    config_path = config_path or get_config_path()

    # If config doesn't exist, create it with defaults
    if not config_path.exists():
        config = Config.default()
        _write_config(config, config_path)
        _apply_env_overrides(config)
        return config

    # Load existing config
    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    # Parse with defaults for any missing values
    base_dir = Path(data.get("base_dir", Path.home() / "data" / "ledgerly"))

    db_config = data.get("database", {})
    db_data_dir = Path(db_config.get("data_dir", base_dir / "db"))
    db_filename = db_config.get("filename", "ledgerly.db")

    log_config = data.get("logging", {})
    log_level = log_config.get("level", "INFO")
    log_dir = Path(log_config.get("log_dir", base_dir / "logs"))

    llm_config = data.get("llm", {})
    openai_config = llm_config.get("openai", {})

    config = Config(
        base_dir=base_dir,
        db_data_dir=db_data_dir,
        db_filename=db_filename,
        log_level=log_level,
        log_dir=log_dir,
        llm_enabled=llm_config.get("enabled", False),
        llm_provider=llm_config.get("provider", "openai"),
        llm_openai_api_key=openai_config.get("api_key", ""),
        llm_openai_model=openai_config.get("model", "gpt-4o-mini"),
        llm_embedding_model=openai_config.get(
            "embedding_model", "text-embedding-3-small"
        ),
        llm_timeout_seconds=float(llm_config.get("timeout_seconds", 20.0)),
        llm_batch_timeout_seconds=float(
            llm_config.get("batch_timeout_seconds", 60.0)
        ),
        categorization=CategorizationSettings.from_dict(
            data.get("categorization", {})
        ),
    )
    _apply_env_overrides(config)
    return config


def _apply_env_overrides(config: Config) -> None:
    """Fill the OpenAI key from the environment when the file leaves it empty."""
    if not config.llm_openai_api_key:
        config.llm_openai_api_key = os.environ.get("OPENAI_API_KEY", "")


def _write_config(config: Config, config_path: Optional[Path] = None) -> None:
    """Write config to the config file.

    Args:
        config: Config object to write.
        config_path: Destination file, defaults to get_config_path().
    """
    config_path = config_path or get_config_path()

    # Ensure config directory exists
    config_path.parent.mkdir(parents=True, exist_ok=True)

    # Convert config to TOML structure
    data = {
        "base_dir": str(config.base_dir),
        "database": {
            "data_dir": str(config.db_data_dir),
            "filename": config.db_filename,
        },
        "logging": {
            "level": config.log_level,
            "log_dir": str(config.log_dir),
        },
        "llm": {
            "enabled": config.llm_enabled,
            "provider": config.llm_provider or "",
            "timeout_seconds": config.llm_timeout_seconds,
            "batch_timeout_seconds": config.llm_batch_timeout_seconds,
            "openai": {
                "api_key": config.llm_openai_api_key,
                "model": config.llm_openai_model or "",
                "embedding_model": config.llm_embedding_model,
            },
        },
        "categorization": asdict(config.categorization),
    }

    # Write TOML file
    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)
