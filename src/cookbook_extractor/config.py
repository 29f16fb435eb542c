"""Configuration management for cookbook_extractor.

This module provides a centralized configuration system that supports:
- Default values for all settings
- Loading from TOML configuration files
- Environment variable overrides
- Validation of configuration values

Configuration priority (highest to lowest):
1. CLI arguments (applied with ``update``)
2. Environment variables (COOKBOOK_EXTRACTOR_*)
3. Project config file (.cookbook-extractor.toml)
4. User config file (~/.config/cookbook-extractor/config.toml)
5. Default values

Example:
    >>> config = ExtractionConfig.load()
    >>> config.update(confidence_threshold=0.7)
    >>> config.save("~/.config/cookbook-extractor/config.toml")
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .exceptions import ConfigurationError

ENV_PREFIX = "COOKBOOK_EXTRACTOR_"
TOML_SECTION = "cookbook-extractor"

DEFAULT_SECTION_KEYWORDS = (
    "ingredients",
    "instructions",
    "directions",
    "method",
    "recipe",
    "preparation",
    "servings",
    "prep time",
    "cook time",
)


@dataclass
class ExtractionConfig:
    """Configuration for the recipe extraction pipeline.

    Attributes:
        Model Settings:
            model: OpenAI model used for extraction
            temperature: Sampling temperature (0.0 = deterministic)
            max_output_tokens: Upper bound on tokens in one extraction response

        Pipeline Settings:
            adaptive_cleaning_enabled: Retry with less restrictive cleaning
                strategies when the model is unsure
            confidence_threshold: Minimum "might be a recipe" confidence that
                justifies another cleaning strategy
            validation_max_retries: Feedback round-trips after a failed
                validation (0 disables validation)
            schema_version: Schema version stamped on every returned recipe

        Cache Settings:
            cache_enabled: Read and write the content-hash result cache
            cache_lookup_timeout_ms: Deadline for a cache lookup
            cache_save_timeout_ms: Deadline for a cache write
            cache_count_timeout_ms: Deadline for counting cache entries
            cache_dir: Directory of the file-backed cache store

        HTML Cleanup Settings:
            html_cleanup_enabled: Clean HTML before extraction
            structured_data_enabled: Try JSON-LD recipe data first
            structured_min_completeness: Minimum JSON-LD completeness score (0-100)
            section_based_enabled: Try recipe-looking page sections
            section_min_confidence: Minimum section score (0-100)
            section_keywords: Words that mark recipe content
            min_output_size: Smallest cleaned output accepted (characters)

        Fetch Settings:
            fetch_timeout: Read timeout when downloading pages (seconds)

        Output Settings:
            debug_mode: Enable debug output and logging

    Example:
        >>> config = ExtractionConfig()
        >>> config.confidence_threshold
        0.5
    """

    # Model settings
    model: str = "gpt-5-nano"
    temperature: float = 0.0
    max_output_tokens: int = 16000

    # Pipeline settings
    adaptive_cleaning_enabled: bool = True
    confidence_threshold: float = 0.5
    validation_max_retries: int = 1
    schema_version: str = "1.0.0"

    # Cache settings
    cache_enabled: bool = True
    cache_lookup_timeout_ms: int = 200
    cache_save_timeout_ms: int = 5000
    cache_count_timeout_ms: int = 1000
    cache_dir: Path = field(default_factory=lambda: Path(".cookbook-cache"))

    # HTML cleanup settings
    html_cleanup_enabled: bool = True
    structured_data_enabled: bool = True
    structured_min_completeness: int = 60
    section_based_enabled: bool = True
    section_min_confidence: int = 50
    section_keywords: list[str] = field(default_factory=lambda: list(DEFAULT_SECTION_KEYWORDS))
    min_output_size: int = 500

    # Fetch settings
    fetch_timeout: float = 15.0

    # Output settings
    debug_mode: bool = False

    def __post_init__(self) -> None:
        """Validate configuration values after initialization."""
        self._validate()

    def _validate(self) -> None:
        """Validate configuration values.

        Raises:
            ConfigurationError: If any configuration value is invalid
        """
        valid_models = {"gpt-5-nano", "gpt-5-mini", "gpt-5", "gpt-4o", "gpt-4o-mini"}
        if self.model not in valid_models:
            raise ConfigurationError(
                f"Invalid model: {self.model}",
                model=self.model,
                valid_models=", ".join(sorted(valid_models)),
            )

        if not 0.0 <= self.temperature <= 2.0:
            raise ConfigurationError(
                "Temperature must be between 0.0 and 2.0",
                temperature=self.temperature,
            )

        if self.max_output_tokens < 1:
            raise ConfigurationError(
                "max_output_tokens must be at least 1",
                max_output_tokens=self.max_output_tokens,
            )

        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ConfigurationError(
                "confidence_threshold must be between 0.0 and 1.0",
                confidence_threshold=self.confidence_threshold,
            )

        if self.validation_max_retries < 0:
            raise ConfigurationError(
                "validation_max_retries must be non-negative",
                validation_max_retries=self.validation_max_retries,
            )

        for name in ("cache_lookup_timeout_ms", "cache_save_timeout_ms", "cache_count_timeout_ms"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive", **{name: getattr(self, name)})

        for name in ("structured_min_completeness", "section_min_confidence"):
            if not 0 <= getattr(self, name) <= 100:
                raise ConfigurationError(
                    f"{name} must be between 0 and 100", **{name: getattr(self, name)}
                )

        if self.min_output_size < 0:
            raise ConfigurationError(
                "min_output_size must be non-negative",
                min_output_size=self.min_output_size,
            )

        if self.fetch_timeout <= 0:
            raise ConfigurationError(
                "fetch_timeout must be positive",
                fetch_timeout=self.fetch_timeout,
            )

        # Environment variables arrive as comma separated strings
        if isinstance(self.section_keywords, str):
            self.section_keywords = [
                word.strip() for word in self.section_keywords.split(",") if word.strip()
            ]

        if not isinstance(self.cache_dir, Path):  # type: ignore[reportUnnecessaryIsInstance]
            self.cache_dir = Path(self.cache_dir)

    @classmethod
    def load(
        cls,
        config_path: str | Path | None = None,
        load_user_config: bool = True,
        load_env: bool = True,
    ) -> "ExtractionConfig":
        """Load configuration from file(s) and environment variables.

        Configuration is loaded in this order (later overrides earlier):
        1. Default values
        2. User config file (~/.config/cookbook-extractor/config.toml)
        3. Project config file (.cookbook-extractor.toml or specified path)
        4. Environment variables (COOKBOOK_EXTRACTOR_*)

        Args:
            config_path: Path to project config file (optional)
            load_user_config: Whether to load user config file
            load_env: Whether to load environment variables

        Returns:
            Loaded and validated configuration

        Raises:
            ConfigurationError: If configuration is invalid
        """
        config_dict: dict[str, Any] = {}

        if load_user_config:
            user_config_path = Path.home() / ".config" / "cookbook-extractor" / "config.toml"
            if user_config_path.exists():
                config_dict.update(cls._load_toml(user_config_path))

        if config_path:
            project_path = Path(config_path)
            if project_path.exists():
                config_dict.update(cls._load_toml(project_path))
        else:
            default_path = Path(".cookbook-extractor.toml")
            if default_path.exists():
                config_dict.update(cls._load_toml(default_path))

        if load_env:
            config_dict.update(cls._load_env())

        unknown = set(config_dict) - set(cls.__dataclass_fields__)
        if unknown:
            raise ConfigurationError(
                "Unknown configuration keys",
                keys=", ".join(sorted(unknown)),
            )

        return cls(**config_dict)

    @staticmethod
    def _load_toml(path: Path) -> dict[str, Any]:
        """Load configuration from TOML file.

        Args:
            path: Path to TOML file

        Returns:
            Dictionary of configuration values

        Raises:
            ConfigurationError: If TOML file is invalid
        """
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)

            if TOML_SECTION in data:
                return data[TOML_SECTION]
            return data

        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigurationError(
                f"Failed to load configuration from {path}",
                path=str(path),
                error=str(e),
            ) from e

    @staticmethod
    def _load_env() -> dict[str, Any]:
        """Load configuration from environment variables.

        Environment variables are prefixed with COOKBOOK_EXTRACTOR_ and use
        uppercase snake_case. For example:
        - COOKBOOK_EXTRACTOR_MODEL=gpt-5-mini
        - COOKBOOK_EXTRACTOR_CONFIDENCE_THRESHOLD=0.7
        - COOKBOOK_EXTRACTOR_CACHE_ENABLED=false

        Returns:
            Dictionary of configuration values from environment
        """
        config: dict[str, Any] = {}

        for key, value in os.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue

            config_key = key[len(ENV_PREFIX) :].lower()

            if value.lower() in ("true", "yes"):
                config[config_key] = True
            elif value.lower() in ("false", "no"):
                config[config_key] = False
            elif value.isdigit():
                config[config_key] = int(value)
            elif value.replace(".", "", 1).isdigit():
                config[config_key] = float(value)
            else:
                config[config_key] = value

        return config

    def save(self, path: str | Path) -> None:
        """Save configuration to TOML file.

        Args:
            path: Path to save configuration file

        Raises:
            ConfigurationError: If save fails
        """
        import tomli_w

        path = Path(path).expanduser()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "wb") as f:
                tomli_w.dump(self.to_dict(), f)
        except (OSError, TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Failed to save configuration to {path}",
                path=str(path),
                error=str(e),
            ) from e

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary.

        Returns:
            Dictionary representation of configuration
        """
        result: dict[str, Any] = {}
        for key, value in self.__dict__.items():
            if isinstance(value, Path):
                result[key] = str(value)
            elif isinstance(value, list):
                result[key] = list(value)
            else:
                result[key] = value
        return result

    def update(self, **kwargs: Any) -> None:
        """Update configuration values.

        Args:
            **kwargs: Configuration values to update

        Raises:
            ConfigurationError: If a key is unknown or updated values are invalid

        Example:
            >>> config = ExtractionConfig()
            >>> config.update(validation_max_retries=2, cache_enabled=False)
        """
        for key, value in kwargs.items():
            if key in self.__dataclass_fields__:
                setattr(self, key, value)
            else:
                raise ConfigurationError(
                    f"Unknown configuration key: {key}",
                    key=key,
                    valid_keys=", ".join(self.__dataclass_fields__.keys()),
                )

        self._validate()
