"""Configuration management for snapsolve.

Loads settings from a YAML configuration file with environment variable
overrides. Supports .env files. Provider selection and credentials
(``LLM_PROVIDER``, ``<PROVIDER>_MODEL``, ``<PROVIDER>_API_KEY``) are read
from the process environment by the provider registry, not stored here.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/snapsolve.yaml")


class PipelineConfig(BaseModel):
    provider_timeout: float = Field(default=90.0, gt=0, description="Seconds before a provider call is abandoned")
    max_screenshots_per_call: int = Field(default=5, gt=0)


class LLMConfig(BaseModel):
    max_tokens: int = Field(default=4096, gt=0)
    temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    language: str = Field(default="python", description="Preferred solution language")
    image_max_dimension: int = Field(default=1568, gt=0)
    system_prompt_override: str | None = Field(default=None)


class ServerConfig(BaseModel):
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8765, ge=1, le=65535)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for the snapsolve system.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "SNAPSOLVE_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Priority: env vars > .env file > YAML file > defaults
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    # Non-prefixed vars (LLM_PROVIDER, OPENAI_API_KEY, ...) are read by the
    # provider registry straight from os.environ
    load_dotenv()

    yaml_data = {}
    if path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}
        logger.info("Loaded configuration from %s", path)
    else:
        logger.warning("Config file %s not found, using defaults + env vars", path)

    return Settings(**yaml_data)


def load_dotenv(env_path: Path | str = ".env") -> None:
    """Load a .env file into os.environ without overriding set variables."""
    env_path = Path(env_path)
    if not env_path.exists():
        return
    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip().strip("'\"")
                if not os.environ.get(key):
                    os.environ[key] = value
