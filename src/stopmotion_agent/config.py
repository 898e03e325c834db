"""
Stop-Motion Agent Configuration
===============================

This module handles configuration loading for the generation service.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    STOPMOTION_BACKEND              -> generation.backend
    STOPMOTION_POSE_COUNT           -> generation.pose_count
    STOPMOTION_FRAME_FAILURE_POLICY -> generation.frame_failure_policy
    STOPMOTION_STRICT_POSES         -> generation.strict_pose_parsing
    STOPMOTION_MAX_DURATION         -> generation.max_duration_seconds
    GEMINI_API_KEY                  -> gemini.api_key
    GOOGLE_GENERATIVE_AI_API_KEY    -> gemini.api_key (fallback)
    STOPMOTION_PLANNER_MODEL        -> gemini.planner_model
    STOPMOTION_RENDERER_MODEL       -> gemini.renderer_model
    STOPMOTION_STORAGE_BACKEND      -> storage.backend
    STOPMOTION_STORAGE_DIR          -> storage.directory
    STOPMOTION_MAX_UPLOAD_BYTES     -> upload.max_bytes
    STOPMOTION_SERVER_URL           -> client.base_url
    STOPMOTION_PORT                 -> server.port
    STOPMOTION_LOG_LEVEL            -> logging.level
    PORT                            -> server.port (Cloud Run)

Example:
    from stopmotion_agent.config import settings

    print(settings.generation.pose_count)
    print(settings.gemini.renderer_model)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from stopmotion_agent.models.state import FrameFailurePolicy


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class AgentConfig(BaseModel):
    """Service identification configuration."""

    name: str = Field(default="stopmotion-agent", description="Service name")
    version: str = Field(default="v0.1.0", description="Protocol version")


class GenerationConfig(BaseModel):
    """Orchestration configuration."""

    backend: str = Field(
        default="mock",
        description="Generation backend: 'mock' or 'gemini'",
    )
    pose_count: int = Field(
        default=12,
        ge=1,
        le=64,
        description="Number of poses requested from the planner",
    )
    frame_failure_policy: FrameFailurePolicy = Field(
        default=FrameFailurePolicy.SKIP,
        description="What to emit when a pose yields no image: 'skip' or 'report'",
    )
    strict_pose_parsing: bool = Field(
        default=False,
        description="Fail the request on unparseable planner output instead of "
                    "treating it as zero poses",
    )
    max_duration_seconds: float = Field(
        default=800.0,
        gt=0,
        description="Upper bound on total processing time per request",
    )


class GeminiConfig(BaseModel):
    """Google Gemini backend configuration."""

    api_key: str = Field(default="", description="Gemini API key")
    planner_model: str = Field(
        default="gemini-2.5-pro",
        description="Model used to plan pose descriptions",
    )
    renderer_model: str = Field(
        default="gemini-2.5-flash-image-preview",
        description="Model used to render image edits",
    )


class StorageConfig(BaseModel):
    """Optional source-image storage."""

    backend: str = Field(default="none", description="Storage backend: 'none' or 'file'")
    directory: str = Field(default=".", description="Root for 'file'; uploads go to <directory>/uploads")


class UploadConfig(BaseModel):
    """Upload limits."""

    max_bytes: int = Field(
        default=20 * 1024 * 1024,
        ge=1,
        description="Largest accepted image upload in bytes",
    )


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8002, ge=1, le=65535, description="Bind port")


class ClientConfig(BaseModel):
    """Streaming client configuration."""

    base_url: str = Field(
        default="http://localhost:8002",
        description="Base URL of a running generation server",
    )
    frame_rate: int = Field(default=12, ge=1, le=60, description="Playback FPS")
    read_timeout_seconds: float = Field(
        default=800.0,
        gt=0,
        description="Read timeout while waiting for the next chunk",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="json", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for the stop-motion agent.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    agent: AgentConfig = Field(default_factory=AgentConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    gemini: GeminiConfig = Field(default_factory=GeminiConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    upload: UploadConfig = Field(default_factory=UploadConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    client: ClientConfig = Field(default_factory=ClientConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    # Find config file
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path("/app/config.yaml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    # Load from YAML if exists
    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    # Apply environment variable overrides
    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Generation settings
    if env_backend := os.environ.get("STOPMOTION_BACKEND"):
        config_data.setdefault("generation", {})["backend"] = env_backend
    if env_count := os.environ.get("STOPMOTION_POSE_COUNT"):
        config_data.setdefault("generation", {})["pose_count"] = int(env_count)
    if env_policy := os.environ.get("STOPMOTION_FRAME_FAILURE_POLICY"):
        config_data.setdefault("generation", {})["frame_failure_policy"] = env_policy.lower()
    if env_strict := os.environ.get("STOPMOTION_STRICT_POSES"):
        config_data.setdefault("generation", {})["strict_pose_parsing"] = _env_flag(env_strict)
    if env_duration := os.environ.get("STOPMOTION_MAX_DURATION"):
        config_data.setdefault("generation", {})["max_duration_seconds"] = float(env_duration)

    # Gemini settings
    if env_key := (
        os.environ.get("GEMINI_API_KEY")
        or os.environ.get("GOOGLE_GENERATIVE_AI_API_KEY")
    ):
        config_data.setdefault("gemini", {})["api_key"] = env_key
    if env_planner := os.environ.get("STOPMOTION_PLANNER_MODEL"):
        config_data.setdefault("gemini", {})["planner_model"] = env_planner
    if env_renderer := os.environ.get("STOPMOTION_RENDERER_MODEL"):
        config_data.setdefault("gemini", {})["renderer_model"] = env_renderer

    # Storage / upload settings
    if env_storage := os.environ.get("STOPMOTION_STORAGE_BACKEND"):
        config_data.setdefault("storage", {})["backend"] = env_storage
    if env_dir := os.environ.get("STOPMOTION_STORAGE_DIR"):
        config_data.setdefault("storage", {})["directory"] = env_dir
    if env_max := os.environ.get("STOPMOTION_MAX_UPLOAD_BYTES"):
        config_data.setdefault("upload", {})["max_bytes"] = int(env_max)

    # Client settings
    if env_url := os.environ.get("STOPMOTION_SERVER_URL"):
        config_data.setdefault("client", {})["base_url"] = env_url

    # Server settings (Cloud Run uses PORT env var)
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("STOPMOTION_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    # Logging settings
    if env_log := os.environ.get("STOPMOTION_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )

    # Suppress noisy third-party HTTP/model logs
    for noisy in ("httpx", "httpcore", "google_genai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# =============================================================================
# Global Settings Instance
# =============================================================================

# Global settings instance - loaded on import
settings = load_config()
setup_logging(settings)
