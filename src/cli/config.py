"""Configuration loading and component construction."""

from pathlib import Path
from typing import Optional

import yaml

from companion.pipeline import TurnPipeline
from llm import create_completion_client
from memory.backend import MemoryBackendAdapter

from .config_models import SymbiosisConfig


def find_config() -> Optional[Path]:
    """Find config file in standard locations."""
    locations = [
        Path.cwd() / "config.yaml",
        Path.home() / ".symbiosis" / "config.yaml",
    ]
    for loc in locations:
        if loc.exists():
            return loc
    return None


def load_config_model(config_path: Optional[Path] = None) -> SymbiosisConfig:
    """Load configuration as Pydantic model with validation."""
    base_config = {}

    path = config_path or find_config()
    if path and path.exists():
        try:
            with open(path) as f:
                base_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in config file: {e}")

    try:
        return SymbiosisConfig.from_dict(base_config)
    except Exception as e:
        raise ValueError(f"Config validation failed: {e}")


def build_pipeline(config: SymbiosisConfig) -> TurnPipeline:
    """Completion client, backend adapter and pipeline for one session."""
    completion = create_completion_client(
        provider=config.llm.provider,
        api_key=config.llm.api_key,
        model=config.llm.model,
        url=config.llm.url,
        timeout=config.llm.timeout,
        max_attempts=config.retry.max_attempts,
        initial_wait=config.retry.initial_wait,
        max_wait=config.retry.max_wait,
        app_title=config.llm.app_title,
        referer=config.llm.referer,
    )
    backend = MemoryBackendAdapter(config.backend.url, timeout=config.backend.timeout)
    return TurnPipeline(
        completion,
        backend,
        user_name=config.session.user_name,
        pronouns=config.session.user_pronouns,
        ghost_audit_rate=config.session.ghost_audit_rate,
        queue_size=config.session.writer_queue_size,
    )
