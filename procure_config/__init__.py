"""
procure_config -- single public entrypoint for engine configuration.

Responsibility:
    ``get_active_config()`` is the only way to obtain configuration at
    runtime.  It loads the packaged ``defaults.yaml``, overlays an optional
    site file, and returns a frozen ``EngineConfig``.

Architecture position:
    Configuration -- sits above ``procure_kernel`` and below
    ``procure_services``.  The kernel never imports from here.

Failure modes:
    - ``FileNotFoundError`` -- the override file does not exist.
    - ``ValueError`` -- schema validation failures.
    - ``yaml.YAMLError`` -- malformed YAML.

Audit relevance:
    Every successful call emits a ``PROCURE_CONFIG_TRACE`` log record with
    the config id, version and checksum.
"""

from __future__ import annotations

from pathlib import Path

from procure_config.loader import load_yaml_file, merge_overrides, parse_config
from procure_config.schema import AttachmentRule, EngineConfig, ReferenceFormat
from procure_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(config_path: Path | str | None = None) -> EngineConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Optional YAML file whose keys override the packaged
            defaults (nested mappings merge key by key).

    Returns:
        A validated, frozen ``EngineConfig``.
    """
    data = load_yaml_file(DEFAULTS_PATH)
    if config_path is not None:
        path = Path(config_path)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        data = merge_overrides(data, load_yaml_file(path))

    config = parse_config(data)

    _logger.info(
        "PROCURE_CONFIG_TRACE",
        extra={
            "trace_type": "PROCURE_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(config_path) if config_path is not None else "defaults",
        },
    )
    return config


__all__ = [
    "AttachmentRule",
    "EngineConfig",
    "ReferenceFormat",
    "get_active_config",
]
