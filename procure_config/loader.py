"""
Configuration Loader (``procure_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen
``procure_config.schema`` dataclasses.  Callers use
``procure_config.get_active_config()``; this module is its internal
tooling.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Unknown document type or bad values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from procure_config.schema import AttachmentRule, EngineConfig, ReferenceFormat
from procure_kernel.domain.documents import DocumentType


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; an empty file yields an empty dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_reference_formats(data: dict[str, Any]) -> tuple[ReferenceFormat, ...]:
    return tuple(
        ReferenceFormat(document_type=DocumentType(key), template=str(template))
        for key, template in sorted(data.items())
    )


def parse_attachments(data: dict[str, Any]) -> tuple[AttachmentRule, ...]:
    return tuple(
        AttachmentRule(
            kind=kind,
            content_types=tuple(str(ct).lower() for ct in rule["content_types"]),
            max_bytes=int(rule["max_bytes"]),
        )
        for kind, rule in sorted(data.items())
    )


def parse_config(data: dict[str, Any]) -> EngineConfig:
    """Build an ``EngineConfig`` from a parsed YAML mapping."""
    return EngineConfig(
        config_id=data["config_id"],
        version=int(data["version"]),
        default_currency=str(data["default_currency"]),
        reference_formats=parse_reference_formats(data["reference_formats"]),
        attachments=parse_attachments(data["attachments"]),
        checksum=compute_checksum(data),
    )


def merge_overrides(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Recursively overlay ``overrides`` on ``base`` (mappings merge, others replace)."""
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_overrides(merged[key], value)
        else:
            merged[key] = value
    return merged


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
