"""Config loading and override merging.

- :func:`load_config`: parse an optional YAML file into a :class:`LabConfig`
- :func:`apply_overrides`: layer CLI values on top, ignoring ``None``
- :func:`write_config`: serialise a config back to YAML

YAML layout::

    autolab:
      region: eu-west-1
      vpc_cidr: 10.0.0.0/16
      ingress_rules:
        - {name: SSH, port: 22, cidr: 203.0.113.7/32}
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from autolab.config.models import LabConfig

ROOT_KEY = "autolab"


def load_config(path: Optional[str | Path] = None) -> LabConfig:
    """Load *path* into a :class:`LabConfig`.

    ``None`` yields the defaults; a *path* that does not exist raises
    :class:`FileNotFoundError`.
    The settings may sit under a top-level ``autolab:`` key or at the root.
    Raises :class:`pydantic.ValidationError` on invalid values.
    """
    raw: Dict[str, Any] = {}
    if path is not None:
        p = Path(path)
        if not p.is_file():
            raise FileNotFoundError(f"Config file not found: {p}")
        with open(p, encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"{p}: expected a mapping at the top level")

    section = raw.get(ROOT_KEY, raw) or {}
    return LabConfig.model_validate(section)


def apply_overrides(cfg: LabConfig, **overrides: Any) -> LabConfig:
    """Return a copy of *cfg* with every non-``None`` override applied.

    The result is re-validated so overrides obey the same rules as file
    values.
    """
    updates = {k: v for k, v in overrides.items() if v is not None}
    if not updates:
        return cfg
    data = cfg.model_dump()
    data.update(updates)
    return LabConfig.model_validate(data)


def write_config(cfg: LabConfig, path: str | Path) -> Path:
    """Write *cfg* as YAML under the ``autolab:`` key and return the path."""
    dest = Path(path)
    dest.parent.mkdir(parents=True, exist_ok=True)
    payload = {ROOT_KEY: cfg.model_dump(mode="json", exclude_none=True)}
    with open(dest, "w", encoding="utf-8") as fh:
        yaml.safe_dump(payload, fh, sort_keys=False, default_flow_style=False)
    return dest
