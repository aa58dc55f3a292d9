"""YAML config loading."""

from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import MerkledropConfig

_SOURCE_SECTIONS = ("airdrop", "distribution")


def load_config(cli_path: str | None = None) -> MerkledropConfig:
    """Load config with resolution order: CLI > project-local > user-global > defaults.

    Relative ``output`` paths in a CLI or project-local file resolve against
    that file's directory. The user-global file leaves them relative to the
    working directory.
    """
    user_global = Path.home() / ".merkledrop" / "config.yaml"
    config_paths = [
        Path(cli_path) if cli_path else None,
        Path("./merkledrop.yaml"),
        user_global,
    ]

    for path in config_paths:
        if path and path.exists():
            try:
                raw = yaml.safe_load(path.read_bytes().decode("utf-8"))
            except (UnicodeDecodeError, yaml.YAMLError) as e:
                raise ValueError(f"Invalid YAML in {path}: {e}") from e
            if raw is None:
                continue
            if not isinstance(raw, dict):
                raise ValueError(f"Invalid config in {path}: top level must be a mapping")
            if path != user_global:
                raw = _resolve_outputs(raw, path.parent)
            try:
                return MerkledropConfig.model_validate(raw)
            except ValidationError as e:
                raise ValueError(f"Invalid config in {path}: {e}") from e

    return MerkledropConfig()


def _resolve_outputs(raw: dict, base: Path) -> dict:
    """Anchor relative tree ``output`` paths at *base*."""
    resolved = dict(raw)
    for name in _SOURCE_SECTIONS:
        section = raw.get(name)
        if not isinstance(section, dict) or not isinstance(section.get("output"), str):
            continue
        output = Path(section["output"])
        if not output.is_absolute():
            resolved[name] = {**section, "output": str(base / output)}
    return resolved


# Default YAML template for `merkledrop config init`
DEFAULT_CONFIG_TEMPLATE = """\
# merkledrop.yaml

# CSV input
csv:
  delimiter: ","
  encoding: "utf-8-sig"
  skip_blank_rows: true

# Airdrop tree (address, amount, isTop80)
airdrop:
  columns: ["address", "amount", "isTop80"]
  leaf_encoding: ["address", "uint256", "bool"]
  output: "test/utils/airdropTree.json"

# Distribution tree (address, amount)
distribution:
  columns: ["address", "amount"]
  leaf_encoding: ["address", "uint256"]
  output: "test/utils/distributionTree.json"

# Proof lookup
proof:
  address_field: 0               # position of the address in each leaf
  case_sensitive: false

# Logging
log_level: "info"                # debug | info | warn | error
log_format: "text"               # text | json
"""
