"""Module catalog seed files (JSON or YAML)."""

import json
from pathlib import Path
from typing import List, Optional

import yaml

from ..models import Module

DEFAULT_CATALOG_PATH = Path(__file__).parent / "modules.yaml"


def load_modules(filepath: Optional[str] = None) -> List[Module]:
    """Load module definitions from file, or the bundled default catalog.

    The file holds either a list of modules or a mapping with a ``modules`` key.

    Args:
        filepath: Optional path to a .json, .yaml or .yml catalog file

    Returns:
        List of Module instances sorted by module_id

    Raises:
        FileNotFoundError: If filepath provided but doesn't exist
        ValueError: If the format is unsupported or module ids repeat
    """
    path = Path(filepath) if filepath else DEFAULT_CATALOG_PATH
    if not path.exists():
        raise FileNotFoundError(f"Module catalog not found: {path}")

    if path.suffix == ".json":
        with open(path, "r") as f:
            data = json.load(f)
    elif path.suffix in [".yaml", ".yml"]:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    else:
        raise ValueError(f"Unsupported file format: {path.suffix}. Use .json, .yaml, or .yml")

    entries = data.get("modules", []) if isinstance(data, dict) else (data or [])
    modules = [Module(**entry) for entry in entries]

    seen = set()
    for module in modules:
        if module.module_id in seen:
            raise ValueError(f"Duplicate module_id in catalog: {module.module_id}")
        seen.add(module.module_id)

    return sorted(modules, key=lambda m: m.module_id)


def save_modules(modules: List[Module], filepath: str) -> None:
    """Save module definitions (id, name, description, weights) to file."""
    path = Path(filepath)
    data = {
        "modules": [
            m.model_dump(include={"module_id", "display_name", "description", "features"}, exclude_none=True)
            for m in sorted(modules, key=lambda m: m.module_id)
        ]
    }

    if path.suffix == ".json":
        with open(path, "w") as f:
            json.dump(data, f, indent=2)
    elif path.suffix in [".yaml", ".yml"]:
        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=True)
    else:
        raise ValueError(f"Unsupported file format: {path.suffix}")
