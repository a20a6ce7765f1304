"""Scoring parameter configuration.

Thresholds are externalized so they can be calibrated without code changes.
"""

import json
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, field_validator


class ScoringParams(BaseModel):
    """Match inclusion threshold and confidence ramp."""

    match_threshold: float = 0.15
    confidence_token_floor: int = 3
    version: str = "1.0"

    @field_validator("match_threshold")
    @classmethod
    def threshold_range(cls, v: float) -> float:
        """Ensure threshold is between 0 and 1."""
        if not 0 <= v <= 1:
            raise ValueError(f"match_threshold must be between 0 and 1, got {v}")
        return v

    @field_validator("confidence_token_floor")
    @classmethod
    def floor_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"confidence_token_floor must be >= 1, got {v}")
        return v


DEFAULT_PARAMS = ScoringParams()


def load_params(filepath: Optional[str] = None) -> ScoringParams:
    """Load scoring parameters from file or return defaults.

    Supports JSON and YAML formats.

    Args:
        filepath: Optional path to parameter file

    Returns:
        ScoringParams instance

    Raises:
        FileNotFoundError: If filepath provided but doesn't exist
        ValueError: If parameters are invalid
    """
    if not filepath:
        return DEFAULT_PARAMS

    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Scoring params file not found: {filepath}")

    if path.suffix == ".json":
        with open(path, "r") as f:
            data = json.load(f)
    elif path.suffix in [".yaml", ".yml"]:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    else:
        raise ValueError(f"Unsupported file format: {path.suffix}. Use .json, .yaml, or .yml")

    return ScoringParams(**data)
