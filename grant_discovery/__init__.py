"""Grant discovery pipeline: multi-source ingest, dedup, module scoring and outcome learning."""

__version__ = "0.1.0"
