"""GUI-agnostic hierarchy engine: models, index, codec, registry and services."""
