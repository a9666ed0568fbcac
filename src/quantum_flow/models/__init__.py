"""Data models: configuration, entanglement pairs, containers and metrics."""
