"""Quantum-inspired primitives: state vectors, analyzers and error correction."""
