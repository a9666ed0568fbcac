"""
Compression parameters with range and feasibility validation.
"""

import json
import math
import numbers
from typing import Any, Dict, List, Optional

from ..exceptions import InvalidParameterError, ProfileNotFoundError

MAX_COMPUTATIONAL_COMPLEXITY = 10_000_000
SMALL_DATA_SIZE = 1024
LARGE_DATA_SIZE = 1024 * 1024

PARAMETER_RANGES = {
    "quantum_bit_depth": {"min": 2, "max": 16, "recommended": [4, 6, 8, 10, 12]},
    "max_entanglement_level": {"min": 1, "max": 8, "recommended": [2, 3, 4, 5, 6]},
    "superposition_complexity": {"min": 1, "max": 10, "recommended": [3, 4, 5, 6, 7]},
    "interference_threshold": {"min": 0.1, "max": 0.9, "recommended": [0.3, 0.4, 0.5, 0.6, 0.7]},
}


class QuantumConfig:
    """
    Validated parameter set for one compression run.

    Every setter re-checks the individual range and the cross-field
    constraints before assigning, so an instance is never left invalid.

    Args:
        quantum_bit_depth: Simulated qubit depth, integer in [2, 16]
        max_entanglement_level: Integer in [1, 8], at most half the bit depth
        superposition_complexity: Integer in [1, 10], at most the bit depth
        interference_threshold: Float in [0.1, 0.9]
        profile_name: Optional label of the preset this came from
    """

    def __init__(self, quantum_bit_depth: int = 8, max_entanglement_level: int = 4,
                 superposition_complexity: int = 5, interference_threshold: float = 0.5,
                 profile_name: Optional[str] = None):
        _validate_bit_depth(quantum_bit_depth)
        _validate_entanglement_level(max_entanglement_level)
        _validate_complexity(superposition_complexity)
        _validate_threshold(interference_threshold)
        _validate_combination(quantum_bit_depth, max_entanglement_level, superposition_complexity)

        self._quantum_bit_depth = int(quantum_bit_depth)
        self._max_entanglement_level = int(max_entanglement_level)
        self._superposition_complexity = int(superposition_complexity)
        self._interference_threshold = float(interference_threshold)
        self.profile_name = profile_name

    @property
    def quantum_bit_depth(self) -> int:
        return self._quantum_bit_depth

    @quantum_bit_depth.setter
    def quantum_bit_depth(self, value: int) -> None:
        _validate_bit_depth(value)
        _validate_combination(value, self._max_entanglement_level, self._superposition_complexity)
        self._quantum_bit_depth = int(value)

    @property
    def max_entanglement_level(self) -> int:
        return self._max_entanglement_level

    @max_entanglement_level.setter
    def max_entanglement_level(self, value: int) -> None:
        _validate_entanglement_level(value)
        _validate_combination(self._quantum_bit_depth, value, self._superposition_complexity)
        self._max_entanglement_level = int(value)

    @property
    def superposition_complexity(self) -> int:
        return self._superposition_complexity

    @superposition_complexity.setter
    def superposition_complexity(self, value: int) -> None:
        _validate_complexity(value)
        _validate_combination(self._quantum_bit_depth, self._max_entanglement_level, value)
        self._superposition_complexity = int(value)

    @property
    def interference_threshold(self) -> float:
        return self._interference_threshold

    @interference_threshold.setter
    def interference_threshold(self, value: float) -> None:
        _validate_threshold(value)
        self._interference_threshold = float(value)

    # Presets

    @classmethod
    def for_text_compression(cls) -> "QuantumConfig":
        return cls(6, 3, 4, 0.4, "text-optimized")

    @classmethod
    def for_binary_compression(cls) -> "QuantumConfig":
        return cls(8, 4, 6, 0.6, "binary-optimized")

    @classmethod
    def for_image_compression(cls) -> "QuantumConfig":
        return cls(10, 5, 7, 0.7, "image-optimized")

    @classmethod
    def for_high_performance(cls) -> "QuantumConfig":
        """More resource intensive, better compression."""
        return cls(12, 6, 8, 0.8, "high-performance")

    @classmethod
    def for_low_resource(cls) -> "QuantumConfig":
        """Faster, less compression."""
        return cls(4, 2, 3, 0.3, "low-resource")

    @classmethod
    def from_preset(cls, name: str) -> "QuantumConfig":
        """
        Build a preset by its short name (see ``PRESETS``).

        Raises:
            ProfileNotFoundError: for unknown preset names
        """
        try:
            factory = PRESETS[name]
        except KeyError:
            raise ProfileNotFoundError(
                f"Unknown configuration preset '{name}'",
                suggestions=[f"Available presets: {', '.join(sorted(PRESETS))}"]) from None
        return factory()

    # Serialization

    def to_dict(self) -> Dict[str, Any]:
        return {
            "quantum_bit_depth": self._quantum_bit_depth,
            "max_entanglement_level": self._max_entanglement_level,
            "superposition_complexity": self._superposition_complexity,
            "interference_threshold": self._interference_threshold,
            "profile_name": self.profile_name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuantumConfig":
        """Missing keys fall back to the defaults; unknown keys are ignored."""
        defaults = cls()
        return cls(
            data.get("quantum_bit_depth", defaults.quantum_bit_depth),
            data.get("max_entanglement_level", defaults.max_entanglement_level),
            data.get("superposition_complexity", defaults.superposition_complexity),
            data.get("interference_threshold", defaults.interference_threshold),
            data.get("profile_name"),
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, text: str) -> "QuantumConfig":
        try:
            data = json.loads(text)
        except ValueError as e:
            raise InvalidParameterError(f"Invalid JSON configuration: {e}") from e
        if not isinstance(data, dict):
            raise InvalidParameterError("JSON configuration must be an object")
        return cls.from_dict(data)

    def clone(self) -> "QuantumConfig":
        return QuantumConfig(**self.to_dict())

    # Resource estimates

    def calculate_memory_usage(self, data_size: int) -> float:
        """Estimated bytes: state vectors per complexity level plus entanglement tables."""
        state_vector_size = 2 ** self._quantum_bit_depth * 16
        superposition_memory = state_vector_size * self._superposition_complexity
        entanglement_memory = data_size * self._max_entanglement_level * 0.1
        return float(superposition_memory + entanglement_memory)

    def calculate_processing_multiplier(self) -> float:
        """Relative processing time; 1.0 for the default configuration."""
        bit_depth_factor = 2.0 ** (self._quantum_bit_depth - 8)
        complexity_factor = self._superposition_complexity / 5
        entanglement_factor = self._max_entanglement_level / 4
        return bit_depth_factor * complexity_factor * entanglement_factor

    def is_suitable_for_data_size(self, data_size: int, max_memory_mb: float = 512) -> bool:
        return self.calculate_memory_usage(data_size) <= max_memory_mb * 1024 * 1024

    def optimize_for_data(self, data_size: int, data_type: Optional[str] = None) -> "QuantumConfig":
        """
        Start from the preset for ``data_type`` and scale it to ``data_size``.

        Small inputs (< 1 KiB) lower bit depth and complexity, large inputs
        (> 1 MiB) raise them. The result always satisfies the cross-field
        constraints.

        Args:
            data_size: Input size in bytes
            data_type: ``text``, ``binary``, ``image`` or anything else for defaults

        Returns:
            New QuantumConfig
        """
        factory = {
            "text": QuantumConfig.for_text_compression,
            "binary": QuantumConfig.for_binary_compression,
            "image": QuantumConfig.for_image_compression,
        }.get(data_type, QuantumConfig)
        optimized = factory()

        if data_size < SMALL_DATA_SIZE:
            bit_depth = max(4, optimized.quantum_bit_depth - 2)
            complexity = max(2, optimized.superposition_complexity - 1)
            level = min(optimized.max_entanglement_level, bit_depth // 2)
        elif data_size > LARGE_DATA_SIZE:
            bit_depth = min(12, optimized.quantum_bit_depth + 2)
            complexity = min(8, optimized.superposition_complexity + 1)
            level = optimized.max_entanglement_level
        else:
            return optimized

        return QuantumConfig(bit_depth, level, min(complexity, bit_depth),
                             optimized.interference_threshold, optimized.profile_name)

    # Validation helpers

    @staticmethod
    def validate_configuration(config: Dict[str, Any]) -> List[str]:
        """Collect every validation problem of a configuration dict without raising."""
        errors = []
        checks = (
            ("quantum_bit_depth", "Quantum bit depth", _validate_bit_depth),
            ("max_entanglement_level", "Entanglement level", _validate_entanglement_level),
            ("superposition_complexity", "Superposition complexity", _validate_complexity),
            ("interference_threshold", "Interference threshold", _validate_threshold),
        )
        for key, label, validate in checks:
            if key not in config:
                continue
            try:
                validate(config[key])
            except InvalidParameterError as e:
                errors.append(f"{label}: {e.message}")

        combined = ("quantum_bit_depth", "max_entanglement_level", "superposition_complexity")
        if not errors and all(key in config for key in combined):
            try:
                _validate_combination(*(config[key] for key in combined))
            except InvalidParameterError as e:
                errors.append(f"Parameter combination: {e.message}")
        return errors

    @staticmethod
    def is_valid_configuration(config: Dict[str, Any]) -> bool:
        return not QuantumConfig.validate_configuration(config)

    @staticmethod
    def get_parameter_ranges() -> Dict[str, Dict[str, Any]]:
        return {name: dict(r, recommended=list(r["recommended"])) for name, r in PARAMETER_RANGES.items()}

    def equals(self, other: "QuantumConfig") -> bool:
        return isinstance(other, QuantumConfig) and self.to_dict() == other.to_dict()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QuantumConfig):
            return NotImplemented
        return self.equals(other)

    __hash__ = None

    def __repr__(self) -> str:
        profile = f" ({self.profile_name})" if self.profile_name else ""
        return (f"QuantumConfig{profile}: bits={self._quantum_bit_depth}, "
                f"entanglement={self._max_entanglement_level}, "
                f"complexity={self._superposition_complexity}, "
                f"threshold={self._interference_threshold}")


PRESETS = {
    "text": QuantumConfig.for_text_compression,
    "binary": QuantumConfig.for_binary_compression,
    "image": QuantumConfig.for_image_compression,
    "high-performance": QuantumConfig.for_high_performance,
    "low-resource": QuantumConfig.for_low_resource,
}


def _is_integer(value: Any) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _check_integer_range(value: Any, name: str, low: int, high: int) -> None:
    if not _is_integer(value):
        raise InvalidParameterError(f"{name} must be an integer",
                                    details={"parameter": name, "value": repr(value)})
    if not low <= value <= high:
        raise InvalidParameterError(f"{name} must be between {low} and {high}",
                                    details={"parameter": name, "value": int(value)})


def _validate_bit_depth(value: Any) -> None:
    _check_integer_range(value, "Quantum bit depth", 2, 16)


def _validate_entanglement_level(value: Any) -> None:
    _check_integer_range(value, "Maximum entanglement level", 1, 8)


def _validate_complexity(value: Any) -> None:
    _check_integer_range(value, "Superposition complexity", 1, 10)


def _validate_threshold(value: Any) -> None:
    if (not isinstance(value, numbers.Real) or isinstance(value, bool)
            or math.isnan(float(value))):
        raise InvalidParameterError("Interference threshold must be a valid number")
    if not 0.1 <= value <= 0.9:
        raise InvalidParameterError("Interference threshold must be between 0.1 and 0.9",
                                    details={"parameter": "Interference threshold", "value": float(value)})


def _validate_combination(bit_depth: int, level: int, complexity: int) -> None:
    computational_complexity = 2 ** bit_depth * (level * 10) * (complexity * 5)
    if computational_complexity > MAX_COMPUTATIONAL_COMPLEXITY:
        raise InvalidParameterError(
            "Parameter combination exceeds computational feasibility bounds. "
            "Consider reducing quantum bit depth, entanglement level, or superposition complexity.",
            details={"computational_complexity": computational_complexity})

    max_level = bit_depth // 2
    if level > max_level:
        raise InvalidParameterError(
            f"Maximum entanglement level ({level}) should not exceed half the quantum bit depth "
            f"({max_level} for {bit_depth} bits)")

    if complexity > bit_depth:
        raise InvalidParameterError(
            f"Superposition complexity ({complexity}) should not exceed quantum bit depth ({bit_depth})")
