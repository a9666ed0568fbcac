"""
Repeated amplitude sub-sequence mining and distribution analysis.
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..exceptions import InvalidParameterError
from . import amplitude_math as am
from .state_vector import QuantumStateVector
from .superposition import SuperpositionState

logger = logging.getLogger(__name__)

MAX_PATTERN_LENGTH_LIMIT = 64
MIN_INTERFERENCE_CORRELATION = 0.3
DOMINANT_PROBABILITY = 0.1


@dataclass(frozen=True)
class RecognizedPattern:
    """A repeated window of amplitudes and where it occurs."""
    id: str
    amplitudes: Tuple[complex, ...]
    length: int
    frequency: int
    positions: Tuple[Tuple[int, int], ...]
    complexity: float
    significance: float


class PatternRecognizer:
    """
    Finds repeated amplitude windows across a list of state vectors.

    Windows are compared after rounding real and imaginary parts to 1e-3.
    Each window length is mined independently, optionally on a thread pool;
    results are merged in length order so ranking does not depend on thread
    scheduling.
    """

    def __init__(self, min_pattern_length: int = 2, max_pattern_length: int = 16,
                 similarity_threshold: float = 0.8, frequency_threshold: int = 2,
                 complexity_weight: float = 0.3, max_workers: Optional[int] = None):
        if min_pattern_length < 1 or min_pattern_length > max_pattern_length:
            raise InvalidParameterError("Minimum pattern length must be between 1 and maximum pattern length")
        if max_pattern_length > MAX_PATTERN_LENGTH_LIMIT:
            raise InvalidParameterError(
                f"Maximum pattern length must be between minimum pattern length and {MAX_PATTERN_LENGTH_LIMIT}")
        self._min_pattern_length = int(min_pattern_length)
        self._max_pattern_length = int(max_pattern_length)
        self.similarity_threshold = similarity_threshold
        self.frequency_threshold = frequency_threshold
        self.complexity_weight = complexity_weight
        self.max_workers = max_workers

    # Validated parameters

    @property
    def min_pattern_length(self) -> int:
        return self._min_pattern_length

    @min_pattern_length.setter
    def min_pattern_length(self, value: int) -> None:
        if value < 1 or value > self._max_pattern_length:
            raise InvalidParameterError("Minimum pattern length must be between 1 and maximum pattern length")
        self._min_pattern_length = int(value)

    @property
    def max_pattern_length(self) -> int:
        return self._max_pattern_length

    @max_pattern_length.setter
    def max_pattern_length(self, value: int) -> None:
        if value < self._min_pattern_length or value > MAX_PATTERN_LENGTH_LIMIT:
            raise InvalidParameterError(
                f"Maximum pattern length must be between minimum pattern length and {MAX_PATTERN_LENGTH_LIMIT}")
        self._max_pattern_length = int(value)

    @property
    def similarity_threshold(self) -> float:
        return self._similarity_threshold

    @similarity_threshold.setter
    def similarity_threshold(self, value: float) -> None:
        if not 0 <= value <= 1:
            raise InvalidParameterError("Similarity threshold must be between 0 and 1")
        self._similarity_threshold = float(value)

    @property
    def frequency_threshold(self) -> int:
        return self._frequency_threshold

    @frequency_threshold.setter
    def frequency_threshold(self, value: int) -> None:
        if value < 1:
            raise InvalidParameterError("Frequency threshold must be at least 1")
        self._frequency_threshold = int(value)

    @property
    def complexity_weight(self) -> float:
        return self._complexity_weight

    @complexity_weight.setter
    def complexity_weight(self, value: float) -> None:
        if not 0 <= value <= 1:
            raise InvalidParameterError("Complexity weight must be between 0 and 1")
        self._complexity_weight = float(value)

    # Pattern mining

    def recognize_patterns(self, states: Sequence[QuantumStateVector]) -> List[RecognizedPattern]:
        """
        Mine repeated amplitude windows of every length in [min, max].

        Args:
            states: State vectors to scan

        Returns:
            Patterns occurring at least ``frequency_threshold`` times, sorted by
            significance (descending), ties kept in discovery order
        """
        if len(states) == 0:
            return []

        sequences = [state.amplitudes for state in states]
        lengths = range(self._min_pattern_length, self._max_pattern_length + 1)

        if self.max_workers == 1:
            per_length = [self._find_patterns_of_length(sequences, n) for n in lengths]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                per_length = list(executor.map(lambda n: self._find_patterns_of_length(sequences, n), lengths))

        patterns = [p for group in per_length for p in group if p.frequency >= self._frequency_threshold]
        patterns.sort(key=lambda p: p.significance, reverse=True)
        logger.debug(f"Recognized {len(patterns)} patterns across {len(states)} states")
        return patterns

    def _find_patterns_of_length(self, sequences: Sequence[np.ndarray], length: int) -> List[RecognizedPattern]:
        found: Dict[str, Dict[str, Any]] = {}
        for seq_index, sequence in enumerate(sequences):
            if sequence.size < length:
                continue
            keys = np.round(sequence.real * 1000).astype(np.int64), np.round(sequence.imag * 1000).astype(np.int64)
            for start in range(sequence.size - length + 1):
                key = "|".join(f"{r}_{i}" for r, i in zip(keys[0][start:start + length],
                                                           keys[1][start:start + length]))
                entry = found.get(key)
                if entry is None:
                    found[key] = {"amplitudes": sequence[start:start + length],
                                  "positions": [(seq_index, start)]}
                else:
                    entry["positions"].append((seq_index, start))

        patterns = []
        for key, entry in found.items():
            window = entry["amplitudes"]
            frequency = len(entry["positions"])
            complexity = self._pattern_complexity(window)
            patterns.append(RecognizedPattern(
                id=key,
                amplitudes=tuple(complex(a) for a in window),
                length=length,
                frequency=frequency,
                positions=tuple(entry["positions"]),
                complexity=complexity,
                significance=self._pattern_significance(frequency, length, complexity),
            ))
        return patterns

    @staticmethod
    def _pattern_complexity(window: np.ndarray) -> float:
        """Mean magnitude of successive amplitude differences."""
        if window.size < 2:
            return 0.0
        return float(np.mean(np.abs(np.diff(window))))

    def _pattern_significance(self, frequency: int, length: int, complexity: float) -> float:
        frequency_score = math.log(frequency + 1)
        length_score = length / self._max_pattern_length
        complexity_score = (1 - complexity) * self._complexity_weight
        return frequency_score * 0.5 + length_score * 0.3 + complexity_score * 0.2

    # Distribution analysis

    def analyze_probability_distributions(self, states: Sequence[QuantumStateVector]) -> Dict[str, Any]:
        """
        Entropy statistics, dominant probabilities and pairwise correlations.

        Returns:
            Dictionary with average_entropy, entropy_variance,
            probability_distributions, dominant_probabilities,
            correlation_matrix, information_content and compression_potential
        """
        if len(states) == 0:
            return {
                "average_entropy": 0.0,
                "entropy_variance": 0.0,
                "probability_distributions": [],
                "dominant_probabilities": [],
                "correlation_matrix": [],
                "information_content": 0.0,
                "compression_potential": 0.0,
            }

        distributions = [state.get_probability_distribution() for state in states]
        entropies = np.array([am.calculate_entropy(d) for d in distributions])
        average_entropy = float(np.mean(entropies))

        n = len(distributions)
        matrix = np.eye(n)
        for i in range(n):
            for j in range(n):
                if i != j:
                    matrix[i, j] = self._distribution_correlation(distributions[i], distributions[j])

        return {
            "average_entropy": average_entropy,
            "entropy_variance": float(np.var(entropies)),
            "probability_distributions": [d.tolist() for d in distributions],
            "dominant_probabilities": self._find_dominant_probabilities(distributions),
            "correlation_matrix": matrix.tolist(),
            "information_content": float(sum(h * d.size for h, d in zip(entropies, distributions))),
            "compression_potential": 1.0 - average_entropy / 8.0,
        }

    @staticmethod
    def _distribution_correlation(a: np.ndarray, b: np.ndarray) -> float:
        n = min(a.size, b.size)
        if n == 0:
            return 0.0
        return float(np.dot(a[:n], b[:n]) / n)

    @staticmethod
    def _find_dominant_probabilities(distributions: Sequence[np.ndarray]) -> List[Dict[str, Any]]:
        grouped: Dict[float, Dict[str, Any]] = {}
        for dist_index, dist in enumerate(distributions):
            for prob_index, prob in enumerate(dist):
                if prob <= DOMINANT_PROBABILITY:
                    continue
                key = round(float(prob) * 1000) / 1000
                if key in grouped:
                    grouped[key]["frequency"] += 1
                    grouped[key]["positions"].append((dist_index, prob_index))
                else:
                    grouped[key] = {"value": key, "frequency": 1,
                                    "positions": [(dist_index, prob_index)],
                                    "significance": float(prob)}
        return sorted(grouped.values(), key=lambda d: d["significance"], reverse=True)

    def identify_high_probability_states(self, superposition: SuperpositionState,
                                         threshold: float = 0.1) -> List[Dict[str, Any]]:
        """Amplitude indices of a superposition with probability >= ``threshold``."""
        states = []
        for pattern in superposition.analyze_probability_amplitudes():
            if pattern["probability"] < threshold:
                continue
            states.append({
                "state_index": pattern["index"],
                "amplitude": pattern["amplitude"],
                "probability": pattern["probability"],
                "phase": pattern["phase"],
                "magnitude": pattern["magnitude"],
                "significance": pattern["probability"] * pattern["magnitude"],
                "compression_value": pattern["probability"] * math.log(pattern["magnitude"] + 1),
            })
        states.sort(key=lambda s: s["significance"], reverse=True)
        return states

    def detect_interference_patterns(self, states: Sequence[QuantumStateVector]) -> List[Dict[str, Any]]:
        """
        Pairwise interference analysis of sufficiently correlated states.

        Returns:
            Dicts with type, strength, correlation, state_indices and
            amplitude_indices, sorted by strength (descending)
        """
        if len(states) < 2:
            return []

        patterns = []
        for i in range(len(states) - 1):
            for j in range(i + 1, len(states)):
                correlation = states[i].calculate_correlation(states[j])
                if correlation < MIN_INTERFERENCE_CORRELATION:
                    continue
                a, b = states[i].amplitudes, states[j].amplitudes
                constructive = am.interference_power(a, b, "constructive")
                destructive = am.interference_power(a, b, "destructive")
                patterns.append({
                    "type": "constructive" if constructive > destructive else "destructive",
                    "strength": max(constructive, destructive),
                    "correlation": correlation,
                    "state_indices": (i, j),
                    "amplitude_indices": list(range(min(a.size, b.size))),
                })
        patterns.sort(key=lambda p: p["strength"], reverse=True)
        return patterns

    # Compression estimates

    def calculate_pattern_compression_efficiency(self, patterns: Sequence[RecognizedPattern],
                                                 original_size: Optional[int] = None) -> Dict[str, Any]:
        """
        Space that replacing each pattern by one copy plus references would save.

        Args:
            patterns: Recognized patterns
            original_size: Optional size of the source data, used for
                ``savings_fraction``

        Returns:
            Dictionary with total_patterns, average_frequency,
            compression_ratio, space_savings, efficiency_score and
            savings_fraction
        """
        if len(patterns) == 0:
            return {"total_patterns": 0, "average_frequency": 0.0, "compression_ratio": 1.0,
                    "space_savings": 0, "efficiency_score": 0.0, "savings_fraction": 0.0}

        total_original = sum(p.length * p.frequency for p in patterns)
        space_savings = sum(max(0, p.length * p.frequency - (p.length + p.frequency)) for p in patterns)
        remaining = total_original - space_savings
        compression_ratio = total_original / remaining if remaining > 0 else 1.0

        average_significance = sum(p.significance for p in patterns) / len(patterns)
        frequency_score = sum(math.log(p.frequency + 1) for p in patterns) / len(patterns)

        savings_fraction = 0.0
        if original_size:
            savings_fraction = min(1.0, space_savings / original_size)

        return {
            "total_patterns": len(patterns),
            "average_frequency": sum(p.frequency for p in patterns) / len(patterns),
            "compression_ratio": compression_ratio,
            "space_savings": space_savings,
            "efficiency_score": average_significance * 0.6 + frequency_score * 0.4,
            "savings_fraction": savings_fraction,
        }

    def optimize_patterns_for_compression(self, patterns: Sequence[RecognizedPattern]) -> List[Dict[str, Any]]:
        """Group similar patterns and rank the groups by compression value."""
        if len(patterns) == 0:
            return []

        groups = []
        used = set()
        for pattern in patterns:
            if pattern.id in used:
                continue
            group = [pattern]
            used.add(pattern.id)
            for other in patterns:
                if other.id in used:
                    continue
                if self._pattern_similarity(pattern, other) >= self._similarity_threshold:
                    group.append(other)
                    used.add(other.id)
            groups.append(group)

        optimized = [self._optimize_group(group) for group in groups]
        optimized.sort(key=lambda g: g["compression_value"], reverse=True)
        return optimized

    @staticmethod
    def _pattern_similarity(a: RecognizedPattern, b: RecognizedPattern) -> float:
        if a.length != b.length:
            return 0.0
        diff = np.abs(np.asarray(a.amplitudes) - np.asarray(b.amplitudes))
        return float(np.mean(1.0 - np.minimum(1.0, diff)))

    @staticmethod
    def _optimize_group(group: List[RecognizedPattern]) -> Dict[str, Any]:
        representative = group[0]
        for candidate in group[1:]:
            if candidate.frequency > representative.frequency:
                representative = candidate

        total_frequency = sum(p.frequency for p in group)
        total_original = sum(p.length * p.frequency for p in group)
        compressed = group[0].length + total_frequency
        compression_value = (total_original - compressed) / total_original if total_original > compressed else 0.0

        return {
            "id": f"optimized_{representative.id}",
            "representative_pattern": representative,
            "group_size": len(group),
            "total_frequency": total_frequency,
            "average_complexity": sum(p.complexity for p in group) / len(group),
            "total_significance": sum(p.significance for p in group),
            "compression_value": compression_value,
            "patterns": list(group),
        }
