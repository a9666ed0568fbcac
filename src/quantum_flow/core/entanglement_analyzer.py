"""
Correlation analysis and greedy pairing of state vectors.
"""

import logging
import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..exceptions import InvalidParameterError
from ..models.entanglement_pair import DEFAULT_MIN_CREATION_THRESHOLD, EntanglementPair
from . import amplitude_math as am
from .state_vector import QuantumStateVector

logger = logging.getLogger(__name__)

STRONG_CORRELATION = 0.8
HISTOGRAM_BINS = 10
MAX_SHARED_PATTERN_LENGTH = 4


class CorrelationCache:
    """Thread-safe memo of pairwise correlations keyed by state fingerprints."""

    def __init__(self):
        self._lock = threading.RLock()
        self._values: Dict[Tuple[str, str], float] = {}

    @staticmethod
    def key(state_a: QuantumStateVector, state_b: QuantumStateVector) -> Tuple[str, str]:
        a, b = state_a.fingerprint(), state_b.fingerprint()
        return (a, b) if a <= b else (b, a)

    def get(self, key: Tuple[str, str]) -> Optional[float]:
        with self._lock:
            return self._values.get(key)

    def put(self, key: Tuple[str, str], value: float) -> None:
        with self._lock:
            self._values[key] = value

    def clear(self) -> None:
        with self._lock:
            self._values.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)


class EntanglementAnalyzer:
    """
    Finds correlated state pairs and summarizes what they share.

    Args:
        correlation_threshold: Minimum correlation for pairing, in [0, 1]
        max_entanglement_pairs: Upper bound on pairs returned (>= 1)
        min_creation_threshold: Minimum strength an EntanglementPair accepts
        max_workers: Thread pool size for per-pair extraction
    """

    def __init__(self, correlation_threshold: float = 0.5, max_entanglement_pairs: int = 100,
                 min_creation_threshold: float = DEFAULT_MIN_CREATION_THRESHOLD,
                 max_workers: Optional[int] = None):
        self._validate_threshold(correlation_threshold)
        if max_entanglement_pairs < 1:
            raise InvalidParameterError("Maximum entanglement pairs must be at least 1")
        self._correlation_threshold = float(correlation_threshold)
        self.max_entanglement_pairs = int(max_entanglement_pairs)
        self.min_creation_threshold = float(min_creation_threshold)
        self.max_workers = max_workers
        self._cache = CorrelationCache()

    @staticmethod
    def _validate_threshold(threshold: float) -> None:
        if not 0 <= threshold <= 1:
            raise InvalidParameterError("Correlation threshold must be between 0 and 1",
                                        details={"correlation_threshold": threshold})

    @property
    def correlation_threshold(self) -> float:
        return self._correlation_threshold

    @property
    def cache(self) -> CorrelationCache:
        return self._cache

    def set_correlation_threshold(self, threshold: float) -> None:
        self._validate_threshold(threshold)
        self._correlation_threshold = float(threshold)
        self.clear_cache()

    def clear_cache(self) -> None:
        self._cache.clear()

    # Correlations

    def calculate_pairwise_correlation(self, state_a: QuantumStateVector, state_b: QuantumStateVector) -> float:
        key = CorrelationCache.key(state_a, state_b)
        value = self._cache.get(key)
        if value is None:
            value = state_a.calculate_correlation(state_b)
            self._cache.put(key, value)
        return value

    def calculate_correlation_matrix(self, states: Sequence[QuantumStateVector]) -> np.ndarray:
        """
        Symmetric matrix of magnitude-product correlations with a unit diagonal.

        Pairs already in the cache keep their cached value; every other pair is
        written to the cache for later pairwise lookups.
        """
        n = len(states)
        matrix = am.correlation_matrix([state.amplitudes for state in states])
        np.fill_diagonal(matrix, 1.0)

        fingerprints = [state.fingerprint() for state in states]
        rows, cols = np.triu_indices(n, k=1)
        for i, j in zip(rows, cols):
            a, b = fingerprints[i], fingerprints[j]
            key = (a, b) if a <= b else (b, a)
            cached = self._cache.get(key)
            if cached is None:
                self._cache.put(key, float(matrix[i, j]))
            else:
                matrix[i, j] = matrix[j, i] = cached
        return matrix

    # Pairing

    def find_entangled_patterns(self, states: Sequence[QuantumStateVector]) -> List[EntanglementPair]:
        """
        Greedy pairing by descending correlation; no state is used twice.

        Stops at ``max_entanglement_pairs`` or once correlations fall below the
        threshold.
        """
        if len(states) < 2:
            return []

        matrix = self.calculate_correlation_matrix(states)
        rows, cols = np.triu_indices(len(states), k=1)
        values = matrix[rows, cols]
        order = np.argsort(-values, kind="stable")
        cutoff = max(self._correlation_threshold, self.min_creation_threshold)

        pairs = []
        used = set()
        for k in order:
            i, j, correlation = int(rows[k]), int(cols[k]), float(values[k])
            if correlation < cutoff:
                break
            if i in used or j in used:
                continue
            pairs.append(EntanglementPair(states[i], states[j], correlation_strength=correlation,
                                          min_creation_threshold=self.min_creation_threshold))
            used.update((i, j))
            if len(pairs) >= self.max_entanglement_pairs:
                break

        logger.debug(f"Found {len(pairs)} entanglement pairs among {len(states)} states")
        return pairs

    def find_optimal_entanglement_pairs(self, states: Sequence[QuantumStateVector]) -> List[EntanglementPair]:
        pairs = self.find_entangled_patterns(states)
        return sorted(pairs, key=lambda p: p.get_compression_benefit(), reverse=True)

    # Shared information

    def extract_shared_information(self, pairs: Sequence[EntanglementPair]) -> Dict[str, Any]:
        """
        Repeated byte sub-patterns (length 1-4) in each pair's shared bytes.

        Returns:
            Dictionary with total_shared_bytes, compression_potential,
            shared_patterns (sorted by compression value) and information_density
        """
        if len(pairs) == 0:
            return {"total_shared_bytes": 0, "compression_potential": 0.0,
                    "shared_patterns": [], "information_density": 0.0}

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            per_pair = list(executor.map(lambda p: self._analyze_shared_patterns(p.shared_information), pairs))

        shared_patterns = []
        for pair, patterns in zip(pairs, per_pair):
            for pattern, frequency in patterns:
                shared_patterns.append({
                    "pattern": pattern,
                    "frequency": frequency,
                    "correlation_strength": pair.correlation_strength,
                    "compression_value": frequency * pair.correlation_strength,
                })
        shared_patterns.sort(key=lambda p: p["compression_value"], reverse=True)

        total_shared = sum(len(p.shared_information) for p in pairs)
        savings = sum((p["frequency"] - 1) * len(p["pattern"]) * p["correlation_strength"]
                      for p in shared_patterns)
        potential = min(savings / total_shared, 1.0) if total_shared else 0.0

        return {
            "total_shared_bytes": total_shared,
            "compression_potential": potential,
            "shared_patterns": shared_patterns,
            "information_density": total_shared / len(pairs),
        }

    @staticmethod
    def _analyze_shared_patterns(shared: bytes) -> List[Tuple[bytes, int]]:
        counts: Counter = Counter()
        for length in range(1, min(len(shared), MAX_SHARED_PATTERN_LENGTH) + 1):
            for i in range(len(shared) - length + 1):
                counts[shared[i:i + length]] += 1
        repeated = [(pattern, count) for pattern, count in counts.items() if count > 1]
        repeated.sort(key=lambda item: item[1], reverse=True)
        return repeated

    def extract_optimized_shared_patterns(self, pairs: Sequence[EntanglementPair],
                                          min_pattern_length: int = 2) -> Dict[str, Any]:
        """Sub-patterns (length min-8) repeated across all shared information."""
        found: Dict[bytes, Dict[str, Any]] = {}
        for index, pair in enumerate(pairs):
            data = pair.shared_information
            for length in range(min_pattern_length, min(len(data), 8) + 1):
                for offset in range(len(data) - length + 1):
                    pattern = data[offset:offset + length]
                    info = found.setdefault(pattern, {"occurrences": 0, "total_correlation": 0.0,
                                                      "pair_indices": []})
                    info["occurrences"] += 1
                    info["total_correlation"] += pair.correlation_strength
                    info["pair_indices"].append(index)

        patterns = []
        for pattern, info in found.items():
            if info["occurrences"] <= 1:
                continue
            average = info["total_correlation"] / info["occurrences"]
            savings = (info["occurrences"] - 1) * len(pattern)
            patterns.append({
                "pattern": pattern,
                "occurrences": info["occurrences"],
                "average_correlation": average,
                "compression_savings": savings,
                "compression_value": savings * average,
                "pair_indices": info["pair_indices"],
            })
        patterns.sort(key=lambda p: p["compression_value"], reverse=True)

        total_savings = sum(p["compression_savings"] for p in patterns)
        total_size = sum(len(p.shared_information) for p in pairs)
        return {
            "patterns": patterns,
            "total_compression_savings": total_savings,
            "compression_ratio": total_savings / total_size if total_size else 0.0,
            "pattern_count": len(patterns),
        }

    # Reports

    def calculate_advanced_correlation_metrics(self, pairs: Sequence[EntanglementPair]) -> Dict[str, Any]:
        if len(pairs) == 0:
            return {"average_correlation": 0.0, "weighted_correlation": 0.0, "correlation_variance": 0.0,
                    "correlation_stability": 0.0, "strong_correlation_ratio": 0.0,
                    "correlation_distribution": self._correlation_histogram([])}

        correlations = np.array([p.correlation_strength for p in pairs])
        benefits = np.array([p.get_compression_benefit() for p in pairs])
        average = float(correlations.mean())
        total_benefit = float(benefits.sum())
        weighted = float(np.sum(correlations * benefits) / total_benefit) if total_benefit > 0 else average
        variance = float(correlations.var())
        stability = max(0.0, 1 - np.sqrt(variance) / average) if average > 0 else 0.0

        return {
            "average_correlation": average,
            "weighted_correlation": weighted,
            "correlation_variance": variance,
            "correlation_stability": float(stability),
            "strong_correlation_ratio": float(np.mean(correlations >= STRONG_CORRELATION)),
            "correlation_distribution": self._correlation_histogram(correlations),
        }

    def analyze_correlation_patterns(self, states: Sequence[QuantumStateVector]) -> Dict[str, Any]:
        n = len(states)
        if n < 2:
            return {"average_correlation": 0.0, "max_correlation": 0.0, "min_correlation": 0.0,
                    "correlation_distribution": [], "strongly_correlated_pairs": 0, "total_pairs": 0}

        correlations = np.array([self.calculate_pairwise_correlation(states[i], states[j])
                                 for i in range(n) for j in range(i + 1, n)])
        return {
            "average_correlation": float(correlations.mean()),
            "max_correlation": float(correlations.max()),
            "min_correlation": float(correlations.min()),
            "correlation_distribution": self._correlation_histogram(correlations),
            "strongly_correlated_pairs": int(np.sum(correlations >= self._correlation_threshold)),
            "total_pairs": int(correlations.size),
        }

    def validate_entanglement_quality(self, pairs: Sequence[EntanglementPair]) -> Dict[str, Any]:
        """Split pairs into valid/invalid at the current threshold and suggest fixes."""
        valid = [p for p in pairs if p.is_valid(self._correlation_threshold)]
        invalid = [p for p in pairs if not p.is_valid(self._correlation_threshold)]
        average = sum(p.correlation_strength for p in valid) / len(valid) if valid else 0.0

        suggestions = []
        if invalid:
            suggestions.append(f"{len(invalid)} pairs have correlation below threshold")
        if average < 0.7:
            suggestions.append("Consider lowering correlation threshold for more pairs")
        if len(valid) < len(pairs) * 0.5:
            suggestions.append("Low entanglement success rate - check data patterns")

        return {
            "valid_pairs": valid,
            "invalid_pairs": invalid,
            "total_benefit": sum(p.get_compression_benefit() for p in valid),
            "average_correlation": average,
            "suggestions": suggestions,
        }

    @staticmethod
    def _correlation_histogram(correlations) -> List[Dict[str, Any]]:
        correlations = np.asarray(correlations, dtype=np.float64)
        width = 1.0 / HISTOGRAM_BINS
        counts = np.zeros(HISTOGRAM_BINS, dtype=int)
        if correlations.size:
            indices = np.clip(np.floor(correlations / width).astype(int), 0, HISTOGRAM_BINS - 1)
            counts = np.bincount(indices, minlength=HISTOGRAM_BINS)
        total = correlations.size
        return [{"min": i * width, "max": (i + 1) * width, "count": int(counts[i]),
                 "percentage": counts[i] / total * 100 if total else 0.0}
                for i in range(HISTOGRAM_BINS)]
