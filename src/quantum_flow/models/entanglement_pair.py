"""
Correlated state pairs ("entanglement") and the information they share.
"""

import base64
import logging
import time
import uuid
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
from scipy import stats

from ..core import amplitude_math as am
from ..core.state_vector import QuantumStateVector
from ..exceptions import InsufficientCorrelationError, InvalidParameterError

logger = logging.getLogger(__name__)

DEFAULT_MIN_CREATION_THRESHOLD = 0.1
SHARED_SIMILARITY = 0.7
SIMILAR_BYTE_SIMILARITY = 0.5


def _byte_similarity(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return 1.0 - np.abs(a.astype(np.float64) - b.astype(np.float64)) / 255.0


class EntanglementPair:
    """
    Two correlated state vectors tagged with a shared identifier.

    Both stored states carry the pair's ``entanglement_id``; the container
    keeps pairs in a table keyed by that id, so states never hold a reference
    to the pair object.
    """

    def __init__(self, state_a: QuantumStateVector, state_b: QuantumStateVector,
                 shared_information: Optional[bytes] = None,
                 correlation_strength: Optional[float] = None,
                 min_creation_threshold: float = DEFAULT_MIN_CREATION_THRESHOLD,
                 entanglement_id: Optional[str] = None,
                 creation_time: Optional[float] = None):
        """
        Args:
            state_a: First state
            state_b: Second state
            shared_information: Precomputed shared bytes; extracted if omitted
            correlation_strength: Explicit strength; defaults to the
                magnitude-product correlation of the two states
            min_creation_threshold: Minimum strength for a pair to exist
            entanglement_id: Existing identifier (when restoring a pair)
            creation_time: Existing creation timestamp (when restoring a pair)

        Raises:
            InvalidParameterError: if the strength is outside [0, 1]
            InsufficientCorrelationError: if the strength is below the threshold
        """
        self._entanglement_id = entanglement_id or f"entangled-{uuid.uuid4().hex}"
        self._creation_time = time.time() if creation_time is None else float(creation_time)
        self._state_a = state_a.with_entanglement_id(self._entanglement_id)
        self._state_b = state_b.with_entanglement_id(self._entanglement_id)

        if correlation_strength is None:
            correlation_strength = self._state_a.calculate_correlation(self._state_b)
        self._correlation_strength = float(correlation_strength)
        self._validate(min_creation_threshold)

        if shared_information is None:
            shared_information = self._extract_shared_information()
        self._shared_information = bytes(shared_information)

    def _validate(self, min_creation_threshold: float) -> None:
        if not 0.0 <= self._correlation_strength <= 1.0:
            raise InvalidParameterError("Correlation strength must be between 0 and 1",
                                        details={"correlation_strength": self._correlation_strength})
        if self._correlation_strength < min_creation_threshold:
            raise InsufficientCorrelationError(
                "States must have minimum correlation to form entanglement",
                suggestions=["Lower the minimum creation threshold",
                             "Pair states with similar amplitude profiles"],
                details={"correlation_strength": self._correlation_strength,
                         "min_creation_threshold": min_creation_threshold})

    def _extract_shared_information(self) -> bytes:
        a, b = self._byte_views()
        keep = _byte_similarity(a, b) > SHARED_SIMILARITY
        shared = np.round((a[keep].astype(np.float64) + b[keep]) / 2.0)
        return shared.astype(np.uint8).tobytes()

    def _byte_views(self) -> Tuple[np.ndarray, np.ndarray]:
        a = np.frombuffer(self._state_a.to_bytes(), dtype=np.uint8)
        b = np.frombuffer(self._state_b.to_bytes(), dtype=np.uint8)
        n = min(a.size, b.size)
        return a[:n], b[:n]

    # Properties

    @property
    def state_a(self) -> QuantumStateVector:
        return self._state_a

    @property
    def state_b(self) -> QuantumStateVector:
        return self._state_b

    @property
    def correlation_strength(self) -> float:
        return self._correlation_strength

    @property
    def shared_information(self) -> bytes:
        return self._shared_information

    @property
    def entanglement_id(self) -> str:
        return self._entanglement_id

    @property
    def creation_time(self) -> float:
        return self._creation_time

    # Construction helpers

    @classmethod
    def create_if_correlated(cls, state_a: QuantumStateVector, state_b: QuantumStateVector,
                             min_correlation: float = 0.5,
                             min_creation_threshold: float = DEFAULT_MIN_CREATION_THRESHOLD
                             ) -> Optional["EntanglementPair"]:
        """Return a pair if the states correlate at least ``min_correlation``, else None."""
        correlation = state_a.calculate_correlation(state_b)
        if correlation < max(min_correlation, min_creation_threshold):
            return None
        return cls(state_a, state_b, correlation_strength=correlation,
                   min_creation_threshold=min_creation_threshold)

    @classmethod
    def find_entanglement_pairs(cls, states: Sequence[QuantumStateVector],
                                min_correlation: float = 0.5) -> List["EntanglementPair"]:
        """First-fit pairing: each state joins the first later state it correlates with."""
        pairs = []
        used = set()
        for i in range(len(states)):
            if i in used:
                continue
            for j in range(i + 1, len(states)):
                if j in used:
                    continue
                pair = cls.create_if_correlated(states[i], states[j], min_correlation)
                if pair is not None:
                    pairs.append(pair)
                    used.update((i, j))
                    break
        logger.debug(f"First-fit pairing found {len(pairs)} pairs among {len(states)} states")
        return pairs

    @classmethod
    def from_data_patterns(cls, pattern_a: bytes, pattern_b: bytes,
                           min_correlation: float = 0.5) -> Optional["EntanglementPair"]:
        return cls.create_if_correlated(QuantumStateVector.from_bytes(pattern_a),
                                        QuantumStateVector.from_bytes(pattern_b), min_correlation)

    # Operations

    def is_valid(self, threshold: float = 0.3) -> bool:
        return self._correlation_strength >= threshold

    def measure_correlated_states(self) -> Dict[str, Any]:
        return {
            "state_a_bytes": self._state_a.to_bytes(),
            "state_b_bytes": self._state_b.to_bytes(),
            "correlation": self._correlation_strength,
        }

    def apply_correlated_phase_shift(self, shift: float) -> "EntanglementPair":
        """Shift A by ``+shift`` and B by ``-shift``; the pair keeps its id."""
        return EntanglementPair(self._state_a.apply_phase_shift(shift),
                                self._state_b.apply_phase_shift(-shift),
                                shared_information=self._shared_information,
                                correlation_strength=self._correlation_strength,
                                min_creation_threshold=0.0,
                                entanglement_id=self._entanglement_id,
                                creation_time=self._creation_time)

    def break_entanglement(self) -> Tuple[QuantumStateVector, QuantumStateVector]:
        return self._state_a.clear_entanglement(), self._state_b.clear_entanglement()

    def calculate_mutual_information(self) -> float:
        """H(A) + H(B) - H(joint), with the joint approximated by pA * pB * strength."""
        probs_a = self._state_a.get_probability_distribution()
        probs_b = self._state_b.get_probability_distribution()
        n = min(probs_a.size, probs_b.size)
        joint = probs_a[:n] * probs_b[:n] * self._correlation_strength
        return am.calculate_entropy(probs_a) + am.calculate_entropy(probs_b) - am.calculate_entropy(joint)

    def get_compression_benefit(self) -> float:
        return self.calculate_mutual_information() * len(self._shared_information) * self._correlation_strength

    def extract_detailed_shared_information(self) -> Dict[str, Any]:
        """
        Byte-level comparison of the two decoded states.

        Returns:
            Dictionary with exact_matches, similar_bytes, patterns (runs of at
            least two bytes with similarity > 0.7), total_shared_bytes,
            shared_ratio, average_pattern_similarity and compression_potential
        """
        a, b = self._byte_views()
        similarity = _byte_similarity(a, b)

        exact_matches = [int(i) for i in np.flatnonzero(a == b)]
        similar_bytes = [{"index": int(i), "value_a": int(a[i]), "value_b": int(b[i]),
                          "similarity": float(similarity[i])}
                         for i in np.flatnonzero((a != b) & (similarity > SIMILAR_BYTE_SIMILARITY))]

        patterns = []
        start = None
        for i in range(a.size + 1):
            inside = i < a.size and similarity[i] > SHARED_SIMILARITY
            if inside and start is None:
                start = i
            elif not inside and start is not None:
                if i - start >= 2:
                    patterns.append({"start": start, "length": i - start,
                                     "similarity": float(np.mean(similarity[start:i]))})
                start = None

        total_shared = len(exact_matches) + len(similar_bytes)
        return {
            "exact_matches": exact_matches,
            "similar_bytes": similar_bytes,
            "patterns": patterns,
            "total_shared_bytes": total_shared,
            "shared_ratio": total_shared / a.size if a.size else 0.0,
            "average_pattern_similarity": (sum(p["similarity"] for p in patterns) / len(patterns)
                                           if patterns else 0.0),
            "compression_potential": self._compression_potential(patterns, total_shared),
        }

    def _compression_potential(self, patterns: List[Dict[str, Any]], total_shared: int) -> float:
        if not patterns:
            return 0.0
        savings = sum(p["length"] * p["similarity"] for p in patterns) * self._correlation_strength
        savings += total_shared * self._correlation_strength
        total_size = max(len(self._state_a), len(self._state_b))
        return min(savings / total_size, 1.0) if total_size else 0.0

    def calculate_advanced_correlation_strength(self) -> Dict[str, float]:
        """
        Combine rank, linear, information-theoretic and structural similarity.

        ``overall_strength = 0.3|pearson| + 0.2|spearman| + 0.2 NMI +
        0.3 structural``, capped at 1.
        """
        a, b = self._byte_views()
        if a.size == 0:
            return {"pearson_correlation": 0.0, "spearman_correlation": 0.0,
                    "mutual_information": 0.0, "normalized_mutual_information": 0.0,
                    "structural_similarity": 0.0, "overall_strength": 0.0}

        pearson = spearman = 0.0
        # Both coefficients are undefined for constant or single-element inputs.
        if a.size >= 2 and np.std(a) > 0 and np.std(b) > 0:
            pearson = float(stats.pearsonr(a.astype(np.float64), b.astype(np.float64))[0])
            spearman = float(stats.spearmanr(a, b)[0])
            if not np.isfinite(spearman):
                spearman = 0.0

        mutual_information = self.calculate_mutual_information()
        max_entropy = max(am.calculate_entropy(self._state_a.get_probability_distribution()),
                          am.calculate_entropy(self._state_b.get_probability_distribution()))
        nmi = min(mutual_information / max_entropy, 1.0) if max_entropy > 0 else 0.0

        structural = self.extract_detailed_shared_information()["average_pattern_similarity"]
        overall = 0.3 * abs(pearson) + 0.2 * abs(spearman) + 0.2 * nmi + 0.3 * structural

        return {
            "pearson_correlation": pearson,
            "spearman_correlation": spearman,
            "mutual_information": mutual_information,
            "normalized_mutual_information": nmi,
            "structural_similarity": structural,
            "overall_strength": min(overall, 1.0),
        }

    def equals(self, other: "EntanglementPair", tolerance: float = am.DEFAULT_TOLERANCE) -> bool:
        """Order-insensitive comparison of the two states."""
        return ((self._state_a.equals(other.state_a, tolerance) and self._state_b.equals(other.state_b, tolerance))
                or (self._state_a.equals(other.state_b, tolerance)
                    and self._state_b.equals(other.state_a, tolerance)))

    # Serialization

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entanglement_id": self._entanglement_id,
            "state_a": self._state_a.to_dict(),
            "state_b": self._state_b.to_dict(),
            "correlation_strength": self._correlation_strength,
            "shared_information": base64.b64encode(self._shared_information).decode("ascii"),
            "creation_time": self._creation_time,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EntanglementPair":
        return cls(QuantumStateVector.from_dict(data["state_a"]),
                   QuantumStateVector.from_dict(data["state_b"]),
                   shared_information=base64.b64decode(data["shared_information"]),
                   correlation_strength=data["correlation_strength"],
                   min_creation_threshold=0.0,
                   entanglement_id=data["entanglement_id"],
                   creation_time=data.get("creation_time"))

    def __repr__(self) -> str:
        return (f"EntanglementPair(correlation={self._correlation_strength:.4f}, "
                f"shared={len(self._shared_information)}B, id={self._entanglement_id!r})")
