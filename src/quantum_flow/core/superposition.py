"""
Weighted superpositions of state vectors.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..exceptions import DimensionMismatchError, EmptyInputError, InvalidParameterError
from . import amplitude_math as am
from .state_vector import QuantumStateVector

logger = logging.getLogger(__name__)


class SuperpositionState:
    """
    Weighted combination of several state vectors analyzed jointly.

    The combined amplitude sequence is as long as the longest constituent;
    missing amplitudes count as zero. Instances are never mutated: decoherence
    and phase shifts return new superpositions, and measurement only reads.
    """

    def __init__(self, amplitudes: Sequence[complex], constituent_states: Sequence[QuantumStateVector],
                 weights: Sequence[float], coherence_time: float = 1.0):
        """
        Args:
            amplitudes: Combined amplitude sequence
            constituent_states: States the superposition was built from
            weights: One non-negative weight per constituent, summing to one
            coherence_time: Remaining coherence budget (>= 0)

        Raises:
            InvalidParameterError: for negative coherence time or invalid weights
            DimensionMismatchError: if weights and constituents differ in count, or
                the amplitudes are not as long as the longest constituent
        """
        self._amplitudes = am.as_amplitudes(amplitudes)
        self._amplitudes.flags.writeable = False
        self._constituent_states = list(constituent_states)
        self._weights = np.asarray(weights, dtype=np.float64)
        self._weights.flags.writeable = False
        self._coherence_time = float(coherence_time)
        self._validate()

    def _validate(self) -> None:
        if self._coherence_time < 0:
            raise InvalidParameterError("Coherence time must be non-negative")
        if self._weights.size != len(self._constituent_states):
            raise DimensionMismatchError(
                f"Number of weights ({self._weights.size}) must match number of "
                f"constituent states ({len(self._constituent_states)})")
        if self._constituent_states:
            longest = max(len(state) for state in self._constituent_states)
            if self._amplitudes.size != longest:
                raise DimensionMismatchError(
                    f"Combined amplitude length ({self._amplitudes.size}) must equal the longest "
                    f"constituent length ({longest})")
        if np.any(self._weights < 0):
            raise InvalidParameterError("Superposition weights must be non-negative")
        if abs(float(self._weights.sum()) - 1.0) > am.DEFAULT_TOLERANCE:
            raise InvalidParameterError("Superposition weights must sum to 1")

    @property
    def amplitudes(self) -> np.ndarray:
        return self._amplitudes

    @property
    def constituent_states(self) -> List[QuantumStateVector]:
        return list(self._constituent_states)

    @property
    def weights(self) -> np.ndarray:
        return self._weights

    @property
    def coherence_time(self) -> float:
        return self._coherence_time

    @classmethod
    def from_quantum_states(cls, states: Sequence[QuantumStateVector],
                            weights: Optional[Sequence[float]] = None,
                            coherence_time: float = 1.0) -> "SuperpositionState":
        """
        Build a superposition from states, normalizing the weights.

        Args:
            states: Constituent states (at least one)
            weights: Relative weights; uniform if omitted
            coherence_time: Initial coherence budget

        Returns:
            New SuperpositionState
        """
        if len(states) == 0:
            raise EmptyInputError("Cannot create superposition from empty state list")
        if weights is None:
            weights = np.full(len(states), 1.0 / len(states))
        weights = np.asarray(weights, dtype=np.float64)
        if weights.size != len(states):
            raise DimensionMismatchError(
                f"Number of weights ({weights.size}) must match number of states ({len(states)})")
        if np.any(weights < 0):
            raise InvalidParameterError("Superposition weights must be non-negative")
        total = float(weights.sum())
        if total <= 0:
            raise InvalidParameterError("Superposition weights must have a positive sum")
        weights = weights / total

        combined = QuantumStateVector.create_superposition(states, weights)
        return cls(combined.amplitudes, states, weights, coherence_time)

    @classmethod
    def from_data_patterns(cls, patterns: Sequence[bytes], weights: Optional[Sequence[float]] = None,
                           coherence_time: float = 1.0) -> "SuperpositionState":
        states = [QuantumStateVector.from_bytes(p) for p in patterns]
        return cls.from_quantum_states(states, weights, coherence_time)

    def analyze_probability_amplitudes(self) -> List[Dict[str, Any]]:
        """
        Per-index amplitude breakdown, sorted by probability (descending).

        Returns:
            List of dicts with index, amplitude, probability, phase and magnitude
        """
        probabilities = am.probability(self._amplitudes)
        order = np.argsort(-probabilities, kind="stable")
        return [{
            "index": int(i),
            "amplitude": complex(self._amplitudes[i]),
            "probability": float(probabilities[i]),
            "phase": float(np.angle(self._amplitudes[i])),
            "magnitude": float(np.abs(self._amplitudes[i])),
        } for i in order]

    def get_dominant_patterns(self, threshold: float = 0.1) -> List[Dict[str, Any]]:
        return [p for p in self.analyze_probability_amplitudes() if p["probability"] >= threshold]

    def calculate_entropy(self) -> float:
        return am.calculate_entropy(am.probability(self._amplitudes))

    def is_coherent(self, threshold: float = 0.1) -> bool:
        return self._coherence_time > threshold

    def measure(self, rng: Optional[np.random.Generator] = None) -> Tuple[int, QuantumStateVector]:
        """
        Probabilistically select one constituent according to the weights.

        Returns:
            Tuple of (constituent index, constituent state)
        """
        rng = rng or np.random.default_rng()
        cumulative = np.cumsum(self._weights)
        index = int(np.searchsorted(cumulative, rng.random(), side="right"))
        index = min(index, len(self._constituent_states) - 1)
        return index, self._constituent_states[index]

    def apply_decoherence(self, time_elapsed: float,
                          rng: Optional[np.random.Generator] = None) -> "SuperpositionState":
        """
        Decay coherence by ``time_elapsed`` and inject proportional phase noise.

        Amplitudes shrink by ``sqrt(remaining / initial)``; each amplitude also
        receives a random phase offset of up to ``(1 - factor) * π / 2``.

        Returns:
            New SuperpositionState with the reduced coherence time
        """
        if time_elapsed < 0:
            raise InvalidParameterError("Elapsed time must be non-negative")
        rng = rng or np.random.default_rng()

        new_coherence = max(0.0, self._coherence_time - time_elapsed)
        factor = new_coherence / self._coherence_time if self._coherence_time > 0 else 0.0

        noise = (rng.random(self._amplitudes.size) - 0.5) * (1.0 - factor) * np.pi
        decohered = self._amplitudes * np.sqrt(factor) * np.exp(1j * noise)

        logger.debug(f"Decoherence: coherence {self._coherence_time:.4f} -> {new_coherence:.4f}")
        return SuperpositionState(decohered, self._constituent_states, self._weights, new_coherence)

    def apply_phase_shift(self, shift: float) -> "SuperpositionState":
        shifted = self._amplitudes * np.exp(1j * shift)
        return SuperpositionState(shifted, self._constituent_states, self._weights, self._coherence_time)

    def __repr__(self) -> str:
        return (f"SuperpositionState(constituents={len(self._constituent_states)}, "
                f"amplitudes={self._amplitudes.size}, coherence_time={self._coherence_time:.3f})")
