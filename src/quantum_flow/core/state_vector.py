"""
Normalized complex-amplitude state vectors.

A ``QuantumStateVector`` is the atomic encoded unit of a byte chunk: an
ordered sequence of complex amplitudes whose probability mass sums to one,
a scalar phase, and an optional entanglement identifier that points into the
pair table of the owning container.
"""

import hashlib
import struct
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from ..exceptions import DegenerateStateError, DimensionMismatchError, EmptyInputError
from . import amplitude_math as am


class QuantumStateVector:
    """
    Immutable, normalized amplitude vector with a scalar phase.

    The amplitude array is read-only; every transformation returns a new
    instance. The entanglement identifier is a plain key, never a reference
    to the pair object itself.
    """

    __slots__ = ("_amplitudes", "_phase", "_entanglement_id")

    def __init__(self, amplitudes: Sequence[complex], phase: float = 0.0,
                 entanglement_id: Optional[str] = None):
        """
        Create a state vector, normalizing the amplitudes if needed.

        Args:
            amplitudes: Complex amplitudes (any sequence or numpy array)
            phase: Scalar phase in radians
            entanglement_id: Optional identifier of the pair this state belongs to

        Raises:
            EmptyInputError: if no amplitudes are given
            DegenerateStateError: if all amplitudes are zero or any is not finite
        """
        amps = am.as_amplitudes(amplitudes)
        if amps.size == 0:
            raise EmptyInputError("Quantum state must have at least one amplitude")
        if not np.all(np.isfinite(amps)):
            raise DegenerateStateError("Quantum state amplitudes must be finite")

        total = float(np.sum(np.abs(amps) ** 2))
        if total == 0.0:
            raise DegenerateStateError(
                "Quantum state cannot have all zero amplitudes",
                suggestions=["Check the source data chunk for corruption"])
        if abs(total - 1.0) > am.DEFAULT_TOLERANCE:
            amps = amps / np.sqrt(total)

        self._init_fields(amps, phase, entanglement_id)

    def _init_fields(self, amps: np.ndarray, phase: float, entanglement_id: Optional[str]) -> None:
        amps.flags.writeable = False
        self._amplitudes = amps
        self._phase = float(phase)
        self._entanglement_id = entanglement_id or None

    @classmethod
    def raw(cls, amplitudes: Sequence[complex], phase: float = 0.0,
            entanglement_id: Optional[str] = None) -> "QuantumStateVector":
        """
        Wrap amplitudes exactly as given, without validation or normalization.

        Only meant for inspecting received or corrupted data (for example in
        integrity verification); the result may violate the normalization
        invariant.
        """
        state = cls.__new__(cls)
        state._init_fields(am.as_amplitudes(amplitudes), phase, entanglement_id)
        return state

    # Properties

    @property
    def amplitudes(self) -> np.ndarray:
        return self._amplitudes

    @property
    def phase(self) -> float:
        return self._phase

    @property
    def entanglement_id(self) -> Optional[str]:
        return self._entanglement_id

    def __len__(self) -> int:
        return int(self._amplitudes.size)

    # Construction from data

    @classmethod
    def from_bytes(cls, data: bytes, phase: Optional[float] = None,
                   bit_depth: Optional[int] = None) -> "QuantumStateVector":
        """
        Encode bytes as amplitudes.

        Each byte ``b`` becomes an amplitude with magnitude ``(b + 1) / 256``
        (never zero) and phase ``b / 255 * 2π``. The scalar phase defaults to
        the Shannon entropy of ``data`` scaled by π.

        Args:
            data: Source bytes (at least one)
            phase: Explicit scalar phase, overriding the entropy-derived one
            bit_depth: If given, quantize amplitude phases to ``2**bit_depth`` levels

        Returns:
            New QuantumStateVector
        """
        if len(data) == 0:
            raise EmptyInputError("Cannot create quantum state from empty data")

        values = np.frombuffer(bytes(data), dtype=np.uint8)
        magnitudes = (values.astype(np.float64) + 1.0) / 256.0
        phases = am.calculate_quantum_phase(values)
        if bit_depth is not None:
            phases = am.quantize_phase(phases, bit_depth)

        if phase is None:
            phase = am.byte_entropy(data) * np.pi

        return cls(am.from_polar(magnitudes, phases), phase)

    def to_bytes(self) -> bytes:
        """
        Decode amplitudes back into bytes (lossy).

        Each byte is ``round((|a| * 256 - 1) rem 256)`` clamped to [0, 255],
        where ``rem`` keeps the sign of the dividend so that a zero byte whose
        normalized magnitude dips just below ``1 / 256`` decodes to 0 and not
        255. Because the stored amplitudes are normalized, the result
        approximates the source bytes rather than reproducing them.
        """
        values = np.round(np.fmod(np.abs(self._amplitudes) * 256.0 - 1.0, 256.0))
        return np.clip(values, 0, 255).astype(np.uint8).tobytes()

    @staticmethod
    def create_superposition(states: Sequence["QuantumStateVector"],
                             weights: Optional[Sequence[float]] = None) -> "QuantumStateVector":
        """
        Combine states into one vector weighted by ``sqrt(weight)``.

        Shorter states are zero padded to the longest length. The scalar phase
        is the weight-averaged phase of the inputs.
        """
        if len(states) == 0:
            raise EmptyInputError("Cannot create superposition from empty state list")

        if weights is None:
            weights = [1.0 / len(states)] * len(states)
        if len(weights) != len(states):
            raise DimensionMismatchError(
                f"Number of weights ({len(weights)}) must match number of states ({len(states)})")

        w = np.asarray(weights, dtype=np.float64)
        if np.any(w < 0) or float(w.sum()) <= 0:
            raise DegenerateStateError("Superposition weights must be non-negative with a positive sum")
        w = w / w.sum()

        size = max(len(s) for s in states)
        combined = np.zeros(size, dtype=np.complex128)
        for weight, state in zip(w, states):
            combined[:len(state)] += np.sqrt(weight) * state.amplitudes

        combined_phase = float(sum(weight * state.phase for weight, state in zip(w, states)))
        return QuantumStateVector(combined, combined_phase)

    # Transformations

    def apply_phase_shift(self, shift: float) -> "QuantumStateVector":
        """Rotate every amplitude and the scalar phase by ``shift`` radians."""
        rotated = self._amplitudes * np.exp(1j * shift)
        return QuantumStateVector(rotated, (self._phase + shift) % am.TWO_PI, self._entanglement_id)

    def with_entanglement_id(self, entanglement_id: Optional[str]) -> "QuantumStateVector":
        return QuantumStateVector.raw(self._amplitudes.copy(), self._phase, entanglement_id)

    def clear_entanglement(self) -> "QuantumStateVector":
        return self.with_entanglement_id(None)

    def normalize(self) -> "QuantumStateVector":
        return QuantumStateVector(am.normalize_amplitudes(self._amplitudes), self._phase,
                                  self._entanglement_id)

    def clone(self) -> "QuantumStateVector":
        return QuantumStateVector.raw(self._amplitudes.copy(), self._phase, self._entanglement_id)

    # Measures

    def get_probability_distribution(self) -> np.ndarray:
        return am.probability(self._amplitudes)

    def get_total_probability(self) -> float:
        return float(np.sum(am.probability(self._amplitudes)))

    def is_normalized(self, tolerance: float = am.DEFAULT_TOLERANCE) -> bool:
        return abs(self.get_total_probability() - 1.0) < tolerance

    def calculate_correlation(self, other: "QuantumStateVector") -> float:
        """Magnitude-product correlation over the shared amplitude prefix."""
        return am.calculate_correlation(self._amplitudes, other.amplitudes)

    def equals(self, other: "QuantumStateVector", tolerance: float = am.DEFAULT_TOLERANCE) -> bool:
        if not isinstance(other, QuantumStateVector):
            return False
        return (abs(self._phase - other.phase) < tolerance and
                am.amplitudes_equal(self._amplitudes, other.amplitudes, tolerance))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, QuantumStateVector):
            return NotImplemented
        return self.equals(other)

    __hash__ = None

    def fingerprint(self) -> str:
        """Structural key of the amplitudes and phase, used for memoization."""
        digest = hashlib.blake2b(digest_size=16)
        digest.update(np.ascontiguousarray(self._amplitudes).tobytes())
        digest.update(struct.pack("<d", self._phase))
        return digest.hexdigest()

    # Serialization

    def to_dict(self) -> Dict[str, Any]:
        return {
            "amplitudes": [[float(a.real), float(a.imag)] for a in self._amplitudes],
            "phase": self._phase,
            "entanglement_id": self._entanglement_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuantumStateVector":
        amplitudes: List[complex] = [complex(re, im) for re, im in data["amplitudes"]]
        return cls(amplitudes, data.get("phase", 0.0), data.get("entanglement_id"))

    def __repr__(self) -> str:
        return (f"QuantumStateVector(n={len(self)}, phase={self._phase:.4f}, "
                f"entanglement_id={self._entanglement_id!r})")
