"""
Amplitude arithmetic shared by every pipeline stage.

Amplitudes are plain Python ``complex`` values, stored in numpy ``complex128``
arrays. The helpers below add the polar construction, probability mass and
entropy measures the pipeline needs on top of the built-in arithmetic.
"""

import math
from typing import Iterable, Sequence, Union

import numpy as np

from ..exceptions import DegenerateStateError

ArrayLike = Union[Sequence[complex], np.ndarray]

TWO_PI = 2.0 * np.pi
DEFAULT_TOLERANCE = 1e-10


def as_amplitudes(values: ArrayLike) -> np.ndarray:
    """Return a fresh one-dimensional complex128 copy of ``values``."""
    return np.array(values, dtype=np.complex128).ravel()


def from_polar(magnitude: Union[float, np.ndarray], phase: Union[float, np.ndarray]):
    """Build amplitude(s) from magnitude and phase angle."""
    return np.multiply(magnitude, np.exp(1j * np.asarray(phase)))


def magnitude(amplitudes: ArrayLike) -> np.ndarray:
    return np.abs(np.asarray(amplitudes, dtype=np.complex128))


def probability(amplitudes: ArrayLike) -> np.ndarray:
    """Squared magnitude (probability mass) of each amplitude."""
    return np.abs(np.asarray(amplitudes, dtype=np.complex128)) ** 2


def phase(amplitudes: ArrayLike) -> np.ndarray:
    return np.angle(np.asarray(amplitudes, dtype=np.complex128))


def amplitudes_equal(a: ArrayLike, b: ArrayLike, tolerance: float = DEFAULT_TOLERANCE) -> bool:
    """Component-wise comparison of two amplitude sequences."""
    a = np.asarray(a, dtype=np.complex128)
    b = np.asarray(b, dtype=np.complex128)
    if a.shape != b.shape:
        return False
    return bool(np.all(np.abs(a.real - b.real) < tolerance) and
                np.all(np.abs(a.imag - b.imag) < tolerance))


def normalize_amplitudes(amplitudes: ArrayLike) -> np.ndarray:
    """
    Scale amplitudes so that their probability mass sums to one.

    Raises:
        DegenerateStateError: if the total probability is zero or not finite
    """
    amps = as_amplitudes(amplitudes)
    total = float(np.sum(np.abs(amps) ** 2))
    if total == 0.0 or not math.isfinite(total):
        raise DegenerateStateError(
            "Cannot normalize zero amplitudes",
            suggestions=["Provide at least one non-zero, finite amplitude"])
    return amps / np.sqrt(total)


def calculate_quantum_phase(byte_value: Union[int, np.ndarray]):
    """Map a byte value (0-255) onto a phase in [0, 2π]."""
    return np.asarray(byte_value, dtype=np.float64) / 255.0 * TWO_PI


def quantize_phase(phases: np.ndarray, bit_depth: int) -> np.ndarray:
    """Snap phases onto ``2**bit_depth`` evenly spaced levels."""
    levels = 2 ** int(bit_depth)
    return np.round(np.asarray(phases) / TWO_PI * levels) / levels * TWO_PI


def calculate_correlation(a: ArrayLike, b: ArrayLike) -> float:
    """
    Magnitude-product correlation of two amplitude sequences.

    Only the shared prefix is compared, so sequences of different length are
    truncated to the shorter one. Returns 0.0 if either sequence is empty.
    """
    a = np.asarray(a, dtype=np.complex128)
    b = np.asarray(b, dtype=np.complex128)
    n = min(a.size, b.size)
    if n == 0:
        return 0.0
    return float(np.sum(np.abs(a[:n]) * np.abs(b[:n])) / n)


def correlation_matrix(sequences: Sequence[ArrayLike]) -> np.ndarray:
    """
    Pairwise ``calculate_correlation`` of many sequences in one matrix product.

    Magnitudes are zero padded to a common width, so each product only sums
    over the shared prefix. The diagonal holds the self-correlation, not one.
    """
    n = len(sequences)
    if n == 0:
        return np.zeros((0, 0))
    lengths = np.array([np.size(s) for s in sequences])
    magnitudes = np.zeros((n, max(1, int(lengths.max()))))
    for i, seq in enumerate(sequences):
        magnitudes[i, :lengths[i]] = np.abs(np.asarray(seq, dtype=np.complex128))
    shared = np.minimum.outer(lengths, lengths).astype(np.float64)
    products = magnitudes @ magnitudes.T
    return np.divide(products, shared, out=np.zeros_like(products), where=shared > 0)


def apply_interference(a: ArrayLike, b: ArrayLike, interference_type: str = "constructive") -> np.ndarray:
    """
    Add (constructive) or subtract (destructive) two amplitude sequences.

    The result is normalized unless every amplitude cancels out, in which case
    the zero vector is returned as is.
    """
    a = as_amplitudes(a)
    b = as_amplitudes(b)
    n = min(a.size, b.size)
    sign = 1.0 if interference_type == "constructive" else -1.0
    result = a[:n] + sign * b[:n]
    if float(np.sum(np.abs(result) ** 2)) == 0.0:
        return result
    return normalize_amplitudes(result)


def interference_power(a: ArrayLike, b: ArrayLike, interference_type: str) -> float:
    """Mean probability mass of the normalized interference of two sequences."""
    combined = apply_interference(a, b, interference_type)
    if combined.size == 0:
        return 0.0
    return float(np.mean(np.abs(combined) ** 2))


def calculate_entropy(probabilities: Iterable[float]) -> float:
    """Shannon entropy (bits) of a probability vector; zero entries are skipped."""
    if not isinstance(probabilities, np.ndarray):
        probabilities = list(probabilities)
    p = np.asarray(probabilities, dtype=np.float64)
    p = p[p > 0]
    if p.size == 0:
        return 0.0
    return float(-np.sum(p * np.log2(p)))


def byte_frequencies(data: bytes) -> np.ndarray:
    """256-bin histogram of byte values."""
    return np.bincount(np.frombuffer(bytes(data), dtype=np.uint8), minlength=256)


def byte_entropy(data: bytes) -> float:
    """Shannon entropy (bits per byte) of a byte sequence."""
    if len(data) == 0:
        return 0.0
    counts = byte_frequencies(data)
    return calculate_entropy(counts[counts > 0] / len(data))


def quantum_hash(data: bytes) -> str:
    """Short XOR hash of the quantum phases of ``data``."""
    h = 0
    for value in bytes(data):
        h ^= int(math.floor(float(calculate_quantum_phase(value)) * 1_000_000)) % 0xFFFFFFFF
    return format(h, "x")
