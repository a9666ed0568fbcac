"""
State vector and byte conversion tests.

The byte -> state -> byte path is approximate by contract: for
[100, 150, 200, 50] in one chunk every byte comes back within 14, and a
single-byte chunk always decodes to 255.
"""

from __future__ import annotations

import logging
import unittest

import numpy as np
import pytest

from quantum_flow.core.state_converter import QuantumStateConverter
from quantum_flow.core.state_vector import QuantumStateVector
from quantum_flow.core.superposition import SuperpositionState
from quantum_flow.exceptions import (DegenerateStateError, DimensionMismatchError, EmptyInputError,
                                     InvalidParameterError)

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("quantum_flow_state_conversion")

SAMPLE = bytes([100, 150, 200, 50])


class StateVectorTests(unittest.TestCase):

    def test_constructor_normalizes(self):
        state = QuantumStateVector([3, 4])
        self.assertTrue(state.is_normalized())
        np.testing.assert_allclose(np.abs(state.amplitudes), [0.6, 0.8])

    def test_degenerate_and_empty(self):
        with self.assertRaises(DegenerateStateError):
            QuantumStateVector([0, 0, 0])
        with self.assertRaises(DegenerateStateError):
            QuantumStateVector([1, np.nan])
        with self.assertRaises(EmptyInputError):
            QuantumStateVector([])

    def test_amplitudes_are_read_only(self):
        state = QuantumStateVector([1, 1])
        with self.assertRaises(ValueError):
            state.amplitudes[0] = 5

    def test_transformations_return_new_instances(self):
        state = QuantumStateVector([1, 1j], phase=0.5)
        shifted = state.apply_phase_shift(np.pi / 2)
        self.assertIsNot(shifted, state)
        self.assertAlmostEqual(state.phase, 0.5)
        self.assertAlmostEqual(shifted.phase, 0.5 + np.pi / 2)

        tagged = state.with_entanglement_id("entangled-1")
        self.assertEqual(tagged.entanglement_id, "entangled-1")
        self.assertIsNone(state.entanglement_id)
        self.assertIsNone(tagged.clear_entanglement().entanglement_id)

    def test_correlation_of_identical_states(self):
        state = QuantumStateVector([1, 2, 3, 4])
        expected = float(np.sum(np.abs(state.amplitudes) ** 2)) / 4
        self.assertAlmostEqual(state.calculate_correlation(state.clone()), expected, places=12)

    def test_dict_round_trip(self):
        state = QuantumStateVector.from_bytes(SAMPLE).with_entanglement_id("pair-7")
        restored = QuantumStateVector.from_dict(state.to_dict())
        self.assertEqual(restored, state)
        self.assertEqual(restored.entanglement_id, "pair-7")
        self.assertEqual(restored.fingerprint(), state.fingerprint())

    def test_create_superposition_weight_mismatch(self):
        a = QuantumStateVector([1, 0])
        with self.assertRaises(DimensionMismatchError):
            QuantumStateVector.create_superposition([a, a], [1.0])
        with self.assertRaises(EmptyInputError):
            QuantumStateVector.create_superposition([])


class StateConverterTests(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.converter = QuantumStateConverter(bit_depth=6, chunk_size=4)

    def test_sample_round_trip_is_bounded(self):
        states = self.converter.to_states(SAMPLE)
        self.assertEqual(len(states), 1)
        self.assertEqual(len(states[0]), 4)
        self.assertTrue(all(s.is_normalized() for s in states))

        restored = self.converter.from_states(states)
        self.assertGreaterEqual(len(restored), len(SAMPLE))
        deviation = np.abs(np.frombuffer(restored, dtype=np.uint8)[:4].astype(int) -
                           np.frombuffer(SAMPLE, dtype=np.uint8).astype(int))
        logger.info(f"Per-byte deviation: {deviation.tolist()}")
        self.assertLessEqual(int(deviation.max()), 14)

    def test_zero_byte_decodes_to_zero(self):
        data = bytes([0, 100, 150, 200])
        restored = np.frombuffer(self.converter.from_states(self.converter.to_states(data)), dtype=np.uint8)
        self.assertEqual(int(restored[0]), 0)
        deviation = np.abs(restored[:4].astype(int) - np.frombuffer(data, dtype=np.uint8).astype(int))
        self.assertLessEqual(int(deviation.max()), 14)

        heavy = QuantumStateConverter(chunk_size=4).to_states(bytes([0, 255, 255, 255]))
        self.assertEqual(heavy[0].to_bytes()[0], 0)

    def test_single_byte_chunk_decodes_to_255(self):
        for value in (0, 17, 255):
            states = QuantumStateConverter(chunk_size=1).to_states(bytes([value]))
            self.assertEqual(self.converter.from_states(states), b"\xff")

    def test_scalar_phase_is_whole_input_entropy(self):
        data = b"aaaabbbbccccdddd"
        states = self.converter.to_states(data)
        self.assertEqual(len(states), 4)
        expected = 2.0 * np.pi  # four symbols -> 2 bits of entropy
        for state in states:
            self.assertAlmostEqual(state.phase, expected)

    def test_last_chunk_may_be_shorter(self):
        states = QuantumStateConverter(chunk_size=4).to_states(bytes(range(10)))
        self.assertEqual([len(s) for s in states], [4, 4, 2])

    def test_empty_inputs(self):
        with self.assertRaises(EmptyInputError):
            self.converter.to_states(b"")
        with self.assertRaises(EmptyInputError):
            self.converter.from_states([])

    def test_parameter_ranges(self):
        with self.assertRaises(InvalidParameterError):
            QuantumStateConverter(bit_depth=1)
        with self.assertRaises(InvalidParameterError):
            QuantumStateConverter(chunk_size=257)

    def test_analyze_data_patterns(self):
        analysis = self.converter.analyze_data_patterns(b"\x00" * 64)
        self.assertEqual(analysis["entropy"], 0.0)
        self.assertEqual(analysis["byte_frequencies"][0], 64)
        self.assertAlmostEqual(analysis["repetition_rate"], 255 / 256)
        self.assertEqual(analysis["recommended_chunk_size"], 2)

        noisy = self.converter.analyze_data_patterns(bytes(range(256)))
        self.assertAlmostEqual(noisy["entropy"], 8.0)
        self.assertEqual(noisy["recommended_chunk_size"], 8)

        optimized = self.converter.optimize_for_data(bytes(range(256)))
        self.assertEqual(optimized.chunk_size, 8)

    def test_conversion_stats(self):
        states = self.converter.to_states(bytes(range(10)))
        stats = self.converter.get_conversion_stats(10, states)
        self.assertEqual(stats["quantum_state_count"], 3)
        self.assertEqual(stats["total_amplitudes"], 10)
        self.assertEqual(stats["estimated_quantum_size"], 160)


def test_superposition_weights_are_normalized() -> None:
    states = [QuantumStateVector.from_bytes(b"ab"), QuantumStateVector.from_bytes(b"cdef")]
    superposition = SuperpositionState.from_quantum_states(states, weights=[1, 3])
    np.testing.assert_allclose(superposition.weights, [0.25, 0.75])
    assert len(superposition.amplitudes) == 4
    assert len(superposition.constituent_states) == 2


def test_superposition_rejects_bad_weights() -> None:
    state = QuantumStateVector.from_bytes(b"ab")
    with pytest.raises(DimensionMismatchError):
        SuperpositionState.from_quantum_states([state, state], weights=[1.0])
    with pytest.raises(InvalidParameterError):
        SuperpositionState.from_quantum_states([state], weights=[-1.0])
    with pytest.raises(EmptyInputError):
        SuperpositionState.from_quantum_states([])


def test_superposition_amplitude_length_matches_longest_constituent() -> None:
    short, long = QuantumStateVector.from_bytes(b"ab"), QuantumStateVector.from_bytes(b"cdef")
    with pytest.raises(DimensionMismatchError):
        SuperpositionState([1, 0], [short, long], [0.5, 0.5])
    assert len(SuperpositionState([1, 0, 0, 0], [short, long], [0.5, 0.5]).amplitudes) == 4


def test_decoherence_returns_new_state() -> None:
    states = [QuantumStateVector.from_bytes(b"abcd"), QuantumStateVector.from_bytes(b"wxyz")]
    superposition = SuperpositionState.from_quantum_states(states, weights=[0.3, 0.7])
    original_amplitudes = np.array(superposition.amplitudes)

    decohered = superposition.apply_decoherence(0.25, rng=np.random.default_rng(7))
    assert decohered is not superposition
    assert decohered.coherence_time == pytest.approx(0.75)
    assert superposition.coherence_time == pytest.approx(1.0)
    np.testing.assert_allclose(superposition.amplitudes, original_amplitudes)
    np.testing.assert_allclose(decohered.weights, [0.3, 0.7])
    np.testing.assert_allclose(np.abs(decohered.amplitudes), np.abs(original_amplitudes) * np.sqrt(0.75))

    exhausted = decohered.apply_decoherence(5.0, rng=np.random.default_rng(7))
    assert exhausted.coherence_time == 0.0
    assert not exhausted.is_coherent()
    assert not np.any(exhausted.amplitudes)

    with pytest.raises(InvalidParameterError):
        superposition.apply_decoherence(-1.0)


def test_measure_follows_weights() -> None:
    states = [QuantumStateVector.from_bytes(b"ab"), QuantumStateVector.from_bytes(b"cd")]
    rng = np.random.default_rng(3)
    certain = SuperpositionState.from_quantum_states(states, weights=[0.0, 1.0])
    for _ in range(20):
        index, state = certain.measure(rng)
        assert index == 1
        assert state == states[1]

    uniform = SuperpositionState.from_quantum_states(states)
    seen = {uniform.measure(rng)[0] for _ in range(200)}
    assert seen == {0, 1}
    np.testing.assert_allclose(uniform.weights, [0.5, 0.5])


def test_superposition_phase_shift_keeps_probabilities() -> None:
    states = [QuantumStateVector.from_bytes(b"abcd"), QuantumStateVector.from_bytes(b"wxyz")]
    superposition = SuperpositionState.from_quantum_states(states)
    original_amplitudes = np.array(superposition.amplitudes)

    shifted = superposition.apply_phase_shift(np.pi / 3)
    np.testing.assert_allclose(shifted.amplitudes, original_amplitudes * np.exp(1j * np.pi / 3))
    np.testing.assert_allclose(np.abs(shifted.amplitudes) ** 2, np.abs(original_amplitudes) ** 2)
    np.testing.assert_allclose(superposition.amplitudes, original_amplitudes)
    assert shifted.calculate_entropy() == pytest.approx(superposition.calculate_entropy())
