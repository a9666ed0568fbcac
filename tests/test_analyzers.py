"""
Pattern, probability, entanglement and interference analysis tests.

Every analyzer that takes a state list returns an all-zero or empty result for
an empty list instead of raising.
"""

from __future__ import annotations

import logging
import math
import unittest
from unittest import mock

import numpy as np
import pytest

from quantum_flow.core.entanglement_analyzer import CorrelationCache, EntanglementAnalyzer
from quantum_flow.core.interference_optimizer import InterferenceOptimizer
from quantum_flow.core.pattern_recognizer import PatternRecognizer, RecognizedPattern
from quantum_flow.core.probability_analyzer import ProbabilityAnalyzer
from quantum_flow.core.state_vector import QuantumStateVector
from quantum_flow.core.superposition import SuperpositionState
from quantum_flow.exceptions import (EmptyDistributionError, InsufficientCorrelationError,
                                     InvalidParameterError, ProfileNotFoundError)
from quantum_flow.models.entanglement_pair import EntanglementPair

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("quantum_flow_analyzers")


def _states(*chunks: bytes):
    return [QuantumStateVector.from_bytes(chunk) for chunk in chunks]


# Equal magnitudes interfere fully; opposite signs cancel the constructive sum.
EXPECTED_INTERFERENCE = {((0, 1), "constructive"), ((0, 3), "destructive"), ((1, 3), "destructive")}


def _interfering_states():
    return [QuantumStateVector([1.0, 0.0]), QuantumStateVector([1.0, 0.0]),
            QuantumStateVector([0.0, 1.0]), QuantumStateVector([-1.0, 0.0])]


def _interference_summary(patterns):
    return {(tuple(p["state_indices"]), p["type"]) for p in patterns}


class EmptyInputAnalysisTests(unittest.TestCase):
    """Analyzers degrade to empty results on an empty state list."""

    def test_pattern_recognizer(self):
        recognizer = PatternRecognizer()
        self.assertEqual(recognizer.recognize_patterns([]), [])
        analysis = recognizer.analyze_probability_distributions([])
        self.assertEqual(analysis["average_entropy"], 0.0)
        self.assertEqual(analysis["probability_distributions"], [])
        self.assertEqual(recognizer.detect_interference_patterns([]), [])
        self.assertEqual(recognizer.calculate_pattern_compression_efficiency([])["total_patterns"], 0)
        self.assertEqual(recognizer.optimize_patterns_for_compression([]), [])

    def test_probability_analyzer(self):
        analysis = ProbabilityAnalyzer().analyze_probability_distributions([])
        self.assertEqual(analysis["total_states"], 0)
        self.assertEqual(analysis["statistics"]["average_entropy"], 0.0)
        self.assertEqual(analysis["outliers"]["outlier_count"], 0)
        self.assertEqual(analysis["clusters"]["clusters"], [])

    def test_entanglement_analyzer(self):
        analyzer = EntanglementAnalyzer()
        self.assertEqual(analyzer.find_entangled_patterns([]), [])
        self.assertEqual(analyzer.extract_shared_information([])["compression_potential"], 0.0)
        self.assertEqual(analyzer.calculate_advanced_correlation_metrics([])["average_correlation"], 0.0)
        self.assertEqual(analyzer.analyze_correlation_patterns([])["total_pairs"], 0)

    def test_interference_optimizer(self):
        result = InterferenceOptimizer().optimize_quantum_states([])
        self.assertEqual(result["optimized_states"], [])
        self.assertEqual(result["interference_patterns"], [])
        iterative = InterferenceOptimizer().perform_iterative_optimization([])
        self.assertFalse(iterative["convergence_achieved"])


class PatternRecognizerTests(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.states = _states(b"abab", b"abab", b"xyzw")

    def test_patterns_sorted_by_significance(self):
        patterns = PatternRecognizer(min_pattern_length=2, max_pattern_length=4,
                                     max_workers=1).recognize_patterns(self.states)
        self.assertTrue(patterns)
        significances = [p.significance for p in patterns]
        self.assertEqual(significances, sorted(significances, reverse=True))
        self.assertTrue(all(p.frequency >= 2 for p in patterns))
        self.assertEqual(patterns[0].frequency, 4)

    def test_parallel_mining_matches_serial(self):
        serial = PatternRecognizer(max_pattern_length=4, max_workers=1).recognize_patterns(self.states)
        parallel = PatternRecognizer(max_pattern_length=4, max_workers=4).recognize_patterns(self.states)
        self.assertEqual([p.id for p in serial], [p.id for p in parallel])

    def test_setters_validate(self):
        recognizer = PatternRecognizer()
        with self.assertRaises(InvalidParameterError):
            recognizer.max_pattern_length = 65
        with self.assertRaises(InvalidParameterError):
            recognizer.similarity_threshold = 1.5
        with self.assertRaises(InvalidParameterError):
            recognizer.frequency_threshold = 0
        with self.assertRaises(InvalidParameterError):
            PatternRecognizer(min_pattern_length=5, max_pattern_length=4)

    def test_significance_weights_frequency_length_and_complexity(self):
        recognizer = PatternRecognizer(min_pattern_length=2, max_pattern_length=4, complexity_weight=0.3,
                                       max_workers=1)
        patterns = recognizer.recognize_patterns(self.states)
        self.assertTrue(patterns)
        for pattern in patterns:
            expected = (0.5 * math.log(pattern.frequency + 1) + 0.3 * pattern.length / 4
                        + 0.2 * (1 - pattern.complexity) * 0.3)
            self.assertAlmostEqual(pattern.significance, expected, places=12)

        recognizer = PatternRecognizer(max_pattern_length=8, complexity_weight=0.5)
        self.assertAlmostEqual(recognizer._pattern_significance(3, 4, 0.25),
                               0.5 * math.log(4) + 0.3 * 0.5 + 0.2 * 0.75 * 0.5)

    def test_similar_patterns_grouped_under_most_frequent(self):
        def pattern(pattern_id, amplitudes, frequency):
            return RecognizedPattern(pattern_id, tuple(complex(a) for a in amplitudes), len(amplitudes),
                                     frequency, tuple((0, k) for k in range(frequency)), 0.1, 1.0)

        rare = pattern("rare", (0.5, 0.5), 2)
        common = pattern("common", (0.5, 0.51), 5)
        longer = pattern("longer", (0.1, 0.9, 0.1), 2)
        groups = PatternRecognizer().optimize_patterns_for_compression([longer, rare, common])

        self.assertEqual(len(groups), 2)
        self.assertEqual(groups[0]["id"], "optimized_common")
        self.assertIs(groups[0]["representative_pattern"], common)
        self.assertEqual(groups[0]["group_size"], 2)
        self.assertEqual(groups[0]["total_frequency"], 7)
        self.assertAlmostEqual(groups[0]["compression_value"], 5 / 14)
        self.assertEqual(groups[1]["id"], "optimized_longer")
        self.assertAlmostEqual(groups[1]["compression_value"], 1 / 6)
        self.assertEqual(PatternRecognizer().optimize_patterns_for_compression([]), [])

    def test_interference_between_correlated_states(self):
        patterns = PatternRecognizer().detect_interference_patterns(_interfering_states())
        self.assertEqual(_interference_summary(patterns), EXPECTED_INTERFERENCE)
        for pattern in patterns:
            self.assertAlmostEqual(pattern["strength"], 0.5)
            self.assertAlmostEqual(pattern["correlation"], 0.5)
            self.assertEqual(pattern["amplitude_indices"], [0, 1])


class ProbabilityAnalyzerTests(unittest.TestCase):

    def test_parameter_ranges(self):
        with self.assertRaises(InvalidParameterError):
            ProbabilityAnalyzer(confidence_level=1.0)
        with self.assertRaises(InvalidParameterError):
            ProbabilityAnalyzer(sampling_rate=0.0)
        with self.assertRaises(InvalidParameterError):
            ProbabilityAnalyzer(distribution_bins=1)
        with self.assertRaises(InvalidParameterError):
            ProbabilityAnalyzer(outlier_threshold=0)

    def test_analysis_of_states(self):
        states = _states(b"hello", b"world", b"\x00\x00\x00\x00", bytes(range(16)))
        analyzer = ProbabilityAnalyzer()
        analysis = analyzer.analyze_probability_distributions(states)
        self.assertEqual(analysis["total_states"], 4)
        self.assertEqual(analysis["sampled_states"], 4)
        self.assertGreater(analysis["statistics"]["average_entropy"], 0.0)

        potential = analyzer.estimate_compression_potential(analysis)
        self.assertGreaterEqual(potential["confidence"], 0.1)
        self.assertLessEqual(potential["confidence"], 0.95)

    def test_quantum_probabilities_sum_to_one(self):
        superposition = SuperpositionState.from_quantum_states(_states(b"abc", b"defg"))
        result = ProbabilityAnalyzer().calculate_quantum_probabilities(superposition)
        self.assertAlmostEqual(sum(result["normalized_probabilities"]), 1.0, delta=1e-10)
        self.assertAlmostEqual(result["total_probability"], 1.0, delta=1e-10)
        self.assertEqual(len(result["uncertainties"]), 4)

    def test_significance_tests(self):
        analyzer = ProbabilityAnalyzer()
        with self.assertRaises(EmptyDistributionError):
            analyzer.perform_significance_tests([], [[0.5, 0.5]])

        rng = np.random.default_rng(7)
        result = analyzer.perform_significance_tests([rng.uniform(0, 0.1, 200)], [rng.uniform(0.5, 1.0, 200)])
        self.assertTrue(result["kolmogorov_smirnov"]["is_significant"])
        self.assertTrue(result["mann_whitney"]["is_significant"])
        self.assertGreater(result["overall_significance"], 0.5)

    def test_clusters_separate_distinct_distributions(self):
        low = QuantumStateVector([1.0, 0.1, 0.1, 0.1])
        high = QuantumStateVector([0.1, 0.2, 0.1, 1.0])
        clusters = ProbabilityAnalyzer().analyze_probability_distributions(
            [low, low.clone(), high, high.clone()])["clusters"]

        self.assertEqual(clusters["cluster_count"], 3)
        self.assertEqual(sorted(c["size"] for c in clusters["clusters"]), [0, 2, 2])
        members = sorted(c["members"] for c in clusters["clusters"] if c["members"])
        self.assertEqual(members, [[0, 1], [2, 3]])
        self.assertAlmostEqual(clusters["silhouette_score"], 1.0)
        self.assertGreater(clusters["inter_cluster_distance"], 0.0)

        single = ProbabilityAnalyzer().analyze_probability_distributions([low])["clusters"]
        self.assertEqual(single["cluster_count"], 0)

    def test_coherence_effects_track_decay(self):
        superposition = SuperpositionState.from_quantum_states(_states(b"abcd", b"wxyz"))
        analyzer = ProbabilityAnalyzer()
        result = analyzer.analyze_coherence_effects(superposition, time_steps=10,
                                                    rng=np.random.default_rng(11))

        decay = result["coherence_decay"]
        self.assertEqual(len(decay), 11)
        self.assertEqual(len(result["probability_evolution"]), 11)
        self.assertAlmostEqual(result["initial_coherence"], 1.0)
        self.assertAlmostEqual(decay[0]["coherence_level"], 1.0)
        self.assertAlmostEqual(decay[-1]["coherence_level"], 0.0)
        self.assertTrue(decay[0]["is_coherent"])
        self.assertFalse(decay[-1]["is_coherent"])
        self.assertAlmostEqual(result["decoherence_rate"], 1.0)

        self.assertAlmostEqual(sum(result["probability_evolution"][0]), 1.0)
        self.assertAlmostEqual(sum(result["probability_evolution"][5]), 0.5)
        self.assertGreaterEqual(result["stability_metric"], 0.0)
        self.assertLessEqual(result["stability_metric"], 1.0)
        self.assertAlmostEqual(superposition.coherence_time, 1.0)

        with self.assertRaises(InvalidParameterError):
            analyzer.analyze_coherence_effects(superposition, time_steps=0)


class EntanglementAnalyzerTests(unittest.TestCase):

    def test_identical_states_closed_form(self):
        state = QuantumStateVector.from_bytes(bytes([100, 150, 200, 50]))
        analyzer = EntanglementAnalyzer(correlation_threshold=0.2)
        pairs = analyzer.find_entangled_patterns([state, state.clone()])
        self.assertEqual(len(pairs), 1)

        expected = float(np.sum(np.abs(state.amplitudes) ** 2)) / len(state)
        self.assertAlmostEqual(pairs[0].correlation_strength, expected, places=12)
        self.assertEqual(pairs[0].state_a.entanglement_id, pairs[0].entanglement_id)
        self.assertEqual(pairs[0].state_b.entanglement_id, pairs[0].entanglement_id)

    def test_no_state_reused(self):
        states = _states(b"abcd", b"abcd", b"abce", b"zzzz", b"abcd", b"qrst")
        analyzer = EntanglementAnalyzer(correlation_threshold=0.2)
        pairs = analyzer.find_entangled_patterns(states)
        self.assertTrue(pairs)

        fingerprints = [member.clear_entanglement().fingerprint()
                        for pair in pairs for member in (pair.state_a, pair.state_b)]
        counts = {}
        for fp in fingerprints:
            counts[fp] = counts.get(fp, 0) + 1
        available = {}
        for state in states:
            available[state.fingerprint()] = available.get(state.fingerprint(), 0) + 1
        for fp, used in counts.items():
            self.assertLessEqual(used, available[fp])
        self.assertLessEqual(len(pairs), len(states) // 2)

        strengths = [p.correlation_strength for p in pairs]
        self.assertEqual(strengths, sorted(strengths, reverse=True))

    def test_max_pairs_and_threshold(self):
        states = _states(*([b"abcd"] * 8))
        self.assertEqual(len(EntanglementAnalyzer(0.2, max_entanglement_pairs=2)
                             .find_entangled_patterns(states)), 2)
        self.assertEqual(EntanglementAnalyzer(0.9).find_entangled_patterns(states), [])

    def test_threshold_change_clears_cache(self):
        analyzer = EntanglementAnalyzer(0.2)
        states = _states(b"abcd", b"efgh")
        analyzer.calculate_pairwise_correlation(*states)
        self.assertEqual(len(analyzer.cache), 1)
        analyzer.set_correlation_threshold(0.3)
        self.assertEqual(len(analyzer.cache), 0)
        with self.assertRaises(InvalidParameterError):
            analyzer.set_correlation_threshold(1.5)

    def test_correlation_matrix_shares_cache(self):
        analyzer = EntanglementAnalyzer(0.2)
        states = _states(b"abcd", b"efgh", b"ijkl")
        analyzer.cache.put(CorrelationCache.key(states[0], states[1]), 0.42)

        matrix = analyzer.calculate_correlation_matrix(states)
        self.assertAlmostEqual(matrix[0, 1], 0.42)
        self.assertAlmostEqual(matrix[1, 0], 0.42)
        np.testing.assert_allclose(np.diag(matrix), 1.0)
        self.assertEqual(len(analyzer.cache), 3)
        self.assertAlmostEqual(analyzer.calculate_pairwise_correlation(states[1], states[2]), matrix[1, 2])
        self.assertAlmostEqual(matrix[1, 2], states[1].calculate_correlation(states[2]))

    def test_shared_information_and_quality(self):
        states = _states(b"aaaabbbb", b"aaaabbbb", b"aaaabbbc", b"aaaabbbc")
        analyzer = EntanglementAnalyzer(0.1)
        pairs = analyzer.find_entangled_patterns(states)
        self.assertEqual(len(pairs), 2)

        shared = analyzer.extract_shared_information(pairs)
        values = [p["compression_value"] for p in shared["shared_patterns"]]
        self.assertEqual(values, sorted(values, reverse=True))
        self.assertLessEqual(shared["compression_potential"], 1.0)

        metrics = analyzer.calculate_advanced_correlation_metrics(pairs)
        self.assertGreaterEqual(metrics["correlation_stability"], 0.0)
        self.assertEqual(len(metrics["correlation_distribution"]), 10)

        quality = EntanglementAnalyzer(0.9).validate_entanglement_quality(pairs)
        self.assertEqual(len(quality["invalid_pairs"]), 2)
        self.assertTrue(quality["suggestions"])


def test_pair_below_creation_threshold_is_rejected() -> None:
    a, b = _states(b"abcd", b"efgh")
    with pytest.raises(InsufficientCorrelationError):
        EntanglementPair(a, b, correlation_strength=0.05, min_creation_threshold=0.1)
    with pytest.raises(InvalidParameterError):
        EntanglementPair(a, b, correlation_strength=1.5, min_creation_threshold=0.0)


def test_pair_dict_round_trip() -> None:
    a, b = _states(b"abcd", b"abce")
    pair = EntanglementPair(a, b, correlation_strength=0.24)
    restored = EntanglementPair.from_dict(pair.to_dict())
    assert restored.entanglement_id == pair.entanglement_id
    assert restored.shared_information == pair.shared_information
    assert restored.equals(pair)


def test_break_entanglement_clears_ids() -> None:
    a, b = _states(b"abcd", b"abce")
    pair = EntanglementPair(a, b, correlation_strength=0.24)
    assert pair.state_a.entanglement_id == pair.entanglement_id

    released_a, released_b = pair.break_entanglement()
    assert released_a.entanglement_id is None
    assert released_b.entanglement_id is None
    assert released_a == a
    assert released_b == b
    assert pair.state_b.entanglement_id == pair.entanglement_id


class InterferenceOptimizerTests(unittest.TestCase):

    def test_constructive_and_destructive_patterns(self):
        optimizer = InterferenceOptimizer(constructive_threshold=0.5, destructive_threshold=0.2,
                                          amplification_factor=2.0, suppression_factor=0.5)
        patterns = [
            {"index": 0, "amplitude": 0.8 + 0j, "probability": 0.64, "magnitude": 0.8},
            {"index": 1, "amplitude": 0.9 + 0j, "probability": 0.81, "magnitude": 0.9},
            {"index": 2, "amplitude": 0.3 + 0j, "probability": 0.09, "magnitude": 0.3},
            {"index": 3, "amplitude": 0.4 + 0j, "probability": 0.16, "magnitude": 0.4},
        ]
        boosted = optimizer.apply_constructive_interference(patterns)
        self.assertEqual([p["original_index"] for p in boosted], [1, 0])
        self.assertAlmostEqual(boosted[0]["optimized_probability"], (0.9 * 2) ** 2)

        damped = optimizer.apply_destructive_interference(patterns)
        self.assertEqual([p["original_index"] for p in damped], [2, 3])

    def test_single_state_pass_through(self):
        state = QuantumStateVector.from_bytes(b"abcd")
        result = InterferenceOptimizer().optimize_quantum_states([state])
        self.assertEqual(result["optimized_states"], [state])
        self.assertEqual(result["optimization_metrics"]["constructive_operations"], 0)

    def test_optimized_states_stay_normalized(self):
        states = [QuantumStateVector([1.0]), QuantumStateVector([1.0]), QuantumStateVector([1.0, 1.0])]
        result = InterferenceOptimizer(min_interference_correlation=0.1).optimize_quantum_states(states)
        self.assertEqual(len(result["optimized_states"]), 3)
        self.assertTrue(all(s.is_normalized(1e-9) for s in result["optimized_states"]))
        self.assertTrue(result["interference_patterns"])

    def test_profiles(self):
        optimizer = InterferenceOptimizer()
        optimizer.load_profile("aggressive")
        self.assertAlmostEqual(optimizer.constructive_threshold, 0.6)
        self.assertEqual(optimizer.current_profile, "aggressive")

        optimizer.create_profile("custom", 0.9, 0.1, 2.0, 0.2)
        self.assertIn("custom", optimizer.list_profiles())
        self.assertEqual(optimizer.create_data_type_profile("audio").name, "audio-optimized")

        with self.assertRaises(ProfileNotFoundError):
            optimizer.load_profile("missing")
        with self.assertRaises(InvalidParameterError):
            optimizer.create_profile("broken", 0.5, 0.2, 0.9, 0.1)

    def test_iterative_optimization_is_bounded(self):
        states = _states(b"aaaa", b"aaab", b"abcd", b"dcba")
        result = InterferenceOptimizer(max_iterations=3).perform_iterative_optimization(states)
        self.assertLessEqual(len(result["iterations"]), 3)
        self.assertEqual(len(result["final_states"]), 4)

    def test_iterative_optimization_stops_when_improvement_settles(self):
        settled = InterferenceOptimizer(max_iterations=5).perform_iterative_optimization(
            [QuantumStateVector([1.0, 0.0]), QuantumStateVector([0.0, 1.0])])
        self.assertTrue(settled["convergence_achieved"])
        self.assertEqual(len(settled["iterations"]), 1)

        optimizer = InterferenceOptimizer(max_iterations=3)
        improvements = iter([0.1, 0.2, 0.3])

        def growing(states):
            metrics = optimizer._optimization_metrics(len(states), len(states), 1, 0, 0.5, 0.0,
                                                      next(improvements))
            return {"original_states": list(states), "optimized_states": list(states),
                    "interference_patterns": [], "optimization_metrics": metrics}

        with mock.patch.object(optimizer, "optimize_quantum_states", side_effect=growing):
            unsettled = optimizer.perform_iterative_optimization(_states(b"abcd", b"abce"))
        self.assertFalse(unsettled["convergence_achieved"])
        self.assertEqual([it["iteration_number"] for it in unsettled["iterations"]], [1, 2, 3])
        self.assertAlmostEqual(unsettled["total_improvement"], 0.6)

    def test_detects_interference_between_states(self):
        patterns = InterferenceOptimizer().detect_interference_patterns(_interfering_states())
        self.assertEqual(_interference_summary(patterns), EXPECTED_INTERFERENCE)
        self.assertTrue(all(abs(p["strength"] - 0.5) < 1e-9 for p in patterns))
        self.assertEqual(InterferenceOptimizer(min_interference_correlation=0.5)
                         .detect_interference_patterns(_interfering_states()), [])

    def test_adaptive_thresholds_follow_entropy(self):
        optimizer = InterferenceOptimizer()
        spread = optimizer.adjust_thresholds_adaptively(_states(b"abcd", b"wxyz"))
        self.assertTrue(spread["adjustment_reason"].startswith("High entropy"))
        self.assertAlmostEqual(spread["adjusted_thresholds"]["constructive_threshold"], 0.8)
        self.assertAlmostEqual(spread["adjusted_thresholds"]["destructive_threshold"], 0.2)
        self.assertAlmostEqual(optimizer.constructive_threshold, 0.7)

        adaptive = InterferenceOptimizer(adaptive_thresholds=True)
        peaked = adaptive.adjust_thresholds_adaptively([QuantumStateVector([1.0]), QuantumStateVector([1.0])])
        self.assertTrue(peaked["adjustment_reason"].startswith("Low entropy"))
        self.assertIn("High probability concentration", peaked["adjustment_reason"])
        self.assertAlmostEqual(adaptive.constructive_threshold, 0.65)
        self.assertAlmostEqual(adaptive.destructive_threshold, 0.4)
        self.assertAlmostEqual(peaked["original_thresholds"]["constructive_threshold"], 0.7)

        empty = InterferenceOptimizer().adjust_thresholds_adaptively([])
        self.assertEqual(empty["adjustment_reason"], "No states provided")

    def test_minimal_representation_restores_thresholds(self):
        optimizer = InterferenceOptimizer(min_interference_correlation=0.05)
        states = _states(b"abcd", b"abce", b"wxyz", b"aaaa")
        result = optimizer.optimize_for_minimal_representation(states)

        self.assertAlmostEqual(optimizer.constructive_threshold, 0.7)
        self.assertAlmostEqual(optimizer.destructive_threshold, 0.3)
        self.assertEqual(len(result["minimal_states"]), 4)
        self.assertTrue(all(s.is_normalized(1e-9) for s in result["minimal_states"]))
        self.assertLessEqual(result["representation_ratio"], 1.0)
        self.assertAlmostEqual(result["compression_achieved"], 1 - result["representation_ratio"])
        self.assertGreater(result["quality_metrics"]["fidelity"], 0.0)

        empty = optimizer.optimize_for_minimal_representation([])
        self.assertEqual(empty["representation_ratio"], 1.0)


if __name__ == "__main__":
    unittest.main()
