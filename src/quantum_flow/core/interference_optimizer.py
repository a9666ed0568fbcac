"""
Amplitude amplification and suppression ("interference") passes.

Thresholds come in named profiles: immutable ``ThresholdProfile`` records held
in a per-optimizer registry seeded with the built-in profiles below.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from ..exceptions import InvalidParameterError, ProfileNotFoundError
from . import amplitude_math as am
from .state_vector import QuantumStateVector
from .superposition import SuperpositionState

logger = logging.getLogger(__name__)

CONVERGENCE_DELTA = 1e-3
MINIMAL_REPRESENTATION_ITERATIONS = 20


@dataclass(frozen=True)
class ThresholdProfile:
    name: str
    constructive: float
    destructive: float
    amplification: float
    suppression: float
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


BUILTIN_PROFILES = {
    p.name: p for p in (
        ThresholdProfile("default", 0.7, 0.3, 1.5, 0.1, "Default balanced profile for general use"),
        ThresholdProfile("conservative", 0.8, 0.2, 1.3, 0.15, "Conservative profile with higher thresholds"),
        ThresholdProfile("aggressive", 0.6, 0.4, 1.8, 0.05, "Aggressive profile for maximum compression"),
        ThresholdProfile("high-quality", 0.75, 0.25, 1.4, 0.12, "High-quality profile preserving more information"),
        ThresholdProfile("text-optimized", 0.6, 0.4, 1.8, 0.05, "Optimized for text data"),
        ThresholdProfile("binary-optimized", 0.8, 0.2, 1.3, 0.15, "Optimized for binary data"),
        ThresholdProfile("image-optimized", 0.7, 0.3, 1.6, 0.08, "Optimized for image data"),
        ThresholdProfile("audio-optimized", 0.65, 0.35, 1.7, 0.06, "Optimized for audio data"),
        ThresholdProfile("mixed-optimized", 0.7, 0.3, 1.5, 0.1, "Optimized for mixed data"),
    )
}

DATA_TYPE_MULTIPLIERS = {"text": 1.3, "binary": 0.8, "image": 1.1, "audio": 1.2, "mixed": 1.0}


def _validate_thresholds(constructive: float, destructive: float, amplification: float,
                         suppression: float) -> None:
    if not 0 < constructive <= 1:
        raise InvalidParameterError("Constructive threshold must be between 0 (exclusive) and 1")
    if not 0 <= destructive < 1:
        raise InvalidParameterError("Destructive threshold must be between 0 and 1 (exclusive)")
    if amplification <= 1:
        raise InvalidParameterError("Amplification factor must be greater than 1")
    if not 0 <= suppression < 1:
        raise InvalidParameterError("Suppression factor must be between 0 and 1 (exclusive)")


class InterferenceOptimizer:
    """
    Boosts strongly interfering amplitudes and damps weak ones.

    Args:
        constructive_threshold: Strength at or above which amplitudes are amplified
        destructive_threshold: Strength at or below which amplitudes are suppressed
        amplification_factor: Scale applied on amplification (> 1)
        suppression_factor: Scale applied on suppression, in [0, 1)
        max_iterations: Bound for iterative optimization, in [1, 100]
        adaptive_thresholds: Whether adaptive adjustment updates the thresholds
        min_interference_correlation: Minimum correlation for a pair to interfere
        minimal_representation_target: Target representation ratio, in (0, 1]
    """

    def __init__(self, constructive_threshold: float = 0.7, destructive_threshold: float = 0.3,
                 amplification_factor: float = 1.5, suppression_factor: float = 0.1,
                 max_iterations: int = 10, adaptive_thresholds: bool = False,
                 min_interference_correlation: float = 0.3,
                 minimal_representation_target: float = 0.8):
        _validate_thresholds(constructive_threshold, destructive_threshold,
                             amplification_factor, suppression_factor)
        if not 1 <= max_iterations <= 100:
            raise InvalidParameterError("Max iterations must be between 1 and 100")
        if not 0 < minimal_representation_target <= 1:
            raise InvalidParameterError("Minimal representation target must be between 0 (exclusive) and 1")

        self.constructive_threshold = float(constructive_threshold)
        self.destructive_threshold = float(destructive_threshold)
        self.amplification_factor = float(amplification_factor)
        self.suppression_factor = float(suppression_factor)
        self.max_iterations = int(max_iterations)
        self.adaptive_thresholds = bool(adaptive_thresholds)
        self.min_interference_correlation = float(min_interference_correlation)
        self.minimal_representation_target = float(minimal_representation_target)

        self._profiles: Dict[str, ThresholdProfile] = dict(BUILTIN_PROFILES)
        self.current_profile = "default"

    # Profiles

    def create_profile(self, name: str, constructive: float, destructive: float, amplification: float,
                       suppression: float, description: Optional[str] = None) -> ThresholdProfile:
        _validate_thresholds(constructive, destructive, amplification, suppression)
        profile = ThresholdProfile(name, float(constructive), float(destructive), float(amplification),
                                   float(suppression), description or f"Custom profile: {name}")
        self._profiles[name] = profile
        return profile

    def get_profile(self, name: str) -> ThresholdProfile:
        try:
            return self._profiles[name]
        except KeyError:
            raise ProfileNotFoundError(f"Threshold profile '{name}' not found",
                                       suggestions=[f"Available profiles: {', '.join(self.list_profiles())}"],
                                       details={"profile": name}) from None

    def load_profile(self, name: str) -> ThresholdProfile:
        profile = self.get_profile(name)
        self.constructive_threshold = profile.constructive
        self.destructive_threshold = profile.destructive
        self.amplification_factor = profile.amplification
        self.suppression_factor = profile.suppression
        self.current_profile = name
        logger.debug(f"Loaded threshold profile '{name}'")
        return profile

    def list_profiles(self) -> List[str]:
        return list(self._profiles)

    def create_data_type_profile(self, data_type: str) -> ThresholdProfile:
        """Register (if missing) and return the ``<data_type>-optimized`` profile."""
        name = f"{data_type}-optimized"
        if name not in self._profiles:
            if data_type not in DATA_TYPE_MULTIPLIERS:
                raise ProfileNotFoundError(f"No threshold profile for data type '{data_type}'",
                                           suggestions=[f"Use one of: {', '.join(DATA_TYPE_MULTIPLIERS)}"])
            base = BUILTIN_PROFILES["mixed-optimized"]
            self.create_profile(name, base.constructive, base.destructive, base.amplification,
                                base.suppression, f"Optimized for {data_type} data")
        return self._profiles[name]

    def get_current_thresholds(self) -> Dict[str, float]:
        return {
            "constructive_threshold": self.constructive_threshold,
            "destructive_threshold": self.destructive_threshold,
            "amplification_factor": self.amplification_factor,
            "suppression_factor": self.suppression_factor,
        }

    # Pattern-level interference

    def apply_constructive_interference(self, patterns: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Amplify patterns with probability >= the constructive threshold."""
        optimized = [self._scaled_pattern(p, self.amplification_factor, "constructive")
                     for p in patterns if p["probability"] >= self.constructive_threshold]
        optimized.sort(key=lambda p: p["optimized_probability"], reverse=True)
        return optimized

    def apply_destructive_interference(self, patterns: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Suppress patterns with probability <= the destructive threshold."""
        optimized = [self._scaled_pattern(p, self.suppression_factor, "destructive")
                     for p in patterns if p["probability"] <= self.destructive_threshold]
        optimized.sort(key=lambda p: p["optimized_probability"])
        return optimized

    @staticmethod
    def _scaled_pattern(pattern: Dict[str, Any], factor: float, kind: str) -> Dict[str, Any]:
        amplitude = complex(pattern["amplitude"]) * factor
        probability = abs(amplitude) ** 2
        return {
            "original_index": pattern["index"],
            "original_amplitude": complex(pattern["amplitude"]),
            "optimized_amplitude": amplitude,
            "original_probability": pattern["probability"],
            "optimized_probability": probability,
            "interference_type": kind,
            "amplification_factor": factor,
            "phase": float(np.angle(amplitude)),
            "magnitude": abs(amplitude),
            "compression_value": (probability - pattern["probability"]) * pattern["magnitude"],
        }

    # State-level interference

    def detect_interference_patterns(self, states: Sequence[QuantumStateVector]) -> List[Dict[str, Any]]:
        """Pairs correlated above the minimum, typed by the stronger interference power."""
        if len(states) < 2:
            return []
        correlations = am.correlation_matrix([s.amplitudes for s in states])
        rows, cols = np.triu_indices(len(states), k=1)
        candidates = np.flatnonzero(correlations[rows, cols] > self.min_interference_correlation)

        patterns = []
        for k in candidates:
            i, j = int(rows[k]), int(cols[k])
            a, b = states[i].amplitudes, states[j].amplitudes
            constructive = am.interference_power(a, b, "constructive")
            destructive = am.interference_power(a, b, "destructive")
            kind = "constructive" if constructive > destructive else "destructive"
            patterns.append({
                "type": kind,
                "strength": max(constructive, destructive),
                "correlation": float(correlations[i, j]),
                "amplitude_indices": list(range(min(a.size, b.size))),
                "state_indices": (i, j),
            })
        patterns.sort(key=lambda p: p["strength"], reverse=True)
        return patterns

    def optimize_quantum_states(self, states: Sequence[QuantumStateVector]) -> Dict[str, Any]:
        """
        Amplify or suppress the amplitudes of interfering state pairs.

        Returns:
            Dictionary with original_states, optimized_states,
            interference_patterns and optimization_metrics
        """
        if len(states) < 2:
            return {"original_states": list(states), "optimized_states": [s.clone() for s in states],
                    "interference_patterns": [],
                    "optimization_metrics": self._optimization_metrics(len(states), len(states),
                                                                       0, 0, 0.0, 0.0, 0.0)}

        patterns = self.detect_interference_patterns(states)
        by_state: Dict[int, List[Dict[str, Any]]] = {}
        for pattern in patterns:
            for index in pattern["state_indices"]:
                by_state.setdefault(index, []).append(pattern)

        optimized_states = []
        total_amplification = total_suppression = 0.0
        constructive_ops = destructive_ops = 0
        for index, state in enumerate(states):
            relevant = by_state.get(index)
            if not relevant:
                optimized_states.append(state.clone())
                continue

            amplitudes = np.array(state.amplitudes)
            for pattern in relevant:
                indices = [k for k in pattern["amplitude_indices"] if k < amplitudes.size]
                if pattern["type"] == "constructive" and pattern["strength"] >= self.constructive_threshold:
                    amplitudes[indices] *= self.amplification_factor
                    total_amplification += (self.amplification_factor - 1) * len(indices)
                    constructive_ops += len(indices)
                elif pattern["type"] == "destructive" and pattern["strength"] <= self.destructive_threshold:
                    amplitudes[indices] *= self.suppression_factor
                    total_suppression += (1 - self.suppression_factor) * len(indices)
                    destructive_ops += len(indices)

            if not np.any(amplitudes):
                optimized_states.append(state.clone())
                continue
            optimized_states.append(QuantumStateVector(am.normalize_amplitudes(amplitudes), state.phase,
                                                       state.entanglement_id))

        metrics = self._optimization_metrics(len(states), len(optimized_states), constructive_ops,
                                             destructive_ops, total_amplification, total_suppression,
                                             self._compression_improvement(states, optimized_states))
        logger.debug(f"Interference pass: {constructive_ops} constructive, {destructive_ops} destructive operations")
        return {"original_states": list(states), "optimized_states": optimized_states,
                "interference_patterns": patterns, "optimization_metrics": metrics}

    @staticmethod
    def _optimization_metrics(total: int, optimized: int, constructive_ops: int, destructive_ops: int,
                              total_amplification: float, total_suppression: float,
                              improvement: float) -> Dict[str, Any]:
        return {
            "total_states": total,
            "optimized_states": optimized,
            "constructive_operations": constructive_ops,
            "destructive_operations": destructive_ops,
            "total_amplification": total_amplification,
            "total_suppression": total_suppression,
            "average_amplification": total_amplification / constructive_ops if constructive_ops else 0.0,
            "average_suppression": total_suppression / destructive_ops if destructive_ops else 0.0,
            "compression_improvement": improvement,
        }

    @staticmethod
    def _average_entropy(states: Sequence[QuantumStateVector]) -> float:
        if len(states) == 0:
            return 0.0
        return float(np.mean([am.calculate_entropy(s.get_probability_distribution()) for s in states]))

    def _compression_improvement(self, original: Sequence[QuantumStateVector],
                                 optimized: Sequence[QuantumStateVector]) -> float:
        before = self._average_entropy(original)
        return (before - self._average_entropy(optimized)) / before if before > 0 else 0.0

    def optimize_superposition(self, superposition: SuperpositionState) -> Dict[str, Any]:
        """Apply pattern-level interference to a superposition's amplitudes."""
        patterns = superposition.analyze_probability_amplitudes()
        constructive = self.apply_constructive_interference(patterns)
        destructive = self.apply_destructive_interference(patterns)

        amplitudes = np.array(superposition.amplitudes)
        for pattern in constructive + destructive:
            amplitudes[pattern["original_index"]] = pattern["optimized_amplitude"]

        if np.any(amplitudes):
            amplitudes = am.normalize_amplitudes(amplitudes)
        optimized = SuperpositionState(amplitudes, superposition.constituent_states,
                                       superposition.weights, superposition.coherence_time)

        before = superposition.calculate_entropy()
        improvement = (before - optimized.calculate_entropy()) / before if before > 0 else 0.0
        return {
            "original_superposition": superposition,
            "optimized_superposition": optimized,
            "constructive_patterns": constructive,
            "destructive_patterns": destructive,
            "compression_improvement": improvement,
        }

    def perform_iterative_optimization(self, states: Sequence[QuantumStateVector]) -> Dict[str, Any]:
        """Repeat ``optimize_quantum_states`` until the improvement settles."""
        if len(states) == 0:
            return {"initial_states": [], "final_states": [], "iterations": [],
                    "convergence_achieved": False, "total_improvement": 0.0}

        current = [s.clone() for s in states]
        iterations = []
        previous = 0.0
        converged = False
        for i in range(self.max_iterations):
            result = self.optimize_quantum_states(current)
            metrics = result["optimization_metrics"]
            improvement = metrics["compression_improvement"]
            iterations.append({
                "iteration_number": i + 1,
                "input_states": len(current),
                "output_states": len(result["optimized_states"]),
                "compression_improvement": improvement,
                "constructive_operations": metrics["constructive_operations"],
                "destructive_operations": metrics["destructive_operations"],
            })
            if abs(improvement - previous) < CONVERGENCE_DELTA:
                converged = True
                break
            current = result["optimized_states"]
            previous = improvement

        return {
            "initial_states": list(states),
            "final_states": current,
            "iterations": iterations,
            "convergence_achieved": converged,
            "total_improvement": sum(it["compression_improvement"] for it in iterations),
        }

    # Threshold tuning

    def _data_characteristics(self, states: Sequence[QuantumStateVector]) -> Dict[str, float]:
        distributions = [s.get_probability_distribution() for s in states]
        entropies = np.array([am.calculate_entropy(d) for d in distributions])
        concentration = []
        for d in distributions:
            top = max(1, int(d.size * 0.1))
            concentration.append(float(np.sort(d)[::-1][:top].sum()))

        correlation = 0.0
        if len(states) > 1:
            matrix = am.correlation_matrix([s.amplitudes for s in states])
            correlation = float(matrix[np.triu_indices(len(states), k=1)].mean())

        average = float(entropies.mean())
        return {
            "average_entropy": average,
            "entropy_variance": float(entropies.var()),
            "probability_concentration": float(np.mean(concentration)),
            "correlation_strength": correlation,
            "pattern_complexity": float(np.sqrt(entropies.var()) / (average + 0.001)),
        }

    def adjust_thresholds_adaptively(self, states: Sequence[QuantumStateVector]) -> Dict[str, Any]:
        """
        Suggest thresholds from entropy and probability concentration.

        The thresholds are only changed in place when ``adaptive_thresholds``
        is enabled.
        """
        original = self.get_current_thresholds()
        if len(states) == 0:
            return {"original_thresholds": original, "adjusted_thresholds": original,
                    "adjustment_reason": "No states provided", "improvement_estimate": 0.0}

        characteristics = self._data_characteristics(states)
        constructive = self.constructive_threshold
        destructive = self.destructive_threshold
        reason = "No adjustment needed"

        if characteristics["average_entropy"] > 0.8:
            constructive = min(0.9, constructive + 0.1)
            destructive = max(0.1, destructive - 0.1)
            reason = "High entropy data detected - increased selectivity"
        elif characteristics["average_entropy"] < 0.3:
            constructive = max(0.5, constructive - 0.1)
            destructive = min(0.5, destructive + 0.1)
            reason = "Low entropy data detected - increased aggressiveness"

        if characteristics["probability_concentration"] > 0.8:
            constructive = min(0.9, constructive + 0.05)
            reason += " | High probability concentration detected"

        if self.adaptive_thresholds:
            self.constructive_threshold = constructive
            self.destructive_threshold = destructive

        adjusted = dict(original, constructive_threshold=constructive, destructive_threshold=destructive)
        shift = (abs(constructive - original["constructive_threshold"])
                 + abs(destructive - original["destructive_threshold"])) * 0.1
        estimate = min(0.3, shift * (1 - characteristics["average_entropy"])
                       * characteristics["correlation_strength"])
        return {"original_thresholds": original, "adjusted_thresholds": adjusted,
                "adjustment_reason": reason, "improvement_estimate": estimate}

    def optimize_thresholds_for_data_type(self, states: Sequence[QuantumStateVector],
                                          data_type: str) -> Dict[str, Any]:
        """Recommend the data-type profile and estimate its benefit."""
        original = self.get_current_thresholds()
        if len(states) == 0:
            return {"data_type": data_type, "original_thresholds": original,
                    "optimized_thresholds": original, "expected_improvement": 0.0,
                    "recommended_profile": self.current_profile}

        profile = self.create_data_type_profile(data_type)
        optimized = {"constructive_threshold": profile.constructive,
                     "destructive_threshold": profile.destructive,
                     "amplification_factor": profile.amplification,
                     "suppression_factor": profile.suppression}
        characteristics = self._data_characteristics(states)
        expected = (0.1 * DATA_TYPE_MULTIPLIERS.get(data_type, 1.0)
                    * (1 - characteristics["average_entropy"]) * characteristics["correlation_strength"])
        return {"data_type": data_type, "original_thresholds": original,
                "optimized_thresholds": optimized, "expected_improvement": expected,
                "recommended_profile": profile.name}

    def optimize_for_minimal_representation(self, states: Sequence[QuantumStateVector]) -> Dict[str, Any]:
        """
        Progressively loosen thresholds until the information content shrinks
        to the target ratio or stops improving.
        """
        if len(states) == 0:
            return {"original_states": [], "minimal_states": [], "representation_ratio": 1.0,
                    "compression_achieved": 0.0, "quality_metrics": self._empty_quality_metrics()}

        original = [s.clone() for s in states]
        current = [s.clone() for s in states]
        best = [s.clone() for s in states]
        best_ratio = 1.0
        saved = (self.constructive_threshold, self.destructive_threshold)

        try:
            for iteration in range(MINIMAL_REPRESENTATION_ITERATIONS):
                progress = min(1.0, iteration / 10)
                self.constructive_threshold = max(0.5, saved[0] - progress * 0.1)
                self.destructive_threshold = min(0.5, saved[1] + progress * 0.1)
                result = self.optimize_quantum_states(current)
                current = result["optimized_states"]

                ratio = self._representation_ratio(original, current)
                if ratio <= self.minimal_representation_target or ratio < best_ratio:
                    best = [s.clone() for s in current]
                    best_ratio = ratio
                    if ratio <= self.minimal_representation_target:
                        break
                if result["optimization_metrics"]["compression_improvement"] < CONVERGENCE_DELTA:
                    break
        finally:
            self.constructive_threshold, self.destructive_threshold = saved

        return {"original_states": original, "minimal_states": best, "representation_ratio": best_ratio,
                "compression_achieved": 1 - best_ratio,
                "quality_metrics": self._quality_metrics(original, best)}

    @staticmethod
    def _total_information(states: Sequence[QuantumStateVector]) -> float:
        return sum(am.calculate_entropy(s.get_probability_distribution()) * len(s) for s in states)

    def _representation_ratio(self, original: Sequence[QuantumStateVector],
                              optimized: Sequence[QuantumStateVector]) -> float:
        before = self._total_information(original)
        return self._total_information(optimized) / before if before > 0 else 1.0

    def _quality_metrics(self, original: Sequence[QuantumStateVector],
                         optimized: Sequence[QuantumStateVector]) -> Dict[str, float]:
        n = min(len(original), len(optimized))
        fidelity = sum(original[i].calculate_correlation(optimized[i]) for i in range(n)) / n
        before = self._average_entropy(original)
        preservation = self._average_entropy(optimized) / before if before > 0 else 1.0
        ratio = self._representation_ratio(original, optimized)
        efficiency = (1 - ratio) / (1 - preservation + 0.001) if ratio < 1 else 0.0
        return {"fidelity": fidelity, "information_preservation": preservation,
                "compression_efficiency": efficiency,
                "overall_quality": (fidelity + preservation + efficiency) / 3}

    @staticmethod
    def _empty_quality_metrics() -> Dict[str, float]:
        return {"fidelity": 0.0, "information_preservation": 0.0,
                "compression_efficiency": 0.0, "overall_quality": 0.0}
