"""
Quantum Flow compression engine.

This module ties the pipeline together: bytes are converted into state
vectors, analyzed as superpositions, paired by correlation ("entanglement"),
optimized by interference and finally packed into a checksummed container.
A zlib-compressed residual makes the round trip exact even though the
state conversion itself is lossy.
"""

import logging
import math
import zlib
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np

from .core import amplitude_math as am
from .core.entanglement_analyzer import EntanglementAnalyzer
from .core.error_correction import QuantumErrorCorrection
from .core.interference_optimizer import InterferenceOptimizer
from .core.pattern_recognizer import PatternRecognizer
from .core.probability_analyzer import ProbabilityAnalyzer
from .core.state_converter import QuantumStateConverter
from .core.state_vector import QuantumStateVector
from .core.superposition import SuperpositionState
from .exceptions import (DeserializationError, EmptyInputError, IntegrityError,
                         ProcessingError, StructuralError, ValidationError)
from .models.compressed_data import CompressedQuantumData
from .models.config import QuantumConfig
from .models.entanglement_pair import EntanglementPair
from .models.metrics import QuantumMetrics

# Configure logging
logger = logging.getLogger(__name__)

MAX_QUANTUM_STATES = 1000
MAX_ANALYZED_STATES = 200
MIN_STATES_FOR_ENTANGLEMENT = 4
SPEED_PRIORITY_SIZE = 10 * 1024 * 1024


class QuantumFlow:
    """
    Quantum-inspired compression engine.

    Validation and structural errors raised by the pipeline propagate to the
    caller. Any other failure during compression is routed once through the
    classical graceful-degradation path; only if that fails too does
    ``compress`` raise ProcessingError.
    """

    def __init__(self, config: Optional[Union[Dict[str, Any], QuantumConfig]] = None,
                 metrics: Optional[QuantumMetrics] = None):
        """
        Initialize the engine.

        Args:
            config: QuantumConfig, or a configuration dictionary with the
                QuantumConfig keys and an optional ``preset`` name:
                - quantum_bit_depth (default: 8)
                - max_entanglement_level (default: 4)
                - superposition_complexity (default: 5)
                - interference_threshold (default: 0.5)
                - preset: start from a named preset before applying the keys
            metrics: Metrics collector; a fresh one is created if omitted
        """
        self.config = self._resolve_config(config)
        self.metrics = metrics if metrics is not None else QuantumMetrics()
        self.error_correction = QuantumErrorCorrection()

        logger.info(f"QuantumFlow engine initialized with {self.config}")

    @staticmethod
    def _resolve_config(config: Optional[Union[Dict[str, Any], QuantumConfig]]) -> QuantumConfig:
        if config is None:
            return QuantumConfig()
        if isinstance(config, QuantumConfig):
            return config.clone()
        settings = dict(config)
        preset = settings.pop("preset", None)
        base = QuantumConfig.from_preset(preset).to_dict() if preset else {}
        base.update(settings)
        return QuantumConfig.from_dict(base)

    def get_config(self) -> Dict[str, Any]:
        return self.config.to_dict()

    def update_config(self, new_config: Dict[str, Any]) -> None:
        """Merge ``new_config`` into the current configuration (validated as a whole)."""
        merged = self.config.to_dict()
        merged.update(new_config)
        self.config = self._resolve_config(merged)

    # Compression

    def compress(self, data: bytes,
                 config: Optional[Union[Dict[str, Any], QuantumConfig]] = None) -> CompressedQuantumData:
        """
        Compress ``data`` into a CompressedQuantumData container.

        Args:
            data: Bytes to compress (at least one)
            config: Per-call configuration overriding the engine's

        Returns:
            Container whose ``decompress`` reproduces ``data`` exactly

        Raises:
            EmptyInputError: for empty input
            ValidationError: for an invalid configuration
            ProcessingError: if both the quantum pipeline and the fallback fail
        """
        if len(data) == 0:
            raise EmptyInputError("Cannot compress empty data",
                                  suggestions=["Provide at least one byte of input"])
        data = bytes(data)
        quantum_config = self._resolve_config(config) if config is not None else self.config

        self.metrics.reset()
        self.metrics.start_timing()
        try:
            try:
                container = self._compress_quantum(data, quantum_config)
            except (ValidationError, StructuralError):
                raise
            except Exception as e:
                logger.warning(f"Quantum pipeline failed: {str(e)}")
                container = self._compress_with_fallback(data, quantum_config, str(e))
        finally:
            self.metrics.end_timing()

        self.metrics.record_compression_metrics(len(data), container.metadata["compressed_size"])
        self.metrics.update_session_statistics()

        logger.info(f"Compressed {len(data)} bytes into {len(container.quantum_states)} quantum states "
                    f"(ratio {container.metadata['compression_ratio']:.2f})")
        return container

    def _compress_quantum(self, data: bytes, config: QuantumConfig) -> CompressedQuantumData:
        n = len(data)

        with self.metrics.phase("conversion"):
            converter = self._prepare_converter(data, config)
            states = converter.to_states(data)
            max_states = min(MAX_QUANTUM_STATES, math.ceil(n / 8))
            if len(states) > max_states:
                logger.warning(f"Limiting {len(states)} quantum states to {max_states}; "
                               f"the residual carries the remaining data")
                states = states[:max_states]

        with self.metrics.phase("superposition"):
            analysis = self._analyze_superpositions(states, config)

        with self.metrics.phase("entanglement"):
            states, pairs = self._detect_entanglement(states, config)

        with self.metrics.phase("interference"):
            states, patterns, effectiveness = self._optimize_interference(states, config)

        with self.metrics.phase("encoding"):
            residual = self._compute_residual(data, states)
            snapshot = config.to_dict()
            snapshot.update({
                "bit_depth_used": converter.bit_depth,
                "chunk_size": converter.chunk_size,
                "fallback_used": False,
                "data_checksum": self.error_correction.generate_quantum_checksum(data)["checksum"],
            })
            container = CompressedQuantumData.create(states, pairs, patterns, n, snapshot, residual)

        correlations = [p.correlation_strength for p in pairs]
        self.metrics.record_quantum_efficiency(
            quantum_states_created=len(states),
            entanglement_pairs_found=len(pairs),
            average_correlation_strength=float(np.mean(correlations)) if correlations else 0.0,
            superposition_complexity=analysis["average_entropy"],
            interference_effectiveness=effectiveness,
            coherence_time=analysis["average_coherence_time"],
        )
        return container

    def _prepare_converter(self, data: bytes, config: QuantumConfig) -> QuantumStateConverter:
        n = len(data)
        bit_depth = min(config.quantum_bit_depth, 4 if n > 10 * 1024 else 6)
        converter = QuantumStateConverter(bit_depth, _chunk_size_for(n))
        if n <= 1024 and am.byte_entropy(data) > 6:
            converter = converter.optimize_for_data(data)
        logger.debug(f"State preparation: {converter}")
        return converter

    def _analyze_superpositions(self, states: List[QuantumStateVector],
                                config: QuantumConfig) -> Dict[str, Any]:
        group_size = max(2, min(16, config.superposition_complexity * 2))
        superpositions = [SuperpositionState.from_quantum_states(states[i:i + group_size])
                          for i in range(0, len(states), group_size)]

        analyzer = ProbabilityAnalyzer()
        distribution = analyzer.analyze_probability_distributions(states[:MAX_ANALYZED_STATES])
        recognizer = PatternRecognizer(min_pattern_length=2, max_pattern_length=4, max_workers=1)
        patterns = recognizer.recognize_patterns(states[:MAX_ANALYZED_STATES])

        return {
            "superposition_count": len(superpositions),
            "average_entropy": float(np.mean([s.calculate_entropy() for s in superpositions])),
            "average_coherence_time": float(np.mean([s.coherence_time for s in superpositions])),
            "distribution": distribution,
            "pattern_count": len(patterns),
        }

    def _detect_entanglement(self, states: List[QuantumStateVector], config: QuantumConfig
                             ) -> Tuple[List[QuantumStateVector], List[EntanglementPair]]:
        if len(states) < MIN_STATES_FOR_ENTANGLEMENT:
            return states, []

        analyzer = EntanglementAnalyzer(
            correlation_threshold=config.interference_threshold,
            max_entanglement_pairs=config.max_entanglement_level * 10)
        candidates = states[:MAX_ANALYZED_STATES]
        pairs = analyzer.find_entangled_patterns(candidates)

        # Tag the paired states with their pair id.
        by_fingerprint: Dict[str, List[int]] = {}
        for index, state in enumerate(candidates):
            by_fingerprint.setdefault(state.fingerprint(), []).append(index)
        tagged = list(states)
        for pair in pairs:
            for member in (pair.state_a, pair.state_b):
                indices = by_fingerprint.get(member.fingerprint())
                if indices:
                    index = indices.pop(0)
                    tagged[index] = tagged[index].with_entanglement_id(pair.entanglement_id)
        return tagged, pairs

    def _optimize_interference(self, states: List[QuantumStateVector], config: QuantumConfig
                               ) -> Tuple[List[QuantumStateVector], List[Dict[str, Any]], float]:
        threshold = config.interference_threshold
        optimizer = InterferenceOptimizer(constructive_threshold=threshold,
                                          destructive_threshold=threshold * 0.5)
        head = states[:MAX_ANALYZED_STATES]
        result = optimizer.optimize_quantum_states(head)
        optimized = result["optimized_states"] + states[MAX_ANALYZED_STATES:]

        patterns = [{
            "type": p["type"],
            "amplitude": p["strength"],
            "phase": head[p["state_indices"][0]].phase,
            "frequency": p["correlation"],
            "state_indices": list(p["state_indices"]),
        } for p in result["interference_patterns"]]

        metrics = result["optimization_metrics"]
        operations = metrics["constructive_operations"] + metrics["destructive_operations"]
        total_amplitudes = sum(len(s) for s in head)
        effectiveness = min(1.0, operations / total_amplitudes) if total_amplitudes else 0.0
        return optimized, patterns, effectiveness

    @staticmethod
    def _approximate_bytes(states: List[QuantumStateVector], size: int) -> np.ndarray:
        approx = np.frombuffer(QuantumStateConverter().from_states(states), dtype=np.uint8)[:size]
        if approx.size < size:
            approx = np.concatenate((approx, np.zeros(size - approx.size, dtype=np.uint8)))
        return approx

    def _compute_residual(self, data: bytes, states: List[QuantumStateVector]) -> bytes:
        original = np.frombuffer(data, dtype=np.uint8)
        difference = original - self._approximate_bytes(states, original.size)
        return zlib.compress(difference.astype(np.uint8).tobytes(), 9)

    def _compress_with_fallback(self, data: bytes, config: QuantumConfig,
                                failure_reason: str) -> CompressedQuantumData:
        result = self.error_correction.attempt_graceful_degradation(data, failure_reason, {
            "prioritize_speed": len(data) > SPEED_PRIORITY_SIZE,
            "preserve_metadata": True,
        })
        if not result["success"]:
            error_msg = f"Compression failed and fallback was unsuccessful: {result.get('error_message')}"
            logger.error(error_msg)
            raise ProcessingError(error_msg, details={"original_failure_reason": failure_reason})

        snapshot = config.to_dict()
        snapshot.update({
            "fallback_used": True,
            "fallback_strategy": result["fallback_strategy"],
            "data_checksum": self.error_correction.generate_quantum_checksum(data)["checksum"],
        })
        # The classical payload travels in the residual slot behind a placeholder state.
        return CompressedQuantumData.create([QuantumStateVector([1 + 0j])], [], [], len(data),
                                            snapshot, result["compressed_data"])

    # Decompression

    def decompress(self, container: Union[CompressedQuantumData, bytes]) -> bytes:
        """
        Restore the original bytes.

        Args:
            container: CompressedQuantumData or its serialized form

        Returns:
            The exact bytes that were compressed

        Raises:
            IntegrityError: if the container or the restored data fails verification
        """
        if not isinstance(container, CompressedQuantumData):
            container = CompressedQuantumData.deserialize(container)
        if not container.verify_integrity():
            raise IntegrityError("Compressed data failed integrity verification",
                                 suggestions=["Restore the file from a backup copy"])

        metadata = container.metadata
        config = metadata["compression_config"]
        original_size = metadata["original_size"]

        if container.is_fallback:
            data = self.error_correction.decompress_fallback(container.residual, config["fallback_strategy"])
        else:
            approx = self._approximate_bytes(container.quantum_states, original_size)
            data = self._apply_residual(approx, container.residual)

        expected = config.get("data_checksum")
        if expected and self.error_correction.generate_quantum_checksum(data)["checksum"] != expected:
            raise IntegrityError("Decompressed data does not match the original checksum",
                                 details={"original_size": original_size, "restored_size": len(data)})

        logger.info(f"Decompressed {len(data)} bytes from {len(container.quantum_states)} quantum states")
        return data

    @staticmethod
    def _apply_residual(approx: np.ndarray, residual: bytes) -> bytes:
        if not residual:
            return approx.tobytes()
        try:
            difference = np.frombuffer(zlib.decompress(residual), dtype=np.uint8)
        except zlib.error as e:
            raise DeserializationError(f"Corrupted residual payload: {e}") from e
        if difference.size != approx.size:
            raise DeserializationError(
                f"Residual size {difference.size} does not match original size {approx.size}")
        return (approx + difference).astype(np.uint8).tobytes()

    # Analysis

    def optimize_quantum_parameters(self, data_size: int, data_type: Optional[str] = None) -> QuantumConfig:
        """
        Suggest a configuration for data of the given size and type.

        Args:
            data_size: Input size in bytes
            data_type: ``text``, ``structured``, ``random`` or None

        Returns:
            Valid QuantumConfig
        """
        if data_size < 1024:
            bit_depth, complexity, level, threshold = 6, 3, 2, 0.5
        elif data_size < 10 * 1024:
            bit_depth, complexity, level, threshold = 4, 4, 2, 0.6
        elif data_size < 100 * 1024:
            bit_depth, complexity, level, threshold = 3, 2, 1, 0.7
        else:
            bit_depth, complexity, level, threshold = 2, 1, 1, 0.8

        if data_type == "text":
            level = min(level + 1, bit_depth // 2, 4)
            threshold = max(0.3, threshold - 0.1)
        elif data_type == "structured":
            complexity = min(complexity + 1, 5)
            threshold = max(0.3, threshold - 0.2)
        elif data_type == "random":
            complexity, level, threshold = 1, 1, 0.9

        level = max(1, min(level, bit_depth // 2))
        complexity = min(complexity, bit_depth)
        return QuantumConfig(bit_depth, level, complexity, round(threshold, 2))

    def analyze(self, data: bytes) -> Dict[str, Any]:
        """
        Profile ``data`` without compressing it.

        Returns:
            Dictionary with the byte pattern analysis, the suggested
            configuration and the estimated compression potential
        """
        if len(data) == 0:
            raise EmptyInputError("Cannot analyze empty data")
        data = bytes(data)
        converter = QuantumStateConverter()
        patterns = converter.analyze_data_patterns(data)
        entropy = patterns["entropy"]
        data_type = "random" if entropy > 7 else "text" if entropy < 5 else "structured"

        states = converter.to_states(data)
        analyzer = ProbabilityAnalyzer()
        distribution = analyzer.analyze_probability_distributions(states[:MAX_ANALYZED_STATES])

        return {
            "data_size": len(data),
            "data_patterns": patterns,
            "data_type": data_type,
            "recommended_config": self.optimize_quantum_parameters(len(data), data_type).to_dict(),
            "compression_potential": analyzer.estimate_compression_potential(distribution),
            "conversion_stats": converter.get_conversion_stats(len(data), states),
        }


def _chunk_size_for(n: int) -> int:
    if n < 1024:
        return max(4, min(16, n // 4))
    if n < 10 * 1024:
        return max(8, min(32, n // 32))
    if n < 100 * 1024:
        return max(16, min(64, n // 128))
    return max(32, min(128, n // 512))
