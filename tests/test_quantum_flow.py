"""
End-to-end tests of the QuantumFlow compression engine.

Protocol:
1. Compress a payload into a container
2. Serialize and deserialize the container
3. Decompress and compare with the original bytes
4. Corrupt containers and check that decompression refuses them
"""

from __future__ import annotations

import json
import logging
import unittest
from unittest import mock

import numpy as np

from quantum_flow import QuantumFlow
from quantum_flow.core.state_vector import QuantumStateVector
from quantum_flow.exceptions import (DeserializationError, EmptyInputError, IntegrityError,
                                     InvalidParameterError, ProcessingError, ProfileNotFoundError)
from quantum_flow.models.compressed_data import CompressedQuantumData
from quantum_flow.models.config import QuantumConfig
from quantum_flow.models.metrics import QuantumMetrics, SessionStatistics

# Configure logging with detailed format
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("quantum_flow_engine_validation")

PAYLOADS = {
    "single_byte": b"\x00",
    "sample": bytes([100, 150, 200, 50]),
    "text": b"The quick brown fox jumps over the lazy dog. " * 30,
    "all_bytes": bytes(range(256)) * 3,
    "zeros": b"\x00" * 5000,
    "random": np.random.default_rng(42).integers(0, 256, 12000, dtype=np.uint8).tobytes(),
}


class QuantumFlowRoundTripTests(unittest.TestCase):
    """Compression followed by decompression reproduces the input exactly."""

    @classmethod
    def setUpClass(cls):
        cls.engine = QuantumFlow()
        logger.info("=" * 60)
        logger.info("QUANTUM FLOW ROUND TRIP VALIDATION")
        logger.info("=" * 60)

    def test_round_trip(self):
        for name, payload in PAYLOADS.items():
            with self.subTest(payload=name):
                container = self.engine.compress(payload)
                logger.info(f"{name}: {len(payload)} bytes -> {container}")
                self.assertFalse(container.is_fallback)
                self.assertTrue(container.verify_integrity())
                self.assertEqual(self.engine.decompress(container), payload)

    def test_round_trip_through_bytes(self):
        payload = PAYLOADS["text"]
        serialized = self.engine.compress(payload).serialize()
        self.assertEqual(self.engine.decompress(serialized), payload)
        self.assertEqual(QuantumFlow().decompress(CompressedQuantumData.deserialize(serialized)), payload)

    def test_state_count_is_bounded(self):
        container = self.engine.compress(PAYLOADS["random"])
        self.assertLessEqual(len(container.quantum_states), 1000)
        self.assertLessEqual(len(container.quantum_states), int(np.ceil(len(PAYLOADS["random"]) / 8)))

    def test_repeated_chunks_are_entangled(self):
        payload = b"abcd" * 8
        engine = QuantumFlow(QuantumConfig(8, 4, 5, 0.1))
        container = engine.compress(payload)

        self.assertGreater(container.metadata["entanglement_count"], 0)
        pair = container.get_entanglement_pairs()[0]
        self.assertGreaterEqual(pair.correlation_strength, 0.1)
        self.assertEqual(len(container.get_entangled_states(pair.entanglement_id)), 2)
        self.assertGreater(engine.metrics.efficiency_metrics["entanglement_pairs_found"], 0)
        self.assertEqual(engine.decompress(container.serialize()), payload)

    def test_metadata_snapshot(self):
        container = self.engine.compress(PAYLOADS["text"])
        metadata = container.metadata
        config = metadata["compression_config"]
        self.assertEqual(metadata["original_size"], len(PAYLOADS["text"]))
        self.assertFalse(config["fallback_used"])
        self.assertEqual(len(config["data_checksum"]), 64)
        self.assertLessEqual(config["bit_depth_used"], config["quantum_bit_depth"])
        for pattern in container.interference_patterns:
            self.assertIn(pattern["type"], ("constructive", "destructive"))

    def test_empty_input(self):
        with self.assertRaises(EmptyInputError):
            self.engine.compress(b"")

    def test_per_call_config(self):
        container = self.engine.compress(PAYLOADS["text"], config={"preset": "low-resource"})
        self.assertEqual(container.metadata["compression_config"]["profile_name"], "low-resource")
        self.assertEqual(self.engine.decompress(container), PAYLOADS["text"])
        with self.assertRaises(InvalidParameterError):
            self.engine.compress(PAYLOADS["text"], config={"quantum_bit_depth": 40})


class CorruptedContainerTests(unittest.TestCase):
    """Decompression refuses containers that fail verification."""

    @classmethod
    def setUpClass(cls):
        cls.engine = QuantumFlow()
        cls.payload = PAYLOADS["text"]
        cls.serialized = cls.engine.compress(cls.payload).serialize()

    def test_checksum_mutation(self):
        container = CompressedQuantumData.deserialize(self.serialized)
        container._checksum = "f" * 64
        with self.assertRaises(IntegrityError):
            self.engine.decompress(container)

    def test_truncated_bytes(self):
        with self.assertRaises(DeserializationError):
            self.engine.decompress(self.serialized[:-10])

    def test_rechecksummed_residual_tampering(self):
        """A consistent envelope with a wrong residual still fails the data checksum."""
        original = CompressedQuantumData.deserialize(self.serialized)
        tampered = CompressedQuantumData(original.quantum_states, original.entanglement_map,
                                         original.interference_patterns, original.metadata,
                                         residual=b"\x00" * 8)
        with self.assertRaises(IntegrityError):
            self.engine.decompress(tampered)

    def test_rechecksummed_state_tampering(self):
        original = CompressedQuantumData.deserialize(self.serialized)
        states = original.quantum_states
        states[0] = QuantumStateVector(states[0].amplitudes[::-1], states[0].phase)
        tampered = CompressedQuantumData(states, original.entanglement_map, original.interference_patterns,
                                         original.metadata, residual=original.residual)
        with self.assertRaises(IntegrityError):
            self.engine.decompress(tampered)


class FallbackTests(unittest.TestCase):
    """Processing failures route through the classical fallback exactly once."""

    def test_pipeline_failure_uses_fallback(self):
        engine = QuantumFlow()
        payload = PAYLOADS["text"]
        with mock.patch.object(QuantumFlow, "_compress_quantum", side_effect=MemoryError("out of memory")):
            container = engine.compress(payload)

        self.assertTrue(container.is_fallback)
        config = container.metadata["compression_config"]
        self.assertEqual(config["fallback_strategy"], "classical-with-quantum-metadata")
        self.assertEqual(engine.decompress(container.serialize()), payload)

    def test_validation_errors_are_not_masked(self):
        engine = QuantumFlow()
        with mock.patch.object(QuantumFlow, "_compress_quantum",
                               side_effect=InvalidParameterError("bad parameter")):
            with self.assertRaises(InvalidParameterError):
                engine.compress(PAYLOADS["sample"])

    def test_failed_fallback_raises_processing_error(self):
        engine = QuantumFlow()
        failure = {"success": False, "error_message": "codec unavailable"}
        with mock.patch.object(QuantumFlow, "_compress_quantum", side_effect=RuntimeError("boom")), \
                mock.patch.object(engine.error_correction, "attempt_graceful_degradation",
                                  return_value=failure):
            with self.assertRaises(ProcessingError) as ctx:
                engine.compress(PAYLOADS["sample"])
        self.assertEqual(ctx.exception.code, "PROCESSING_FAILED")
        self.assertGreater(engine.metrics.processing_metrics["total_time"], 0.0)


class EngineConfigurationTests(unittest.TestCase):

    def test_config_sources(self):
        self.assertEqual(QuantumFlow().get_config(), QuantumConfig().to_dict())
        engine = QuantumFlow({"preset": "text", "interference_threshold": 0.6})
        self.assertEqual(engine.config.quantum_bit_depth, 6)
        self.assertAlmostEqual(engine.config.interference_threshold, 0.6)
        self.assertEqual(QuantumFlow(QuantumConfig.for_image_compression()).config.quantum_bit_depth, 10)

        with self.assertRaises(ProfileNotFoundError):
            QuantumFlow({"preset": "unknown"})
        with self.assertRaises(InvalidParameterError):
            QuantumFlow({"max_entanglement_level": 9})

    def test_update_config_validates_merged_result(self):
        engine = QuantumFlow()
        engine.update_config({"interference_threshold": 0.7})
        self.assertAlmostEqual(engine.config.interference_threshold, 0.7)
        with self.assertRaises(InvalidParameterError):
            engine.update_config({"quantum_bit_depth": 4})
        self.assertEqual(engine.config.quantum_bit_depth, 8)

    def test_optimize_quantum_parameters(self):
        engine = QuantumFlow()
        for size in (10, 5 * 1024, 50 * 1024, 10 * 1024 * 1024):
            for data_type in (None, "text", "structured", "random"):
                config = engine.optimize_quantum_parameters(size, data_type)
                self.assertTrue(QuantumConfig.is_valid_configuration(config.to_dict()))
        random_config = engine.optimize_quantum_parameters(10, "random")
        self.assertAlmostEqual(random_config.interference_threshold, 0.9)

    def test_analyze(self):
        engine = QuantumFlow()
        text = engine.analyze(b"aaaa bbbb cccc " * 20)
        self.assertEqual(text["data_type"], "text")
        self.assertIn("theoretical_max_compression", text["compression_potential"])
        random_data = engine.analyze(bytes(range(256)) * 4)
        self.assertEqual(random_data["data_type"], "random")
        with self.assertRaises(EmptyInputError):
            engine.analyze(b"")


class EngineMetricsTests(unittest.TestCase):

    def test_metrics_and_session(self):
        session = SessionStatistics()
        engine = QuantumFlow(metrics=QuantumMetrics(session))
        for payload in (PAYLOADS["text"], PAYLOADS["zeros"], PAYLOADS["all_bytes"]):
            engine.compress(payload)

        metrics = engine.metrics.get_all_metrics()
        self.assertEqual(metrics["compression"]["original_size"], len(PAYLOADS["all_bytes"]))
        self.assertGreaterEqual(metrics["processing"]["total_time"], metrics["processing"]["conversion_time"])
        self.assertGreater(metrics["efficiency"]["quantum_states_created"], 0)
        self.assertEqual(metrics["session"]["files_processed"], 3)
        self.assertIn(session.performance_trend, ("improving", "stable", "degrading"))
        json.dumps(metrics)


if __name__ == "__main__":
    unittest.main()
