"""
Compressed container tests: derived metadata, integrity and the persisted envelope.
"""

from __future__ import annotations

import json
import logging
import unittest

from quantum_flow.core.state_vector import QuantumStateVector
from quantum_flow.exceptions import (DeserializationError, EmptyInputError, IntegrityError,
                                     InvalidParameterError, UnsupportedVersionError)
from quantum_flow.models.compressed_data import FORMAT_VERSION, CompressedQuantumData
from quantum_flow.models.config import QuantumConfig
from quantum_flow.models.entanglement_pair import EntanglementPair

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("quantum_flow_container")


def _sample_container() -> CompressedQuantumData:
    a = QuantumStateVector.from_bytes(b"abcd")
    b = QuantumStateVector.from_bytes(b"abce")
    c = QuantumStateVector.from_bytes(b"wxyz")
    pair = EntanglementPair(a, b, correlation_strength=0.24)
    patterns = [{"type": "constructive", "amplitude": 0.8, "phase": 0.1, "frequency": 0.24,
                 "state_indices": (0, 1)}]
    return CompressedQuantumData.create([pair.state_a, pair.state_b, c], [pair], patterns,
                                        original_size=12, config=QuantumConfig(), residual=b"\x01\x02")


class CompressedDataTests(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.state = QuantumStateVector.from_bytes(b"payload")

    def test_ratio_and_space_saved(self):
        container = CompressedQuantumData([self.state], {}, [],
                                          {"original_size": 1024, "compressed_size": 512})
        stats = container.get_compression_stats()
        self.assertAlmostEqual(stats["compression_ratio"], 2.0)
        self.assertAlmostEqual(stats["space_saved_percentage"], 50.0)
        self.assertEqual(stats["space_saved"], 512)
        self.assertEqual(container.metadata["format_version"], FORMAT_VERSION)

    def test_integrity_after_checksum_mutation(self):
        container = CompressedQuantumData([self.state], {}, [],
                                          {"original_size": 1024, "compressed_size": 512})
        self.assertTrue(container.verify_integrity())
        container._checksum = "0" * 64
        self.assertFalse(container.verify_integrity())

    def test_structural_invariants(self):
        with self.assertRaises(EmptyInputError):
            CompressedQuantumData([], {}, [], {"original_size": 10})
        with self.assertRaises(InvalidParameterError):
            CompressedQuantumData([self.state], {}, [], {"original_size": 0})
        with self.assertRaises(IntegrityError):
            CompressedQuantumData([self.state], {}, [], {"original_size": 10}, checksum="deadbeef")

    def test_create_estimates_size(self):
        container = _sample_container()
        metadata = container.metadata
        self.assertEqual(metadata["compressed_size"], 3 * 64 + 32 + 16 + 256 + 2)
        self.assertEqual(metadata["quantum_state_count"], 3)
        self.assertEqual(metadata["entanglement_count"], 1)
        self.assertEqual(metadata["interference_pattern_count"], 1)
        self.assertEqual(metadata["compression_config"]["quantum_bit_depth"], 8)

    def test_entanglement_lookup(self):
        container = _sample_container()
        pair = container.get_entanglement_pairs()[0]
        self.assertIs(container.find_entanglement_pair(pair.entanglement_id), pair)
        self.assertIsNone(container.find_entanglement_pair("entangled-missing"))
        entangled = container.get_entangled_states(pair.entanglement_id)
        self.assertEqual(len(entangled), 2)
        self.assertTrue(all(s.entanglement_id == pair.entanglement_id for s in entangled))

    def test_accessors_return_copies(self):
        container = _sample_container()
        container.metadata["original_size"] = 1
        container.interference_patterns[0]["type"] = "destructive"
        self.assertEqual(container.metadata["original_size"], 12)
        self.assertEqual(container.interference_patterns[0]["type"], "constructive")
        self.assertTrue(container.verify_integrity())
        self.assertGreater(container.estimate_decompression_time(), 0.0)


class ContainerSerializationTests(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.container = _sample_container()
        cls.payload = cls.container.serialize()

    def test_round_trip(self):
        restored = CompressedQuantumData.deserialize(self.payload)
        self.assertEqual(restored.checksum, self.container.checksum)
        self.assertEqual(restored.residual, b"\x01\x02")
        self.assertEqual(restored.quantum_states, self.container.quantum_states)
        self.assertEqual(restored.interference_patterns, self.container.interference_patterns)
        self.assertEqual(restored.get_compression_stats(), self.container.get_compression_stats())
        pair = restored.get_entanglement_pairs()[0]
        self.assertEqual(len(restored.get_entangled_states(pair.entanglement_id)), 2)

    def test_unsupported_version(self):
        envelope = json.loads(self.payload)
        envelope["format_version"] = "2.0.0"
        with self.assertRaises(UnsupportedVersionError):
            CompressedQuantumData.deserialize(json.dumps(envelope).encode("utf-8"))

    def test_malformed_input(self):
        for payload in (b"not json", b"\xff\xfe", b"[1, 2, 3]", b"{}"):
            with self.assertRaises((DeserializationError, UnsupportedVersionError)):
                CompressedQuantumData.deserialize(payload)

        envelope = json.loads(self.payload)
        del envelope["quantum_states"]
        with self.assertRaises(DeserializationError):
            CompressedQuantumData.deserialize(json.dumps(envelope).encode("utf-8"))

    def test_tampered_content_fails_checksum(self):
        envelope = json.loads(self.payload)
        envelope["metadata"]["original_size"] = 13
        with self.assertRaises(DeserializationError):
            CompressedQuantumData.deserialize(json.dumps(envelope).encode("utf-8"))


if __name__ == "__main__":
    unittest.main()
