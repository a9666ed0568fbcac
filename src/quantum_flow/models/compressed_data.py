"""
The compressed container: states, entanglement map, interference metadata,
optional residual and a checksum over all of it.

The persisted form is a UTF-8 JSON envelope carrying ``format_version``.
"""

import base64
import copy
import hashlib
import json
import logging
import time
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..core.state_vector import QuantumStateVector
from ..exceptions import (DeserializationError, EmptyInputError, IntegrityError,
                          InvalidParameterError, QuantumFlowError, UnsupportedVersionError)
from .entanglement_pair import EntanglementPair

logger = logging.getLogger(__name__)

FORMAT_VERSION = "1.0.0"

STATE_SIZE_ESTIMATE = 64
PAIR_SIZE_ESTIMATE = 32
PATTERN_SIZE_ESTIMATE = 16
HEADER_SIZE_ESTIMATE = 256


class CompressedQuantumData:
    """
    Immutable result of a compression run.

    Entanglement pairs are keyed by id; states only carry that id. The
    checksum is a SHA-256 over the canonical JSON form of everything else and
    is checked when the container is built.

    Args:
        quantum_states: At least one state
        entanglement_map: Entanglement id -> pair
        interference_patterns: Descriptors with type, amplitude, phase,
            frequency and state_indices
        metadata: Must contain ``original_size`` (> 0); missing derived
            fields are filled in
        residual: Correction payload applied after decoding
        checksum: Expected checksum; computed when omitted

    Raises:
        EmptyInputError: without states
        InvalidParameterError: for a non-positive original size
        IntegrityError: if ``checksum`` does not match the content
    """

    def __init__(self, quantum_states: Sequence[QuantumStateVector],
                 entanglement_map: Mapping[str, EntanglementPair],
                 interference_patterns: Sequence[Dict[str, Any]],
                 metadata: Dict[str, Any], residual: bytes = b"",
                 checksum: Optional[str] = None):
        if len(quantum_states) == 0:
            raise EmptyInputError("Compressed data must contain at least one quantum state")
        original_size = metadata.get("original_size", 0)
        if not original_size or original_size <= 0:
            raise InvalidParameterError("Original size must be positive")

        self._quantum_states = tuple(quantum_states)
        self._entanglement_map = dict(entanglement_map)
        self._interference_patterns = tuple(_normalize_pattern(p) for p in interference_patterns)
        self._residual = bytes(residual)
        self._metadata = self._complete_metadata(dict(metadata))

        computed = self.calculate_checksum()
        if checksum is not None and checksum != computed:
            raise IntegrityError("Checksum mismatch: compressed data is corrupted",
                                 suggestions=["Restore the file from a backup copy"],
                                 details={"expected": checksum, "actual": computed})
        self._checksum = computed

    @classmethod
    def create(cls, quantum_states: Sequence[QuantumStateVector],
               entanglement_pairs: Sequence[EntanglementPair],
               interference_patterns: Sequence[Dict[str, Any]],
               original_size: int, config: Any, residual: bytes = b"") -> "CompressedQuantumData":
        """
        Build a container, estimating its compressed size from its contents.

        Args:
            quantum_states: Encoded states
            entanglement_pairs: Pairs found among the states
            interference_patterns: Pattern descriptors
            original_size: Size of the source data in bytes
            config: QuantumConfig (or plain dict) snapshot stored in the metadata
            residual: Correction payload that makes decoding exact

        Returns:
            New CompressedQuantumData
        """
        compressed_size = (len(quantum_states) * STATE_SIZE_ESTIMATE +
                           len(entanglement_pairs) * PAIR_SIZE_ESTIMATE +
                           len(interference_patterns) * PATTERN_SIZE_ESTIMATE +
                           HEADER_SIZE_ESTIMATE + len(residual))
        config_snapshot = config.to_dict() if hasattr(config, "to_dict") else dict(config or {})
        metadata = {
            "original_size": original_size,
            "compressed_size": compressed_size,
            "compression_timestamp": time.time(),
            "compression_config": config_snapshot,
        }
        entanglement_map = {pair.entanglement_id: pair for pair in entanglement_pairs}
        return cls(quantum_states, entanglement_map, interference_patterns, metadata, residual)

    def _complete_metadata(self, metadata: Dict[str, Any]) -> Dict[str, Any]:
        compressed_size = metadata.get("compressed_size") or 1
        metadata.setdefault("compressed_size", compressed_size)
        metadata.setdefault("compression_ratio", metadata["original_size"] / compressed_size)
        metadata.setdefault("quantum_state_count", len(self._quantum_states))
        metadata.setdefault("entanglement_count", len(self._entanglement_map))
        metadata.setdefault("interference_pattern_count", len(self._interference_patterns))
        metadata.setdefault("compression_timestamp", time.time())
        metadata.setdefault("format_version", FORMAT_VERSION)
        metadata.setdefault("compression_config", {})
        return metadata

    # Accessors

    @property
    def quantum_states(self) -> List[QuantumStateVector]:
        return list(self._quantum_states)

    @property
    def entanglement_map(self) -> Dict[str, EntanglementPair]:
        return dict(self._entanglement_map)

    @property
    def interference_patterns(self) -> List[Dict[str, Any]]:
        return copy.deepcopy(list(self._interference_patterns))

    @property
    def metadata(self) -> Dict[str, Any]:
        return copy.deepcopy(self._metadata)

    @property
    def residual(self) -> bytes:
        return self._residual

    @property
    def checksum(self) -> str:
        return self._checksum

    @property
    def is_fallback(self) -> bool:
        return bool(self._metadata["compression_config"].get("fallback_used"))

    def get_entanglement_pairs(self) -> List[EntanglementPair]:
        return list(self._entanglement_map.values())

    def find_entanglement_pair(self, entanglement_id: str) -> Optional[EntanglementPair]:
        return self._entanglement_map.get(entanglement_id)

    def get_entangled_states(self, entanglement_id: str) -> List[QuantumStateVector]:
        """States in this container that carry ``entanglement_id``."""
        return [s for s in self._quantum_states if s.entanglement_id == entanglement_id]

    def get_compression_stats(self) -> Dict[str, Any]:
        original = self._metadata["original_size"]
        compressed = self._metadata["compressed_size"]
        saved = original - compressed
        return {
            "original_size": original,
            "compressed_size": compressed,
            "compression_ratio": self._metadata["compression_ratio"],
            "space_saved": saved,
            "space_saved_percentage": saved / original * 100.0,
            "quantum_state_count": self._metadata["quantum_state_count"],
            "entanglement_count": self._metadata["entanglement_count"],
            "interference_pattern_count": self._metadata["interference_pattern_count"],
        }

    def estimate_decompression_time(self) -> float:
        """Rough decompression time in milliseconds."""
        return float(len(self._quantum_states) * 10 +
                     len(self._entanglement_map) * 5 +
                     len(self._interference_patterns) * 2)

    # Integrity

    def _canonical_content(self) -> Dict[str, Any]:
        return {
            "format_version": self._metadata["format_version"],
            "metadata": self._metadata,
            "quantum_states": [s.to_dict() for s in self._quantum_states],
            "entanglement_map": {key: pair.to_dict() for key, pair in self._entanglement_map.items()},
            "interference_patterns": list(self._interference_patterns),
            "residual": base64.b64encode(self._residual).decode("ascii"),
        }

    def calculate_checksum(self) -> str:
        canonical = json.dumps(self._canonical_content(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode("utf-8")).hexdigest()

    def verify_integrity(self) -> bool:
        """Recompute the checksum and compare it with the stored one."""
        valid = self.calculate_checksum() == self._checksum
        if not valid:
            logger.warning("Compressed data failed checksum verification")
        return valid

    # Persistence

    def serialize(self) -> bytes:
        envelope = self._canonical_content()
        envelope["checksum"] = self._checksum
        return json.dumps(envelope, sort_keys=True).encode("utf-8")

    @classmethod
    def deserialize(cls, data: bytes) -> "CompressedQuantumData":
        """
        Rebuild a container from ``serialize`` output.

        Raises:
            UnsupportedVersionError: if the envelope has another format version
            DeserializationError: for malformed input or a checksum mismatch
        """
        try:
            envelope = json.loads(bytes(data).decode("utf-8"))
        except (TypeError, UnicodeDecodeError, ValueError) as e:
            raise DeserializationError(f"Invalid compressed data: {e}") from e
        if not isinstance(envelope, dict):
            raise DeserializationError("Invalid compressed data: envelope must be an object")

        version = envelope.get("format_version")
        if version != FORMAT_VERSION:
            raise UnsupportedVersionError(
                f"Unsupported format version: {version!r}",
                suggestions=[f"Re-compress the data with format version {FORMAT_VERSION}"],
                details={"format_version": version, "supported": FORMAT_VERSION})

        try:
            states = [QuantumStateVector.from_dict(s) for s in envelope["quantum_states"]]
            pairs = {key: EntanglementPair.from_dict(p) for key, p in envelope["entanglement_map"].items()}
            residual = base64.b64decode(envelope.get("residual", ""), validate=True)
            return cls(states, pairs, envelope["interference_patterns"], envelope["metadata"],
                       residual, checksum=envelope["checksum"])
        except UnsupportedVersionError:
            raise
        except (KeyError, TypeError, ValueError, AttributeError, QuantumFlowError) as e:
            raise DeserializationError(f"Malformed compressed data: {e}") from e

    def __repr__(self) -> str:
        return (f"CompressedQuantumData(states={len(self._quantum_states)}, "
                f"pairs={len(self._entanglement_map)}, "
                f"ratio={self._metadata['compression_ratio']:.2f})")


def _normalize_pattern(pattern: Dict[str, Any]) -> Dict[str, Any]:
    """Interference descriptor with JSON-stable field types."""
    return {
        "type": str(pattern["type"]),
        "amplitude": float(pattern.get("amplitude", 0.0)),
        "phase": float(pattern.get("phase", 0.0)),
        "frequency": float(pattern.get("frequency", 0.0)),
        "state_indices": [int(i) for i in pattern.get("state_indices", ())],
    }
