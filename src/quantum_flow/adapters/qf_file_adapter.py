"""
QFFileAdapter for Quantum Flow

This module connects the compression engine to the filesystem: it reads and
writes ``.qf`` container files and runs whole-file compression and
decompression.
"""

import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..exceptions import QuantumFlowError
from ..models.compressed_data import CompressedQuantumData
from ..quantum_flow import QuantumFlow

# Configure logging
logger = logging.getLogger(__name__)

QF_FILE_EXTENSION = ".qf"

PathLike = Union[str, Path]


def write_container(path: PathLike, container: CompressedQuantumData) -> int:
    """Write a container to ``path`` and return the number of bytes written."""
    payload = container.serialize()
    Path(path).write_bytes(payload)
    return len(payload)


def read_container(path: PathLike) -> CompressedQuantumData:
    """
    Load a container from ``path``.

    Raises:
        OSError: if the file cannot be read
        UnsupportedVersionError: for containers of another format version
        DeserializationError: for malformed or corrupted files
    """
    return CompressedQuantumData.deserialize(Path(path).read_bytes())


def default_output_path(input_path: PathLike, decompress: bool = False) -> Path:
    """``name`` -> ``name.qf`` and ``name.qf`` -> ``name`` (``name.out`` otherwise)."""
    path = Path(input_path)
    if not decompress:
        return path.with_name(path.name + QF_FILE_EXTENSION)
    if path.suffix == QF_FILE_EXTENSION:
        return path.with_suffix("")
    return path.with_name(path.name + ".out")


class QFFileAdapter:
    """
    File-level front end of the QuantumFlow engine.

    Every operation returns a result dictionary; failures are logged and
    reported with ``success=False`` and an ``error`` message instead of being
    raised.
    """

    def __init__(self, engine: Optional[QuantumFlow] = None, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the adapter.

        Args:
            engine: Engine to use; one is built from ``config`` if omitted
            config: Optional configuration dictionary with the following keys:
                - overwrite: Replace existing output files (default: False)
                - engine: Engine configuration passed to QuantumFlow
        """
        self.config = config or {}
        self.engine = engine if engine is not None else QuantumFlow(self.config.get("engine"))
        self.overwrite = self.config.get("overwrite", False)

    def _check_output(self, output_path: Path) -> Optional[str]:
        if output_path.exists() and not self.overwrite:
            return f"Output file already exists: {output_path}"
        return None

    def compress_file(self, input_path: PathLike, output_path: Optional[PathLike] = None) -> Dict[str, Any]:
        """
        Compress a file into a ``.qf`` container.

        Returns:
            Dictionary with success flag, paths, sizes and compression stats
        """
        start = time.perf_counter()
        input_path = Path(input_path)
        output_path = Path(output_path) if output_path else default_output_path(input_path)

        error_msg = self._check_output(output_path)
        if error_msg:
            logger.error(error_msg)
            return {"success": False, "error": error_msg}

        try:
            data = input_path.read_bytes()
            container = self.engine.compress(data)
            written = write_container(output_path, container)
        except (OSError, QuantumFlowError) as e:
            error_msg = f"Failed to compress {input_path}: {str(e)}"
            logger.error(error_msg)
            return {"success": False, "error": error_msg}

        logger.info(f"Wrote {output_path} ({written} bytes)")
        return {
            "success": True,
            "input_path": str(input_path),
            "output_path": str(output_path),
            "original_size": len(data),
            "file_size": written,
            "fallback_used": container.is_fallback,
            "compression_stats": container.get_compression_stats(),
            "processing_time": time.perf_counter() - start,
        }

    def decompress_file(self, input_path: PathLike, output_path: Optional[PathLike] = None) -> Dict[str, Any]:
        """
        Restore the original file from a ``.qf`` container.

        Returns:
            Dictionary with success flag, paths and the restored size
        """
        start = time.perf_counter()
        input_path = Path(input_path)
        output_path = Path(output_path) if output_path else default_output_path(input_path, decompress=True)

        error_msg = self._check_output(output_path)
        if error_msg:
            logger.error(error_msg)
            return {"success": False, "error": error_msg}

        try:
            data = self.engine.decompress(read_container(input_path))
            output_path.write_bytes(data)
        except (OSError, QuantumFlowError) as e:
            error_msg = f"Failed to decompress {input_path}: {str(e)}"
            logger.error(error_msg)
            return {"success": False, "error": error_msg}

        return {
            "success": True,
            "input_path": str(input_path),
            "output_path": str(output_path),
            "restored_size": len(data),
            "processing_time": time.perf_counter() - start,
        }

    def inspect_file(self, input_path: PathLike) -> Dict[str, Any]:
        """Metadata and statistics of a ``.qf`` container without decoding it."""
        try:
            container = read_container(input_path)
        except (OSError, QuantumFlowError) as e:
            error_msg = f"Failed to read {input_path}: {str(e)}"
            logger.error(error_msg)
            return {"success": False, "error": error_msg}

        metadata = container.metadata
        return {
            "success": True,
            "input_path": str(input_path),
            "format_version": metadata["format_version"],
            "integrity_verified": container.verify_integrity(),
            "fallback_used": container.is_fallback,
            "compression_stats": container.get_compression_stats(),
            "compression_config": metadata["compression_config"],
            "estimated_decompression_time_ms": container.estimate_decompression_time(),
        }

    def analyze_file(self, input_path: PathLike) -> Dict[str, Any]:
        try:
            analysis = self.engine.analyze(Path(input_path).read_bytes())
        except (OSError, QuantumFlowError) as e:
            error_msg = f"Failed to analyze {input_path}: {str(e)}"
            logger.error(error_msg)
            return {"success": False, "error": error_msg}
        analysis["success"] = True
        analysis["input_path"] = str(input_path)
        return analysis
