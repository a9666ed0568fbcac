"""Quantum Flow: Quantum-Inspired Lossless Compression of Arbitrary Bytes"""

__version__ = "0.1.0"

from .adapters.qf_file_adapter import QF_FILE_EXTENSION, QFFileAdapter
from .core.entanglement_analyzer import EntanglementAnalyzer
from .core.error_correction import QuantumErrorCorrection
from .core.interference_optimizer import InterferenceOptimizer
from .core.pattern_recognizer import PatternRecognizer
from .core.probability_analyzer import ProbabilityAnalyzer
from .core.state_converter import QuantumStateConverter
from .core.state_vector import QuantumStateVector
from .core.superposition import SuperpositionState
from .exceptions import (DeserializationError, EmptyInputError, IntegrityError, InvalidParameterError,
                         ProcessingError, QuantumFlowError, UnsupportedVersionError, ValidationError)
from .models.compressed_data import FORMAT_VERSION, CompressedQuantumData
from .models.config import QuantumConfig
from .models.entanglement_pair import EntanglementPair
from .models.metrics import QuantumMetrics, SessionStatistics
from .quantum_flow import QuantumFlow

__all__ = [
    "QuantumFlow",
    "QuantumConfig",
    "CompressedQuantumData",
    "FORMAT_VERSION",
    "QuantumMetrics",
    "SessionStatistics",
    "QuantumStateVector",
    "SuperpositionState",
    "QuantumStateConverter",
    "EntanglementPair",
    "PatternRecognizer",
    "ProbabilityAnalyzer",
    "EntanglementAnalyzer",
    "InterferenceOptimizer",
    "QuantumErrorCorrection",
    "QFFileAdapter",
    "QF_FILE_EXTENSION",
    "QuantumFlowError",
    "ValidationError",
    "InvalidParameterError",
    "EmptyInputError",
    "IntegrityError",
    "DeserializationError",
    "UnsupportedVersionError",
    "ProcessingError",
    "__version__",
]
