"""
Error taxonomy for the Quantum Flow pipeline.

Every error carries a machine-readable code, a human-readable message and,
where available, concrete recovery suggestions so that callers at the
collaborator boundary can report failures without parsing messages.

Validation and structural errors also derive from ``ValueError`` so that code
expecting the usual Python contract keeps working.
"""

from typing import Any, Dict, List, Optional


class QuantumFlowError(Exception):
    """Base class for all Quantum Flow errors."""

    code = "QUANTUM_FLOW_ERROR"

    def __init__(self, message: str, suggestions: Optional[List[str]] = None,
                 details: Optional[Dict[str, Any]] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.suggestions = list(suggestions or [])
        self.details = dict(details or {})
        if code is not None:
            self.code = code

    def to_dict(self) -> Dict[str, Any]:
        """Plain record used by the CLI and other boundary callers."""
        return {
            "code": self.code,
            "message": self.message,
            "suggestions": list(self.suggestions),
            "details": dict(self.details),
        }


# Validation errors

class ValidationError(QuantumFlowError, ValueError):
    """Out-of-range or type-invalid configuration."""

    code = "VALIDATION_ERROR"


class InvalidParameterError(ValidationError):
    """A component parameter is outside its documented range."""

    code = "INVALID_PARAMETER"


# Structural errors

class StructuralError(QuantumFlowError, ValueError):
    code = "STRUCTURAL_ERROR"


class EmptyInputError(StructuralError):
    """At least one element was required but none was given."""

    code = "EMPTY_INPUT"


class DegenerateStateError(StructuralError):
    """All amplitudes are zero (or not finite), so the state cannot be normalized."""

    code = "DEGENERATE_STATE"


class DimensionMismatchError(StructuralError):
    code = "DIMENSION_MISMATCH"


class EmptyDistributionError(StructuralError):
    code = "EMPTY_DISTRIBUTION"


# Correlation errors

class InsufficientCorrelationError(QuantumFlowError):
    """Two states are not correlated enough to form an entanglement pair."""

    code = "INSUFFICIENT_CORRELATION"


# Lookup errors

class ProfileNotFoundError(QuantumFlowError, LookupError):
    code = "PROFILE_NOT_FOUND"


# Integrity errors

class IntegrityError(QuantumFlowError):
    """Checksum mismatch or detected corruption."""

    code = "INTEGRITY_ERROR"


class UnsupportedVersionError(IntegrityError):
    code = "UNSUPPORTED_VERSION"


class DeserializationError(IntegrityError):
    code = "DESERIALIZATION_ERROR"


# Processing failures

class ProcessingError(QuantumFlowError):
    """The pipeline and its classical fallback both failed."""

    code = "PROCESSING_FAILED"
