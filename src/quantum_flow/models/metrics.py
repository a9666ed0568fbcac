"""
Per-run compression metrics and caller-owned session statistics.
"""

import logging
import time
from collections import deque
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

import numpy as np

from ..exceptions import InvalidParameterError

logger = logging.getLogger(__name__)

PHASES = ("conversion", "superposition", "entanglement", "interference", "encoding")
PRIORITY_ORDER = {"critical": 4, "high": 3, "medium": 2, "low": 1}
DEFAULT_BASELINE_RATIO = 1.15
TREND_SLOPE = 0.05


class SessionStatistics:
    """
    Rolling statistics over many compression runs.

    One instance per session, owned by the caller and passed to the engine
    explicitly; nothing is shared between sessions.

    Args:
        baseline_compression_ratio: Target ratio suggestions compare against
        recent_window: Number of recent ratios kept
        trend_window: Number of most recent ratios the trend regression uses
    """

    def __init__(self, baseline_compression_ratio: float = DEFAULT_BASELINE_RATIO,
                 recent_window: int = 10, trend_window: int = 5):
        if baseline_compression_ratio <= 0:
            raise InvalidParameterError("Baseline compression ratio must be positive")
        if recent_window < 1 or trend_window < 2:
            raise InvalidParameterError("Recent window must be >= 1 and trend window >= 2")
        self.baseline_compression_ratio = float(baseline_compression_ratio)
        self.recent_window = int(recent_window)
        self.trend_window = int(trend_window)
        self.reset()

    def reset(self) -> None:
        self.files_processed = 0
        self.total_bytes_processed = 0
        self.total_bytes_saved = 0
        self.average_compression_ratio = 1.0
        self.best_compression_ratio = 1.0
        self.worst_compression_ratio = 1.0
        self.total_processing_time = 0.0
        self.average_processing_time = 0.0
        self.performance_trend = "stable"
        self.recent_compression_ratios = deque(maxlen=self.recent_window)

    def record(self, original_size: int, compressed_size: int, processing_time: float = 0.0) -> None:
        """Add one run to the session."""
        ratio = original_size / compressed_size if compressed_size > 0 else 1.0

        self.files_processed += 1
        self.total_bytes_processed += original_size
        self.total_bytes_saved += original_size - compressed_size
        self.total_processing_time += processing_time
        self.average_processing_time = self.total_processing_time / self.files_processed

        if self.files_processed == 1:
            self.average_compression_ratio = ratio
            self.best_compression_ratio = ratio
            self.worst_compression_ratio = ratio
        else:
            n = self.files_processed
            self.average_compression_ratio = (self.average_compression_ratio * (n - 1) + ratio) / n
            self.best_compression_ratio = max(self.best_compression_ratio, ratio)
            self.worst_compression_ratio = min(self.worst_compression_ratio, ratio)

        self.recent_compression_ratios.append(ratio)
        self.performance_trend = self._classify_trend()
        logger.debug(f"Session recorded ratio {ratio:.3f}, trend {self.performance_trend}")

    def _classify_trend(self) -> str:
        recent = list(self.recent_compression_ratios)
        if len(recent) < 3:
            return "stable"
        window = np.asarray(recent[-self.trend_window:], dtype=np.float64)
        slope = float(np.polyfit(np.arange(window.size), window, 1)[0])
        if slope > TREND_SLOPE:
            return "improving"
        if slope < -TREND_SLOPE:
            return "degrading"
        return "stable"

    def get_performance_trend(self) -> Dict[str, Any]:
        recent = list(self.recent_compression_ratios)
        average_recent = float(np.mean(recent)) if recent else 1.0
        if average_recent > self.baseline_compression_ratio * 1.05:
            compared = "above"
        elif average_recent < self.baseline_compression_ratio * 0.95:
            compared = "below"
        else:
            compared = "at"
        return {
            "trend": self.performance_trend,
            "recent_ratios": recent,
            "average_recent": average_recent,
            "compared_to_baseline": compared,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "files_processed": self.files_processed,
            "total_bytes_processed": self.total_bytes_processed,
            "total_bytes_saved": self.total_bytes_saved,
            "average_compression_ratio": self.average_compression_ratio,
            "best_compression_ratio": self.best_compression_ratio,
            "worst_compression_ratio": self.worst_compression_ratio,
            "total_processing_time": self.total_processing_time,
            "average_processing_time": self.average_processing_time,
            "performance_trend": self.performance_trend,
            "baseline_compression_ratio": self.baseline_compression_ratio,
            "recent_compression_ratios": list(self.recent_compression_ratios),
        }


class QuantumMetrics:
    """
    Metrics of a single compression run: sizes, phase timings (seconds) and
    quantum efficiency figures.

    Args:
        session: Optional session the finished run is recorded into
    """

    def __init__(self, session: Optional[SessionStatistics] = None):
        self.session = session
        self._start_time = 0.0
        self._phase_start = 0.0
        self.reset()

    def reset(self) -> None:
        """Clear the per-run metrics; the attached session is kept."""
        self.compression_metrics = {
            "original_size": 0,
            "compressed_size": 0,
            "compression_ratio": 1.0,
            "compression_percentage": 0.0,
        }
        self.processing_metrics = {f"{name}_time": 0.0 for name in PHASES}
        self.processing_metrics["total_time"] = 0.0
        self.efficiency_metrics = {
            "quantum_states_created": 0,
            "entanglement_pairs_found": 0,
            "average_correlation_strength": 0.0,
            "superposition_complexity": 0.0,
            "interference_effectiveness": 0.0,
            "coherence_time": 0.0,
        }

    # Timing

    def start_timing(self) -> None:
        self._start_time = time.perf_counter()
        self._phase_start = self._start_time

    def start_phase(self) -> None:
        self._phase_start = time.perf_counter()

    def end_phase(self, name: str) -> float:
        """Store the time since ``start_phase`` under ``<name>_time`` and return it."""
        key = _phase_key(name)
        duration = time.perf_counter() - self._phase_start
        self.processing_metrics[key] = duration
        return duration

    def end_timing(self) -> float:
        self.processing_metrics["total_time"] = time.perf_counter() - self._start_time
        return self.processing_metrics["total_time"]

    @contextmanager
    def phase(self, name: str) -> Iterator[None]:
        """Time the enclosed block as phase ``name``."""
        _phase_key(name)
        self.start_phase()
        try:
            yield
        finally:
            self.end_phase(name)

    # Recording

    def record_compression_metrics(self, original_size: int, compressed_size: int) -> None:
        self.compression_metrics["original_size"] = original_size
        self.compression_metrics["compressed_size"] = compressed_size
        if original_size > 0 and compressed_size > 0:
            self.compression_metrics["compression_ratio"] = original_size / compressed_size
            self.compression_metrics["compression_percentage"] = (1 - compressed_size / original_size) * 100
        else:
            self.compression_metrics["compression_ratio"] = 1.0
            self.compression_metrics["compression_percentage"] = 0.0

    def record_quantum_efficiency(self, quantum_states_created: int, entanglement_pairs_found: int,
                                  average_correlation_strength: float, superposition_complexity: float,
                                  interference_effectiveness: float, coherence_time: float) -> None:
        self.efficiency_metrics = {
            "quantum_states_created": int(quantum_states_created),
            "entanglement_pairs_found": int(entanglement_pairs_found),
            "average_correlation_strength": float(average_correlation_strength),
            "superposition_complexity": float(superposition_complexity),
            "interference_effectiveness": float(interference_effectiveness),
            "coherence_time": float(coherence_time),
        }

    def update_session_statistics(self) -> None:
        """Record this run into the attached session, if any."""
        if self.session is None:
            return
        self.session.record(self.compression_metrics["original_size"],
                            self.compression_metrics["compressed_size"],
                            self.processing_metrics["total_time"])

    def get_all_metrics(self) -> Dict[str, Any]:
        return {
            "compression": dict(self.compression_metrics),
            "processing": dict(self.processing_metrics),
            "efficiency": dict(self.efficiency_metrics),
            "session": self.session.to_dict() if self.session is not None else None,
        }

    # Suggestions

    def generate_optimization_suggestions(self) -> List[Dict[str, Any]]:
        """
        Parameter tuning hints for the last run, most urgent first.

        Returns:
            List of dicts with ``type``, ``priority`` (critical/high/medium/low),
            ``description``, ``suggestion`` and ``expected_improvement``
        """
        suggestions = []
        current_ratio = self.compression_metrics["compression_ratio"]
        if self.session is not None and self.session.files_processed > 0:
            average_ratio = self.session.average_compression_ratio
            baseline = self.session.baseline_compression_ratio
            trend = self.session.performance_trend
        else:
            average_ratio = current_ratio
            baseline = DEFAULT_BASELINE_RATIO
            trend = "stable"

        if average_ratio < baseline:
            suggestions.append({
                "type": "general",
                "priority": "high",
                "description": f"Average compression ratio ({average_ratio:.2f}:1) is below "
                               f"baseline ({baseline:.2f}:1)",
                "suggestion": "Consider increasing quantum simulation parameters to improve compression",
                "expected_improvement": "Reach the baseline compression ratio",
            })

        if trend == "degrading":
            suggestions.append({
                "type": "general",
                "priority": "medium",
                "description": "Performance trend is degrading over recent operations",
                "suggestion": "Review recent file types and consider parameter adjustments",
                "expected_improvement": "Stabilize or improve compression ratios",
            })

        efficiency = self.efficiency_metrics
        if efficiency["entanglement_pairs_found"] > 0 and efficiency["average_correlation_strength"] < 0.5:
            suggestions.append({
                "type": "entanglement_level",
                "priority": "medium",
                "description": f"Low average correlation strength "
                               f"({efficiency['average_correlation_strength']:.3f})",
                "suggestion": "Increase entanglement detection sensitivity or reduce entanglement threshold",
                "current_value": efficiency["average_correlation_strength"],
                "suggested_value": 0.5,
                "expected_improvement": "Better pattern correlation detection and compression",
            })

        if efficiency["interference_effectiveness"] < 0.6:
            suggestions.append({
                "type": "interference_threshold",
                "priority": "medium",
                "description": f"Low interference effectiveness "
                               f"({efficiency['interference_effectiveness']:.3f})",
                "suggestion": "Adjust interference thresholds to optimize pattern elimination",
                "current_value": efficiency["interference_effectiveness"],
                "suggested_value": 0.75,
                "expected_improvement": "More effective redundancy elimination",
            })

        total_time = self.processing_metrics["total_time"]
        if total_time > 1.0 and current_ratio / total_time < 0.5:
            suggestions.append({
                "type": "superposition_complexity",
                "priority": "low",
                "description": f"Low processing efficiency ({current_ratio / total_time:.2f} ratio/sec)",
                "suggestion": "Consider reducing superposition complexity for faster processing",
                "expected_improvement": "Faster compression with minimal ratio impact",
            })

        states = efficiency["quantum_states_created"]
        if 0 < states < 10:
            suggestions.append({
                "type": "quantum_bit_depth",
                "priority": "low",
                "description": f"Low quantum state utilization ({states} states)",
                "suggestion": "Increase quantum bit depth to create more states for better compression",
                "current_value": states,
                "suggested_value": 50,
                "expected_improvement": "More quantum states for pattern analysis",
            })

        if current_ratio < 1.0:
            suggestions.append({
                "type": "general",
                "priority": "critical",
                "description": "Compression is expanding data instead of compressing it",
                "suggestion": "Check input data type and consider fallback to classical compression",
                "expected_improvement": "Prevent data expansion and achieve actual compression",
            })

        return sorted(suggestions, key=lambda s: PRIORITY_ORDER[s["priority"]], reverse=True)

    def generate_report(self) -> str:
        """Plain-text summary of the run and the session."""
        c = self.compression_metrics
        p = self.processing_metrics
        e = self.efficiency_metrics
        lines = [
            "Quantum Flow Performance Report",
            "===============================",
            "",
            "Compression Metrics:",
            f"- Original Size: {c['original_size']:,} bytes",
            f"- Compressed Size: {c['compressed_size']:,} bytes",
            f"- Compression Ratio: {c['compression_ratio']:.2f}:1",
            f"- Space Saved: {c['compression_percentage']:.1f}%",
            "",
            "Processing Time:",
        ]
        lines += [f"- {key.replace('_time', '').capitalize()}: {value * 1000:.1f}ms"
                  for key, value in p.items()]
        lines += [
            "",
            "Quantum Efficiency:",
            f"- Quantum States: {e['quantum_states_created']}",
            f"- Entanglement Pairs: {e['entanglement_pairs_found']}",
            f"- Avg Correlation: {e['average_correlation_strength']:.3f}",
            f"- Superposition Complexity: {e['superposition_complexity']:.2f}",
            f"- Interference Effectiveness: {e['interference_effectiveness']:.3f}",
        ]
        if self.session is not None:
            s = self.session
            lines += [
                "",
                "Session Statistics:",
                f"- Files Processed: {s.files_processed}",
                f"- Bytes Saved: {s.total_bytes_saved:,}",
                f"- Avg Compression: {s.average_compression_ratio:.2f}:1",
                f"- Best Compression: {s.best_compression_ratio:.2f}:1",
                f"- Worst Compression: {s.worst_compression_ratio:.2f}:1",
                f"- Performance Trend: {s.performance_trend}",
            ]

        suggestions = self.generate_optimization_suggestions()
        lines += ["", "Optimization Suggestions:"]
        lines += [f"- [{s['priority'].upper()}] {s['description']}: {s['suggestion']}" for s in suggestions]
        if not suggestions:
            lines.append("- No optimization suggestions at this time")
        return "\n".join(lines)


def _phase_key(name: str) -> str:
    if name not in PHASES:
        raise InvalidParameterError(f"Unknown processing phase '{name}'",
                                    suggestions=[f"Use one of: {', '.join(PHASES)}"])
    return f"{name}_time"
