"""
Statistical analysis of state-vector probability distributions.

Statistical tests and quantiles come from ``scipy.stats`` and clustering from
``scipy.cluster``; everything else is plain numpy over the per-state
probability vectors.
"""

import logging
import math
import warnings
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
from scipy import stats
from scipy.cluster.vq import kmeans2
from scipy.spatial.distance import cdist, pdist

from ..exceptions import EmptyDistributionError, InvalidParameterError
from . import amplitude_math as am
from .state_vector import QuantumStateVector
from .superposition import SuperpositionState

logger = logging.getLogger(__name__)

ASSUMED_SAMPLE_SIZE = 100
SIGNIFICANCE_TEST_BINS = 10
KMEANS_MAX_ITERATIONS = 20


class ProbabilityAnalyzer:
    """
    Entropy statistics, histograms, outliers, clusters and trends of states.

    Args:
        confidence_level: Level for confidence intervals, in (0, 1)
        sampling_rate: Fraction of states analyzed, in (0, 1]
        distribution_bins: Histogram bins over [0, 1], in [2, 1024]
        outlier_threshold: z-score above which a state is an outlier (> 0)
        seed: Seed for sampling; without one, sampling takes evenly spaced states
    """

    def __init__(self, confidence_level: float = 0.95, sampling_rate: float = 1.0,
                 distribution_bins: int = 256, outlier_threshold: float = 2.0,
                 seed: Optional[int] = None):
        self.confidence_level = confidence_level
        self.sampling_rate = sampling_rate
        self.distribution_bins = distribution_bins
        self.outlier_threshold = outlier_threshold
        self.seed = seed

    @property
    def confidence_level(self) -> float:
        return self._confidence_level

    @confidence_level.setter
    def confidence_level(self, value: float) -> None:
        if not 0 < value < 1:
            raise InvalidParameterError("Confidence level must be between 0 and 1 (exclusive)")
        self._confidence_level = float(value)

    @property
    def sampling_rate(self) -> float:
        return self._sampling_rate

    @sampling_rate.setter
    def sampling_rate(self, value: float) -> None:
        if not 0 < value <= 1:
            raise InvalidParameterError("Sampling rate must be between 0 (exclusive) and 1 (inclusive)")
        self._sampling_rate = float(value)

    @property
    def distribution_bins(self) -> int:
        return self._distribution_bins

    @distribution_bins.setter
    def distribution_bins(self, value: int) -> None:
        if not 2 <= value <= 1024:
            raise InvalidParameterError("Distribution bins must be between 2 and 1024")
        self._distribution_bins = int(value)

    @property
    def outlier_threshold(self) -> float:
        return self._outlier_threshold

    @outlier_threshold.setter
    def outlier_threshold(self, value: float) -> None:
        if value <= 0:
            raise InvalidParameterError("Outlier threshold must be positive")
        self._outlier_threshold = float(value)

    # Distribution analysis

    def analyze_probability_distributions(self, states: Sequence[QuantumStateVector]) -> Dict[str, Any]:
        """
        Full statistical profile of the probability distributions of ``states``.

        Returns:
            Dictionary with total_states, sampled_states, statistics, histogram,
            outliers, clusters, trends and confidence_interval. Empty input
            yields the all-zero profile.
        """
        if len(states) == 0:
            return self._empty_analysis()

        sampled = self._sample_states(states)
        distributions = [state.get_probability_distribution() for state in sampled]
        entropies = np.array([am.calculate_entropy(d) for d in distributions])

        statistics = self._distribution_statistics(distributions, entropies)
        return {
            "total_states": len(states),
            "sampled_states": len(sampled),
            "statistics": statistics,
            "histogram": self._probability_histogram(distributions),
            "outliers": self._detect_outliers(entropies, statistics),
            "clusters": self._cluster_distributions(distributions),
            "trends": self._analyze_trends(entropies),
            "confidence_interval": self._entropy_confidence_interval(statistics),
        }

    def _sample_states(self, states: Sequence[QuantumStateVector]) -> List[QuantumStateVector]:
        if self._sampling_rate >= 1.0:
            return list(states)
        size = max(1, int(math.floor(len(states) * self._sampling_rate)))
        if self.seed is None:
            indices = np.unique(np.linspace(0, len(states) - 1, size).round().astype(int))
        else:
            rng = np.random.default_rng(self.seed)
            indices = np.sort(rng.choice(len(states), size=size, replace=False))
        return [states[i] for i in indices]

    @staticmethod
    def _distribution_statistics(distributions: Sequence[np.ndarray], entropies: np.ndarray) -> Dict[str, Any]:
        all_probabilities = np.concatenate(distributions)
        variance = float(np.var(entropies))
        return {
            "count": len(distributions),
            "average_entropy": float(np.mean(entropies)),
            "entropy_variance": variance,
            "entropy_std_dev": math.sqrt(variance),
            "min_entropy": float(np.min(entropies)),
            "max_entropy": float(np.max(entropies)),
            "average_probability": float(np.mean(all_probabilities)),
            "probability_variance": float(np.var(all_probabilities)),
        }

    def _probability_histogram(self, distributions: Sequence[np.ndarray]) -> Dict[str, Any]:
        all_probabilities = np.concatenate(distributions)
        bin_size = 1.0 / self._distribution_bins
        indices = np.minimum(self._distribution_bins - 1, np.floor(all_probabilities / bin_size).astype(int))
        bins = np.bincount(indices, minlength=self._distribution_bins)
        return {
            "bins": bins.tolist(),
            "bin_size": bin_size,
            "total_samples": int(all_probabilities.size),
            "peak_bin": int(np.argmax(bins)),
            "peak_value": int(np.max(bins)),
        }

    def _detect_outliers(self, entropies: np.ndarray, statistics: Dict[str, Any]) -> Dict[str, Any]:
        std = statistics["entropy_std_dev"]
        if std > 0:
            z_scores = np.abs(entropies - statistics["average_entropy"]) / std
            outlier_indices = [int(i) for i in np.flatnonzero(z_scores > self._outlier_threshold)]
        else:
            outlier_indices = []
        return {
            "outlier_indices": outlier_indices,
            "outlier_count": len(outlier_indices),
            "outlier_percentage": len(outlier_indices) / entropies.size * 100,
            "threshold": self._outlier_threshold,
        }

    def _cluster_distributions(self, distributions: Sequence[np.ndarray]) -> Dict[str, Any]:
        """k-means over zero-padded distributions with k = min(3, n), seeded with evenly spaced rows."""
        empty = {"clusters": [], "cluster_count": 0, "silhouette_score": 0.0,
                 "intra_cluster_variance": 0.0, "inter_cluster_distance": 0.0}
        if len(distributions) < 2:
            return empty

        width = max(d.size for d in distributions)
        points = np.zeros((len(distributions), width))
        for i, d in enumerate(distributions):
            points[i, :d.size] = d

        k = min(3, len(distributions))
        seeds = np.unique(np.linspace(0, len(points) - 1, k).round().astype(int))
        with warnings.catch_warnings():
            # Identical distributions leave clusters empty; their seed centroid is kept.
            warnings.simplefilter("ignore", UserWarning)
            centroids, labels = kmeans2(points, points[seeds].copy(), iter=KMEANS_MAX_ITERATIONS,
                                        minit="matrix")

        clusters = []
        intra_variance = 0.0
        for c, centroid in enumerate(centroids):
            members = [int(i) for i in np.flatnonzero(labels == c)]
            clusters.append({"id": c, "centroid": centroid.tolist(), "members": members, "size": len(members)})
            if len(members) > 1:
                intra_variance += float(np.var(np.linalg.norm(points[members] - centroid, axis=1)))

        return {
            "clusters": clusters,
            "cluster_count": len(clusters),
            "silhouette_score": self._silhouette_score(points, labels),
            "intra_cluster_variance": intra_variance / len(clusters),
            "inter_cluster_distance": float(np.mean(pdist(centroids))) if len(centroids) > 1 else 0.0,
        }

    @staticmethod
    def _silhouette_score(points: np.ndarray, labels: np.ndarray) -> float:
        present = np.unique(labels)
        if present.size < 2:
            return 0.0
        pairwise = cdist(points, points)
        scores = []
        for i, label in enumerate(labels):
            same = labels == label
            if same.sum() < 2:
                scores.append(0.0)
                continue
            a = pairwise[i, same].sum() / (same.sum() - 1)
            b = min(pairwise[i, labels == other].mean() for other in present if other != label)
            denominator = max(a, b)
            scores.append((b - a) / denominator if denominator > 0 else 0.0)
        return float(np.mean(scores))

    @staticmethod
    def _analyze_trends(entropies: np.ndarray) -> Dict[str, Any]:
        if entropies.size < 3:
            return {"trend": "insufficient_data", "slope": 0.0, "correlation": 0.0,
                    "seasonality": 0.0, "volatility": 0.0}

        indices = np.arange(entropies.size, dtype=np.float64)
        slope = float(np.polyfit(indices, entropies, 1)[0])
        if np.std(entropies) > 0:
            correlation = float(np.corrcoef(indices, entropies)[0, 1])
        else:
            correlation = 0.0

        previous = entropies[:-1]
        nonzero = previous != 0
        returns = (entropies[1:][nonzero] - previous[nonzero]) / previous[nonzero]
        volatility = float(np.std(returns)) if returns.size else 0.0

        if abs(slope) < 0.01:
            trend = "stable"
        elif slope > 0:
            trend = "increasing"
        else:
            trend = "decreasing"
        return {"trend": trend, "slope": slope, "correlation": correlation,
                "seasonality": 0.0, "volatility": volatility}

    def _entropy_confidence_interval(self, statistics: Dict[str, Any]) -> Dict[str, Any]:
        """Student t interval for the mean entropy."""
        count = statistics["count"]
        mean = statistics["average_entropy"]
        margin = 0.0
        if count > 1:
            quantile = float(stats.t.ppf((1 + self._confidence_level) / 2, df=count - 1))
            margin = quantile * statistics["entropy_std_dev"] / math.sqrt(count)
        return {"level": self._confidence_level, "lower_bound": mean - margin,
                "upper_bound": mean + margin, "margin_of_error": margin}

    def _empty_analysis(self) -> Dict[str, Any]:
        return {
            "total_states": 0,
            "sampled_states": 0,
            "statistics": {"count": 0, "average_entropy": 0.0, "entropy_variance": 0.0,
                           "entropy_std_dev": 0.0, "min_entropy": 0.0, "max_entropy": 0.0,
                           "average_probability": 0.0, "probability_variance": 0.0},
            "histogram": {"bins": [], "bin_size": 0.0, "total_samples": 0, "peak_bin": 0, "peak_value": 0},
            "outliers": {"outlier_indices": [], "outlier_count": 0, "outlier_percentage": 0.0,
                         "threshold": self._outlier_threshold},
            "clusters": {"clusters": [], "cluster_count": 0, "silhouette_score": 0.0,
                         "intra_cluster_variance": 0.0, "inter_cluster_distance": 0.0},
            "trends": {"trend": "insufficient_data", "slope": 0.0, "correlation": 0.0,
                       "seasonality": 0.0, "volatility": 0.0},
            "confidence_interval": {"level": self._confidence_level, "lower_bound": 0.0,
                                    "upper_bound": 0.0, "margin_of_error": 0.0},
        }

    # Superposition probabilities

    def calculate_quantum_probabilities(self, superposition: SuperpositionState) -> Dict[str, Any]:
        """
        Per-pattern probabilities of a superposition with uncertainty estimates.

        Returns:
            Dictionary with patterns, statistics, uncertainties,
            confidence_intervals, total_probability and normalized_probabilities
        """
        patterns = superposition.analyze_probability_amplitudes()
        probabilities = np.array([p["probability"] for p in patterns], dtype=np.float64)
        intervals = [self._probability_interval(p) for p in probabilities]

        total = float(probabilities.sum())
        normalized = probabilities / total if total > 0 else probabilities

        return {
            "patterns": patterns,
            "statistics": self._basic_statistics(probabilities),
            "uncertainties": [{
                "pattern_index": pattern["index"],
                "probability": pattern["probability"],
                "standard_error": math.sqrt(pattern["probability"] * (1 - pattern["probability"])
                                            / ASSUMED_SAMPLE_SIZE),
                "confidence_interval": interval,
            } for pattern, interval in zip(patterns, intervals)],
            "confidence_intervals": intervals,
            "total_probability": total,
            "normalized_probabilities": normalized.tolist(),
        }

    def _probability_interval(self, probability: float) -> Dict[str, Any]:
        z = float(stats.norm.ppf((1 + self._confidence_level) / 2))
        margin = z * math.sqrt(max(0.0, probability * (1 - probability)) / ASSUMED_SAMPLE_SIZE)
        return {"level": self._confidence_level,
                "lower_bound": max(0.0, probability - margin),
                "upper_bound": min(1.0, probability + margin),
                "margin_of_error": margin}

    @staticmethod
    def _basic_statistics(values: np.ndarray) -> Dict[str, Any]:
        if values.size == 0:
            return {"count": 0, "mean": 0.0, "variance": 0.0, "std_dev": 0.0,
                    "min": 0.0, "max": 0.0, "median": 0.0}
        variance = float(np.var(values))
        return {"count": int(values.size), "mean": float(np.mean(values)), "variance": variance,
                "std_dev": math.sqrt(variance), "min": float(np.min(values)),
                "max": float(np.max(values)), "median": float(np.median(values))}

    # Significance tests

    def perform_significance_tests(self, distributions_a: Sequence[Sequence[float]],
                                   distributions_b: Sequence[Sequence[float]]) -> Dict[str, Any]:
        """
        Compare two groups of probability distributions.

        Both groups are flattened into samples and compared with the two-sample
        Kolmogorov-Smirnov test, the Mann-Whitney U test and a chi-square
        homogeneity test over a shared 10-bin histogram.

        Raises:
            EmptyDistributionError: if either group is empty
        """
        sample_a = self._flatten(distributions_a)
        sample_b = self._flatten(distributions_b)
        if sample_a.size == 0 or sample_b.size == 0:
            raise EmptyDistributionError("Cannot perform significance tests on empty distributions")

        alpha = 1.0 - self._confidence_level
        ks = stats.ks_2samp(sample_a, sample_b)
        kolmogorov_smirnov = self._test_result("Kolmogorov-Smirnov", ks.statistic, ks.pvalue, alpha)

        mw = stats.mannwhitneyu(sample_a, sample_b, alternative="two-sided")
        mann_whitney = self._test_result("Mann-Whitney U", mw.statistic, mw.pvalue, alpha)

        chisquare = self._chi_square_test(sample_a, sample_b, alpha)

        tests = [kolmogorov_smirnov, mann_whitney, chisquare]
        return {
            "kolmogorov_smirnov": kolmogorov_smirnov,
            "mann_whitney": mann_whitney,
            "chisquare": chisquare,
            "overall_significance": sum(t["is_significant"] for t in tests) / len(tests),
        }

    @staticmethod
    def _flatten(distributions: Sequence[Sequence[float]]) -> np.ndarray:
        parts = [np.asarray(d, dtype=np.float64).ravel() for d in distributions]
        return np.concatenate(parts) if parts else np.zeros(0)

    @staticmethod
    def _test_result(name: str, statistic: float, p_value: float, alpha: float) -> Dict[str, Any]:
        statistic = float(statistic)
        p_value = float(p_value)
        if not math.isfinite(p_value):
            p_value = 1.0
        p_value = min(1.0, max(0.0, p_value))
        return {"test_name": name, "statistic": max(0.0, statistic) if math.isfinite(statistic) else 0.0,
                "p_value": p_value, "is_significant": p_value < alpha, "alpha": alpha}

    def _chi_square_test(self, sample_a: np.ndarray, sample_b: np.ndarray, alpha: float) -> Dict[str, Any]:
        low = min(sample_a.min(), sample_b.min())
        high = max(sample_a.max(), sample_b.max())
        edges = np.histogram_bin_edges(np.concatenate([sample_a, sample_b]),
                                       bins=SIGNIFICANCE_TEST_BINS, range=(low, high))
        table = np.vstack([np.histogram(sample_a, bins=edges)[0], np.histogram(sample_b, bins=edges)[0]])
        table = table[:, table.sum(axis=0) > 0]
        if table.shape[1] < 2:
            return self._test_result("Chi-square", 0.0, 1.0, alpha)
        chi2, p_value, _, _ = stats.chi2_contingency(table)
        return self._test_result("Chi-square", chi2, p_value, alpha)

    # Derived estimates

    def estimate_compression_potential(self, analysis: Dict[str, Any]) -> Dict[str, Any]:
        """Compression estimate derived from a distribution analysis (read-only)."""
        statistics = analysis["statistics"]
        max_entropy = math.log2(self._distribution_bins)
        average_entropy = statistics["average_entropy"]

        theoretical = 1 - average_entropy / max_entropy
        practical = theoretical * 0.7
        redundancy = analysis["outliers"]["outlier_percentage"] / 100

        clusters = analysis["clusters"]["clusters"]
        clustering_benefit = 0.0
        if clusters:
            clustering_benefit = min(0.3, sum(c["size"] for c in clusters) / len(clusters) / 100)

        if average_entropy > 0:
            consistency = 1 - statistics["entropy_std_dev"] / average_entropy
        else:
            consistency = 1.0
        outlier_penalty = 1 - redundancy
        confidence = max(0.1, min(0.95, (consistency + outlier_penalty) / 2))

        return {
            "theoretical_max_compression": theoretical,
            "practical_compression": practical,
            "adjusted_compression": min(0.95, practical * (1 + redundancy) * (1 + clustering_benefit)),
            "entropy_reduction": (max_entropy - average_entropy) / max_entropy,
            "redundancy_factor": redundancy,
            "clustering_benefit": clustering_benefit,
            "confidence": confidence,
        }

    def analyze_coherence_effects(self, superposition: SuperpositionState, time_steps: int = 10,
                                  rng: Optional[np.random.Generator] = None) -> Dict[str, Any]:
        """
        Simulate decoherence in ``time_steps`` equal steps and track probabilities.

        The input superposition is not modified.
        """
        if time_steps < 1:
            raise InvalidParameterError("Time steps must be at least 1")
        rng = rng or np.random.default_rng(self.seed)

        initial = superposition.coherence_time
        step = initial / time_steps
        current = superposition
        decay = []
        evolution = []
        for i in range(time_steps + 1):
            if i > 0:
                current = current.apply_decoherence(step, rng)
            decay.append({
                "time": i * step,
                "coherence_level": max(0.0, initial - i * step),
                "entropy": current.calculate_entropy(),
                "is_coherent": current.is_coherent(),
            })
            evolution.append([p["probability"] for p in current.analyze_probability_amplitudes()])

        total_time = decay[-1]["time"] - decay[0]["time"]
        rate = (decay[0]["coherence_level"] - decay[-1]["coherence_level"]) / total_time if total_time > 0 else 0.0

        return {
            "initial_coherence": initial,
            "coherence_decay": decay,
            "probability_evolution": evolution,
            "decoherence_rate": rate,
            "stability_metric": self._stability_metric(evolution),
        }

    @staticmethod
    def _stability_metric(evolution: List[List[float]]) -> float:
        if len(evolution) < 2:
            return 1.0
        variations = []
        for previous, current in zip(evolution, evolution[1:]):
            n = min(len(previous), len(current))
            if n == 0:
                continue
            variations.append(float(np.mean(np.abs(np.asarray(current[:n]) - np.asarray(previous[:n])))))
        if not variations:
            return 1.0
        return max(0.0, 1.0 - sum(variations) / len(variations))
