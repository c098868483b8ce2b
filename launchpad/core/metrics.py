"""
Metrics collection for the launchpad engine
Tracks operation counts, fee gauges and AMM deposit latency
"""

import time
from typing import Dict, List, Optional
from dataclasses import dataclass
from collections import defaultdict, deque
import statistics


@dataclass
class HistogramStats:
    """Statistical summary of histogram data"""
    operation: str
    count: int
    p50: float
    p95: float
    mean: float
    min: float
    max: float


class MetricsCollector:
    """Collects counters, gauges and latency samples in process"""

    def __init__(self, enable_histogram: bool = True, max_samples: int = 10000):
        """
        Initialize metrics collector

        Args:
            enable_histogram: Whether to keep latency samples
            max_samples: Samples retained per operation
        """
        self.enable_histogram = enable_histogram

        # operation -> recent latency samples (ms)
        self._latencies: Dict[str, deque] = defaultdict(lambda: deque(maxlen=max_samples))
        self._counters: Dict[str, int] = defaultdict(int)
        self._gauges: Dict[str, int] = defaultdict(int)

        # (metric_name, labels_tuple) -> value
        self._labeled_counters: Dict[tuple, int] = defaultdict(int)

    def record_latency(self, operation: str, latency_ms: float) -> None:
        """
        Record operation latency

        Args:
            operation: Operation name (e.g., "amm_deposit")
            latency_ms: Latency in milliseconds
        """
        if self.enable_histogram:
            self._latencies[operation].append(latency_ms)
        self._counters[f"{operation}_count"] += 1

    def increment_counter(
        self,
        metric_name: str,
        value: int = 1,
        labels: Optional[Dict[str, str]] = None
    ) -> None:
        """
        Increment a counter metric

        Args:
            metric_name: Name of the counter
            value: Amount to increment (default 1)
            labels: Optional labels for the metric
        """
        if labels:
            label_key = (metric_name, tuple(sorted(labels.items())))
            self._labeled_counters[label_key] += value
        else:
            self._counters[metric_name] += value

    def set_gauge(self, metric_name: str, value: int) -> None:
        """Set a gauge to an integer value (wei amounts stay exact)"""
        self._gauges[metric_name] = value

    def get_counter(self, metric_name: str, labels: Optional[Dict[str, str]] = None) -> int:
        """Get current counter value"""
        if labels:
            label_key = (metric_name, tuple(sorted(labels.items())))
            return self._labeled_counters.get(label_key, 0)
        return self._counters.get(metric_name, 0)

    def get_gauge(self, metric_name: str) -> int:
        """Get current gauge value"""
        return self._gauges.get(metric_name, 0)

    def get_histogram_stats(self, operation: str) -> Optional[HistogramStats]:
        """
        Get histogram statistics for an operation

        Returns:
            HistogramStats or None if no samples were recorded
        """
        latencies = sorted(self._latencies.get(operation, []))
        if not latencies:
            return None

        return HistogramStats(
            operation=operation,
            count=len(latencies),
            p50=self._percentile(latencies, 50),
            p95=self._percentile(latencies, 95),
            mean=statistics.mean(latencies),
            min=latencies[0],
            max=latencies[-1]
        )

    def export_metrics(self) -> Dict:
        """
        Export all metrics as JSON-serializable dict

        Returns:
            Dictionary of all metrics
        """
        metrics = {
            "counters": dict(self._counters),
            "labeled_counters": {
                f"{name}{{{','.join(f'{k}={v}' for k, v in labels)}}}": value
                for (name, labels), value in self._labeled_counters.items()
            },
            "gauges": dict(self._gauges),
            "histograms": {}
        }

        for operation in self._latencies.keys():
            stats = self.get_histogram_stats(operation)
            if stats:
                metrics["histograms"][operation] = {
                    "count": stats.count,
                    "p50": stats.p50,
                    "p95": stats.p95,
                    "mean": stats.mean,
                    "min": stats.min,
                    "max": stats.max
                }

        return metrics

    def reset(self) -> None:
        """Reset all metrics (useful for testing)"""
        self._latencies.clear()
        self._counters.clear()
        self._gauges.clear()
        self._labeled_counters.clear()

    @staticmethod
    def _percentile(sorted_data: List[float], percentile: float) -> float:
        """Linear-interpolated percentile from sorted data"""
        if len(sorted_data) == 1:
            return sorted_data[0]

        index = (percentile / 100) * (len(sorted_data) - 1)
        lower = int(index)
        upper = lower + 1

        if upper >= len(sorted_data):
            return sorted_data[-1]

        weight = index - lower
        return sorted_data[lower] * (1 - weight) + sorted_data[upper] * weight


class LatencyTimer:
    """Context manager for measuring operation latency"""

    def __init__(self, metrics: MetricsCollector, operation: str):
        self.metrics = metrics
        self.operation = operation
        self.start_time: Optional[float] = None
        self.latency_ms: Optional[float] = None

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        # Failed calls are not sampled
        if self.start_time is not None and exc_type is None:
            self.latency_ms = (time.perf_counter() - self.start_time) * 1000
            self.metrics.record_latency(self.operation, self.latency_ms)


# Global metrics instance (replaced by init_metrics)
_global_metrics: Optional[MetricsCollector] = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance"""
    global _global_metrics
    if _global_metrics is None:
        _global_metrics = MetricsCollector()
    return _global_metrics


def init_metrics(enable_histogram: bool = True) -> MetricsCollector:
    """Initialize global metrics collector"""
    global _global_metrics
    _global_metrics = MetricsCollector(enable_histogram)
    return _global_metrics
