"""
Monitoring and metrics collection for the spell crawler.
"""

import time
import logging
import json
from typing import Dict, Optional, Any, List
from dataclasses import dataclass, field
from datetime import datetime, timezone

from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry, start_http_server


@dataclass
class MetricPoint:
    """Individual metric data point."""
    timestamp: float
    value: float
    labels: Dict[str, str] = field(default_factory=dict)


@dataclass
class Metric:
    """Metric container with history."""
    name: str
    description: str
    metric_type: str  # counter, gauge, histogram
    points: List[MetricPoint] = field(default_factory=list)
    current_value: float = 0.0


class MetricsCollector:
    """Collects run metrics, optionally mirroring them to Prometheus."""

    def __init__(self, enable_prometheus: bool = False, prometheus_port: int = 8000):
        self.logger = logging.getLogger(__name__)
        self.metrics: Dict[str, Metric] = {}
        self.enable_prometheus = enable_prometheus
        self.prometheus_port = prometheus_port

        self.prometheus_registry: Optional[CollectorRegistry] = None
        self.prometheus_metrics: Dict[str, Any] = {}

        if self.enable_prometheus:
            self._setup_prometheus()

    def _setup_prometheus(self):
        """Setup Prometheus metrics."""
        self.prometheus_registry = CollectorRegistry()

        self.prometheus_metrics = {
            'records_checked_total': Counter(
                'spellcrawl_records_checked_total',
                'Total number of records fetched and spell checked',
                registry=self.prometheus_registry
            ),
            'errors_total': Counter(
                'spellcrawl_errors_total',
                'Total number of record failures',
                ['error_type'],
                registry=self.prometheus_registry
            ),
            'misspellings_total': Counter(
                'spellcrawl_misspellings_total',
                'Total number of misspelling occurrences found',
                registry=self.prometheus_registry
            ),
            'fetch_time_seconds': Histogram(
                'spellcrawl_fetch_time_seconds',
                'Time spent fetching a page',
                registry=self.prometheus_registry
            ),
            'open_sessions': Gauge(
                'spellcrawl_open_sessions',
                'Number of fetch sessions currently open',
                registry=self.prometheus_registry
            ),
        }

        self.logger.info("Prometheus metrics initialized")

    def start_prometheus_server(self):
        """Start the Prometheus metrics HTTP server."""
        if not self.enable_prometheus:
            return

        try:
            start_http_server(self.prometheus_port, registry=self.prometheus_registry)
            self.logger.info(f"Prometheus metrics server started on port {self.prometheus_port}")
        except OSError as e:
            self.logger.error(f"Failed to start Prometheus server: {e}")

    def record_metric(self, name: str, value: float, labels: Optional[Dict[str, str]] = None,
                      description: str = "", metric_type: str = "gauge", delta: float = 0.0):
        """Record a metric value."""
        labels = labels or {}

        if name not in self.metrics:
            self.metrics[name] = Metric(
                name=name,
                description=description,
                metric_type=metric_type
            )

        metric = self.metrics[name]
        metric.points.append(MetricPoint(timestamp=time.time(), value=value, labels=labels))
        metric.current_value = value

        # Keep only recent points (last 1000)
        if len(metric.points) > 1000:
            metric.points = metric.points[-1000:]

        if self.enable_prometheus and name in self.prometheus_metrics:
            prom_metric = self.prometheus_metrics[name]
            if labels:
                prom_metric = prom_metric.labels(**labels)

            if metric_type == 'counter':
                prom_metric.inc(delta)
            elif metric_type == 'histogram':
                prom_metric.observe(value)
            else:
                prom_metric.set(value)

    def increment_counter(self, name: str, amount: float = 1, labels: Optional[Dict[str, str]] = None,
                          description: str = ""):
        """Increment a counter metric."""
        current_value = self.metrics[name].current_value if name in self.metrics else 0
        self.record_metric(name, current_value + amount, labels, description, "counter", delta=amount)

    def set_gauge(self, name: str, value: float, labels: Optional[Dict[str, str]] = None,
                  description: str = ""):
        """Set a gauge metric value."""
        self.record_metric(name, value, labels, description, "gauge")

    def observe_histogram(self, name: str, value: float, labels: Optional[Dict[str, str]] = None,
                          description: str = ""):
        """Record a histogram observation."""
        self.record_metric(name, value, labels, description, "histogram")

    def get_metric(self, name: str) -> Optional[Metric]:
        return self.metrics.get(name)

    def get_current_values(self) -> Dict[str, float]:
        """Get current values of all metrics."""
        return {name: metric.current_value for name, metric in self.metrics.items()}

    def export_metrics_json(self, file_path: str):
        """Export metrics to a JSON file."""
        export_data = {
            'export_time': datetime.now(timezone.utc).isoformat(),
            'metrics': {}
        }

        for name, metric in self.metrics.items():
            export_data['metrics'][name] = {
                'description': metric.description,
                'type': metric.metric_type,
                'current_value': metric.current_value,
                'points': [
                    {
                        'timestamp': point.timestamp,
                        'value': point.value,
                        'labels': point.labels
                    }
                    for point in metric.points[-100:]
                ]
            }

        try:
            with open(file_path, 'w', encoding='utf-8') as f:
                json.dump(export_data, f, indent=2)
            self.logger.info(f"Metrics exported to {file_path}")
        except OSError as e:
            self.logger.error(f"Error exporting metrics: {e}")


class SpellCrawlMonitor:
    """High-level monitoring interface used by the scheduler."""

    def __init__(self, metrics_collector: Optional[MetricsCollector] = None):
        self.metrics = metrics_collector or MetricsCollector()
        self.start_time = time.time()
        self._open_sessions = 0

    def record_checked(self, target: str, fetch_time: float, occurrences: int):
        """Record a successfully fetched and checked page."""
        self.metrics.increment_counter('records_checked_total', description='Records checked')
        self.metrics.observe_histogram('fetch_time_seconds', fetch_time, description='Fetch time')
        if occurrences:
            self.metrics.increment_counter('misspellings_total', occurrences,
                                           description='Misspelling occurrences')

    def record_error(self, error_type: str):
        """Record a failed record."""
        self.metrics.increment_counter('errors_total', labels={'error_type': error_type},
                                       description='Record failures')

    def session_opened(self):
        self._open_sessions += 1
        self.metrics.set_gauge('open_sessions', self._open_sessions, description='Open sessions')

    def session_closed(self):
        self._open_sessions -= 1
        self.metrics.set_gauge('open_sessions', self._open_sessions, description='Open sessions')

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics."""
        current_values = self.metrics.get_current_values()
        runtime = time.time() - self.start_time

        return {
            'runtime_seconds': runtime,
            'metrics': current_values,
            'rates': {
                'records_per_second': current_values.get('records_checked_total', 0) / runtime if runtime > 0 else 0,
            }
        }


def initialize_monitoring(enable_prometheus: bool = False, prometheus_port: int = 8000) -> SpellCrawlMonitor:
    """Create a monitor and start the Prometheus server if enabled."""
    collector = MetricsCollector(enable_prometheus, prometheus_port)
    collector.start_prometheus_server()
    return SpellCrawlMonitor(collector)
