"""
Metrics collection and monitoring utilities.

Provides Prometheus metrics for the Composition API and the playback engine.
"""

from typing import Optional

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, generate_latest


class MetricsCollector:
    """Collects and exposes metrics for monitoring."""

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        self.requests = Counter(
            "mathemelody_requests_total",
            "Total API requests by endpoint and outcome",
            ["endpoint", "status"],
            registry=self.registry,
        )

        self.playback_steps = Counter(
            "mathemelody_playback_steps_total",
            "Sequencer ticks by outcome",
            ["outcome"],
            registry=self.registry,
        )

        self.tones = Counter(
            "mathemelody_tones_total",
            "Tones triggered by wave type",
            ["wave_type"],
            registry=self.registry,
        )

    def record_request(self, endpoint: str, status: str) -> None:
        self.requests.labels(endpoint=endpoint, status=status).inc()

    def record_step(self, outcome: str) -> None:
        self.playback_steps.labels(outcome=outcome).inc()

    def record_tone(self, wave_type: str) -> None:
        self.tones.labels(wave_type=wave_type).inc()

    def export(self) -> bytes:
        """Render all metrics in the Prometheus text format."""
        return generate_latest(self.registry)


# Global metrics instance
metrics = MetricsCollector()
