"""
Prometheus-compatible metrics for observability.

Tracks key business events:
- Customers created (by package) and duplicate rejections
- Customer updates (with or without field changes)
- Lifecycle transitions (manual or automatic)
- History entries written and history write failures

Usage:
    from wifidesk.lib.metrics import get_metrics_collector

    metrics = get_metrics_collector()
    metrics.increment_customers_created(package="BASIC")
    metrics.increment_transitions("PAID", "COMPLETED", trigger="auto")

    # Export for Prometheus
    prometheus_output = metrics.export_prometheus()
"""

from typing import Dict, Optional, Tuple
from threading import Lock


class MetricsCollector:
    """
    Prometheus-style metrics collector for WifiDesk.

    Counters:
    - customers_created_total: Customers created (labels: package)
    - duplicate_customer_rejections_total: Creates rejected for an existing (phone, month)
    - customer_updates_total: PATCH requests applied (labels: changed)
    - lifecycle_transitions_total: Payment status moves (labels: from_status, to_status, trigger)
    - history_entries_total: Audit entries written (labels: source)
    - history_write_failures_total: Audit entries lost to store errors

    Thread-safe for concurrent increments.
    """

    def __init__(self):
        self._lock = Lock()

        # Counters: key = (metric_name, labels_tuple), value = count
        self._counters: Dict[Tuple[str, Tuple[Tuple[str, str], ...]], int] = {}

    def _get_counter_key(self, metric_name: str, labels: Dict[str, str]) -> Tuple[str, Tuple[Tuple[str, str], ...]]:
        """Generate unique key for counter with sorted labels."""
        sorted_labels = tuple(sorted(labels.items()))
        return (metric_name, sorted_labels)

    def _increment(self, metric_name: str, labels: Dict[str, str], amount: int = 1):
        """Thread-safe increment of counter."""
        key = self._get_counter_key(metric_name, labels)
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + amount

    def _get_value(self, metric_name: str, labels: Dict[str, str]) -> int:
        """Get current value of counter."""
        key = self._get_counter_key(metric_name, labels)
        with self._lock:
            return self._counters.get(key, 0)

    # ===== Customer Metrics =====

    def increment_customers_created(self, package: str, amount: int = 1):
        """Increment customers created counter."""
        self._increment("customers_created_total", {"package": package.upper()}, amount)

    def increment_duplicate_rejections(self, amount: int = 1):
        """Increment rejected duplicate (phone, month) creations."""
        self._increment("duplicate_customer_rejections_total", {}, amount)

    def increment_updates(self, changed: bool, amount: int = 1):
        """
        Increment customer updates counter.

        Args:
            changed: Whether the update produced at least one field change
            amount: Increment amount (default 1)
        """
        self._increment("customer_updates_total", {"changed": str(changed).lower()}, amount)

    # ===== Lifecycle Metrics =====

    def increment_transitions(self, from_status: str, to_status: str, trigger: str = "manual", amount: int = 1):
        """
        Increment payment status transitions.

        Args:
            from_status: Status before the move
            to_status: Status after the move
            trigger: manual (caller request) or auto (lifecycle policy)
            amount: Increment amount
        """
        labels = {
            "from_status": from_status.upper(),
            "to_status": to_status.upper(),
            "trigger": trigger.lower(),
        }
        self._increment("lifecycle_transitions_total", labels, amount)

    # ===== History Metrics =====

    def increment_history_entries(self, source: str = "update", amount: int = 1):
        """Increment audit entries written (source: update or lifecycle)."""
        self._increment("history_entries_total", {"source": source.lower()}, amount)

    def increment_history_failures(self, amount: int = 1):
        """Increment audit entries that could not be written."""
        self._increment("history_write_failures_total", {}, amount)

    # ===== Export =====

    def export_prometheus(self) -> str:
        """
        Export all metrics in Prometheus text format.

        Returns:
            Prometheus-compatible text output
        """
        output_lines = []

        # Group counters by metric name
        metrics_by_name: Dict[str, list] = {}
        with self._lock:
            for (metric_name, labels_tuple), value in self._counters.items():
                metrics_by_name.setdefault(metric_name, []).append((dict(labels_tuple), value))

        for metric_name in sorted(metrics_by_name.keys()):
            help_text = self._get_help_text(metric_name)
            output_lines.append(f"# HELP {metric_name} {help_text}")
            output_lines.append(f"# TYPE {metric_name} counter")

            for labels_dict, value in sorted(metrics_by_name[metric_name], key=lambda x: str(x[0])):
                if labels_dict:
                    labels_str = ",".join([f'{k}="{v}"' for k, v in sorted(labels_dict.items())])
                    output_lines.append(f"{metric_name}{{{labels_str}}} {value}")
                else:
                    output_lines.append(f"{metric_name} {value}")

            output_lines.append("")  # Blank line between metrics

        return "\n".join(output_lines)

    def _get_help_text(self, metric_name: str) -> str:
        """Get help text for metric."""
        help_texts = {
            "customers_created_total": "Total number of customer records created",
            "duplicate_customer_rejections_total": "Total number of creates rejected for a duplicate phone and month",
            "customer_updates_total": "Total number of customer updates applied",
            "lifecycle_transitions_total": "Total number of payment status transitions",
            "history_entries_total": "Total number of customer history entries written",
            "history_write_failures_total": "Total number of customer history entries that failed to persist",
        }
        return help_texts.get(metric_name, "Counter metric")

    def get_counter_value(self, metric_name: str, labels: Optional[Dict[str, str]] = None) -> int:
        """
        Get current value of a specific counter.

        Args:
            metric_name: Name of the metric
            labels: Label filters

        Returns:
            Current counter value
        """
        return self._get_value(metric_name, labels or {})

    def reset_all(self):
        """Reset all counters (for testing)."""
        with self._lock:
            self._counters.clear()


# Process-wide collector
_metrics_collector: Optional[MetricsCollector] = None
_collector_lock = Lock()


def get_metrics_collector() -> MetricsCollector:
    """
    Get the process-wide metrics collector.

    Returns:
        MetricsCollector instance
    """
    global _metrics_collector
    if _metrics_collector is None:
        with _collector_lock:
            if _metrics_collector is None:
                _metrics_collector = MetricsCollector()
    return _metrics_collector


def reset_metrics():
    """Reset all metrics (for testing)."""
    get_metrics_collector().reset_all()
