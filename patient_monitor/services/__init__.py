"""
Core services for the monitor.

The record store and rule engine form the core; the collector, sinks and
monitoring service are the collaborators that feed it and drive it.
"""

from .alert_sinks import AlertHistory, CompositeAlertSink, ConsoleAlertSink, LoggingAlertSink
from .measurement_collector import (
    CollectorConfig,
    MeasurementCollector,
    MeasurementSource,
    Result,
)
from .monitoring_service import PatientMonitoringService
from .record_store import PatientHistory, RecordStore
from .rule_engine import DEFAULT_RULES, AlertSink, RuleEngine

__all__ = [
    "AlertHistory",
    "AlertSink",
    "CollectorConfig",
    "CompositeAlertSink",
    "ConsoleAlertSink",
    "DEFAULT_RULES",
    "LoggingAlertSink",
    "MeasurementCollector",
    "MeasurementSource",
    "PatientHistory",
    "PatientMonitoringService",
    "RecordStore",
    "Result",
    "RuleEngine",
]
