"""Statistical anomaly detection for salary submissions."""

from aaref.anomaly.detector import AnomalyDetector, AnomalyReport, Subject

__all__ = ["AnomalyDetector", "AnomalyReport", "Subject"]
