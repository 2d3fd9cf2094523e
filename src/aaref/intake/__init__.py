"""Submission intake — the atomic admission pipeline."""

from aaref.intake.pipeline import AdmissionPipeline, AdmissionResult

__all__ = ["AdmissionPipeline", "AdmissionResult"]
