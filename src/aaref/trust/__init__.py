"""Trust finalisation for admitted salary records."""

from aaref.trust.engine import TrustDecision, TrustEngine

__all__ = ["TrustDecision", "TrustEngine"]
