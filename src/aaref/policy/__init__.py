"""Intake policy — parameter loading and typed resolution."""

from aaref.policy.resolver import PolicyResolver

__all__ = ["PolicyResolver"]
