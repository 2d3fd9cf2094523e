"""Record lifecycle engine."""

from aaref.engine.state_machine import ModerationAction, RecordStateMachine

__all__ = ["ModerationAction", "RecordStateMachine"]
