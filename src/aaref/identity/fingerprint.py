"""Device fingerprint — a derived, non-personal submitter key.

There are no accounts. The only submitter identity is a hash over a fixed
set of coarse environment attributes reported by the client. It is used
for rate limiting and nothing else; raw attributes are never stored.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, fields
from typing import Any, Optional


@dataclass(frozen=True)
class DeviceProfile:
    """Coarse client environment attributes.

    Field order is part of the fingerprint derivation and must not change.
    """
    language: str = ""
    screen_width: int = 0
    screen_height: int = 0
    color_depth: int = 0
    timezone_offset: int = 0
    hardware_concurrency: str = "?"
    max_touch_points: int = 0
    pixel_ratio: float = 1.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DeviceProfile:
        """Build a profile from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def canonical(self) -> str:
        return "|".join(str(getattr(self, f.name)) for f in fields(self))

    def fingerprint(self) -> str:
        """Deterministic hex digest of the canonical attribute string."""
        digest = hashlib.sha256(self.canonical().encode("utf-8")).hexdigest()
        return digest[:16]


class SubmitterSession:
    """One client session. The fingerprint is computed once and cached."""

    def __init__(self, profile: DeviceProfile) -> None:
        self._profile = profile
        self._fingerprint: Optional[str] = None

    def identify(self) -> str:
        if self._fingerprint is None:
            self._fingerprint = self._profile.fingerprint()
        return self._fingerprint
