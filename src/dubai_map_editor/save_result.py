from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class SaveResult:
    ok: bool
    started_at: str
    finished_at: Optional[str] = None
    created: Dict[str, str] = field(default_factory=dict)
    updated_areas: List[str] = field(default_factory=list)
    updated_landmarks: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def error(self) -> Optional[str]:
        return self.errors[0] if self.errors else None

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "created": dict(self.created),
            "updated_areas": list(self.updated_areas),
            "updated_landmarks": list(self.updated_landmarks),
            "errors": list(self.errors),
        }
