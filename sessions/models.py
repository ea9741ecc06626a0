from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from core.models import utc_now_iso


@dataclass(slots=True)
class Session:
    user_id: str
    stage: str
    date: Optional[str] = None
    expires_at: str = ""
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)

    def is_expired(self, now_iso: str | None = None) -> bool:
        if not self.expires_at:
            return False
        return self.expires_at <= (now_iso or utc_now_iso())

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
