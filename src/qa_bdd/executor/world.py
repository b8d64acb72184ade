from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class World:
    """
    Per-scenario state handed to every step handler.

    The executor builds a fresh one for each scenario and replaces ``attach``
    and ``log`` before every step so that output lands on that step's result.
    ``page`` and ``browser`` are left for the automation layer to fill in.
    """
    page: Any = None
    browser: Any = None
    ctx: Dict[str, Any] = field(default_factory=dict)

    def attach(self, data: Any, media_type: str = "text/plain") -> None:
        """Replaced per step by the executor"""

    def log(self, message: str) -> None:
        """Replaced per step by the executor"""

    def get(self, key: str, default: Optional[Any] = None) -> Any:
        return self.ctx.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self.ctx[key] = value


def default_world_factory() -> World:
    return World()
