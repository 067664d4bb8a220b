"""Verified identity attached to a request or a realtime connection."""

from dataclasses import asdict, dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class Identity:
    """Who is on the other end. Created once, never mutated."""

    id: str
    email: str
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
