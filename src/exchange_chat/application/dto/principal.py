from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller identity extracted from JWT."""

    subject_id: int
    name: str = ""
    roles: list[str] = field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.name or f"user {self.subject_id}"
