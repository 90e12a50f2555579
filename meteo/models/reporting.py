"""Favorites refresh reporting models."""

from dataclasses import dataclass, field


@dataclass
class RefreshReport:
    total: int = 0
    refreshed: int = 0
    failed: int = 0
    failed_names: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0
    finished_at: str = ""

    @property
    def all_failed(self) -> bool:
        return self.total > 0 and self.failed == self.total
