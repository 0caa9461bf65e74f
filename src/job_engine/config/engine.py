"""
Engine configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class EngineConfig:
    """Configuration for admission, retries and workers."""

    # Admission
    queue_size: int = 10

    # Retry policy
    max_attempts: int = 3
    base_delay: float = 2.0

    # Per-attempt deadline in seconds; None disables it
    attempt_timeout: float | None = 300.0

    # Evidence captured by task executors
    artifacts_dir: Path = field(default_factory=lambda: Path("artifacts"))

    def __post_init__(self):
        if self.queue_size < 1:
            raise ValueError("queue_size must be at least 1")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0:
            raise ValueError("base_delay cannot be negative")
        if self.attempt_timeout is not None and self.attempt_timeout <= 0:
            raise ValueError("attempt_timeout must be positive")
        if isinstance(self.artifacts_dir, str):
            self.artifacts_dir = Path(self.artifacts_dir)


__all__ = ["EngineConfig"]
