from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar


class BootstrapMode(str, Enum):
    LOCAL = "local"
    CLOUD = "cloud"
    BOTH = "both"

    @property
    def includes_local(self) -> bool:
        return self in (BootstrapMode.LOCAL, BootstrapMode.BOTH)

    @property
    def includes_cloud(self) -> bool:
        return self in (BootstrapMode.CLOUD, BootstrapMode.BOTH)


@dataclass(frozen=True)
class BootstrapConfig:
    """Settings for the bootstrap verification workflow (client side)."""

    mode: BootstrapMode = BootstrapMode.BOTH
    _DEFAULT_HEALTH_ATTEMPTS: ClassVar[int] = 30
    _DEFAULT_HEALTH_DELAY_SECONDS: ClassVar[float] = 1.0
    health_attempts: int = _DEFAULT_HEALTH_ATTEMPTS
    health_delay_seconds: float = _DEFAULT_HEALTH_DELAY_SECONDS

    @staticmethod
    def from_env() -> "BootstrapConfig":
        mode_raw = os.getenv("OMNI_MODE", BootstrapMode.BOTH.value).strip().lower()
        try:
            mode = BootstrapMode(mode_raw)
        except ValueError as exc:
            raise ValueError(f"Invalid OMNI_MODE {mode_raw!r}; expected one of local, cloud, both") from exc

        return BootstrapConfig(mode=mode)
