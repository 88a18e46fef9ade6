from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Iterator, Optional

from omni_vault.services.auth_guard import AuthGuard, AuthorizedPrincipal
from omni_vault.services.errors import VaultLockedError

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class VaultState:
    locked: bool
    owner_secret_hash: str
    last_transition_at: datetime


class LockController:
    """Two-state lock (Locked/Unlocked) guarding the vault's write path.

    One mutex covers both lock transitions and gated writes: a write reads
    `locked` and performs its mutation while holding it, so a transition can
    never land between the check and the write. The mutex is reentrant, so
    `state` and `locked` stay readable from inside a write section. The
    machine starts Locked and there is no terminal state.
    """

    def __init__(self, *, auth: AuthGuard, clock: Clock = utc_now) -> None:
        self._auth = auth
        self._clock = clock
        self._mutex = threading.RLock()
        self._state = VaultState(
            locked=True,
            owner_secret_hash=auth.owner_secret_hash,
            last_transition_at=clock(),
        )

    @property
    def state(self) -> VaultState:
        with self._mutex:
            return self._state

    @property
    def locked(self) -> bool:
        return self.state.locked

    def set_lock(self, credential: Optional[str], *, locked: bool) -> VaultState:
        self._auth.authorize(credential)

        with self._mutex:
            previous = self._state.locked
            self._state = replace(self._state, locked=locked, last_transition_at=self._clock())
            current = self._state

        if previous != locked:
            logger.info("Vault %s", "locked" if locked else "unlocked")
        else:
            logger.info("Vault lock request left state unchanged (locked=%s)", locked)
        return current

    @contextmanager
    def write_section(self, credential: Optional[str]) -> Iterator[AuthorizedPrincipal]:
        """Hold the vault mutex for a gated write.

        Raises `UnauthorizedError` for a bad credential and `VaultLockedError`
        if the vault is locked when the mutex is acquired. Work done inside the
        `with` block completes before any lock transition can run.
        """

        principal = self._auth.authorize(credential)

        with self._mutex:
            if self._state.locked:
                logger.warning("Rejected write while vault is locked")
                raise VaultLockedError("Vault is locked")
            yield principal
