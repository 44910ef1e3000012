"""
PIN-based app lock.

The PIN is a 6-digit string stored as a salted hash in the local key-value
store, together with the count of failed attempts so a lockout survives
restarts. Once max_attempts failures accumulate, only the master PIN
(reset) clears the lock.
"""

from __future__ import annotations

import hmac
import logging
import re

from projectflow.core.config import AppSettings
from projectflow.core.crypto import hash_pin, verify_pin
from projectflow.core.kvstore import LocalStore

logger = logging.getLogger(__name__)

PIN_KEY = "app-pin"
ATTEMPTS_KEY = "app-pin-attempts"
PIN_PATTERN = re.compile(r"^\d{6}$")


class PinLock:
    """Session lock guarded by a user PIN."""

    def __init__(self, kv: LocalStore, settings: AppSettings):
        self.kv = kv
        self.master_pin = settings.master_pin
        self.max_attempts = settings.max_attempts
        self._unlocked = False

    @property
    def has_pin(self) -> bool:
        return bool(self.kv.read(PIN_KEY, None))

    @property
    def is_locked(self) -> bool:
        return self.has_pin and not self._unlocked

    @property
    def attempts(self) -> int:
        value = self.kv.read(ATTEMPTS_KEY, 0)
        return value if isinstance(value, int) else 0

    @property
    def attempts_remaining(self) -> int:
        return max(0, self.max_attempts - self.attempts)

    @property
    def locked_out(self) -> bool:
        return self.attempts >= self.max_attempts

    def set_pin(self, pin: str) -> None:
        """Set or change the PIN.

        Raises:
            ValueError: If pin is not exactly six digits
        """
        if not PIN_PATTERN.match(pin):
            raise ValueError("PIN must be exactly 6 digits")
        self.kv.write(PIN_KEY, hash_pin(pin))
        self.kv.write(ATTEMPTS_KEY, 0)
        self._unlocked = False

    def clear_pin(self) -> None:
        self.kv.remove(PIN_KEY)
        self.kv.remove(ATTEMPTS_KEY)
        self._unlocked = True

    def lock(self) -> None:
        if self.has_pin:
            self._unlocked = False

    def unlock(self, attempt: str) -> bool:
        """Try to unlock with a PIN; counts failures toward the lockout."""
        stored = self.kv.read(PIN_KEY, None)
        if not stored:
            self._unlocked = True
            return True
        if self.locked_out:
            logger.warning("Unlock refused: too many failed attempts")
            return False
        if verify_pin(attempt, stored):
            self._unlocked = True
            self.kv.write(ATTEMPTS_KEY, 0)
            return True
        self.kv.write(ATTEMPTS_KEY, self.attempts + 1)
        return False

    def reset(self, master_attempt: str) -> bool:
        """Remove the PIN if master_attempt matches the master PIN."""
        if not hmac.compare_digest(master_attempt.encode("utf-8"), self.master_pin.encode("utf-8")):
            return False
        self.clear_pin()
        return True
