"""PIN-based app lock."""

from projectflow.lock.pin import PinLock

__all__ = ["PinLock"]
