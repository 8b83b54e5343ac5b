"""Password hashing package."""

from expense_tracker.security.hasher import HashlibPasswordHasher, PasswordHasher

__all__ = ["HashlibPasswordHasher", "PasswordHasher"]
