"""
Password Hashing

The hasher is the only component that ever sees a plaintext password.
It turns it into a fixed-length lowercase hex digest; storage and
sessions only ever hold the digest.

The default SHA-256 digest matches the one stored by earlier versions of
the tracker, so existing accounts keep working.
"""

import hashlib
from abc import ABC, abstractmethod
from typing import Any

from expense_tracker.config.settings import ALLOWED_HASH_ALGORITHMS
from expense_tracker.errors import HasherUnavailableError, InvalidDataError


class PasswordHasher(ABC):
    """
    Abstract one-way transform of a credential into a digest.

    Implementations must be deterministic: the same plaintext always
    yields the same digest, since login looks users up by digest.
    """

    @abstractmethod
    def hash(self, plaintext: str) -> str:
        """
        Hash a plaintext password.

        Args:
            plaintext: The password as typed by the user

        Returns:
            The digest as a string of fixed length

        Raises:
            InvalidDataError: If the password is blank
        """
        pass


class HashlibPasswordHasher(PasswordHasher):
    """PasswordHasher backed by a hashlib algorithm."""

    def __init__(self, algorithm: str = "sha256"):
        """
        Args:
            algorithm: One of ALLOWED_HASH_ALGORITHMS

        Raises:
            HasherUnavailableError: If the algorithm is not allowed or the
                interpreter's crypto provider does not offer it
        """
        algorithm = algorithm.lower()
        if algorithm not in ALLOWED_HASH_ALGORITHMS:
            raise HasherUnavailableError(
                f"Hash algorithm not allowed for passwords: {algorithm}"
            )
        try:
            hashlib.new(algorithm)
        except ValueError as e:
            raise HasherUnavailableError(
                f"Hash algorithm {algorithm} is not available: {e}"
            ) from e
        self._algorithm = algorithm

    @property
    def algorithm(self) -> str:
        return self._algorithm

    @property
    def digest_length(self) -> int:
        """Length of the hex digest in characters."""
        return hashlib.new(self._algorithm).digest_size * 2

    def hash(self, plaintext: Any) -> str:
        if not isinstance(plaintext, str) or not plaintext.strip():
            raise InvalidDataError("Password cannot be blank", field="password")
        return hashlib.new(self._algorithm, plaintext.encode("utf-8")).hexdigest()
