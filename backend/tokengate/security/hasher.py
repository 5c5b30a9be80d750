"""One-way hashing for passwords and refresh tokens."""

from __future__ import annotations

import secrets

from werkzeug.security import check_password_hash, generate_password_hash


class CredentialHasher:
    """
    Salted one-way hashing backed by :mod:`werkzeug.security`.

    The same hasher protects passwords and refresh tokens so that no raw
    secret ever reaches the database.

    :param method: Werkzeug method string (``"scrypt"``, ``"pbkdf2:sha256:600000"``...).
    :type method: str
    """

    def __init__(self, method: str = "scrypt") -> None:
        self.method = method
        self._dummy_digest: str | None = None

    def hash(self, plaintext: str) -> str:
        """
        Hash ``plaintext`` with a fresh random salt.

        :param plaintext: Raw secret.
        :type plaintext: str
        :returns: Self-describing digest (``method$salt$hash``).
        :rtype: str
        :raises ValueError: If ``plaintext`` is empty.
        """
        if not isinstance(plaintext, str) or not plaintext:
            raise ValueError("Cannot hash an empty secret.")
        return generate_password_hash(plaintext, method=self.method)

    def verify(self, plaintext: str, digest: str | None) -> bool:
        """
        Check ``plaintext`` against ``digest`` in constant time.

        :returns: ``False`` for a mismatch and for a missing or malformed digest.
        :rtype: bool
        """
        if not digest or not isinstance(plaintext, str):
            return False
        try:
            return bool(check_password_hash(digest, plaintext))
        except (ValueError, TypeError):
            # Unknown method or garbage parameters inside the digest
            return False

    @property
    def dummy_digest(self) -> str:
        """Digest of a random value, verified when a login username is unknown."""
        if self._dummy_digest is None:
            self._dummy_digest = self.hash(secrets.token_urlsafe(16))
        return self._dummy_digest
