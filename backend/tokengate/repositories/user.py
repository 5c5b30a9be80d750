"""User repository: lookups plus the refresh-hash writes the auth flow needs."""

from __future__ import annotations

from typing import cast

from sqlalchemy import select, update
from sqlalchemy.engine import CursorResult

from tokengate.models.user import User
from tokengate.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User`.

    Refresh-hash writes are single ``UPDATE`` statements so they stay atomic
    per row across service instances.
    """

    model = User

    # ---------------------------- Lookup helpers ----------------------------

    def get_by_username(self, username: str) -> User | None:
        """Fetch a user by username (trimmed, case-sensitive).

        :param username: Login handle.
        :type username: str
        :returns: User instance or ``None`` when not found.
        :rtype: User | None
        """
        stmt = select(User).where(User.username == username.strip())
        return cast(User | None, self.session.execute(stmt).scalars().first())

    def exists_by_username(self, username: str) -> bool:
        stmt = select(User.id).where(User.username == username.strip())
        return self.session.execute(stmt).first() is not None

    def exists_by_email(self, email: str) -> bool:
        stmt = select(User.id).where(User.email == email.strip().lower())
        return self.session.execute(stmt).first() is not None

    # ---------------------------- Refresh hash ----------------------------

    def set_refresh_hash(self, user_id: str, digest: str | None) -> bool:
        """Overwrite the stored refresh hash (``None`` revokes the session).

        :param user_id: Identity of the user row.
        :type user_id: str
        :param digest: New hash, or ``None``.
        :type digest: str | None
        :returns: ``True`` if the row exists.
        :rtype: bool
        """
        stmt = update(User).where(User.id == user_id).values(refresh_token_hash=digest)
        return self._execute_update(stmt) == 1

    def swap_refresh_hash(self, user_id: str, digest: str, *, expected: str) -> bool:
        """Replace the refresh hash only if it still equals ``expected``.

        Compare-and-swap: of several concurrent rotations that read the same
        hash, exactly one sees its ``UPDATE`` match a row.

        :param user_id: Identity of the user row.
        :type user_id: str
        :param digest: New hash.
        :type digest: str
        :param expected: Hash read before verification.
        :type expected: str
        :returns: ``True`` when the swap happened.
        :rtype: bool
        """
        stmt = (
            update(User)
            .where(User.id == user_id, User.refresh_token_hash == expected)
            .values(refresh_token_hash=digest)
        )
        return self._execute_update(stmt) == 1

    def _execute_update(self, stmt) -> int:
        result = cast(
            CursorResult,
            self.session.execute(stmt.execution_options(synchronize_session=False)),
        )
        # Loaded instances must not keep serving the pre-update value
        self.session.expire_all()
        return int(result.rowcount)
