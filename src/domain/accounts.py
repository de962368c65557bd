"""
Admin account service - bootstrap, credential checks, password change.
"""

import logging
from dataclasses import dataclass

import bcrypt

from .exceptions import InvalidRequest
from .ports import AdminRepository

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

# Checked against when the username is unknown so both paths run bcrypt.
_DUMMY_BCRYPT_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(10)).decode()


@dataclass
class AdminAccountService:
    """Domain service for admin credentials."""

    repository: AdminRepository
    bcrypt_cost: int = 10

    def bootstrap_default_admin(self, username: str = "admin", password: str = "admin") -> bool:
        """
        Create the default admin account on first run.

        Does nothing once any admin exists.

        Returns:
            True if the account was created
        """
        if self.repository.any_admin_exists():
            logger.info("Admin account already exists. Skipping setup.")
            return False

        created = self.repository.create_admin(username, self._hash_password(password))
        if created:
            logger.warning(
                "Admin account created with default credentials (username: %s). "
                "Change the password before production use.",
                username,
            )
        return created

    def authenticate(self, username: str, password: str) -> bool:
        stored_hash = self.repository.get_password_hash(username)
        password_valid = bcrypt.checkpw(
            password.encode(), (stored_hash or _DUMMY_BCRYPT_HASH).encode()
        )
        if stored_hash is None or not password_valid:
            logger.warning("Failed login attempt for username: %s", username)
            return False
        return True

    def change_password(self, username: str, old_password: str, new_password: str) -> bool:
        """
        Replace an admin's password after checking the old one.

        Raises:
            InvalidRequest: new password shorter than MIN_PASSWORD_LENGTH
        """
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise InvalidRequest(
                f"New password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        if not self.authenticate(username, old_password):
            return False

        updated = self.repository.update_password_hash(
            username, self._hash_password(new_password)
        )
        if updated:
            logger.info("Password changed for user: %s", username)
        return updated

    def _hash_password(self, password: str) -> str:
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=self.bcrypt_cost)).decode()
