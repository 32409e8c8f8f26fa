"""
User identity management: registration, lookup and password checks.

Works against whatever backend the StorageSelector resolved; the store
itself never branches on the storage mode.
"""

import logging
from dataclasses import replace
from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..models import USERS, Identity, OwnerRef, utc_now
from ..storage.selector import StorageSelector
from ..utils.error_handling import Conflict, DuplicateRecordError, Unauthorized, ValidationError

logger = logging.getLogger(__name__)


def _require_text(**fields):
    """Reject values a JSON body can carry that are not strings (numbers, lists, objects)"""
    for name, value in fields.items():
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"{name.capitalize()} must be a string", details={'field': name})


class IdentityStore:
    """Identity records with globally unique username and email"""

    def __init__(self, storage: StorageSelector):
        self.storage = storage

    def _find_one(self, **predicate) -> Optional[Identity]:
        records = self.storage.read(USERS, predicate, limit=1)
        return Identity.from_record(records[0]) if records else None

    def _raise_conflict(self, username: str, email: str):
        if self.find_by_username(username):
            raise Conflict("Username is already taken")
        if self.find_by_email(email):
            raise Conflict("Email is already registered")

    def register(self, username: str, email: str, password: str) -> Identity:
        """
        Create a new identity.

        Username uniqueness is checked before email uniqueness, so a request
        clashing on both reports the username.

        Raises:
            ValidationError: a field is missing, blank or not a string.
            Conflict: username or email already exists.
        """
        _require_text(username=username, email=email, password=password)
        username = (username or '').strip()
        email = (email or '').strip()
        if not username or not email or not password:
            raise ValidationError("Username, email and password are required")

        self._raise_conflict(username, email)

        identity = Identity(
            id=OwnerRef.new().value,
            username=username,
            email=email,
            password_hash=generate_password_hash(password, method='pbkdf2:sha256', salt_length=16),
            avatar='',
            created_at=utc_now(),
            last_login_at=None,
        )
        try:
            stored = self.storage.write(USERS, identity.to_record())
        except DuplicateRecordError:
            # Lost a race against a concurrent registration
            self._raise_conflict(username, email)
            raise Conflict("Username or email is already registered")

        logger.info(f"Registered user {username} ({identity.id})")
        return Identity.from_record(stored)

    def find_by_email(self, email: str) -> Optional[Identity]:
        if not email:
            return None
        return self._find_one(email=email)

    def find_by_username(self, username: str) -> Optional[Identity]:
        if not username:
            return None
        return self._find_one(username=username)

    def find_by_id(self, owner: OwnerRef) -> Optional[Identity]:
        return self._find_one(id=owner.value)

    @staticmethod
    def verify_password(identity: Identity, plaintext: str) -> bool:
        if not plaintext:
            return False
        return check_password_hash(identity.password_hash, plaintext)

    def touch_login(self, identity: Identity) -> Identity:
        """Stamp `last_login_at` with the current time and persist it"""
        updated = replace(identity, last_login_at=utc_now())
        stored = self.storage.write(USERS, updated.to_record())
        return Identity.from_record(stored)

    def login(self, email: str, password: str) -> Identity:
        """
        Check credentials and record the login.

        Raises:
            ValidationError: email or password missing or not a string.
            Unauthorized: unknown email or wrong password; `last_login_at`
                is left untouched in both cases.
        """
        _require_text(email=email, password=password)
        email = (email or '').strip()
        if not email or not password:
            raise ValidationError("Email and password are required")

        identity = self.find_by_email(email)
        if identity is None:
            raise Unauthorized("User does not exist")
        if not self.verify_password(identity, password):
            logger.info(f"Failed login for user {identity.id}")
            raise Unauthorized("Incorrect password")
        return self.touch_login(identity)
