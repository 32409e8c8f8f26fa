"""
Database Models and Domain Records for the Chat Relay.

Two layers live here:

- SQLAlchemy tables (`UserRecord`, `MessageRecord`) used by the durable
  backend. Column names double as the field names of the plain-dict records
  every storage backend exchanges, so the in-memory fallback stores exactly
  the same shape.
- Immutable domain values (`OwnerRef`, `Identity`, `Message`, `Claims`)
  that the stores hand to callers regardless of which backend produced them.

Example:
    >>> owner = OwnerRef.new()
    >>> msg = Message.from_record({'id': '1', 'owner_id': owner.value,
    ...                            'content': 'hi', 'role': 'user',
    ...                            'created_at': utc_now()})
    >>> msg.role
    <Role.USER: 'user'>
"""

import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from flask_login import UserMixin
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import Index

# This will be bound by the create_app function
db = SQLAlchemy()

USERS = 'users'
MESSAGES = 'messages'

_OWNER_ID_PATTERN = re.compile(r'^[0-9a-f]{32}$')


def utc_now() -> datetime:
    """Naive UTC timestamp; SQLite drops tzinfo so both backends store naive values."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class UserRecord(db.Model):
    __tablename__ = USERS

    id = db.Column(db.String(32), primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    avatar = db.Column(db.String(255), nullable=False, default='')
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    last_login_at = db.Column(db.DateTime, nullable=True)


class MessageRecord(db.Model):
    __tablename__ = MESSAGES

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    owner_id = db.Column(db.String(32), db.ForeignKey('users.id'), nullable=False, index=True)
    content = db.Column(db.Text, nullable=False)
    role = db.Column(db.String(8), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now, index=True)

    __table_args__ = (
        Index('idx_message_owner_created', 'owner_id', 'created_at'),
    )


class Role(str, Enum):
    USER = 'user'
    BOT = 'bot'


@dataclass(frozen=True)
class OwnerRef:
    """
    Validated reference to an Identity id.

    Parsed once where an id enters the system (token verification or
    registration) so the stores never have to sniff id formats per call.
    """
    value: str

    @classmethod
    def parse(cls, raw: Any) -> 'OwnerRef':
        if not isinstance(raw, str) or not _OWNER_ID_PATTERN.match(raw):
            raise ValueError(f"Invalid owner id: {raw!r}")
        return cls(raw)

    @classmethod
    def new(cls) -> 'OwnerRef':
        return cls(uuid.uuid4().hex)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Identity:
    id: str
    username: str
    email: str
    password_hash: str
    avatar: str
    created_at: datetime
    last_login_at: Optional[datetime] = None

    @property
    def owner(self) -> OwnerRef:
        return OwnerRef.parse(self.id)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'Identity':
        return cls(
            id=record['id'],
            username=record['username'],
            email=record['email'],
            password_hash=record['password_hash'],
            avatar=record.get('avatar') or '',
            created_at=record['created_at'],
            last_login_at=record.get('last_login_at'),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'password_hash': self.password_hash,
            'avatar': self.avatar,
            'created_at': self.created_at,
            'last_login_at': self.last_login_at,
        }

    def to_public_dict(self) -> Dict[str, Any]:
        """Serialize for API responses; never includes the password hash."""
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'avatar': self.avatar,
            'created_at': _isoformat(self.created_at),
            'last_login_at': _isoformat(self.last_login_at),
        }


@dataclass(frozen=True)
class Message:
    id: str
    owner_id: str
    content: str
    role: Role
    created_at: datetime

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> 'Message':
        return cls(
            id=str(record['id']),
            owner_id=record['owner_id'],
            content=record['content'],
            role=Role(record['role']),
            created_at=record['created_at'],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'owner_id': self.owner_id,
            'content': self.content,
            'role': self.role.value,
            'created_at': _isoformat(self.created_at),
        }


class Claims(UserMixin):
    """
    Identity fields carried by a bearer credential.

    Doubles as the Flask-Login user object for token-authenticated requests,
    so `current_user` is the verified claim set and never touches storage.
    """

    def __init__(self, owner: OwnerRef, username: str, email: str):
        self.owner = owner
        self.username = username
        self.email = email

    @property
    def id(self) -> str:
        return self.owner.value

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'username': self.username, 'email': self.email}

    def __eq__(self, other):
        if not isinstance(other, Claims):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"Claims(id={self.id!r}, username={self.username!r})"
