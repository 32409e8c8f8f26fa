"""
Bearer credential issuing and verification.

Credentials are stateless HS256 JWTs carrying `{id, username, email}`. There
is no session table: a signature check and the `exp` claim are the only ways
a token stops being valid, so a token cannot be revoked before it expires.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from ..models import Claims, Identity, OwnerRef
from ..utils.error_handling import Unauthorized

logger = logging.getLogger(__name__)

DEFAULT_VALIDITY = timedelta(hours=24)


class CredentialIssuer:
    def __init__(self, secret: str, algorithm: str = 'HS256',
                 validity: timedelta = DEFAULT_VALIDITY):
        if not secret:
            raise ValueError("A signing secret is required")
        self._secret = secret
        self._algorithm = algorithm
        self.validity = validity

    def issue(self, identity: Identity, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            'id': identity.id,
            'username': identity.username,
            'email': identity.email,
            'iat': issued_at,
            'exp': issued_at + self.validity,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: Optional[str]) -> Claims:
        """
        Decode and check a bearer token.

        Raises:
            Unauthorized: token missing, badly signed, expired, or carrying
                claims that do not describe a valid identity.
        """
        if not token:
            raise Unauthorized("No authentication token provided")
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError:
            raise Unauthorized("Token has expired")
        except jwt.InvalidTokenError as e:
            logger.debug(f"Rejected token: {e}")
            raise Unauthorized("Invalid token")

        try:
            owner = OwnerRef.parse(payload.get('id'))
        except ValueError:
            raise Unauthorized("Invalid token")
        username = payload.get('username')
        email = payload.get('email')
        if not isinstance(username, str) or not isinstance(email, str):
            raise Unauthorized("Invalid token")
        return Claims(owner, username, email)


def parse_bearer_header(header_value: Optional[str]) -> Optional[str]:
    """Extract the token from an `Authorization: Bearer <token>` header value."""
    if not header_value:
        return None
    scheme, _, token = header_value.partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        return None
    return token.strip()
