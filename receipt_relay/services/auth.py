"""Identity verification for bearer credentials."""

import asyncio
import logging
from datetime import UTC, datetime, timedelta
from typing import Protocol

import google.auth.exceptions
import google.auth.transport.requests
from google.oauth2 import id_token
from jose import JWTError, jwt

logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """The bearer credential could not be verified."""


class IdentityVerifier(Protocol):
    async def verify_token(self, token: str) -> str: ...


class JWTIdentityVerifier:
    """Verify HS256 tokens signed with the server secret."""

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self.secret = secret
        self.algorithm = algorithm

    async def verify_token(self, token: str) -> str:
        """Decode the token and return its subject as the user id."""
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as e:
            raise AuthenticationError(str(e)) from e

        user_id = payload.get("sub")
        if not user_id:
            raise AuthenticationError("Token has no subject")
        return str(user_id)


def create_access_token(
    user_id: str,
    secret: str,
    algorithm: str = "HS256",
    expires_in: timedelta = timedelta(days=7),
) -> str:
    """Create a JWT access token for a user."""
    to_encode = {"sub": user_id, "exp": datetime.now(UTC) + expires_in}
    return jwt.encode(to_encode, secret, algorithm=algorithm)


class FirebaseIdentityVerifier:
    """Verify Firebase ID tokens against Google's public signing keys."""

    def __init__(self, project_id: str | None = None) -> None:
        self.project_id = project_id
        self._request = google.auth.transport.requests.Request()

    def _verify(self, token: str) -> dict:
        return id_token.verify_firebase_token(token, self._request, audience=self.project_id)

    async def verify_token(self, token: str) -> str:
        """Verify the ID token and return the Firebase uid."""
        try:
            claims = await asyncio.to_thread(self._verify, token)
        except (ValueError, google.auth.exceptions.GoogleAuthError) as e:
            raise AuthenticationError(str(e)) from e

        if not claims or not claims.get("sub"):
            raise AuthenticationError("Token has no subject")
        return str(claims["sub"])


def build_identity_verifier(
    backend: str, *, secret: str, algorithm: str, project_id: str | None
) -> IdentityVerifier:
    """Build the verifier for the configured identity backend."""
    if backend == "firebase":
        return FirebaseIdentityVerifier(project_id)
    return JWTIdentityVerifier(secret, algorithm)
