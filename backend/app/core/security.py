# backend/app/core/security.py

import time
from typing import Any, Dict, Optional, Protocol

import jwt
import requests

from app.core.config_loader import settings
from app.core.errors import TokenMintError
from app.core.logger import logger


ALGORITHM = "RS256"
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"


class CredentialProvider(Protocol):
    def mint(self) -> str:
        ...


class ServiceAccountTokenMinter:
    """
    Mints bearer tokens for the document store from a service account.

    A signed JWT-bearer assertion is exchanged at the OAuth token endpoint.
    Nothing is cached: every call to `mint()` signs and exchanges again.
    Failures raise TokenMintError and are never retried here.
    """

    def __init__(
        self,
        client_email: Optional[str] = None,
        private_key: Optional[str] = None,
        private_key_id: Optional[str] = None,
        token_uri: Optional[str] = None,
        scope: Optional[str] = None,
        lifetime_seconds: Optional[int] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 15.0,
    ):
        self.client_email = settings.FIREBASE_CLIENT_EMAIL if client_email is None else client_email
        self.private_key = settings.FIREBASE_PRIVATE_KEY if private_key is None else private_key
        self.private_key_id = settings.FIREBASE_PRIVATE_KEY_ID if private_key_id is None else private_key_id
        self.token_uri = settings.token_uri if token_uri is None else token_uri
        self.scope = settings.token_scope if scope is None else scope
        self.lifetime_seconds = settings.token_lifetime_seconds if lifetime_seconds is None else lifetime_seconds
        # no shared Session: module-level requests calls open a fresh one each time
        self.session = session or requests
        self.timeout = timeout

    # -----------------------------------------------------------------------
    # ASSERTION
    # -----------------------------------------------------------------------
    def build_claims(self, now: Optional[int] = None) -> Dict[str, Any]:
        issued_at = int(now if now is not None else time.time())
        return {
            "iss": self.client_email,
            "scope": self.scope,
            "aud": self.token_uri,
            "iat": issued_at,
            "exp": issued_at + self.lifetime_seconds,
        }

    def sign_assertion(self, now: Optional[int] = None) -> str:
        if not self.client_email or not self.private_key:
            raise TokenMintError("Service account credentials are not configured")

        headers = {"kid": self.private_key_id} if self.private_key_id else None
        try:
            return jwt.encode(
                self.build_claims(now),
                self.private_key,
                algorithm=ALGORITHM,
                headers=headers,
            )
        except (ValueError, TypeError, jwt.PyJWTError) as e:
            # the underlying message may quote key material, keep only the type
            raise TokenMintError(f"Could not sign token assertion ({type(e).__name__})") from e

    # -----------------------------------------------------------------------
    # EXCHANGE
    # -----------------------------------------------------------------------
    def mint(self) -> str:
        assertion = self.sign_assertion()

        try:
            resp = self.session.post(
                self.token_uri,
                data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Token endpoint unreachable: {type(e).__name__}")
            raise TokenMintError(f"Token endpoint unreachable: {type(e).__name__}") from e

        if resp.status_code != 200:
            reason = _oauth_error(resp)
            logger.error(f"Token exchange rejected: HTTP {resp.status_code} {reason}")
            raise TokenMintError(f"Token exchange failed with HTTP {resp.status_code}: {reason}")

        try:
            token = resp.json()["access_token"]
        except (ValueError, KeyError, TypeError) as e:
            raise TokenMintError("Token endpoint returned no access_token") from e

        logger.debug(f"Minted bearer token for {self.client_email}")
        return token


def _oauth_error(resp) -> str:
    try:
        body = resp.json()
    except ValueError:
        return "unreadable response"
    if not isinstance(body, dict):
        return "unreadable response"
    return body.get("error_description") or body.get("error") or "unknown error"
