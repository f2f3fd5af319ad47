# anonymous session establishment (best effort)
import logging
from typing import Optional, Protocol

import httpx

from .config import FIREBASE_API_KEY, HTTP_TIMEOUT, IDENTITY_BASE_URL
from .errors import SessionEstablishmentFailed

logger = logging.getLogger(__name__)


class SessionService(Protocol):
    async def establish(self) -> None: ...


class NullSession:
    """Offline stand-in: nothing to sign in to."""

    async def establish(self) -> None:
        return None


class FirebaseAnonymousSession:
    """
    Anonymous sign-up against the Identity Toolkit REST API.
    Keeps the returned ID token so the Firestore store can authenticate.
    """

    def __init__(
        self,
        api_key: str = FIREBASE_API_KEY,
        base_url: str = IDENTITY_BASE_URL,
        timeout: float = HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.url = f"{base_url.rstrip('/')}/v1/accounts:signUp"
        self.timeout = timeout
        self.transport = transport
        self.id_token: Optional[str] = None
        self.uid: Optional[str] = None

    async def establish(self) -> None:
        if not self.api_key:
            raise SessionEstablishmentFailed("FIREBASE_API_KEY is not configured")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(
                    self.url,
                    params={"key": self.api_key},
                    json={"returnSecureToken": True},
                )
                resp.raise_for_status()
                body = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise SessionEstablishmentFailed(f"anonymous sign-in failed: {e}") from e
        if not isinstance(body, dict):
            raise SessionEstablishmentFailed("anonymous sign-in returned an unexpected body")

        self.id_token = body.get("idToken")
        self.uid = body.get("localId")
        logger.info(f"Signed in anonymously as {self.uid}")
