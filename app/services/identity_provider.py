"""Identity provider client: bearer token verification and user profile lookup (Clerk)"""

import time
from typing import Any, Dict, Optional

import httpx
from jose import JWTError, jwt
from jose.backends.cryptography_backend import CryptographyRSAKey

from app.config import settings
from app.core.logging import get_logger
from app.schemas.user import IdentityProfile

logger = get_logger(__name__)


class IdentityError(Exception):
    """Token could not be verified or the provider could not be reached."""


class IdentityProvider:
    """Verifies session tokens against the provider's JWKS and fetches user profiles."""

    def __init__(
        self,
        secret_key: str = "",
        api_url: str = "",
        jwks_url: str = "",
        issuer: Optional[str] = None,
        audience: Optional[str] = None,
        jwks_cache_ttl: int = 3600,
        timeout: float = 10.0,
    ):
        self.secret_key = secret_key
        self.api_url = api_url.rstrip("/")
        self.jwks_url = jwks_url
        self.issuer = issuer
        self.audience = audience
        self.timeout = timeout

        # Cache for JWKS keys
        self._jwks_cache: Dict[str, Any] = {}
        self._jwks_cache_time: float = 0
        self._jwks_cache_ttl = jwks_cache_ttl

    @classmethod
    def from_settings(cls) -> "IdentityProvider":
        return cls(
            secret_key=settings.CLERK_SECRET_KEY,
            api_url=settings.CLERK_API_URL,
            jwks_url=settings.CLERK_JWKS_URL,
            issuer=settings.CLERK_ISSUER,
            audience=settings.CLERK_AUDIENCE,
            jwks_cache_ttl=settings.JWKS_CACHE_TTL_SECONDS,
            timeout=settings.EXTERNAL_API_TIMEOUT,
        )

    @property
    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.secret_key}"}

    async def get_jwks(self, force_refresh: bool = False) -> Dict[str, Any]:
        """Fetch JWKS with caching."""
        now = time.time()
        if (
            not force_refresh
            and self._jwks_cache
            and (now - self._jwks_cache_time) < self._jwks_cache_ttl
        ):
            return self._jwks_cache

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.jwks_url, headers=self._auth_headers)
                response.raise_for_status()
                jwks = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Failed to fetch JWKS: {str(e)}")
            raise IdentityError("Unable to fetch signing keys") from e

        self._jwks_cache = jwks
        self._jwks_cache_time = now
        return jwks

    async def get_signing_key(self, token: str) -> CryptographyRSAKey:
        """Select the JWKS entry matching the token's ``kid``."""
        try:
            unverified_header = jwt.get_unverified_header(token)
        except JWTError as e:
            raise IdentityError("Invalid token header") from e

        kid = unverified_header.get("kid")
        if not kid:
            raise IdentityError("Token header missing 'kid'")

        jwks = await self.get_jwks()
        rsa_key = _find_key(jwks, kid)
        if rsa_key is None:
            # Keys may have rotated since the cache was filled
            jwks = await self.get_jwks(force_refresh=True)
            rsa_key = _find_key(jwks, kid)
        if rsa_key is None:
            raise IdentityError(f"Unable to find signing key for kid: {kid}")

        try:
            return CryptographyRSAKey(rsa_key, algorithm="RS256")
        except Exception as e:
            raise IdentityError("Failed to load signing key") from e

    async def verify_token(self, token: str) -> str:
        """
        Verify a session token's signature and claims.

        Returns:
            The provider's user id (``sub`` claim)

        Raises:
            IdentityError: signature, expiry or claim check failed
        """
        signing_key = await self.get_signing_key(token)
        options = {"verify_aud": self.audience is not None}
        try:
            payload = jwt.decode(
                token,
                signing_key,
                algorithms=["RS256"],
                audience=self.audience,
                issuer=self.issuer,
                options=options,
            )
        except JWTError as e:
            raise IdentityError(f"Token validation failed: {str(e)}") from e

        subject = payload.get("sub")
        if not subject:
            raise IdentityError("Token has no subject")
        return subject

    async def get_user(self, external_id: str) -> IdentityProfile:
        """Fetch a user's profile from the provider's user API."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    f"{self.api_url}/users/{external_id}",
                    headers=self._auth_headers,
                )
                response.raise_for_status()
                user_data = response.json()
        except httpx.HTTPError as e:
            logger.error(
                f"Failed to fetch identity profile: {str(e)}",
                extra={"external_id": external_id},
            )
            raise IdentityError("Unable to fetch user profile") from e

        email = _primary_email(user_data)
        if not email:
            raise IdentityError("Identity profile has no email address")

        return IdentityProfile(
            external_id=user_data.get("id") or external_id,
            email=email,
            first_name=user_data.get("first_name"),
            last_name=user_data.get("last_name"),
        )


def _find_key(jwks: Dict[str, Any], kid: str) -> Optional[Dict[str, Any]]:
    for key in jwks.get("keys", []):
        if key.get("kid") == kid:
            return key
    return None


def _primary_email(user_data: Dict[str, Any]) -> Optional[str]:
    addresses = user_data.get("email_addresses") or []
    primary_id = user_data.get("primary_email_address_id")
    for address in addresses:
        if address.get("id") == primary_id:
            return address.get("email_address")
    if addresses:
        return addresses[0].get("email_address")
    return None


# Singleton instance
identity_provider = IdentityProvider.from_settings()


def get_identity_provider() -> IdentityProvider:
    """Dependency returning the process-wide identity provider client."""
    return identity_provider
