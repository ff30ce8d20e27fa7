import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError
from jose import jwt as jose_jwt

from .config import CLERK_AUTHORIZED_PARTIES, CLERK_ISSUER, CLERK_JWKS_URL, CLERK_SECRET_KEY

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

# Clock skew tolerated on exp / nbf / iat
TOKEN_LEEWAY_SECONDS = 60

# Cache for Clerk's JSON Web Key Set, keyed by kid
_cached_keys: Optional[dict[str, dict]] = None


@dataclass
class CurrentUser:
    """Identity of the caller as asserted by a verified Clerk session token"""

    id: str
    session_id: Optional[str] = None
    org_id: Optional[str] = None


async def get_clerk_public_keys() -> Optional[dict[str, dict]]:
    """Fetch Clerk's JWKS for session token verification"""
    global _cached_keys
    if _cached_keys:
        logger.debug("✅ Using cached Clerk public keys")
        return _cached_keys

    headers = {}
    if CLERK_SECRET_KEY:
        headers["Authorization"] = f"Bearer {CLERK_SECRET_KEY}"

    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.get(CLERK_JWKS_URL, headers=headers)
        if response.status_code == 200:
            keys = response.json().get("keys", [])
            _cached_keys = {key["kid"]: key for key in keys if key.get("kid")}
            logger.info(f"✅ Fetched {len(_cached_keys)} Clerk public keys")
            return _cached_keys
        logger.error(f"❌ Failed to fetch Clerk public keys: HTTP {response.status_code}")
    except httpx.HTTPError as e:
        logger.error(f"❌ Error fetching Clerk public keys: {str(e)}")
    return None


def invalidate_key_cache() -> None:
    global _cached_keys
    _cached_keys = None


async def verify_clerk_token(token: str) -> dict:
    """
    Verify a Clerk session token (RS256 JWT) and return its claims.

    Checks the signature against Clerk's JWKS, the exp / nbf / iat claims,
    and, when configured, the issuer and the authorized party (azp).
    """
    try:
        header = jose_jwt.get_unverified_header(token)
    except JWTError as e:
        logger.warning(f"⚠️ Failed to decode token header: {str(e)}")
        raise HTTPException(status_code=401, detail="Invalid token header") from e

    kid = header.get("kid")
    alg = header.get("alg")

    if alg != "RS256":
        logger.warning(f"⚠️ Invalid token algorithm: {alg}")
        raise HTTPException(status_code=401, detail="Invalid token algorithm")

    if not kid:
        logger.warning("⚠️ Token missing key ID")
        raise HTTPException(status_code=401, detail="Token missing key ID")

    public_keys = await get_clerk_public_keys()
    if not public_keys or kid not in public_keys:
        logger.warning(f"⚠️ Key ID {kid} not found in public keys, invalidating cache and retrying")
        invalidate_key_cache()
        public_keys = await get_clerk_public_keys()
        if not public_keys or kid not in public_keys:
            logger.error(f"❌ Key ID {kid} not found in public keys after retry")
            raise HTTPException(status_code=401, detail="Unable to verify token signature")

    options = {"verify_aud": False, "leeway": TOKEN_LEEWAY_SECONDS}
    try:
        claims = jose_jwt.decode(
            token,
            public_keys[kid],
            algorithms=["RS256"],
            issuer=CLERK_ISSUER,
            options=options,
        )
    except ExpiredSignatureError as e:
        raise HTTPException(
            status_code=401,
            detail="Token has expired. Please refresh your session.",
            headers={"X-Token-Expired": "true"},
        ) from e
    except JWTError as e:
        logger.warning(f"⚠️ Token verification failed: {str(e)}")
        raise HTTPException(status_code=401, detail="Token verification failed") from e

    azp = claims.get("azp")
    if CLERK_AUTHORIZED_PARTIES and azp not in CLERK_AUTHORIZED_PARTIES:
        logger.warning(f"⚠️ Token authorized party not allowed: {azp}")
        raise HTTPException(status_code=401, detail="Invalid token authorized party")

    return claims


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentUser:
    """Resolve the caller from the Clerk session token in the Authorization header"""
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    token = credentials.credentials
    if len(token.split(".")) != 3:
        logger.warning(f"⚠️ Malformed token received, token length: {len(token)}")
        raise HTTPException(
            status_code=401, detail="Invalid token format. Expected a valid JWT token."
        )

    claims = await verify_clerk_token(token)

    user_id = claims.get("sub")
    if not user_id:
        logger.error(f"❌ Token missing user ID claim. Available claims: {list(claims.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    logger.debug(f"✅ User authenticated: {user_id}")
    return CurrentUser(id=user_id, session_id=claims.get("sid"), org_id=claims.get("org_id"))
