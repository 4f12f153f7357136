from datetime import datetime, timedelta, timezone
from typing import Dict, Any
import jwt
from jwt import PyJWTError
from app.core.config import settings
from app.core.errors import AuthenticationError, ServiceUnavailableError
import httpx
import logging

logger = logging.getLogger(__name__)

ASYMMETRIC_ALGORITHMS = ['RS256', 'RS512', 'ES256', 'ES512']

# Cache for the identity provider's public keys
_jwks_cache = {"keys": None, "expires_at": None}


def _invalid_token(detail: str) -> AuthenticationError:
    return AuthenticationError(
        detail,
        user_message="Your sign-in is not valid or has expired. Sign in again.",
    )


async def get_public_keys() -> Dict[str, Any]:
    """
    Fetch and cache the identity provider's JWKS.

    Returns:
        Dict containing the JWKS data with public keys

    Raises:
        ServiceUnavailableError: If AUTH_JWKS_URL is missing or the fetch fails
    """
    current_time = datetime.now(timezone.utc)

    # Return cached keys if still valid (cache for 1 hour)
    if (_jwks_cache["keys"] and
        _jwks_cache["expires_at"] and
        current_time < _jwks_cache["expires_at"]):
        return _jwks_cache["keys"]

    if not settings.AUTH_JWKS_URL:
        raise ServiceUnavailableError("AUTH_JWKS_URL not configured")

    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.get(settings.AUTH_JWKS_URL)
            response.raise_for_status()
            jwks_data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.error(f"Failed to fetch JWKS: {str(e)}")
        raise ServiceUnavailableError(
            "Authentication service unavailable",
            user_message="The app could not check your sign-in right now. Try again in a few minutes.",
        )

    _jwks_cache["keys"] = jwks_data
    _jwks_cache["expires_at"] = current_time + timedelta(hours=1)
    return jwks_data


async def _resolve_key(token: str):
    """Pick the verification key and algorithm from the token header"""
    try:
        unverified_header = jwt.get_unverified_header(token)
    except PyJWTError:
        raise _invalid_token("Invalid token format")

    alg = unverified_header.get('alg')

    if alg == 'HS256':
        if not settings.AUTH_JWT_SECRET:
            raise _invalid_token("HS256 tokens are not accepted")
        return settings.AUTH_JWT_SECRET, alg

    if alg not in ASYMMETRIC_ALGORITHMS:
        raise _invalid_token("Unsupported token algorithm")

    kid = unverified_header.get('kid')
    if not kid:
        raise _invalid_token("Invalid token format")

    jwks_data = await get_public_keys()
    for key_data in jwks_data.get('keys', []):
        if key_data.get('kid') == kid:
            try:
                return jwt.PyJWK(key_data).key, alg
            except PyJWTError as e:
                logger.error(f"Unusable JWK {kid}: {str(e)}")
                break

    raise _invalid_token("Token key not found")


async def verify_access_token(token: str) -> Dict[str, Any]:
    """
    Verify a bearer JWT from the identity provider.

    Args:
        token: The JWT token to verify

    Returns:
        Dict containing user_id, email and the full payload

    Raises:
        AuthenticationError: If the token is invalid, expired, or verification fails
    """
    key, alg = await _resolve_key(token)

    try:
        payload = jwt.decode(
            token,
            key,
            algorithms=[alg],
            audience=settings.AUTH_AUDIENCE or None,
            issuer=settings.AUTH_ISSUER or None,
            leeway=settings.JWT_CLOCK_SKEW_TOLERANCE_SECONDS,
            options={
                "require": ["exp", "sub"],
                "verify_aud": bool(settings.AUTH_AUDIENCE),
            }
        )
    except jwt.ExpiredSignatureError:
        raise _invalid_token("Token expired")
    except jwt.InvalidIssuerError:
        raise _invalid_token("Invalid token issuer")
    except jwt.InvalidAudienceError:
        raise _invalid_token("Invalid token audience")
    except PyJWTError as e:
        logger.info(f"Token rejected: {str(e)}")
        raise _invalid_token("Invalid token")

    return {"user_id": payload['sub'], "email": payload.get('email'), "payload": payload}
