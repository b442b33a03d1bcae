"""JWT Token Validation for admin portal tokens"""
import jwt
from typing import Any, Dict, Optional

from ..config.settings import settings
from ..domain.errors import AuthenticationError
from ..domain.models import ActorContext
from .logger import get_logger

logger = get_logger(__name__)


class JWTValidator:
    """Validates bearer tokens issued by the ICTServe portal"""
    
    def __init__(
        self,
        secret: Optional[str] = None,
        algorithm: Optional[str] = None,
        audience: Optional[str] = None,
        verify_signature: Optional[bool] = None
    ):
        self._secret = secret if secret is not None else settings.jwt_secret
        self._algorithm = algorithm or settings.jwt_algorithm
        self._audience = audience if audience is not None else settings.jwt_audience
        if verify_signature is None:
            verify_signature = not settings.is_development
        self._verify_signature = verify_signature
    
    def validate_token(self, token: str) -> Dict[str, Any]:
        """
        Validate a bearer token
        
        In DEVELOPMENT mode the signature is not verified so locally minted
        tokens work; expiry is still checked.
        
        Args:
            token: Bearer token (with or without 'Bearer ' prefix)
            
        Returns:
            Decoded token claims
            
        Raises:
            AuthenticationError: If token is invalid
        """
        if not token:
            raise AuthenticationError("Token is missing")
        
        if token.startswith("Bearer "):
            token = token[7:]
        
        try:
            if not self._verify_signature:
                return jwt.decode(
                    token,
                    options={
                        "verify_signature": False,
                        "verify_exp": True,
                        "verify_aud": False,
                    }
                )
            
            return jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=self._audience or None,
                options={
                    "verify_exp": True,
                    "verify_aud": bool(self._audience),
                }
            )
            
        except jwt.ExpiredSignatureError:
            logger.warning("Token expired")
            raise AuthenticationError("Token has expired")
        except jwt.InvalidAudienceError as e:
            logger.warning(f"Invalid token audience: {e}")
            raise AuthenticationError("Invalid token audience")
        except jwt.PyJWTError as e:
            logger.error(f"JWT validation error: {e}")
            raise AuthenticationError(f"Invalid token: {str(e)}")
    
    def get_actor_context(self, token: str) -> ActorContext:
        """
        Extract actor context from validated token
        
        Args:
            token: Bearer token
            
        Returns:
            ActorContext with user information
        """
        claims = self.validate_token(token)
        
        email = claims.get("email") or claims.get("preferred_username") or ""
        if not email:
            logger.warning(f"No email found in token claims. Available claims: {list(claims.keys())}")
            raise AuthenticationError("Unable to determine user email from token")
        
        roles = claims.get("roles") or []
        if isinstance(roles, str):
            roles = [roles]
        
        return ActorContext(
            user_id=str(claims.get("sub", "")),
            email=email,
            display_name=claims.get("name", email),
            roles=[str(role).lower() for role in roles]
        )


# Global validator instance
_jwt_validator: Optional[JWTValidator] = None


def get_jwt_validator() -> JWTValidator:
    """Get global JWT validator instance"""
    global _jwt_validator
    if _jwt_validator is None:
        _jwt_validator = JWTValidator()
    return _jwt_validator


def get_current_user(authorization: str) -> ActorContext:
    """
    Get current user from authorization header
    
    Args:
        authorization: Authorization header value
        
    Returns:
        ActorContext
    """
    if not authorization:
        raise AuthenticationError("Authorization header is missing")
    
    return get_jwt_validator().get_actor_context(authorization)
