"""
Staff authorization gate.

Account storage and password checks live in the auth service. Here a bearer
token is the principal, and the question asked is only whether that
principal may manage a given restaurant.
"""

from typing import Dict, Optional, Protocol, Set

from fastapi import Depends, Header, HTTPException, Request

from tablebook.config import OWNER_SCOPE


class StaffAuthorizer(Protocol):
    """Decides whether a principal may manage a restaurant."""

    def is_authorized_staff(self, restaurant_id: int, principal: Optional[str]) -> bool: ...

    def knows(self, principal: Optional[str]) -> bool: ...


class TokenStaffAuthorizer:
    """Authorizes principals against a token -> restaurant-ids mapping."""

    def __init__(self, tokens: Dict[str, Set[str]]):
        self.tokens = tokens

    def is_authorized_staff(self, restaurant_id: int, principal: Optional[str]) -> bool:
        if not principal:
            return False
        scopes = self.tokens.get(principal)
        if not scopes:
            return False
        return OWNER_SCOPE in scopes or str(restaurant_id) in scopes

    def knows(self, principal: Optional[str]) -> bool:
        return bool(principal) and principal in self.tokens


def bearer_token(authorization: Optional[str] = Header(None)) -> str:
    """
    Extract the bearer token from the Authorization header.

    Args:
        authorization: The Authorization header value

    Returns:
        str: The token

    Raises:
        HTTPException: 401 if the header is missing or malformed
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=401,
            detail="Invalid authorization header format"
        )
    return authorization[len("Bearer "):].strip()


def require_staff(
    restaurant_id: int,
    request: Request,
    token: str = Depends(bearer_token),
) -> str:
    """
    Dependency allowing only staff of the restaurant in the path.

    Raises:
        HTTPException: 401 for an unknown token, 403 if the token has no
            rights on this restaurant
    """
    authorizer: StaffAuthorizer = request.app.state.authorizer
    if not authorizer.knows(token):
        raise HTTPException(
            status_code=401,
            detail="Invalid or expired token"
        )
    if not authorizer.is_authorized_staff(restaurant_id, token):
        raise HTTPException(
            status_code=403,
            detail="Not authorized to manage this restaurant"
        )
    return token
