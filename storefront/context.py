"""Per-request caller identity, passed explicitly into every service call."""
from dataclasses import dataclass
from typing import Optional

from storefront.exceptions import InvalidArgumentError, UnauthorizedError
from storefront.models import Role


@dataclass(frozen=True)
class CartOwner:
    """Exactly one of user_id or session_id is set."""
    user_id: Optional[int] = None
    session_id: Optional[str] = None

    def __post_init__(self):
        if (self.user_id is None) == (self.session_id is None):
            raise InvalidArgumentError('Either user authentication or session ID is required')

    @property
    def is_guest(self) -> bool:
        return self.user_id is None

    def describe(self) -> str:
        return f'user {self.user_id}' if self.user_id is not None else f'session {self.session_id}'


@dataclass(frozen=True)
class RequestContext:
    """Who is calling: an authenticated subject, an anonymous session, or both."""
    user_id: Optional[int] = None
    role: Optional[Role] = None
    session_id: Optional[str] = None

    @classmethod
    def anonymous(cls, session_id: Optional[str] = None) -> 'RequestContext':
        return cls(session_id=session_id or None)

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def is_admin(self) -> bool:
        return self.is_authenticated and self.role == Role.ADMIN

    def require_user(self) -> int:
        if self.user_id is None:
            raise UnauthorizedError('User authentication is required')
        return self.user_id

    def cart_owner(self) -> CartOwner:
        """Authenticated users own their cart by user id; guests by session id."""
        if self.user_id is not None:
            return CartOwner(user_id=self.user_id)
        if self.session_id:
            return CartOwner(session_id=self.session_id)
        raise InvalidArgumentError('Either user authentication or session ID is required')
