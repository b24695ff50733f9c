import logging
import uuid
from typing import Dict, Optional, Set, Tuple

from colorrace.errors import InvalidName
from colorrace.models import UserIdentity

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Stable user identities and the live connections (tabs) bound to each.

    An identity is present while at least one connection is bound to it.
    """

    def __init__(self, name_max_length: int = 15):
        self.name_max_length = name_max_length
        self._users: Dict[str, UserIdentity] = {}
        self._connections: Dict[str, Set[str]] = {}
        self._owner_by_connection: Dict[str, str] = {}

    def get(self, user_id: Optional[str]) -> Optional[UserIdentity]:
        if not user_id or not isinstance(user_id, str):
            return None
        return self._users.get(user_id)

    def authenticate(self, existing_user_id: Optional[str] = None, proposed_name: Optional[str] = None) -> UserIdentity:
        known = self.get(existing_user_id)
        if known:
            return known

        name = (proposed_name or '').strip() if isinstance(proposed_name, str) else ''
        if not name or len(name) > self.name_max_length:
            raise InvalidName(self.name_max_length)

        identity = UserIdentity(user_id=uuid.uuid4().hex, name=name)
        self._users[identity.user_id] = identity
        logger.info(f"[auth-new] user={identity.user_id} name={name!r}")
        return identity

    def bind_connection(self, user_id: str, connection: str) -> None:
        previous = self._owner_by_connection.get(connection)
        if previous and previous != user_id:
            self.unbind_connection(connection)
        self._connections.setdefault(user_id, set()).add(connection)
        self._owner_by_connection[connection] = user_id

    def unbind_connection(self, connection: str) -> Tuple[Optional[str], bool]:
        """Forget a connection; returns (owner, whether it was the owner's last one)."""
        user_id = self._owner_by_connection.pop(connection, None)
        if user_id is None:
            return None, False
        remaining = self._connections.get(user_id, set())
        remaining.discard(connection)
        if not remaining:
            self._connections.pop(user_id, None)
            return user_id, True
        return user_id, False

    def user_for_connection(self, connection: str) -> Optional[str]:
        return self._owner_by_connection.get(connection)

    def connections(self, user_id: str) -> Set[str]:
        return set(self._connections.get(user_id, ()))

    def is_present(self, user_id: str) -> bool:
        return bool(self._connections.get(user_id))
