"""In-memory stores for OAuth clients, codes and tokens.

The authorization and token services depend on the ``ClientStore`` and
``TokenStore`` protocols, not on these classes, so a persistent backend can
be dropped in without touching call sites.

Every map is guarded by a ``threading.Lock``. No I/O happens while a lock is
held. Expired entries are removed lazily on read; ``purge_expired`` lets the
maintenance loop bound memory for entries nobody reads again.
"""

import logging
import threading
from typing import Generic, Optional, Protocol, TypeVar, runtime_checkable

from oauth.clock import Clock, default_clock
from oauth.models import AccessToken, AuthorizationCode, Client, RefreshToken

logger = logging.getLogger(__name__)


@runtime_checkable
class ClientStore(Protocol):
    def get(self, client_id: str) -> Optional[Client]: ...
    def put(self, client: Client) -> None: ...
    def __len__(self) -> int: ...


@runtime_checkable
class TokenStore(Protocol):
    # ----- authorization codes ----- #
    def put_code(self, code: AuthorizationCode) -> None: ...
    def take_code(self, code: str) -> Optional[AuthorizationCode]: ...

    # ----- access tokens ----- #
    def put_token(self, token: AccessToken) -> None: ...
    def get_token(self, token: str) -> Optional[AccessToken]: ...
    def delete_token(self, token: str) -> None: ...

    # ----- refresh tokens ----- #
    def put_refresh_token(self, token: RefreshToken) -> None: ...
    def take_refresh_token(self, token: str) -> Optional[RefreshToken]: ...

    # ----- maintenance ----- #
    def purge_expired(self) -> int: ...


T = TypeVar("T", AuthorizationCode, AccessToken, RefreshToken)


class _ExpiringMap(Generic[T]):
    """Dict of records with ``is_expired(now)``, evicted lazily."""

    def __init__(self, clock: Clock):
        self._clock = clock
        self._items: dict[str, T] = {}
        self._lock = threading.Lock()

    def put(self, key: str, record: T) -> None:
        with self._lock:
            self._items[key] = record

    def get(self, key: str) -> Optional[T]:
        now = self._clock()
        with self._lock:
            record = self._items.get(key)
            if record is None:
                return None
            if record.is_expired(now):
                del self._items[key]
                return None
            return record

    def take(self, key: str) -> Optional[T]:
        """Atomically remove and return the record; expired records are dropped."""
        now = self._clock()
        with self._lock:
            record = self._items.pop(key, None)
        if record is None or record.is_expired(now):
            return None
        return record

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def purge(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [key for key, record in self._items.items() if record.is_expired(now)]
            for key in expired:
                del self._items[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class InMemoryClientStore:
    """Registered clients. Entries are never mutated or deleted."""

    def __init__(self):
        self._clients: dict[str, Client] = {}
        self._lock = threading.Lock()

    def get(self, client_id: str) -> Optional[Client]:
        with self._lock:
            return self._clients.get(client_id)

    def put(self, client: Client) -> None:
        with self._lock:
            self._clients[client.client_id] = client

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)


class InMemoryTokenStore:
    """Authorization codes, access tokens and refresh tokens."""

    def __init__(self, clock: Clock = default_clock):
        self._codes: _ExpiringMap[AuthorizationCode] = _ExpiringMap(clock)
        self._tokens: _ExpiringMap[AccessToken] = _ExpiringMap(clock)
        self._refresh_tokens: _ExpiringMap[RefreshToken] = _ExpiringMap(clock)

    def put_code(self, code: AuthorizationCode) -> None:
        self._codes.put(code.code, code)

    def take_code(self, code: str) -> Optional[AuthorizationCode]:
        return self._codes.take(code)

    def put_token(self, token: AccessToken) -> None:
        self._tokens.put(token.token, token)

    def get_token(self, token: str) -> Optional[AccessToken]:
        return self._tokens.get(token)

    def delete_token(self, token: str) -> None:
        self._tokens.delete(token)

    def put_refresh_token(self, token: RefreshToken) -> None:
        self._refresh_tokens.put(token.token, token)

    def take_refresh_token(self, token: str) -> Optional[RefreshToken]:
        return self._refresh_tokens.take(token)

    def purge_expired(self) -> int:
        removed = self._codes.purge() + self._tokens.purge() + self._refresh_tokens.purge()
        if removed:
            logger.info(f"[MAINTENANCE] Purged {removed} expired codes/tokens")
        return removed

    def counts(self) -> dict[str, int]:
        return {
            "authorization_codes": len(self._codes),
            "access_tokens": len(self._tokens),
            "refresh_tokens": len(self._refresh_tokens),
        }
