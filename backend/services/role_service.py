"""
Role Service - cached role lookups used as a capability check
"""
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple
import logging
import threading

from config import settings
from models.user import Role
from utils.errors import StoreError
from utils.timeouts import call_with_timeout

logger = logging.getLogger(__name__)


class RoleService:
    """
    Resolve a user's role with a bounded timeout.

    Anything short of a clean answer (timeout, store error, missing profile,
    unknown role value) resolves to Role.USER. Only clean answers are cached.
    """

    def __init__(self, store, ttl_seconds: int = settings.ROLE_CACHE_TTL_SECONDS,
                 timeout: Optional[float] = settings.REMOTE_CALL_TIMEOUT_SECONDS):
        self.store = store
        self.ttl = timedelta(seconds=ttl_seconds)
        self.timeout = timeout
        self._cache: Dict[str, Tuple[Role, datetime]] = {}
        self._lock = threading.Lock()

    def resolve(self, user_id: Optional[str]) -> Role:
        if not user_id:
            return Role.USER

        with self._lock:
            cached = self._cache.get(user_id)
        if cached and cached[1] > datetime.now():
            return cached[0]

        try:
            value = call_with_timeout(self.timeout, self.store.get_role, user_id)
        except StoreError as e:
            logger.warning(f"Error fetching role, defaulting to user: {e}")
            return Role.USER

        if value is None:
            logger.warning("No role found for profile, defaulting to user")
            return Role.USER
        try:
            role = Role(value)
        except ValueError:
            logger.warning(f"Unknown role {value!r}, defaulting to user")
            return Role.USER

        with self._lock:
            self._cache[user_id] = (role, datetime.now() + self.ttl)
        return role

    def is_admin(self, user_id: Optional[str]) -> bool:
        return self.resolve(user_id) is Role.ADMIN

    def invalidate(self, user_id: str) -> None:
        with self._lock:
            self._cache.pop(user_id, None)
