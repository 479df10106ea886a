"""Mock sign-in against a fixed user list, with the signed-in identity kept in a
local key-value slot so a restart can restore it.
"""
import json
import logging
from pathlib import Path
from typing import Dict, Literal, Optional

from pydantic import BaseModel

from errors import AuthenticationError
from settings import SESSION_KEY

logger = logging.getLogger(__name__)

Role = Literal['admin', 'veterinarian', 'receptionist']

MOCK_USERS = [
    {"user_id": 1, "username": "admin", "password": "admin", "role": "admin", "name": "Dr. Sarah Johnson"},
    {"user_id": 2, "username": "vet", "password": "vet", "role": "veterinarian", "name": "Dr. Michael Chen"},
    {"user_id": 3, "username": "reception", "password": "reception", "role": "receptionist", "name": "Emily Davis"},
]


class UserIdentity(BaseModel):
    user_id: int
    username: str
    role: Role
    name: str


class LoginResult(BaseModel):
    success: bool
    user: Optional[UserIdentity] = None
    error: Optional[str] = None


def authenticate(username: str, password: str) -> UserIdentity:
    found = next((u for u in MOCK_USERS if u["username"] == username and u["password"] == password), None)
    if found is None:
        raise AuthenticationError("Invalid credentials")
    # Never let the password leave this function
    return UserIdentity(**{k: v for k, v in found.items() if k != "password"})


class MemoryStorage:
    """Key-value slot living only as long as the process."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStorage:
    """Key-value slot backed by a JSON file, the local-storage of a desktop run."""

    def __init__(self, path):
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as file:
            return json.load(file)

    def _dump(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as file:
            json.dump(data, file)

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._dump(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._dump(data)


class SessionGate:
    def __init__(self, storage=None, key: str = SESSION_KEY):
        self.storage = storage if storage is not None else MemoryStorage()
        self.key = key
        self.user: Optional[UserIdentity] = None

    def restore(self) -> Optional[UserIdentity]:
        """Pick up the identity saved by an earlier run, if any."""
        saved = self.storage.get(self.key)
        if saved:
            self.user = UserIdentity.model_validate_json(saved)
            logger.info("Restored session for %s", self.user.username)
        return self.user

    def login(self, username: str, password: str) -> LoginResult:
        try:
            user = authenticate(username, password)
        except AuthenticationError as e:
            logger.warning("Failed login for '%s'", username)
            return LoginResult(success=False, error=e.message)
        self.user = user
        self.storage.set(self.key, user.model_dump_json())
        logger.info("User %s signed in as %s", user.username, user.role)
        return LoginResult(success=True, user=user)

    def logout(self) -> None:
        if self.user is not None:
            logger.info("User %s signed out", self.user.username)
        self.user = None
        self.storage.remove(self.key)

    @property
    def authenticated(self) -> bool:
        return self.user is not None
