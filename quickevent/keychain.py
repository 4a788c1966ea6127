# keychain.py
"""
Single-secret credential store on top of the macOS Keychain.

The store talks to a small backend that returns raw OSStatus codes; the
store maps them onto the closed ``KeychainError`` hierarchy. Every call goes
to the backend, nothing is cached in process.
"""
import logging
from typing import Optional, Tuple

PYOBJC_AVAILABLE = False
try:
    import Security
    PYOBJC_AVAILABLE = True
except Exception:
    PYOBJC_AVAILABLE = False

ERR_SEC_SUCCESS = 0
ERR_SEC_ITEM_NOT_FOUND = -25300
ERR_SEC_DUPLICATE_ITEM = -25299
ERR_SEC_DECODE = -26275


class KeychainError(Exception):
    pass


class ItemNotFoundError(KeychainError):
    def __init__(self):
        super().__init__("The item could not be found in the keychain.")


class DuplicateItemError(KeychainError):
    def __init__(self):
        super().__init__("The item already exists in the keychain.")


class UnexpectedStatusError(KeychainError):
    def __init__(self, status: int):
        self.status = status
        super().__init__(f"Unexpected keychain status {status}")


class KeychainBackend:
    """Raw add/find/update/delete of one generic password per service."""

    def add(self, service: str, data: bytes) -> int:
        raise NotImplementedError

    def find(self, service: str) -> Tuple[int, Optional[bytes]]:
        raise NotImplementedError

    def update(self, service: str, data: bytes) -> int:
        raise NotImplementedError

    def delete(self, service: str) -> int:
        raise NotImplementedError


class SecurityBackend(KeychainBackend):
    """Security.framework through PyObjC."""

    def __init__(self):
        if not PYOBJC_AVAILABLE:
            raise RuntimeError("Security framework is unavailable: pip install pyobjc-framework-Security")

    @staticmethod
    def _base_query(service: str) -> dict:
        return {
            Security.kSecClass: Security.kSecClassGenericPassword,
            Security.kSecAttrService: service,
        }

    def add(self, service: str, data: bytes) -> int:
        query = self._base_query(service)
        query[Security.kSecValueData] = data
        query[Security.kSecAttrAccessible] = Security.kSecAttrAccessibleWhenUnlocked
        status, _ = Security.SecItemAdd(query, None)
        return int(status)

    def find(self, service: str) -> Tuple[int, Optional[bytes]]:
        query = self._base_query(service)
        query[Security.kSecReturnData] = True
        query[Security.kSecMatchLimit] = Security.kSecMatchLimitOne
        status, result = Security.SecItemCopyMatching(query, None)
        if status != ERR_SEC_SUCCESS or result is None:
            return int(status), None
        return int(status), bytes(result)

    def update(self, service: str, data: bytes) -> int:
        return int(Security.SecItemUpdate(self._base_query(service), {Security.kSecValueData: data}))

    def delete(self, service: str) -> int:
        return int(Security.SecItemDelete(self._base_query(service)))


class KeychainStore:
    def __init__(self, service: str, backend: Optional[KeychainBackend] = None):
        self.service = service
        self.backend = backend if backend is not None else SecurityBackend()

    def save(self, key: str) -> None:
        """Update the stored value if there is one, insert otherwise."""
        data = key.encode("utf-8")
        status = self.backend.update(self.service, data)
        if status == ERR_SEC_SUCCESS:
            logging.info("Keychain item updated for %s", self.service)
            return
        if status != ERR_SEC_ITEM_NOT_FOUND:
            raise UnexpectedStatusError(status)
        status = self.backend.add(self.service, data)
        if status == ERR_SEC_DUPLICATE_ITEM:
            raise DuplicateItemError()
        if status != ERR_SEC_SUCCESS:
            raise UnexpectedStatusError(status)
        logging.info("Keychain item added for %s", self.service)

    def retrieve(self) -> Optional[str]:
        status, data = self.backend.find(self.service)
        if status == ERR_SEC_ITEM_NOT_FOUND:
            return None
        if status != ERR_SEC_SUCCESS:
            raise UnexpectedStatusError(status)
        if data is None:
            return None
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError:
            logging.error("Keychain item for %s is not valid UTF-8", self.service)
            raise UnexpectedStatusError(ERR_SEC_DECODE)

    def require(self) -> str:
        key = self.retrieve()
        if key is None:
            raise ItemNotFoundError()
        return key

    def update(self, key: str) -> None:
        status = self.backend.update(self.service, key.encode("utf-8"))
        if status != ERR_SEC_SUCCESS:
            raise UnexpectedStatusError(status)
        logging.info("Keychain item updated for %s", self.service)

    def delete(self) -> None:
        status = self.backend.delete(self.service)
        if status not in (ERR_SEC_SUCCESS, ERR_SEC_ITEM_NOT_FOUND):
            raise UnexpectedStatusError(status)
        logging.info("Keychain item deleted for %s (status=%d)", self.service, status)
