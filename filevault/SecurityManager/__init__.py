"""
SecurityManager - Shared-secret access check for FileVault.

Provides:
- HTTP Basic credential parsing
- Constant-time comparison against the configured user name and password
- Fail-closed behaviour when no password is configured

Usage:
    from filevault.SecurityManager import SharedSecretAuth

    auth = SharedSecretAuth("admin", "s3cret")
    if not auth.check_header(request.headers.get("Authorization")):
        ...  # 401
"""

import base64
import binascii
import secrets
from typing import Optional, Tuple

from filevault.shared.gate import GateLogger

_log = GateLogger.get("SecurityManager")

REALM = "FileVault"


def parse_basic_header(header: Optional[str]) -> Optional[Tuple[str, str]]:
    """
    Parse an HTTP Basic Authorization header.

    Args:
        header: Raw header value ("Basic base64(user:pass)")

    Returns:
        (username, password) or None if the header is missing or malformed
    """
    if not header:
        return None

    scheme, _, encoded = header.strip().partition(" ")
    if scheme.lower() != "basic" or not encoded:
        return None

    try:
        decoded = base64.b64decode(encoded.strip(), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None

    username, sep, password = decoded.partition(":")
    if not sep:
        return None
    return username, password


class SharedSecretAuth:
    """
    Single shared credential gating every protected request.

    With no password configured every check fails.
    """

    def __init__(self, username: str, password: Optional[str]):
        self._username = username or ""
        self._password = password
        if not password:
            _log.warning("No VAULT_PASSWORD configured; all protected requests will be denied")

    @property
    def realm(self) -> str:
        return REALM

    @property
    def is_configured(self) -> bool:
        return bool(self._password)

    def check(self, username: str, password: str) -> bool:
        """Compare credentials in constant time."""
        if not self._password:
            return False
        user_ok = secrets.compare_digest(username.encode("utf-8"), self._username.encode("utf-8"))
        pass_ok = secrets.compare_digest(password.encode("utf-8"), self._password.encode("utf-8"))
        return user_ok and pass_ok

    def check_header(self, header: Optional[str]) -> bool:
        """Validate a raw Authorization header."""
        credentials = parse_basic_header(header)
        if credentials is None:
            return False
        return self.check(*credentials)


__all__ = ["SharedSecretAuth", "parse_basic_header", "REALM"]
