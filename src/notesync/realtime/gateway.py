"""
Session gateway: turns a connection-time credential into an Identity.

The credential comes from the ``token`` query parameter or, failing that,
from the ``Authorization`` header. Verification happens once per connection.
"""

import logging
from typing import Mapping, Optional

from ..core.exceptions import UnauthorizedError
from ..security import Identity, InvalidTokenError, verify_token

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def extract_credential(
    query_params: Optional[Mapping[str, str]], headers: Optional[Mapping[str, str]]
) -> Optional[str]:
    """Return the raw credential, or None when neither source carries one."""
    token = ((query_params or {}).get("token") or "").strip()
    if token:
        return token

    headers = headers or {}
    header = headers.get("authorization") or headers.get("Authorization") or ""
    if header.startswith(BEARER_PREFIX):
        header = header[len(BEARER_PREFIX):]
    return header.strip() or None


def authenticate(
    query_params: Optional[Mapping[str, str]], headers: Optional[Mapping[str, str]]
) -> Identity:
    """Verify the connection credential. Raises UnauthorizedError."""
    credential = extract_credential(query_params, headers)
    if credential is None:
        raise UnauthorizedError("No token")

    try:
        return verify_token(credential)
    except InvalidTokenError as exc:
        logger.info("Rejected realtime credential: %s", exc)
        raise UnauthorizedError("Unauthorized")
