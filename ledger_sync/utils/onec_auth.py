# utils/onec_auth.py
import json
import logging
import secrets
from typing import Optional

from fastapi import Request

from ledger_sync.config import settings
from ledger_sync.exceptions import UnauthorizedError

logger = logging.getLogger(__name__)


async def _secret_from_request(request: Request) -> Optional[str]:
    secret = request.query_params.get("secret")
    if secret:
        return secret
    if request.method in ("GET", "HEAD"):
        return None
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if isinstance(body, dict) and isinstance(body.get("secret"), str):
        return body["secret"]
    return None


# Shared-secret guard for every call coming from the ledger system.
# Runs before payload validation, so a bad secret never creates a sync run.
async def require_onec_secret(request: Request) -> None:
    expected = settings.ONEC_SECRET
    supplied = await _secret_from_request(request)

    if not expected or not supplied:
        logger.warning("Rejected %s %s: missing secret", request.method, request.url.path)
        raise UnauthorizedError()
    if not secrets.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8")):
        logger.warning("Rejected %s %s: secret mismatch", request.method, request.url.path)
        raise UnauthorizedError()
