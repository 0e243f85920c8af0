import hmac
from typing import Optional

from fastapi import Depends, Header, Query

from nefes_backend.core.context import AppContext, get_context
from nefes_backend.core.errors import AdminUnauthorizedError
from nefes_backend.core.logger import get_logger

logger = get_logger(__name__)

ADMIN_TOKEN = "admin-authenticated"


def check_admin_password(provided: Optional[str], expected: Optional[str]) -> bool:
    # An unset secret locks the admin surface instead of falling back to a default
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


async def require_admin(
    x_admin_password: Optional[str] = Header(None),
    password: Optional[str] = Query(None, include_in_schema=False),
    context: AppContext = Depends(get_context),
) -> None:
    provided = x_admin_password or password
    if not check_admin_password(provided, context.settings.ADMIN_PASSWORD):
        logger.warning("Rejected admin request with missing or wrong password")
        raise AdminUnauthorizedError()
