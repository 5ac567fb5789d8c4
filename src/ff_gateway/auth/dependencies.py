"""FastAPI dependency: require_cron_secret.

Scheduled jobs authenticate with ``Authorization: Bearer <CRON_SECRET>``.
The comparison is constant-time; an unset secret rejects every caller.

Usage:
    @router.post("/prepare", dependencies=[Depends(require_cron_secret)])
"""

import hmac

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config.settings import Settings
from src.ff_common.errors import UnauthorizedError

bearer_scheme = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


async def require_cron_secret(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    settings: Settings = Depends(get_app_settings),
) -> None:
    expected = settings.CRON_SECRET
    if not expected or credentials is None:
        raise UnauthorizedError()
    if not hmac.compare_digest(credentials.credentials.encode(), expected.encode()):
        raise UnauthorizedError()
