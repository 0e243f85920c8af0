import logging
import time

from fastapi import Request

from nefes_backend.core.logger import get_logger

logger = get_logger("request_logger")


def _client_address(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code in (401, 403):
        return logging.WARNING
    return logging.INFO


async def log_requests(request: Request, call_next):
    # Path only: the admin password may travel in the query string
    started = time.perf_counter()
    route = f"{request.method} {request.url.path}"
    logger.info(f"{route} from {_client_address(request)}")
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.log(_level_for(response.status_code), f"{route} -> {response.status_code} ({elapsed_ms:.1f} ms)")
    response.headers["X-Response-Time"] = f"{elapsed_ms:.1f}ms"
    return response
