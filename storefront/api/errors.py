"""
ServiceError -> HTTPException translation shared by the routers
"""
import logging

from fastapi import HTTPException

from storefront.core.exceptions import ServiceError

logger = logging.getLogger(__name__)


def http_error(error: ServiceError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.to_detail())


def unexpected_error(action: str) -> HTTPException:
    """Log the active exception with traceback and hide it from the client"""
    logger.exception(f"Unexpected error {action}")
    return HTTPException(status_code=500, detail={"error": f"Internal server error {action}"})
