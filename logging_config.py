import logging
import sys
from pprint import pformat

from config import settings

REDACTED_HEADERS = {"authorization", "cookie"}

# Configure logging
def setup_logging():
    # Create logger
    logger = logging.getLogger("waste_tracker")
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    # Avoid duplicate handlers when the module is reloaded
    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.DEBUG)

        formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(formatter)

        logger.addHandler(console_handler)

    return logger

# Get the logger
logger = setup_logging()

def _safe_headers(headers):
    return {
        key: ("********" if key.lower() in REDACTED_HEADERS else value)
        for key, value in dict(headers).items()
    }

def log_request_info(request, message="Request received"):
    """Log the request line, and headers at debug level"""
    logger.info(f"{message}: {request.method} {request.url.path}")
    logger.debug(f"Request headers: {pformat(_safe_headers(request.headers))}")

def log_response_info(response, message="Response sent"):
    """Log the response status, and headers at debug level"""
    logger.info(f"{message}: Status {response.status_code}")
    logger.debug(f"Response headers: {pformat(dict(response.headers))}")
