from .helpers import (
    serialize_doc,
    success_response,
    error_response,
)
from .logger import Logger, configure_logging

__all__ = [
    "serialize_doc",
    "success_response",
    "error_response",
    "Logger",
    "configure_logging",
]
