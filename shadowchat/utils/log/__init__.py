from .common import LogType
from .logging_tool import configure, get_logger, rich_logger
from .rich_tool import print_dict, print_header

__all__ = [
    "LogType",
    "configure",
    "get_logger",
    "rich_logger",
    "print_dict",
    "print_header",
]
