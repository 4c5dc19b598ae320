from .logger import setup_logger
from .json_utils import parse_json_response

__all__ = ["setup_logger", "parse_json_response"]
