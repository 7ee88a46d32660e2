"""Utils package initialization."""
from vrstore.utils.logger import get_logger, LayerLogger, set_trace_id, get_trace_id
from vrstore.utils.file_size import parse_file_size, format_file_size

__all__ = [
    "get_logger",
    "LayerLogger",
    "set_trace_id",
    "get_trace_id",
    "parse_file_size",
    "format_file_size",
]
