from .client import (
    DecodeError,
    RemoteError,
    StatusError,
    TransportError,
    build_session,
    fetch_record,
    fetch_user,
    fetch_video,
    submit_join,
)
from .config import ConfigError, load_config, validate_runtime
from .engine import IdleWatchdog, IndexEngine, WorkQueue, index_stream
from .input_parser import iter_work_items, parse_inputs_with_errors, parse_line
from .models import (
    Config,
    JoinedRecord,
    ParseFailure,
    RunReport,
    UserRecord,
    VideoRecord,
    WorkItem,
)
from .processor import process_item

__all__ = [
    "Config",
    "ConfigError",
    "DecodeError",
    "IdleWatchdog",
    "IndexEngine",
    "JoinedRecord",
    "ParseFailure",
    "RemoteError",
    "RunReport",
    "StatusError",
    "TransportError",
    "UserRecord",
    "VideoRecord",
    "WorkItem",
    "WorkQueue",
    "build_session",
    "fetch_record",
    "fetch_user",
    "fetch_video",
    "index_stream",
    "iter_work_items",
    "load_config",
    "parse_inputs_with_errors",
    "parse_line",
    "process_item",
    "submit_join",
    "validate_runtime",
]
