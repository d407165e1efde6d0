from leadflow_app.infrastructure.db import (
    DataConnectionError,
    DataExecutionError,
    DataQueryError,
    SQLClient,
    SQLSession,
)

__all__ = [
    "DataConnectionError",
    "DataExecutionError",
    "DataQueryError",
    "SQLClient",
    "SQLSession",
]
