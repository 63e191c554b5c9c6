"""
Index synchronization.

Import the orchestrator and reindexer from their modules; this package only
re-exports configuration and error types so that document sources can use
them without pulling in the index layer.
"""

from .config import SyncConfig, SiteConfig, SplitterConfig
from .error_tracker import (
    ErrorTracker, ErrorSeverity, SyncException, ConfigurationError, NotConnectedError,
    DocumentFetchError, AssemblyError, IndexOperationError,
)
