"""Credential resolution and storage for tool runs.

Tools declare the provider tools that produce their secrets. At run time
``CredentialManager.resolve`` returns the environment a tool needs, taken
from (in order) a command-line override, this run's cache, the persistent
store, or the provider tools themselves.

Storage backends:
    - file: JSON document in the per-user config directory (default)
    - osxkeychain, wincred, secretservice, pass: external
      ``toolvault-credential-<name>`` helper executables
"""

from .backend import CredentialBackend, CredentialRecord
from .exceptions import (
    BackendNotAvailableError,
    CredentialError,
    CredentialNotFoundError,
    HelperProtocolError,
    InvalidContextError,
    OverrideEnvMissingError,
    OverrideParseError,
    ProviderExecutionError,
    ProviderOutputError,
    ResolutionCancelledError,
    StoreCorruptError,
)
from .file_backend import FileBackend
from .helper_backend import HELPER_BACKENDS, HelperBackend
from .locator import HelperLocator, SearchPathLocator, helper_executable_name
from .manager import CredentialManager, ToolSource
from .overrides import (
    LiteralEntry,
    MappingEntry,
    OverrideResolver,
    PassthroughEntry,
    ToolOverride,
    parse_overrides,
)
from .provider import (
    ExecutionResult,
    ProviderOutput,
    ProviderRunner,
    SubprocessToolExecutor,
    ToolExecutor,
)
from .registry import available_backends, create_backend, register_backend
from .store import DEFAULT_CONTEXT, ContextStore, CredentialSummary

__all__ = [
    # Resolution
    "CredentialManager",
    "ToolSource",
    "OverrideResolver",
    "parse_overrides",
    "LiteralEntry",
    "PassthroughEntry",
    "MappingEntry",
    "ToolOverride",
    "ProviderRunner",
    "ProviderOutput",
    "ToolExecutor",
    "SubprocessToolExecutor",
    "ExecutionResult",
    # Storage
    "ContextStore",
    "CredentialSummary",
    "DEFAULT_CONTEXT",
    "CredentialBackend",
    "CredentialRecord",
    "FileBackend",
    "HelperBackend",
    "HELPER_BACKENDS",
    "HelperLocator",
    "SearchPathLocator",
    "helper_executable_name",
    "register_backend",
    "create_backend",
    "available_backends",
    # Exceptions
    "CredentialError",
    "CredentialNotFoundError",
    "InvalidContextError",
    "BackendNotAvailableError",
    "StoreCorruptError",
    "HelperProtocolError",
    "OverrideParseError",
    "OverrideEnvMissingError",
    "ProviderExecutionError",
    "ProviderOutputError",
    "ResolutionCancelledError",
]
