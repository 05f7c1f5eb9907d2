"""Credential-related exceptions.

This module re-exports credential exceptions from toolvault.exceptions so
that backend and resolver code can import them from one place.
"""

from toolvault.exceptions import (
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

__all__ = [
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
