"""Custom exception hierarchy for toolvault.

Exception Hierarchy:
    ToolvaultError (base)
    ├── ConfigurationError
    └── CredentialError
        ├── CredentialNotFoundError
        ├── InvalidContextError
        ├── BackendNotAvailableError
        ├── StoreCorruptError
        ├── HelperProtocolError
        ├── OverrideParseError
        ├── OverrideEnvMissingError
        ├── ProviderExecutionError
        ├── ProviderOutputError
        └── ResolutionCancelledError

Resolution failures are scoped to the tool that needed the credential. The
caller decides whether a failure aborts the run or prompts the user again;
nothing in this package retries automatically.

Example Usage:
    >>> from toolvault.exceptions import CredentialNotFoundError
    >>> try:
    ...     await store.delete("default", "my-tool")
    ... except CredentialNotFoundError as e:
    ...     print(e.message)
"""


class ToolvaultError(Exception):
    """Base exception for all toolvault errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        """Initialize exception.

        Args:
            message: Error message
        """
        self.message = message
        super().__init__(message)


class ConfigurationError(ToolvaultError):
    """Configuration-related errors.

    Examples:
        - Configuration file is not valid JSON
        - ``credsStore`` names an unknown backend
        - Invalid field values
    """

    pass


class CredentialError(ToolvaultError):
    """Credential-related errors.

    Base class for everything that can go wrong while resolving, storing,
    listing or deleting a credential.

    Attributes:
        message: Human-readable error description
        reference: What failed, usually ``context/tool`` or an override block
        suggestion: Optional suggestion for resolution
    """

    def __init__(
        self,
        message: str,
        reference: str | None = None,
        suggestion: str | None = None,
    ) -> None:
        """Initialize exception.

        Args:
            message: Error message
            reference: The credential or expression that failed
            suggestion: Optional suggestion for resolution
        """
        self.reference = reference
        self.suggestion = suggestion

        full_message = message
        if reference:
            full_message = f"{message} (reference: {reference})"
        if suggestion:
            full_message = f"{full_message}\nSuggestion: {suggestion}"

        super().__init__(full_message)
        # Preserve original message (super sets self.message to full_message)
        self.message = message


class CredentialNotFoundError(CredentialError):
    """No record exists for the requested context and tool."""

    pass


class InvalidContextError(CredentialError):
    """Credential context name is empty or blank."""

    pass


class BackendNotAvailableError(CredentialError):
    """Storage backend (or its helper executable) cannot be reached."""

    pass


class StoreCorruptError(CredentialError):
    """Persisted credential document cannot be parsed."""

    pass


class HelperProtocolError(CredentialError):
    """Credential helper exited non-zero or returned a malformed response."""

    pass


class OverrideParseError(CredentialError):
    """Credential override expression is malformed.

    Raised before any resolution happens, so the whole run fails at startup.
    """

    pass


class OverrideEnvMissingError(CredentialError):
    """An override refers to an environment variable that is not set.

    Only raised when the affected tool is actually resolved.
    """

    pass


class ProviderExecutionError(CredentialError):
    """Credential provider tool failed to run or exited non-zero.

    Attributes:
        provider: Name of the provider tool
        returncode: Exit status, if the process ran at all
    """

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        returncode: int | None = None,
        reference: str | None = None,
        suggestion: str | None = None,
    ) -> None:
        self.provider = provider
        self.returncode = returncode
        super().__init__(message, reference=reference, suggestion=suggestion)


class ProviderOutputError(CredentialError):
    """Credential provider printed something other than ``{"env": {...}}``."""

    pass


class ResolutionCancelledError(CredentialError):
    """The resolution this caller was waiting on was cancelled."""

    pass
