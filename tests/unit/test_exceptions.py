"""Tests for toolvault.exceptions module."""

import pytest

from toolvault.exceptions import (
    BackendNotAvailableError,
    ConfigurationError,
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
    ToolvaultError,
)


class TestToolvaultError:
    """Test base ToolvaultError class."""

    def test_init_with_message(self):
        """Test initialization with message."""
        error = ToolvaultError("Test error message")

        assert error.message == "Test error message"
        assert str(error) == "Test error message"

    def test_exception_can_be_raised(self):
        """Test that exception can be raised and caught."""
        with pytest.raises(ToolvaultError) as exc_info:
            raise ToolvaultError("Test error")

        assert exc_info.value.message == "Test error"


class TestConfigurationError:
    """Test ConfigurationError class."""

    def test_configuration_error_can_be_caught_as_base(self):
        """Test that ConfigurationError can be caught as ToolvaultError."""
        with pytest.raises(ToolvaultError):
            raise ConfigurationError("Config error")

    def test_configuration_error_is_not_credential_error(self):
        """Test the two branches of the hierarchy stay separate."""
        assert not isinstance(ConfigurationError("x"), CredentialError)


class TestCredentialError:
    """Test CredentialError class."""

    def test_message_only(self):
        """Test CredentialError with message only."""
        error = CredentialError("Token missing")

        assert error.message == "Token missing"
        assert error.reference is None
        assert error.suggestion is None
        assert str(error) == "Token missing"

    def test_with_reference(self):
        """Test the reference is appended to the full message."""
        error = CredentialError("Token missing", reference="default/my-tool")

        assert error.message == "Token missing"
        assert str(error) == "Token missing (reference: default/my-tool)"

    def test_with_reference_and_suggestion(self):
        """Test the full message carries the suggestion on its own line."""
        error = CredentialError(
            "Token missing",
            reference="default/my-tool",
            suggestion="Run the provider again",
        )

        assert error.suggestion == "Run the provider again"
        assert str(error) == (
            "Token missing (reference: default/my-tool)\nSuggestion: Run the provider again"
        )


@pytest.mark.parametrize(
    "error_class",
    [
        CredentialNotFoundError,
        InvalidContextError,
        BackendNotAvailableError,
        StoreCorruptError,
        HelperProtocolError,
        OverrideParseError,
        OverrideEnvMissingError,
        ProviderExecutionError,
        ProviderOutputError,
        ResolutionCancelledError,
    ],
)
def test_credential_errors_share_base(error_class):
    """Test every credential failure is a CredentialError."""
    error = error_class("failed", reference="ref")

    assert isinstance(error, CredentialError)
    assert isinstance(error, ToolvaultError)
    assert error.reference == "ref"


class TestProviderExecutionError:
    """Test ProviderExecutionError attributes."""

    def test_attributes(self):
        """Test provider and returncode are kept."""
        error = ProviderExecutionError("exited", provider="gh-token", returncode=2)

        assert error.provider == "gh-token"
        assert error.returncode == 2
        assert error.message == "exited"

    def test_defaults(self):
        """Test provider and returncode default to None."""
        error = ProviderExecutionError("could not start")

        assert error.provider is None
        assert error.returncode is None


def test_credentials_package_reexports():
    """Test the credentials package exposes the same classes."""
    from toolvault.credentials import exceptions as credential_exceptions

    assert credential_exceptions.CredentialError is CredentialError
    assert credential_exceptions.StoreCorruptError is StoreCorruptError
