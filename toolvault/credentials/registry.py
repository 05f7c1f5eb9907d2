"""Backend selection by name.

The ``credsStore`` setting is resolved once, at startup, into a concrete
backend instance through this registry. Call sites never switch on the
backend name themselves.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

from toolvault.exceptions import ConfigurationError

from .backend import CredentialBackend
from .file_backend import FileBackend
from .helper_backend import HELPER_BACKENDS, HelperBackend

if TYPE_CHECKING:
    from toolvault.config.settings import ToolvaultSettings

BackendFactory = Callable[["ToolvaultSettings"], CredentialBackend]

CREDENTIALS_FILE_NAME = "credentials.json"

_REGISTRY: dict[str, BackendFactory] = {}


def register_backend(name: str, factory: BackendFactory) -> None:
    """Register (or replace) the factory used for ``credsStore: <name>``."""
    _REGISTRY[name] = factory


def available_backends() -> list[str]:
    return sorted(_REGISTRY)


def create_backend(settings: ToolvaultSettings) -> CredentialBackend:
    """Instantiate the backend selected by ``settings.creds_store``.

    Raises:
        ConfigurationError: If no backend is registered under that name
    """
    factory = _REGISTRY.get(settings.creds_store)
    if factory is None:
        raise ConfigurationError(
            f"Unknown credsStore {settings.creds_store!r}; "
            f"expected one of: {', '.join(available_backends())}"
        )
    return factory(settings)


def _file_backend(settings: ToolvaultSettings) -> CredentialBackend:
    return FileBackend(settings.resolved_config_dir / CREDENTIALS_FILE_NAME)


def _helper_factory(helper_name: str) -> BackendFactory:
    def factory(settings: ToolvaultSettings) -> CredentialBackend:
        return HelperBackend(helper_name)

    return factory


register_backend("file", _file_backend)
for _name in HELPER_BACKENDS:
    register_backend(_name, _helper_factory(_name))
