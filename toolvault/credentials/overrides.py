"""Credential overrides supplied on the command line.

An override expression sets or remaps the environment of one or more tools
and bypasses stored credentials and provider tools entirely::

    toolA:ENV_VAR_1=value1,ENV_VAR_2=value2;toolB:ENV_VAR_1=value3
    toolA:ENV_VAR_1                  # take ENV_VAR_1 from our environment
    toolA:ENV_VAR_1->TOOL_A_VAR      # ENV_VAR_1 gets the value of TOOL_A_VAR

Blocks are separated by ``;`` and entries by ``,``. When a tool appears in
several blocks the last block wins; blocks are never merged.

Parsing happens once at startup. Environment lookups for passthrough and
mapping entries happen only when a tool is resolved, so a missing variable
only matters if that tool actually runs.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

import structlog

from .exceptions import OverrideEnvMissingError, OverrideParseError

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class LiteralEntry:
    """``KEY=VALUE``"""

    key: str
    value: str


@dataclass(frozen=True)
class PassthroughEntry:
    """``KEY``"""

    key: str


@dataclass(frozen=True)
class MappingEntry:
    """``KEY->SOURCE_KEY``"""

    key: str
    source_key: str


OverrideEntry = LiteralEntry | PassthroughEntry | MappingEntry


@dataclass(frozen=True)
class ToolOverride:
    tool_name: str
    entries: tuple[OverrideEntry, ...]


OverrideSet = dict[str, ToolOverride]


def _parse_entry(text: str, block: str) -> OverrideEntry:
    eq = text.find("=")
    arrow = text.find("->")

    if eq != -1 and (arrow == -1 or eq < arrow):
        key = text[:eq].strip()
        if not key:
            raise OverrideParseError(f"Empty key in entry {text!r}", reference=block)
        return LiteralEntry(key=key, value=text[eq + 1 :])

    if arrow != -1:
        key = text[:arrow].strip()
        source = text[arrow + 2 :].strip()
        if not key:
            raise OverrideParseError(f"Empty key in entry {text!r}", reference=block)
        if not source:
            raise OverrideParseError(
                f"Mapping entry {text!r} has nothing after '->'", reference=block
            )
        return MappingEntry(key=key, source_key=source)

    key = text.strip()
    if not key:
        raise OverrideParseError("Empty entry", reference=block)
    return PassthroughEntry(key=key)


def parse_overrides(expression: str | None) -> OverrideSet:
    """Parse an override expression.

    Raises:
        OverrideParseError: Naming the offending block

    Example:
        >>> overrides = parse_overrides("toolA:X=1;toolB:Y->Z")
        >>> overrides["toolB"].entries
        (MappingEntry(key='Y', source_key='Z'),)
    """
    overrides: OverrideSet = {}
    if not expression:
        return overrides

    for raw_block in expression.split(";"):
        block = raw_block.strip()
        if not block:
            continue

        tool_name, sep, body = block.partition(":")
        tool_name = tool_name.strip()
        if not sep:
            raise OverrideParseError(
                "Override block is missing ':' after the tool name",
                reference=block,
                suggestion="Use the form tool:KEY=value,KEY2->SOURCE,KEY3",
            )
        if not tool_name:
            raise OverrideParseError("Override block has an empty tool name", reference=block)

        entries = tuple(_parse_entry(text, block) for text in body.split(","))
        # Later blocks replace earlier ones wholesale
        overrides.pop(tool_name, None)
        overrides[tool_name] = ToolOverride(tool_name=tool_name, entries=entries)

    return overrides


class OverrideResolver:
    """Answer "is there an override for this tool, and what does it resolve to?"

    Args:
        expression: Raw override expression; None or empty means no overrides
        environ: Where passthrough and mapping entries read from. Defaults to
            the live process environment at lookup time.
    """

    def __init__(
        self,
        expression: str | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.overrides = parse_overrides(expression)
        self._environ = environ

    @property
    def tool_names(self) -> list[str]:
        return list(self.overrides)

    def __contains__(self, tool_name: str) -> bool:
        return tool_name in self.overrides

    def resolve(self, tool_name: str) -> dict[str, str] | None:
        """Return the override environment for a tool, or None if it has none.

        Raises:
            OverrideEnvMissingError: If a referenced variable is not set
        """
        override = self.overrides.get(tool_name)
        if override is None:
            return None

        environ = self._environ if self._environ is not None else os.environ
        env: dict[str, str] = {}

        for entry in override.entries:
            if isinstance(entry, LiteralEntry):
                env[entry.key] = entry.value
                continue

            source = entry.source_key if isinstance(entry, MappingEntry) else entry.key
            value = environ.get(source)
            if value is None:
                raise OverrideEnvMissingError(
                    f"Environment variable {source!r} required by the override "
                    f"for tool {tool_name!r} is not set",
                    reference=tool_name,
                    suggestion=f"export {source}=...",
                )
            env[entry.key] = value

        log.debug("credential_override_applied", tool=tool_name, env_names=sorted(env))
        return env
