"""Mode registry: identity -> ModeDefinition.

The registry is filled once at startup and then frozen. Freezing
resolves every mode's tool set into a tagged lookup table, so turn
handling only ever does an identity lookup and a switch on ToolKind.
After freezing the registry is read-only and safe to share between
sessions without locking.
"""

import logging
from collections.abc import Iterable
from types import MappingProxyType
from typing import Mapping, Optional

from modeflow.core.errors import (
    DuplicateModeError,
    InvalidModeDefinitionError,
    RegistryFrozenError,
    UnknownModeError,
)
from modeflow.modes.definition import (
    ModeDefinition,
    ModeEntryTool,
    OrdinaryTool,
    ResolvedTool,
    ToolKind,
    ToolSpec,
)


logger = logging.getLogger(__name__)


class ModeRegistry:
    """Holds every mode an application declares."""

    def __init__(self, modes: Optional[Iterable[ModeDefinition]] = None):
        self._modes: dict[str, ModeDefinition] = {}
        self._tool_tables: dict[str, Mapping[str, ResolvedTool]] = {}
        self._frozen = False

        for mode in modes or ():
            self.register(mode)

    @classmethod
    def from_modes(cls, modes: Iterable[ModeDefinition]) -> "ModeRegistry":
        """Build and freeze a registry in one step."""
        registry = cls(modes)
        registry.freeze()
        return registry

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, mode: ModeDefinition) -> ModeDefinition:
        """Add a mode.

        Raises:
            RegistryFrozenError: If the registry was already frozen
            DuplicateModeError: If the identity is already registered
            InvalidModeDefinitionError: If the identity is empty
        """
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot register mode {mode.identity!r}: registry is frozen"
            )
        if not mode.identity:
            raise InvalidModeDefinitionError("Mode identity must not be empty")
        if mode.identity in self._modes:
            raise DuplicateModeError(mode.identity)

        self._modes[mode.identity] = mode
        logger.debug(f"Registered mode {mode.identity}")
        return mode

    def freeze(self) -> None:
        """Resolve all tool sets and make the registry read-only.

        Idempotent. Fails if a mode-entry tool names an unknown mode or a
        mode declares two tools with the same name.
        """
        if self._frozen:
            return

        tables = {
            identity: MappingProxyType(self._resolve_tools(mode))
            for identity, mode in self._modes.items()
        }
        self._tool_tables = tables
        self._frozen = True
        logger.info(f"Mode registry frozen with {len(self._modes)} modes")

    def _resolve_tools(self, mode: ModeDefinition) -> dict[str, ResolvedTool]:
        table: dict[str, ResolvedTool] = {}

        for tool in mode.tools:
            if isinstance(tool, ModeEntryTool):
                target = self._modes.get(tool.mode)
                if target is None:
                    raise UnknownModeError(tool.mode, mode=mode.identity)
                resolved = ResolvedTool(
                    spec=ToolSpec(
                        name=target.identity,
                        description=target.description,
                        parameter_schema=target.parameter_schema,
                    ),
                    kind=ToolKind.MODE_ENTRY,
                    target_mode=target.identity,
                )
            elif isinstance(tool, OrdinaryTool):
                resolved = ResolvedTool(
                    spec=ToolSpec(
                        name=tool.name,
                        description=tool.description,
                        parameter_schema=tool.parameter_schema,
                    ),
                    kind=ToolKind.ORDINARY,
                    ordinary=tool,
                )
            else:
                raise InvalidModeDefinitionError(
                    f"Mode {mode.identity!r} declares an unsupported tool: {tool!r}",
                    mode=mode.identity,
                )

            if resolved.name in table:
                raise InvalidModeDefinitionError(
                    f"Mode {mode.identity!r} declares tool {resolved.name!r} twice",
                    mode=mode.identity,
                    details={"tool": resolved.name},
                )
            table[resolved.name] = resolved

        return table

    def resolve(self, identity: str) -> ModeDefinition:
        """Look up a mode by identity.

        Raises:
            UnknownModeError: If no mode has this identity
        """
        try:
            return self._modes[identity]
        except KeyError:
            raise UnknownModeError(identity) from None

    def tools_for(self, identity: str) -> Mapping[str, ResolvedTool]:
        """Get the resolved tool table of a mode (registry must be frozen)."""
        if not self._frozen:
            raise RegistryFrozenError(
                "Tool tables are only available after the registry is frozen"
            )
        self.resolve(identity)
        return self._tool_tables[identity]

    def __contains__(self, identity: object) -> bool:
        return identity in self._modes

    def __iter__(self):
        return iter(self._modes.values())

    def __len__(self) -> int:
        return len(self._modes)

    @property
    def identities(self) -> list[str]:
        return list(self._modes)
