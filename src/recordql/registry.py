"""Registry of compiled types and per-build compilation state."""

from __future__ import annotations

import logging
from collections.abc import Iterator

from graphql import GraphQLInputObjectType, GraphQLObjectType

from recordql.types import TargetMode

logger = logging.getLogger(__name__)

CompiledObject = GraphQLObjectType | GraphQLInputObjectType


class TypeRegistry:
    """Registry of all types compiled during one schema build.

    Names are registered names: input-mode records carry the input suffix so
    output and input definitions of one record never collide. Entries are
    never evicted; build an independent schema with a fresh registry.
    """

    def __init__(self) -> None:
        self._types: dict[str, CompiledObject] = {}
        self._stubs: dict[str, str] = {}  # stub name -> base registered name
        self.diagnostics: list[Exception] = []

    def lookup(self, name: str) -> CompiledObject | None:
        """Get a compiled type by registered name."""
        return self._types.get(name)

    def register(self, name: str, type_: CompiledObject) -> CompiledObject:
        """Register a compiled type; the first registration of a name wins."""
        existing = self._types.get(name)
        if existing is not None:
            if existing is not type_:
                logger.warning(
                    "Type '%s' has already been defined; keeping the first definition", name
                )
            return existing
        self._types[name] = type_
        return type_

    def register_stub(self, name: str, type_: CompiledObject, base: str) -> CompiledObject:
        """Register a placeholder standing in for ``base`` until patching."""
        registered = self.register(name, type_)
        if registered is type_:
            self._stubs[name] = base
        return registered

    def is_stub(self, name: str) -> bool:
        """Check if a registered name belongs to a placeholder."""
        return name in self._stubs

    def stub_base(self, name: str) -> str | None:
        """Registered name a stub stands in for."""
        return self._stubs.get(name)

    def all(self) -> Iterator[tuple[str, CompiledObject]]:
        """Iterate (name, type) pairs in registration order."""
        return iter(list(self._types.items()))

    def objects(self) -> Iterator[tuple[str, CompiledObject]]:
        """Iterate the canonical (non-stub) entries."""
        return ((name, t) for name, t in self.all() if name not in self._stubs)

    def list_types(self) -> list[str]:
        """List all registered type names."""
        return list(self._types.keys())

    def __contains__(self, name: str) -> bool:
        return name in self._types

    def __len__(self) -> int:
        return len(self._types)


class CycleGuard:
    """Record names being compiled on the active call path."""

    def __init__(self) -> None:
        self._active: set[str] = set()

    def enter(self, name: str) -> bool:
        """Mark ``name`` in progress; False if it already was (recursion)."""
        if name in self._active:
            return False
        self._active.add(name)
        return True

    def exit(self, name: str) -> None:
        self._active.discard(name)

    def clear(self) -> None:
        self._active.clear()

    def __contains__(self, name: str) -> bool:
        return name in self._active

    def __len__(self) -> int:
        return len(self._active)


class CompilationContext:
    """State shared across the call tree of one root compile call.

    Not safe for concurrent use: compile calls against one registry must be
    serialized by the caller.
    """

    def __init__(self, mode: TargetMode, registry: TypeRegistry) -> None:
        self.mode = mode
        self.registry = registry
        self.guard = CycleGuard()
        self.depth = 0

    @property
    def indent(self) -> str:
        """Log prefix for the current nesting depth."""
        return "   " * self.depth
