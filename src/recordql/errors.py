"""Errors raised (or recorded) while compiling record graphs."""

from __future__ import annotations


class CompileError(Exception):
    """Base class for compilation failures."""


class InputKindError(CompileError, TypeError):
    """The argument is not a record-shaped value."""

    def __init__(self, value: object, reason: str = "") -> None:
        self.value = value
        detail = f"; {reason}" if reason else ""
        super().__init__(f"Expected a record type, got {value!r}{detail}")


class EmptyRecordError(CompileError):
    """A record resolved to zero mappable fields."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Record '{name}' had 0 mappable fields")


class RecordDescriptionError(CompileError):
    """A field's declared type could not be worked out."""


class UnresolvedStubError(CompileError):
    """The patch pass found no canonical type for a stub.

    Recorded as a diagnostic, never raised out of a compile call.
    """

    def __init__(self, owner: str, field_name: str, stub_name: str) -> None:
        self.owner = owner
        self.field_name = field_name
        self.stub_name = stub_name
        super().__init__(
            f"No canonical type for stub '{stub_name}' referenced by '{owner}.{field_name}'"
        )


class UnsupportedKindWarning(UserWarning):
    """A primitive kind has no scalar mapping and was degraded to String."""

    def __init__(self, kind: object, field_name: str = "") -> None:
        self.kind = kind
        self.field_name = field_name
        where = f" (field '{field_name}')" if field_name else ""
        super().__init__(f"Don't know how to map kind {kind}{where}; using String")
