"""Compiler configuration."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from recordql.types import TargetMode

LOG_LEVEL_ENV = "RECORDQL_LOG_LEVEL"
INPUT_SUFFIX_ENV = "RECORDQL_INPUT_SUFFIX"

PACKAGE_LOGGER = "recordql"


@dataclass
class CompilerConfig:
    """Naming conventions and logging for one schema build."""

    stub_suffix: str = "Stub"
    input_suffix: str = "_Input"
    stub_field_name: str = "aField"  # every object needs at least one field
    log_level: str | int | None = None

    def type_name(self, name: str, mode: TargetMode) -> str:
        """Registered name of a record for the given target mode."""
        if mode is TargetMode.INPUT:
            return name + self.input_suffix
        return name

    def stub_name(self, name: str) -> str:
        """Name of the placeholder type for a registered name."""
        return name + self.stub_suffix

    def stub_base(self, stub_name: str) -> str | None:
        """Strip the stub suffix, or None if the name isn't stub-shaped."""
        if stub_name.endswith(self.stub_suffix) and len(stub_name) > len(self.stub_suffix):
            return stub_name[: -len(self.stub_suffix)]
        return None

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> CompilerConfig:
        """Build a config from RECORDQL_* environment variables."""
        env = os.environ if environ is None else environ
        config = cls()
        level = env.get(LOG_LEVEL_ENV)
        if level:
            config.log_level = level.upper()
        suffix = env.get(INPUT_SUFFIX_ENV)
        if suffix:
            config.input_suffix = suffix
        return config

    @contextmanager
    def logging_scope(self) -> Iterator[None]:
        """Apply ``log_level`` to the package logger for the duration of a build."""
        if self.log_level is None:
            yield
            return
        logger = logging.getLogger(PACKAGE_LOGGER)
        prior = logger.level
        logger.setLevel(self.log_level)
        try:
            yield
        finally:
            logger.setLevel(prior)
