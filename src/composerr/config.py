"""Configuration for error set expansion."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any

from composerr.errors import ConfigError


@dataclass
class ComposerrConfig:
    """Names and conventions recognised by the expansion pipeline.

    Markers and result types are matched on the last segment of a dotted
    name, so ``@composerr.errorset(...)`` and ``@errorset(...)`` are the same
    marker.
    """

    container_marker: str = "compose_errors"
    declaration_marker: str = "errorset"
    placeholder: str = "_"
    result_types: list[str] = field(default_factory=lambda: ["Result"])

    # Generated type names: <owner><infix><PascalCaseMember><suffix>
    suffix: str = "Error"
    implementation_infix: str = "Impl"
    interface_infix: str = "Trait"

    # A decorated class deriving from one of these is an interface
    interface_bases: list[str] = field(default_factory=lambda: ["Protocol", "ABC"])
    interface_metaclasses: list[str] = field(default_factory=lambda: ["ABCMeta"])

    base_exception: str = "Exception"

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Reject settings that cannot produce valid Python."""
        for name in ("container_marker", "declaration_marker", "placeholder", "suffix"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.isidentifier():
                raise ConfigError(f"{name} must be a Python identifier, got {value!r}")
        for name in ("implementation_infix", "interface_infix"):
            value = getattr(self, name)
            if not isinstance(value, str) or (value and not value.isidentifier()):
                raise ConfigError(f"{name} must be empty or an identifier, got {value!r}")
        if self.container_marker == self.declaration_marker:
            raise ConfigError("container_marker and declaration_marker must differ")
        if not self.result_types:
            raise ConfigError("result_types must name at least one type")
        for name in ("result_types", "interface_bases", "interface_metaclasses"):
            values = getattr(self, name)
            if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
                raise ConfigError(f"{name} must be a list of strings")
        if not all(part.isidentifier() for part in self.base_exception.split(".")):
            raise ConfigError(f"base_exception must be a dotted name, got {self.base_exception!r}")

    @classmethod
    def setting_names(cls) -> set[str]:
        """Keys accepted in a config file."""
        return {f.name for f in fields(cls)}

    def to_dict(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in sorted(self.setting_names())}
