"""Capability generator: render a synthesized sum type as Python source.

The generated base class carries every capability; each variant is a
subclass fixing the wrapped type:

    DoTaskError.IoFailure(err)      # wrap, only accepts values wrap() would send here
    DoTaskError.wrap(err)           # wrap, variant chosen from type(err)
    str(e) == str(e.source)         # description delegates to the cause
    e.try_into(IoFailure)           # unwrap, TypeError on another variant

The output has no imports and no annotations, so it runs wherever the
source error types are in scope.
"""

from __future__ import annotations

from string import Template

from composerr.config import ComposerrConfig
from composerr.model import SynthesizedSumType

# Attributes of the generated class a variant must not shadow
RESERVED_MEMBERS = frozenset(
    {
        "error",
        "source",
        "variant",
        "variants",
        "wraps",
        "wrap",
        "_variant_for",
        "try_into",
        "args",
        "add_note",
        "with_traceback",
    }
)

_BASE = Template('''\
class $name($base):
    """Errors produced by `$declaration`.

    Variants: $variant_list.
    """

    __match_args__ = ("error",)

    variant = None
    wraps = None
    variants = {}

    def __init__(self, error):
        cls = type(self)
        if cls.wraps is None:
            raise TypeError("$name cannot be created directly; use one of its variants")
        if not isinstance(error, cls.wraps):
            raise TypeError(
                f"$name.{cls.variant} wraps {cls.wraps.__name__}, not {type(error).__name__}"
            )
        owner = cls._variant_for(type(error))
        if owner is not None and owner is not cls:
            raise TypeError(
                f"{type(error).__name__} belongs to $name.{owner.variant}, "
                f"not $name.{cls.variant}"
            )
        super().__init__(error)
        self.error = error
        if isinstance(error, BaseException):
            self.__cause__ = error

    def __str__(self):
        return str(self.error)

    def __repr__(self):
        return f"$name.{self.variant}({self.error!r})"

    @property
    def source(self):
        return self.error

    @classmethod
    def _variant_for(cls, kind):
        # The most specific listed type in the MRO picks the variant
        for base in kind.__mro__:
            variant = cls.variants.get(base)
            if variant is not None:
                return variant
        return None

    @classmethod
    def wrap(cls, error):
        variant = cls._variant_for(type(error))
        if variant is None:
            raise TypeError(f"{type(error).__name__} is not an error of $name")
        return variant(error)

    def try_into(self, kind):
        if type(self).wraps is kind:
            return self.error
        raise TypeError(
            f"This instance of $name is of a variant different than the requested "
            f"{kind.__name__}"
        )
''')

_VARIANT = Template('''\
class $private($name):
    __qualname__ = "$name.$variant"
    variant = "$variant"
    wraps = $wraps
''')

_REGISTRY = Template('''\
$name.variants = {
$entries
}
if len($name.variants) != $count:
    raise TypeError("$name lists the same error type more than once")
for _variant in $name.variants.values():
    _variant.__name__ = _variant.variant
    setattr($name, _variant.variant, _variant)
del _variant, $privates
''')


class CapabilityGenerator:
    """Attaches the generated source to a sum type skeleton."""

    def __init__(self, config: ComposerrConfig | None = None):
        self.config = config or ComposerrConfig()

    def generate(self, sum_type: SynthesizedSumType) -> SynthesizedSumType:
        return sum_type.with_source(self.render(sum_type))

    def render(self, sum_type: SynthesizedSumType) -> str:
        name = sum_type.name
        privates = [f"_{name}{v.name}" for v in sum_type.variants]

        parts = [
            _BASE.substitute(
                name=name,
                base=self.config.base_exception,
                declaration=sum_type.declaration.qualified_name,
                variant_list=", ".join(f"{name}.{v}" for v in sum_type.variant_names),
            )
        ]
        for private, variant in zip(privates, sum_type.variants):
            parts.append(
                _VARIANT.substitute(
                    private=private,
                    name=name,
                    variant=variant.name,
                    wraps=variant.wraps.dotted,
                )
            )
        parts.append(
            _REGISTRY.substitute(
                name=name,
                entries="\n".join(
                    f"    {v.wraps.dotted}: {p}," for p, v in zip(privates, sum_type.variants)
                ),
                count=len(sum_type.variants),
                privates=", ".join(privates),
            )
        )
        return "\n\n".join(parts)
