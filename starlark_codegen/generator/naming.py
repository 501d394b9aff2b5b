"""Identifier case conversion."""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field


@dataclass(frozen=True)
class NamingConfig:
    """Case conversion settings.

    ``acronyms`` maps a type or field name to the exact lower-camel-case
    spelling to use for it, for names the word splitter gets wrong.
    """

    acronyms: Mapping[str, str] = field(default_factory=dict)

    def with_acronyms(self, **acronyms: str) -> "NamingConfig":
        return NamingConfig(acronyms={**self.acronyms, **acronyms})


def to_snake(name: str) -> str:
    """``ReadinessProbe`` -> ``readiness_probe``, ``UIButton`` -> ``ui_button``."""
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    s2 = re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1)
    return s2.replace("-", "_").lower()


def to_lower_camel(name: str, config: NamingConfig | None = None) -> str:
    """``ReadinessProbe`` -> ``readinessProbe``, ``UIButton`` -> ``uiButton``."""
    if config is not None and name in config.acronyms:
        return config.acronyms[name]

    words = [w for w in to_snake(name).split("_") if w]
    if not words:
        return name
    return words[0] + "".join(w[:1].upper() + w[1:] for w in words[1:])


def registered_name(package_name: str, type_name: str) -> str:
    """The name a type's constructor is bound under in the host."""
    return f"{package_name}.{to_snake(type_name)}"
