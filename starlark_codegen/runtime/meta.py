"""Object metadata shared by all generated root types."""

from dataclasses import dataclass, field


@dataclass
class ObjectMeta:
    """Name and free-form labels/annotations of an API object."""

    name: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
