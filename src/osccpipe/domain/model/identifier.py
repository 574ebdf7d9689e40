"""Package coordinates (``Type:namespace:name:version``)."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True, order=True)
class Identifier:
    type: str
    namespace: str
    name: str
    version: str

    @classmethod
    def parse(cls, coordinates: str) -> Identifier:
        """Parse ``Type:namespace:name:version``; missing trailing parts become blank."""

        parts = coordinates.strip().split(":", 3)
        if len(parts) < 3:
            raise ValueError(f"Invalid package coordinates: {coordinates!r}")
        parts += [""] * (4 - len(parts))
        return cls(type=parts[0], namespace=parts[1], name=parts[2], version=parts[3])

    @property
    def coordinates(self) -> str:
        return f"{self.type}:{self.namespace}:{self.name}:{self.version}"

    def to_path(self, separator: str = "/") -> str:
        segments = (self.type, self.namespace, self.name, self.version)
        return separator.join(segment if segment else "unknown" for segment in segments)

    def __str__(self) -> str:
        return self.coordinates
