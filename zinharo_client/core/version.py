from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Version:
    major: int
    minor: int
    patch: int

    def __post_init__(self) -> None:
        if min(self.major, self.minor, self.patch) < 0:
            raise ValueError(f"version components must be non-negative: {self}")

    @classmethod
    def parse(cls, raw: str) -> Version:
        parts = raw.strip().split(".")
        if len(parts) != 3:
            raise ValueError(f"expected a dotted X.Y.Z version, got {raw!r}")
        if not all(part.isascii() and part.isdigit() for part in parts):
            raise ValueError(f"non-numeric version component in {raw!r}")
        major, minor, patch = (int(part) for part in parts)
        return cls(major, minor, patch)

    def satisfies(self, minimum: Version) -> bool:
        """Every component must reach the minimum independently.

        This is not semver ordering: 1.0.0 does not satisfy 0.1.0 because its
        minor component is lower.
        """
        return self.major >= minimum.major and self.minor >= minimum.minor and self.patch >= minimum.patch

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


# Coordinator API version this client speaks; compared against GET /min_version/.
PROTOCOL_VERSION = Version(0, 0, 1)
