"""Storefront contexts - each one owns an independent mirror."""

from enum import Enum


class Context(str, Enum):
    REGULAR = "regular"
    VIRTUAL = "virtual"

    @classmethod
    def from_alias(cls, value: str | None) -> "Context":
        """
        Resolve a storefront alias to its context.

        The distri1 and naranjos2 storefronts read the regular mirror;
        everything else (main catalog pages, mobile app) reads the virtual one.
        """
        if value in ("distri1", "naranjos2", "regular"):
            return cls.REGULAR
        return cls.VIRTUAL
