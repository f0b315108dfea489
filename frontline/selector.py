"""Selection of the packages a run is allowed to touch."""

from collections.abc import Iterable
from fnmatch import fnmatchcase

# Shortcut arguments that stand for a family of vendors
ARGUMENT_SHORTCUTS: dict[str, tuple[str, ...]] = {
    "nette": ("nette/*", "tracy/*", "latte/*"),
}

UNIVERSAL_MASK = "*"


def expand_masks(arguments: Iterable[str]) -> set[str]:
    """Turn command line arguments into package name masks.

    Args:
        arguments: Package names, vendor names, globs or shortcut names

    Returns:
        Set of glob masks; ``{"*"}`` when no arguments were given
    """
    masks: set[str] = set()
    for arg in arguments:
        if arg in ARGUMENT_SHORTCUTS:
            masks.update(ARGUMENT_SHORTCUTS[arg])
            continue
        if "/" not in arg:
            arg += "/*"
        masks.add(arg)

    return masks or {UNIVERSAL_MASK}


def matches_mask(masks: Iterable[str], package_name: str) -> bool:
    """Check if a package name matches any of the masks.

    Matching is case-sensitive and ``/`` is an ordinary character, so
    ``*`` matches across the vendor separator.
    """
    return any(fnmatchcase(package_name, mask) for mask in masks)
