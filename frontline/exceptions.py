"""Exceptions raised by Frontline."""


class FrontlineError(Exception):
    """Base class for errors reported to the user."""


class ManifestNotFoundError(FrontlineError):
    """The manifest file does not exist."""


class ManifestError(FrontlineError):
    """The manifest exists but cannot be read as a Composer manifest."""


class RepositoryError(FrontlineError):
    """A Composer repository could not be queried."""


class PatchError(FrontlineError):
    """A structural edit of the manifest text could not be applied."""


class InvalidVersionError(ValueError):
    """A version string is not a valid Composer version."""


class InvalidConstraintError(ValueError):
    """A constraint string is not a valid Composer constraint."""
