"""Exception hierarchy shared by the package manager parsers.

Errors are split into two families:
1. Hard errors - the input for a whole project is unusable and resolution aborts
2. Recoverable errors - the current item is skipped and processing continues
"""


class YarnDepsError(Exception):
    """Base class for all yarndeps errors."""


class MalformedListingError(YarnDepsError, ValueError):
    """The dependency listing printed by the package manager is not usable.

    This is a hard error: a listing that cannot be parsed gives no reliable
    view of the tree, so resolution of the whole project is aborted.
    """


class RecoverableError(YarnDepsError):
    """Base class for recoverable business errors.

    These errors indicate expected failure conditions that can be handled
    gracefully by skipping the current item and continuing processing.
    """


class ManifestError(RecoverableError):
    """A package manifest (package.json) is unreadable or malformed."""


class CommandError(RecoverableError):
    """Running the package manager executable failed.

    Attributes:
        returncode: Exit status of the process, None if it never ran.
        stderr: Captured diagnostic output, if any.
    """

    def __init__(self, message: str, returncode=None, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


__all__ = [
    "YarnDepsError",
    "MalformedListingError",
    "RecoverableError",
    "ManifestError",
    "CommandError",
]
