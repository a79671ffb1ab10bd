"""Update error kinds.

Every failure the update session can recover from is an UpdateError, so the
session can apply one fallback policy without catching unrelated bugs.
"""


class UpdateError(RuntimeError):
    """Base class for update session failures."""


class NetworkFailure(UpdateError):
    """Timeout, connection error or non-success response."""


class ChainUnreachable(UpdateError):
    """No patch chain exists from the current version to the desired one."""


class SecurityViolation(UpdateError):
    """An archive entry resolves outside the destination root."""


class PatchBaseMissing(UpdateError):
    """A codec-tagged patch entry has no local file to patch."""


class PatchCodecError(UpdateError):
    """A binary-diff codec failed to reconstruct a file."""


class SelfReplaceFailure(UpdateError):
    """The launcher executable could not be swapped for the new one."""
