"""Update system data models."""

from dataclasses import dataclass, field
from enum import Enum

# Version recorded before anything has been installed
UNKNOWN_VERSION = 0


@dataclass
class VersionRecord:
    """Locally installed version and the distribution origin it came from."""

    local_version: int = UNKNOWN_VERSION
    origin_server: str = ""


class Codec(Enum):
    """How a patch entry's payload turns into the new file."""

    NONE = "none"
    BSDIFF = "bsdiff"
    XDELTA = "xdelta"


@dataclass
class PatchEntry:
    """One file-level operation inside a patch archive."""

    relative_path: str
    codec: Codec
    payload: bytes = b""


# ── Plan decisions ──────────────────────────────────────────────────


@dataclass(frozen=True)
class UpToDate:
    """current == desired: nothing to do."""


@dataclass(frozen=True)
class FullReinstall:
    target_version: int


@dataclass(frozen=True)
class PatchChain:
    """Destination versions in application order, last one is the desired version."""

    versions: tuple[int, ...]


@dataclass(frozen=True)
class Unreachable:
    """No patch chain leads from the current version to the desired one."""


PlanDecision = UpToDate | FullReinstall | PatchChain | Unreachable


@dataclass
class UpdateSession:
    """Transient context for one update attempt. Never persisted."""

    current_version: int
    desired_version: int
    stable_version: int
    origin_server: str
    applied: list[int] = field(default_factory=list)
    # Full package builds whose install failed this session; never retried
    failed_packages: set[int] = field(default_factory=set)
