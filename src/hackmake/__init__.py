"""Build-and-release orchestration for hack/make style bundle builds."""

from .config import BuildConfig
from .dispatch import BundleDispatcher, dispatch
from .errors import (
    BundleFailure,
    ConfigurationError,
    FilesystemError,
    HackError,
    ValidationError,
)
from .flags import assemble
from .make import MakeInvocation, make
from .models import (
    DEFAULT_BUNDLES,
    BuildContext,
    BundleOutcome,
    DispatchResult,
    ProbeResults,
    VersionInfo,
)
from .observability import StructuredLogger
from .probe import HostProber
from .version import resolve_version

__all__ = [
    "DEFAULT_BUNDLES",
    "BuildConfig",
    "BuildContext",
    "BundleDispatcher",
    "BundleFailure",
    "BundleOutcome",
    "ConfigurationError",
    "DispatchResult",
    "FilesystemError",
    "HackError",
    "HostProber",
    "MakeInvocation",
    "ProbeResults",
    "StructuredLogger",
    "ValidationError",
    "VersionInfo",
    "assemble",
    "dispatch",
    "make",
    "resolve_version",
]
