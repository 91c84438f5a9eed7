"""
protolock-gate: backwards compatibility gate for protocol buffer schemas

Provisions the protolock binary for the build platform, resolves protolock
plugins, and drives protolock's init/status/commit cycle so that incompatible
schema changes fail the build.
"""

from .config import GateConfig, load_config
from .errors import (
    CompatibilityFailure,
    ConfigurationError,
    GateError,
    PluginResolutionError,
    ProvisioningError,
    SubprocessIOError,
    UnsupportedPlatform,
    VerificationToolError,
)
from .gate import BackwardsCompatibilityGate, GateOutcome
from .lockstate import CompatibilityResult, LockStateMachine, ResultKind

__version__ = "1.0.0"

__all__ = [
    "BackwardsCompatibilityGate",
    "CompatibilityFailure",
    "CompatibilityResult",
    "ConfigurationError",
    "GateConfig",
    "GateError",
    "GateOutcome",
    "LockStateMachine",
    "PluginResolutionError",
    "ProvisioningError",
    "ResultKind",
    "SubprocessIOError",
    "UnsupportedPlatform",
    "VerificationToolError",
    "load_config",
]
