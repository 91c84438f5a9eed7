"""Error taxonomy for the backwards compatibility gate."""

from __future__ import annotations

from typing import List, Optional


class GateError(RuntimeError):
    """Base class for every error raised by the gate."""

    pass


class ConfigurationError(GateError):
    """Raised for missing or conflicting configuration, before any subprocess runs."""

    pass


class ProvisioningError(GateError):
    """Raised when the verification tool binary cannot be made available."""

    pass


class UnsupportedPlatform(ProvisioningError):
    """Raised when no embedded binary exists for the platform classifier."""

    def __init__(self, classifier: str, resource_key: str) -> None:
        super().__init__(
            f"No protolock binary is bundled for platform '{classifier}' "
            f"(looked for resource '{resource_key}'). Set 'binary_resources' "
            "to a directory that provides one."
        )
        self.classifier = classifier
        self.resource_key = resource_key


class PluginResolutionError(GateError):
    """Raised when a plugin spec cannot be parsed, resolved or copied."""

    def __init__(self, spec: str, reason: str) -> None:
        super().__init__(f"Unable to resolve protolock plugin '{spec}': {reason}")
        self.spec = spec
        self.reason = reason


class SubprocessIOError(GateError):
    """Raised when the verification tool cannot be spawned or read."""

    pass


class VerificationToolError(GateError):
    """Raised when the tool ran but init or commit did not succeed."""

    pass


class CompatibilityFailure(GateError):
    """The tool ran correctly and found an incompatible schema change."""

    def __init__(self, message: str, diagnostics: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.diagnostics = list(diagnostics or [])


class ArtifactResolutionError(GateError):
    """Raised by artifact resolvers."""

    pass


class ArtifactNotFound(ArtifactResolutionError):
    pass


class ArtifactNetworkError(ArtifactResolutionError):
    pass
