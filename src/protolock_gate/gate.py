"""
Backwards compatibility gate

Ties the pieces together for one build: validates configuration, provisions
protolock, resolves plugins, runs the lock-state machine and turns its result
into a passing outcome, a compatibility failure, or an error.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .classifier import resolve_platform
from .config import GateConfig
from .context import lock_file_path
from .contracts.models import CheckReport, ReportStatus
from .errors import CompatibilityFailure, GateError, VerificationToolError
from .lockstate import CompatibilityResult, LockStateMachine, ResultKind
from .plugins import PluginResolver, ResolvedPlugins
from .process import LineSink, ProcessRunner
from .provisioning import (
    BinaryHandle,
    BinaryProvisioner,
    DirectoryResourceStore,
    PackageResourceStore,
    ResourceStore,
)
from .resolver import ArtifactResolver, LocalRepositoryResolver, RemoteRepositoryResolver

logger = logging.getLogger(__name__)


@dataclass
class GateOutcome:
    """What a gate run produced when it did not raise."""

    status: ReportStatus
    message: str
    result: Optional[CompatibilityResult] = None
    binary: Optional[BinaryHandle] = None
    plugins: ResolvedPlugins = field(default_factory=ResolvedPlugins)

    @property
    def diagnostics(self):
        return list(self.result.diagnostics) if self.result else []


def default_resolver(config: GateConfig) -> ArtifactResolver:
    if config.offline:
        return LocalRepositoryResolver(config.local_repository)
    return RemoteRepositoryResolver(config.repositories, config.local_repository)


def default_resources(config: GateConfig) -> ResourceStore:
    if config.binary_resources is not None:
        return DirectoryResourceStore(config.binary_resources)
    return PackageResourceStore()


class BackwardsCompatibilityGate:
    """Runs the protolock compatibility check for one project."""

    def __init__(
        self,
        config: GateConfig,
        resolver: Optional[ArtifactResolver] = None,
        runner: Optional[ProcessRunner] = None,
        resources: Optional[ResourceStore] = None,
        sink: Optional[LineSink] = None,
    ) -> None:
        self.config = config
        self.resolver = resolver or default_resolver(config)
        self.runner = runner or ProcessRunner()
        self.provisioner = BinaryProvisioner(resources or default_resources(config))
        self.sink = sink

    def provision(self) -> BinaryHandle:
        classifier = resolve_platform(self.config.classifier)
        return self.provisioner.ensure_binary(classifier, self.config.workspace())

    def resolve_plugins(self) -> ResolvedPlugins:
        classifier = resolve_platform(self.config.classifier)
        plugin_resolver = PluginResolver(self.resolver, classifier)
        return plugin_resolver.resolve_plugins(
            self.config.plugins, self.config.workspace().plugin_dir
        )

    def execute(self) -> GateOutcome:
        """Run the gate.

        Raises:
            ConfigurationError: invalid or conflicting configuration
            ProvisioningError: protolock could not be provisioned
            PluginResolutionError: a plugin could not be resolved
            SubprocessIOError: protolock could not be run
            VerificationToolError: protolock init or commit failed
            CompatibilityFailure: an incompatible schema change was found
        """
        config = self.config
        if config.skip:
            logger.info("Skipping backwards compatibility check.")
            return GateOutcome(ReportStatus.skipped, "Skipped by configuration.")

        config.require_valid()

        proto_root = Path(config.proto_root)
        if not proto_root.is_dir():
            logger.info(f"No proto sources at {proto_root}; skipping compatibility check.")
            return GateOutcome(
                ReportStatus.skipped, f"Proto source root {proto_root} does not exist."
            )

        binary = self.provision()
        plugins = self.resolve_plugins()

        lock_dir = config.effective_lock_dir
        lock_dir.mkdir(parents=True, exist_ok=True)

        result = LockStateMachine(self.runner).check(
            lock_dir=lock_dir,
            proto_root=proto_root,
            binary=binary.path,
            plugin_names=plugins.names,
            path_env=plugins.path if plugins.path is not None else os.environ.get("PATH", ""),
            extra_options=config.options,
            working_dir=config.working_dir,
            sink=self.sink,
        )
        return self._interpret(result, binary, plugins)

    def _interpret(
        self,
        result: CompatibilityResult,
        binary: BinaryHandle,
        plugins: ResolvedPlugins,
    ) -> GateOutcome:
        if result.kind is ResultKind.INITIALIZED:
            return GateOutcome(ReportStatus.initialized, result.message, result, binary, plugins)
        if result.kind is ResultKind.PASSED:
            return GateOutcome(ReportStatus.passed, result.message, result, binary, plugins)

        if result.kind is ResultKind.FAILED:
            if self.config.allow_breaking_changes:
                for line in result.diagnostics:
                    logger.warning(line)
                logger.warning(
                    "Backwards compatibility check failed, but breaking changes are allowed."
                )
                return GateOutcome(
                    ReportStatus.allowed,
                    "Breaking changes found and allowed by configuration.",
                    result,
                    binary,
                    plugins,
                )
            raise CompatibilityFailure(result.message, result.diagnostics)

        detail = "\n".join(result.diagnostics)
        raise VerificationToolError(
            f"{result.cause}\n{detail}" if detail else str(result.cause)
        )

    def report(self, outcome: GateOutcome) -> CheckReport:
        return CheckReport(
            status=outcome.status,
            message=outcome.message,
            diagnostics=outcome.diagnostics,
            proto_root=str(self.config.proto_root),
            lock_file=str(lock_file_path(self.config.effective_lock_dir)),
            binary=str(outcome.binary) if outcome.binary else None,
            plugins=outcome.plugins.names,
        )

    def failure_report(self, failure: CompatibilityFailure) -> CheckReport:
        return CheckReport(
            status=ReportStatus.failed,
            message=failure.message,
            diagnostics=failure.diagnostics,
            proto_root=str(self.config.proto_root),
            lock_file=str(lock_file_path(self.config.effective_lock_dir)),
        )


def error_report(error: GateError, config: Optional[GateConfig] = None) -> CheckReport:
    """Report for a run that ended in an error other than an incompatible change."""
    if config is None:
        return CheckReport(status=ReportStatus.error, message=str(error))
    return CheckReport(
        status=ReportStatus.error,
        message=str(error),
        proto_root=str(config.proto_root),
        lock_file=str(lock_file_path(config.effective_lock_dir)),
    )
