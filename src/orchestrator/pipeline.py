"""PipelineOrchestrator - connects the components into a single pipeline run."""

import logging
from pathlib import Path
from typing import Optional

from src.cache import (
    CacheEntry,
    CacheError,
    CacheStore,
    DependencyCacheManager,
    DirectoryCacheStore,
    InMemoryCacheStore,
)
from src.config import PipelineConfig
from src.executor import PipelineRun, RunStatus, StepExecutor
from src.provision import DirectorySnapshotCheckout, EnvironmentProvisioner, ProvisionError
from src.reporter import ResultReporter
from src.trigger import TriggerEvaluator, TriggerEvent, default_rules
from src.workspace import ExecutionContext

logger = logging.getLogger(__name__)


class PipelineOrchestrator:
    """Orchestrates one CI pipeline run per admitted event.

    Flow: trigger gate, provision, cache restore, steps (fail-fast),
    cache save, final status. Only provisioning failures and step
    failures affect the reported status; cache problems are absorbed.

    Example:
        orchestrator = PipelineOrchestrator(source_dir=Path("."))
        run = orchestrator.run(TriggerEvent(kind="pull_request"))
        if run is not None:
            print(f"Exit code: {run.exit_code}")
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        source_dir: Optional[Path] = None,
        evaluator: Optional[TriggerEvaluator] = None,
        provisioner: Optional[EnvironmentProvisioner] = None,
        cache_manager: Optional[DependencyCacheManager] = None,
        executor: Optional[StepExecutor] = None,
        reporter: Optional[ResultReporter] = None,
        keep_workspace: bool = False,
    ):
        self._config = config or PipelineConfig()
        self._source_dir = Path(source_dir) if source_dir else Path.cwd()
        self._evaluator = evaluator
        self._provisioner = provisioner
        self._cache_manager = cache_manager
        self._executor = executor
        self._reporter = reporter
        self._keep_workspace = keep_workspace

    @property
    def config(self) -> PipelineConfig:
        return self._config

    def _get_evaluator(self) -> TriggerEvaluator:
        if self._evaluator is None:
            self._evaluator = TriggerEvaluator(default_rules(self._config.target_branch))
        return self._evaluator

    def _get_provisioner(self) -> EnvironmentProvisioner:
        if self._provisioner is None:
            self._provisioner = EnvironmentProvisioner(
                checkout=DirectorySnapshotCheckout(self._source_dir),
                toolchain=self._config.toolchain,
                workspace_root=self._config.workspace_root,
                step_env=self._config.step_env,
            )
        return self._provisioner

    def _get_cache_store(self) -> CacheStore:
        if self._config.cache_dir is None:
            return InMemoryCacheStore()
        return DirectoryCacheStore(self._config.cache_dir)

    def _get_cache_manager(self) -> DependencyCacheManager:
        if self._cache_manager is None:
            self._cache_manager = DependencyCacheManager(
                store=self._get_cache_store(),
                manifest_files=self._config.manifest_files,
                cache_paths=self._config.cache_paths,
                job_name=self._config.job_name,
            )
        return self._cache_manager

    def _get_executor(self) -> StepExecutor:
        if self._executor is None:
            self._executor = StepExecutor(
                steps=self._config.steps,
                default_timeout=self._config.step_timeout,
            )
        return self._executor

    def _get_reporter(self) -> ResultReporter:
        if self._reporter is None:
            self._reporter = ResultReporter(archive_dir=self._config.archive_dir)
        return self._reporter

    def _restore_cache(
        self, run: PipelineRun, context: ExecutionContext
    ) -> Optional[CacheEntry]:
        manager = self._get_cache_manager()
        try:
            run.fingerprint = manager.fingerprint(context)
        except CacheError as e:
            logger.warning("Cannot fingerprint dependencies, running without cache: %s", e)
            return None

        entry = manager.restore(run.fingerprint, context)
        run.cache_hit = entry is not None
        return entry

    def _save_cache(
        self,
        run: PipelineRun,
        context: ExecutionContext,
        previous: Optional[CacheEntry],
    ) -> None:
        if run.fingerprint is None:
            return
        if run.status is not RunStatus.SUCCEEDED:
            logger.info("Run did not succeed; not saving cache")
            return
        self._get_cache_manager().save(run.fingerprint, context, previous)

    def run(self, event: TriggerEvent) -> Optional[PipelineRun]:
        """Execute the pipeline for one event.

        Returns:
            The finalized PipelineRun, or None if the event was rejected
            (no run is created and nothing is provisioned).
        """
        if not self._get_evaluator().should_run(event):
            return None

        run = PipelineRun(event=event)
        reporter = self._get_reporter()
        provisioner = self._get_provisioner()

        try:
            context = provisioner.provision()
        except ProvisionError as e:
            logger.error("Provisioning failed: %s", e)
            run.finish(RunStatus.FAILED, error=str(e))
            reporter.finalize(run)
            return run

        try:
            previous = self._restore_cache(run, context)
            self._get_executor().run(context, run)
            self._save_cache(run, context, previous)
        finally:
            if not self._keep_workspace:
                provisioner.cleanup(context)

        reporter.finalize(run)
        return run
