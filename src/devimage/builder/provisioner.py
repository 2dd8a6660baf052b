"""Provisioning procedure."""

import asyncio
import logging
from datetime import datetime
from typing import List, Optional

from devimage.errors import CleanupWarning, ProvisioningError
from devimage.models.spec import PreseedAnswer, ProvisioningSpec
from devimage.providers import AnswerStore, BuildTarget, ImageProvider, PackageManager, ProviderRegistry
from devimage.builder.result import PlanStep, ProvisionResult


logger = logging.getLogger(__name__)


class Provisioner:
    """Applies a ProvisioningSpec to a fresh base image.

    The phases run strictly in order: resolve the base, pre-seed the answer
    store, refresh the index and install, clean up, commit. Any fatal error
    stops the run before the next phase; cleanup failures are only recorded.
    """

    def __init__(self, provider_registry: ProviderRegistry, answer_store: Optional[AnswerStore] = None):
        """Initialize provisioner."""
        self.provider_registry = provider_registry
        self._answer_store = answer_store
        self._build_lock = asyncio.Lock()

    def _provider(self, name: str):
        provider = self.provider_registry.get_provider(name)
        if provider is None:
            raise RuntimeError(f"Provider {name} not available")
        return provider

    @property
    def image_provider(self) -> ImageProvider:
        return self._provider("image")

    @property
    def package_manager(self) -> PackageManager:
        return self._provider("packages")

    @property
    def answer_store(self) -> AnswerStore:
        if self._answer_store is not None:
            return self._answer_store
        return self._provider("answers")

    async def resolve_base(self, base_image: str) -> BuildTarget:
        """Fetch the base image and open a working target on it."""
        target = await self.image_provider.resolve(base_image)
        logger.debug(f"Resolved base image {base_image}")
        return target

    async def apply_preseed(self, target: BuildTarget, answers: List[PreseedAnswer], store: AnswerStore) -> None:
        """Write pre-seed answers before anything is installed."""
        if not answers:
            logger.debug("No pre-seed answers")
            return
        logger.info(f"Pre-seeding {len(answers)} answers")
        await store.write(target, answers)

    async def install_packages(self, target: BuildTarget, packages: List[str], store: AnswerStore) -> None:
        """Refresh the package index, then install every package at once."""
        await self.package_manager.update_index(target)
        await self.package_manager.install(target, packages, store)

    async def cleanup(self, target: BuildTarget, steps: List[str]) -> List[CleanupWarning]:
        """Run cleanup steps, collecting failures as warnings."""
        warnings = []
        for step in steps:
            try:
                await self.package_manager.run_cleanup(target, step)
            except CleanupWarning as w:
                logger.warning(str(w))
                warnings.append(w)
        return warnings

    async def provision(self, spec: ProvisioningSpec, tag: Optional[str] = None) -> ProvisionResult:
        """Run the whole procedure for a spec."""
        async with self._build_lock:
            start_time = datetime.now()
            result = ProvisionResult(spec_name=spec.name)
            logger.info(f"Provisioning {spec.name} from {spec.base_image}")

            for answer in spec.orphan_preseeds():
                logger.warning(f"Pre-seed {answer.key} has no effect: {answer.package} is not installed")

            store = self.answer_store
            target = None
            try:
                target = await self.resolve_base(spec.base_image)
                result.phases.append("resolve")

                await self.apply_preseed(target, spec.preseed, store)
                result.phases.append("preseed")

                await self.install_packages(target, spec.packages, store)
                result.phases.append("install")

                result.warnings.extend(await self.cleanup(target, spec.cleanup))
                result.phases.append("cleanup")

                result.image_id = await self.image_provider.commit(target, tag or spec.tag)
                result.phases.append("commit")

                result.status = "success"

            except ProvisioningError as e:
                logger.error(f"Provisioning {spec.name} failed: {e}")
                result.status = "failed"
                result.error = e

            finally:
                if target is not None:
                    await self.image_provider.release(target)
                result.duration = (datetime.now() - start_time).total_seconds()

            if result.success:
                logger.info(
                    f"Provisioned {spec.name} in {result.duration:.2f}s"
                    f" with {len(result.warnings)} warnings"
                )
            return result

    def plan(self, spec: ProvisioningSpec, tag: Optional[str] = None) -> List[PlanStep]:
        """List the commands a build of spec would run, in order."""
        packages = self.package_manager
        store = self.answer_store
        steps = [PlanStep("resolve", detail=spec.base_image)]

        if spec.preseed:
            steps.append(PlanStep("preseed", store.write_command(), store.describe(spec.preseed)))

        steps.append(PlanStep("install", packages.update_command()))
        if spec.packages:
            steps.append(PlanStep("install", packages.install_command(spec.packages)))

        for directive in spec.cleanup:
            steps.append(PlanStep("cleanup", packages.cleanup_command(directive), directive))

        steps.append(PlanStep("commit", detail=tag or spec.tag))
        return steps
