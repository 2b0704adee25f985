from ..entities import CommandStep, FileStep, Instance, ProvisioningManifest
from ..utils.logging_utils import get_logger
from .command_executor import CommandExecutor
from .file_deployer import FileDeployer

logger = get_logger()


class Provisioner:
    """Applies the steps of a provisioning manifest, in order, stopping at the first failure."""

    def __init__(self, executor: CommandExecutor, deployer: FileDeployer):
        self._executor = executor
        self._deployer = deployer

    def run(self, instance: Instance, manifest: ProvisioningManifest) -> None:
        total = len(manifest.steps)

        for index, step in enumerate(manifest.steps, start=1):
            logger.info("[%d/%d] %s", index, total, step.name)

            if isinstance(step, CommandStep):
                self._executor.execute(instance, step.to_command())
            elif isinstance(step, FileStep):
                self._push(instance, manifest, step)
            else:
                raise ValueError(f"Unsupported provisioning step: {step!r}")

    def _push(self, instance: Instance, manifest: ProvisioningManifest, step: FileStep) -> None:
        options = dict(mode=step.mode, uid=step.uid, gid=step.gid)

        if step.url is not None:
            self._deployer.push_url(instance, step.url, step.destination, **options)
        else:
            self._deployer.push(instance, manifest.resolve_source(step), step.destination, **options)
