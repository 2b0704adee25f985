import contextlib
import re
import signal
import threading
import time
from typing import Callable

from ..configuration import AppConfig
from ..entities import BuildResult, BuildState, Instance, ProvisioningManifest
from ..entities.exceptions import BuildInterrupted, ConfigurationError, InstanceNotReadyError
from ..infrastructure import OperationPoller
from ..infrastructure.lxd import LxdClient, create_authenticator
from ..services import (CleanupGuard, ClusterMemberSelector, CommandExecutor, FileDeployer, ImagePublisher,
                        InstanceLifecycleManager, Provisioner)
from ..utils.logging_utils import get_logger
from ..utils.unique_name import generate_instance_name

logger = get_logger()

IMAGE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class ImageBuildOrchestrator:
    """
    Drives one image build:

        select target -> create -> start -> provision -> stop -> publish -> delete

    The disposable instance is owned by a `CleanupGuard` from the moment its
    creation is requested, so it is deleted on success, on error and on
    SIGINT/SIGTERM alike.
    """

    def __init__(self, configuration: AppConfig, client: LxdClient | None = None, sleep: Callable[[float], None] = time.sleep):
        self.config = configuration

        self._client = client
        self._owns_client = client is None
        self._sleep = sleep

        self.state = BuildState.INIT
        self.guard: CleanupGuard | None = None
        self._interrupted = False

    @staticmethod
    def validate_image_name(image_name: str | None) -> str:
        if not image_name:
            raise ConfigurationError("An image name is required")
        if not IMAGE_NAME_PATTERN.fullmatch(image_name):
            raise ConfigurationError(f"Invalid image name `{image_name}`: only letters, digits, `-` and `_` are allowed")
        return image_name

    def load_manifest(self) -> ProvisioningManifest:
        manifest_path = self.config.build.manifest
        if not manifest_path:
            raise ConfigurationError("No provisioning manifest configured")

        manifest = ProvisioningManifest.from_file(manifest_path)

        missing = manifest.missing_sources()
        if missing:
            raise ConfigurationError("Manifest references missing file(s): " + ", ".join(str(path) for path in missing))

        return manifest

    def _new_client(self) -> LxdClient:
        lxd_config = self.config.lxd

        return LxdClient(
            base_url=lxd_config.base_url,
            authenticator=create_authenticator(lxd_config.auth),
            api_version=lxd_config.api_version,
            verify=lxd_config.verify,
            timeout=lxd_config.request_timeout,
        )

    def _transition(self, state: BuildState) -> None:
        logger.debug("Build state: %s -> %s", self.state.value, state.value)
        self.state = state

    def run(self, image_name: str, manifest: ProvisioningManifest | None = None) -> BuildResult:
        """
        Build and publish `image_name`.

        Every input is validated before the first API call; a ConfigurationError
        therefore never leaves anything behind on the server.
        """
        started_at = time.monotonic()

        self.validate_image_name(image_name)
        if manifest is None:
            manifest = self.load_manifest()

        if self._client is None:
            self._client = self._new_client()

        try:
            with self._signal_handlers():
                return self._build(image_name, manifest, started_at)
        finally:
            if self._owns_client:
                self._client.close()

    def _build(self, image_name: str, manifest: ProvisioningManifest, started_at: float) -> BuildResult:
        config = self.config
        client = self._client

        poller = OperationPoller(client, interval=config.timeouts.poll_interval)
        instance_path = config.lxd.instance_path
        executor = CommandExecutor(
            client,
            poller,
            instance_path=instance_path,
            short_timeout=config.timeouts.short_command,
            long_timeout=config.timeouts.long_command,
        )
        lifecycle = InstanceLifecycleManager(client, poller, executor, config.timeouts, config.build, instance_path=instance_path, sleep=self._sleep)
        provisioner = Provisioner(executor, FileDeployer(client, executor, instance_path=instance_path))
        publisher = ImagePublisher(client, poller, publish_timeout=config.timeouts.publish, delete_timeout=config.timeouts.delete)

        logger.info("Starting image build: %s", image_name)

        target = None
        if config.placement.group:
            target = ClusterMemberSelector(client, online_only=config.placement.online_only).select(config.placement.group)
            self._transition(BuildState.TARGET_SELECTED)

        instance = Instance(generate_instance_name(config.build.instance_name_prefix), target)
        logger.info("Instance name: %s", instance.name)

        self.guard = guard = CleanupGuard(lifecycle, instance)
        try:
            with guard:
                try:
                    guard.instance = instance = lifecycle.create(instance.name, self._image_source(), target)
                    self._transition(BuildState.INSTANCE_CREATED)

                    lifecycle.start(instance)
                    self._transition(BuildState.INSTANCE_RUNNING)

                    if not lifecycle.wait_until_ready(instance):
                        raise InstanceNotReadyError(instance.name, config.build.ready_attempts)

                    self._transition(BuildState.PROVISIONING)
                    provisioner.run(instance, manifest)

                    lifecycle.stop(instance)
                    self._transition(BuildState.INSTANCE_STOPPED)

                    image = publisher.publish(
                        instance,
                        image_name,
                        description=config.build.format_description(image_name),
                        properties=config.build.properties,
                        public=config.build.public,
                    )
                    self._transition(BuildState.IMAGE_PUBLISHED)
                except BaseException:
                    self._transition(BuildState.CLEANUP)
                    raise
        finally:
            # no-op unless an interruption escaped the guard before its teardown ran
            guard.release()
            if guard.released and guard.error is None:
                self._transition(BuildState.INSTANCE_DELETED)

        if guard.error is not None:
            raise guard.error

        if lifecycle.exists(instance):
            logger.warning("Instance %s still exists after deletion", instance.name)

        self._transition(BuildState.DONE)

        return BuildResult(
            alias=image.alias,
            fingerprint=image.fingerprint,
            instance_name=instance.name,
            target=target,
            state=self.state,
            duration=time.monotonic() - started_at,
        )

    def _image_source(self) -> dict:
        source_config = self.config.build.image_source

        source = {
            "type": "image",
            "alias": source_config.alias,
        }
        if source_config.server:
            source["server"] = source_config.server
            source["protocol"] = source_config.protocol
            source["mode"] = "pull"

        return source

    def _on_signal(self, signum, frame):
        signal_name = signal.Signals(signum).name

        if self._interrupted or (self.guard is not None and (self.guard.closing or self.guard.released)):
            logger.warning("Received %s while cleaning up, ignoring", signal_name)
            return

        self._interrupted = True
        logger.warning("Received %s, aborting build", signal_name)
        raise BuildInterrupted(signal_name)

    @contextlib.contextmanager
    def _signal_handlers(self):
        if threading.current_thread() is not threading.main_thread():
            yield
            return

        previous = {
            signum: signal.signal(signum, self._on_signal)
            for signum in (signal.SIGINT, signal.SIGTERM)
        }
        try:
            yield
        finally:
            for signum, handler in previous.items():
                signal.signal(signum, handler)
