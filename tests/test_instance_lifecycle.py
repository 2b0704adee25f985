from unittest.mock import MagicMock

import pytest

from image_builder.configuration import BuildConfig, TimeoutsConfig
from image_builder.entities import Instance
from image_builder.entities.exceptions import OperationFailedError
from image_builder.infrastructure import OperationPoller
from image_builder.services import CommandExecutor, InstanceLifecycleManager


@pytest.fixture
def sleep():
    return MagicMock()


@pytest.fixture
def lifecycle(fake_lxd, sleep):
    poller = OperationPoller(fake_lxd, interval=0)
    return InstanceLifecycleManager(
        fake_lxd,
        poller,
        CommandExecutor(fake_lxd, poller),
        TimeoutsConfig(poll_interval=0),
        BuildConfig(start_grace_period=5, ready_attempts=4, ready_interval=1),
        sleep=sleep,
    )


class TestLifecycle:

    def test_create_start_stop_delete(self, lifecycle, fake_lxd, sleep):
        instance = lifecycle.create("build-1", {"type": "image", "alias": "ubuntu/24.04"}, target="node3")

        assert instance.state == Instance.State.CREATED
        assert fake_lxd.instances["build-1"]["target"] == "node3"

        lifecycle.start(instance)
        assert lifecycle.get_status(instance) == "Running"
        sleep.assert_called_once_with(5)

        lifecycle.stop(instance)
        assert instance.state == Instance.State.STOPPED

        lifecycle.delete(instance)
        assert instance.is_gone
        assert not lifecycle.exists(instance)

    def test_failed_create_keeps_state(self, lifecycle, fake_lxd):
        fake_lxd.failing_operations["create"] = "Failed getting remote image info"

        with pytest.raises(OperationFailedError, match="remote image"):
            lifecycle.create("build-1", {"type": "image", "alias": "ubuntu/99.04"})

    def test_delete_of_absent_instance_is_not_an_error(self, lifecycle):
        instance = Instance("never-created")

        lifecycle.delete(instance)

        assert instance.state == Instance.State.DELETED

    def test_delete_failure_is_raised(self, lifecycle, fake_lxd):
        instance = lifecycle.create("build-1", {"type": "image", "alias": "ubuntu/24.04"})
        fake_lxd.failing_operations["delete"] = "Storage pool is busy"

        with pytest.raises(OperationFailedError, match="busy"):
            lifecycle.delete(instance)


class TestReadiness:

    def test_ready_after_retries(self, lifecycle, fake_lxd, sleep):
        answers = iter([1, 1, 0])
        fake_lxd.exec_handler = lambda argv: (next(answers), "", "")
        instance = lifecycle.create("build-1", {"type": "image", "alias": "ubuntu/24.04"})

        assert lifecycle.wait_until_ready(instance)
        assert len(fake_lxd.executed) == 3
        assert sleep.call_count == 2

    def test_never_ready(self, lifecycle, fake_lxd, sleep):
        fake_lxd.exec_handler = lambda argv: (1, "", "")
        instance = lifecycle.create("build-1", {"type": "image", "alias": "ubuntu/24.04"})

        assert not lifecycle.wait_until_ready(instance)
        assert len(fake_lxd.executed) == 4
        assert sleep.call_count == 3


class TestStateChangeTimeout:

    @pytest.fixture
    def poller(self):
        return MagicMock(spec=OperationPoller)

    @pytest.fixture
    def lifecycle(self, fake_lxd, poller):
        return InstanceLifecycleManager(
            fake_lxd,
            poller,
            MagicMock(spec=CommandExecutor),
            TimeoutsConfig(state_change=300),
            BuildConfig(start_grace_period=0),
        )

    def test_explicit_zero_is_kept(self, lifecycle, fake_lxd, poller):
        fake_lxd.instances["build-1"] = {"status": "Stopped", "target": None, "source": {}, "files": {}}

        lifecycle.start(Instance("build-1"), timeout=0)
        lifecycle.stop(Instance("build-1"), timeout=0)

        assert [call.args[1] for call in poller.wait.call_args_list] == [0, 0]

    def test_default_when_unset(self, lifecycle, fake_lxd, poller):
        fake_lxd.instances["build-1"] = {"status": "Stopped", "target": None, "source": {}, "files": {}}

        lifecycle.start(Instance("build-1"))

        assert poller.wait.call_args.args[1] == 300
