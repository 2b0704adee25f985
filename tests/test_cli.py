from unittest.mock import patch

import pytest
from click.testing import CliRunner

from image_builder.cli import cli
from image_builder.entities import BuildResult, BuildState
from image_builder.entities.exceptions import OperationFailedError
from image_builder.utils.logging_utils import get_logger

CONFIGURATION = """
lxd:
  host: lxd.example.com
  auth:
    type: token
    token: abc
build:
  manifest: manifest.yml
"""


@pytest.fixture(autouse=True)
def detach_log_handlers():
    yield

    logger = get_logger()
    for handler in list(logger.handlers):
        logger.removeHandler(handler)


@pytest.fixture
def runner():
    return CliRunner()


class TestBuild:

    def test_invalid_image_name(self, runner):
        with runner.isolated_filesystem():
            with open("image-builder.yml", "w") as fd:
                fd.write(CONFIGURATION)

            with patch("image_builder.cli.ImageBuildOrchestrator.run") as run:
                result = runner.invoke(cli, ["build", "not valid!"])

        assert result.exit_code == 1
        run.assert_not_called()

    def test_missing_configuration(self, runner):
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["build", "wordpress"])

        assert result.exit_code == 1

    def test_success(self, runner):
        with runner.isolated_filesystem():
            with open("image-builder.yml", "w") as fd:
                fd.write(CONFIGURATION)

            with patch("image_builder.cli.ImageBuildOrchestrator.run") as run:
                run.return_value = BuildResult("wordpress", "a" * 64, "build-1", None, BuildState.DONE, 12.5)

                result = runner.invoke(cli, ["build", "wordpress", "--host", "10.0.0.5", "--manifest", "other.yml"])

        assert result.exit_code == 0, result.output
        run.assert_called_once_with("wordpress")

    def test_overrides_reach_the_configuration(self, runner):
        with runner.isolated_filesystem():
            with open("image-builder.yml", "w") as fd:
                fd.write(CONFIGURATION)

            with patch("image_builder.cli.ImageBuildOrchestrator") as orchestrator_class:
                orchestrator_class.return_value.run.return_value = BuildResult("wordpress", "a" * 64, "build-1", None, BuildState.DONE, 1.0)

                runner.invoke(cli, ["build", "wordpress", "--host", "10.0.0.5", "--manifest", "other.yml"])

        configuration = orchestrator_class.call_args[0][0]
        assert configuration.lxd.host == "10.0.0.5"
        assert configuration.build.manifest == "other.yml"

    def test_build_failure(self, runner):
        with runner.isolated_filesystem():
            with open("image-builder.yml", "w") as fd:
                fd.write(CONFIGURATION)

            with patch("image_builder.cli.ImageBuildOrchestrator.run") as run:
                run.side_effect = OperationFailedError("op-1", "publish", "disk full")

                result = runner.invoke(cli, ["build", "wordpress"])

        assert result.exit_code == 1


class TestInitConfig:

    def test_writes_template(self, runner):
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["init-config", "--configuration-file", "conf/image-builder.yml"])

            assert result.exit_code == 0
            with open("conf/image-builder.yml") as fd:
                assert "${LXD_HOST}" in fd.read()

    def test_refuses_to_overwrite(self, runner):
        with runner.isolated_filesystem():
            with open("image-builder.yml", "w") as fd:
                fd.write("keep me")

            result = runner.invoke(cli, ["init-config"])

            assert result.exit_code == 1
            with open("image-builder.yml") as fd:
                assert fd.read() == "keep me"
