import os

import click

from .configuration import AppConfig, LoggingConfig
from .entities.exceptions import ConfigurationError, ImageBuilderError
from .orchestrator import ImageBuildOrchestrator
from .utils.logging_utils import get_logger, init_logger

logger = get_logger()


@click.group()
def cli():
    pass


@cli.command()
@click.argument("image_name")
@click.option("--configuration-file", "configuration_file_path", type=click.Path(dir_okay=False), default="image-builder.yml", help="Path to the main configuration file.", show_default=True)
@click.option("--manifest", "manifest_path", type=click.Path(dir_okay=False), help="Path to the provisioning manifest, overrides `build.manifest`.")
@click.option("--host", type=str, help="LXD server host, overrides `lxd.host`.")
def build(
    image_name: str,
    configuration_file_path: str,
    manifest_path: str | None,
    host: str | None,
):
    """Build the image IMAGE_NAME and publish it under that alias."""

    init_logger(LoggingConfig(level="info", file=None))

    try:
        ImageBuildOrchestrator.validate_image_name(image_name)

        configuration = AppConfig.from_file(
            configuration_file_path,
            overrides={
                "lxd.host": host,
                "build.manifest": manifest_path,
            },
        )
    except ConfigurationError as error:
        logger.error(str(error))
        raise click.Abort()

    init_logger(configuration.logging)

    logger.info("Image name: %s", image_name)
    logger.info("LXD server: %s", configuration.lxd.base_url)

    orchestrator = ImageBuildOrchestrator(configuration)
    try:
        result = orchestrator.run(image_name)
    except ImageBuilderError as error:
        logger.error("Build failed in state %s: %s", orchestrator.state.value, error)
        raise click.Abort()
    except KeyboardInterrupt:
        logger.error("Build interrupted")
        raise click.Abort()

    logger.info("Build complete in %.0fs! Image `%s` (%s) is ready to use.", result.duration, result.alias, result.fingerprint[:12])


@cli.command("init-config")
@click.option("--configuration-file", "configuration_file_path", type=click.Path(dir_okay=False), default="image-builder.yml", help="Path of the configuration file to create.", show_default=True)
def init_config(
    configuration_file_path: str,
):
    """Write a configuration file template."""

    init_logger(LoggingConfig(level="info", file=None))

    if os.path.exists(configuration_file_path):
        logger.error(f"Configuration file `{configuration_file_path}` already exists.")
        raise click.Abort()

    os.makedirs(os.path.dirname(configuration_file_path) or ".", exist_ok=True)

    from .configuration import example_configuration_text
    with open(configuration_file_path, "w") as fd:
        fd.write(example_configuration_text)

    logger.info(f"Configuration file `{configuration_file_path}` created from template.")


if __name__ == "__main__":
    cli()
