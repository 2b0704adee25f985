import pytest

from image_builder.configuration.properties import AppConfig, BuildConfig, LxdConfig, TimeoutsConfig, TokenAuthConfig
from image_builder.entities import ProvisioningManifest

from .fake_lxd import FakeLxd


@pytest.fixture
def fake_lxd():
    return FakeLxd()


@pytest.fixture
def app_config():
    return AppConfig(
        lxd=LxdConfig(host="lxd.test", auth=TokenAuthConfig(token="secret")),
        build=BuildConfig(start_grace_period=0, ready_interval=0, ready_attempts=3),
        timeouts=TimeoutsConfig(poll_interval=0),
    )


@pytest.fixture
def manifest(tmp_path):
    (tmp_path / "payload").mkdir()
    (tmp_path / "payload" / "bootstrap.sh").write_text("#!/bin/bash\necho bootstrap\n")

    return ProvisioningManifest.from_yaml(
        """
version: 1
steps:
  - type: command
    name: Installing packages
    timeout: long
    run: apt install -y nginx
  - type: file
    name: Copying bootstrap script
    source: payload/bootstrap.sh
    destination: /usr/local/sbin/bootstrap.sh
    mode: "0750"
  - type: command
    name: Enabling nginx
    argv: [systemctl, enable, nginx]
""",
        base_dir=tmp_path,
    )
