from .properties import AppConfig as AppConfig
from .properties import BuildConfig as BuildConfig
from .properties import LoggingConfig as LoggingConfig
from .properties import LxdConfig as LxdConfig
from .properties import PlacementConfig as PlacementConfig
from .properties import TimeoutsConfig as TimeoutsConfig

example_configuration_text = """\
logging:
  level: info

lxd:
  host: ${LXD_HOST}
  port: 8443
  verify: false
  auth:
    type: pkcs12
    path: /tmp/lxd-client.pfx
    password: ${LXD_CERT_PASS}

placement:
  group: null

build:
  image-source:
    alias: ubuntu/24.04
  properties:
    os: ubuntu
    release: "24.04"
  manifest: manifests/wordpress.yml

timeouts:
  poll-interval: 2
  short-command: 120
  long-command: 600
"""
