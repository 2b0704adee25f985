"""
Authentication strategies for the LXD API.

LXD deployments authenticate clients in different ways: a trusted client
certificate (mutual TLS), the same certificate shipped as a password
protected PKCS#12 bundle, or a bearer token. Each strategy configures a
`requests.Session` and releases whatever it allocated on `close()`.
"""

from __future__ import annotations

import abc
import os
import tempfile

import requests

from cryptography.hazmat.primitives.serialization import Encoding, NoEncryption, PrivateFormat
from cryptography.hazmat.primitives.serialization import pkcs12

from ...configuration.properties import AuthConfig, CertificateAuthConfig, Pkcs12AuthConfig, TokenAuthConfig
from ...entities.exceptions import ConfigurationError
from ...utils.logging_utils import get_logger

logger = get_logger()


class Authenticator(abc.ABC):

    @abc.abstractmethod
    def apply(self, session: requests.Session) -> None:
        pass

    def close(self) -> None:
        pass


class CertificateAuthenticator(Authenticator):
    """Client certificate and key as PEM files."""

    def __init__(self, cert_path: str, key_path: str):
        for path in (cert_path, key_path):
            if not os.path.isfile(path):
                raise ConfigurationError(f"Client certificate file not found: {path}")

        self.cert_path = cert_path
        self.key_path = key_path

    def apply(self, session: requests.Session) -> None:
        session.cert = (self.cert_path, self.key_path)


class Pkcs12Authenticator(Authenticator):
    """
    Client certificate shipped as a PKCS#12 bundle protected by a passphrase.

    `requests` only accepts PEM files, so the bundle is decoded once and
    written to a private temporary directory that `close()` removes.
    """

    def __init__(self, path: str, password: str):
        if not os.path.isfile(path):
            raise ConfigurationError(f"PKCS#12 client certificate not found: {path}")

        self.path = path
        self._password = password
        self._directory: tempfile.TemporaryDirectory | None = None

    def _decode(self) -> tuple[bytes, bytes]:
        with open(self.path, "rb") as fd:
            content = fd.read()

        try:
            private_key, certificate, _ = pkcs12.load_key_and_certificates(content, self._password.encode())
        except ValueError as error:
            raise ConfigurationError(f"Cannot decode PKCS#12 bundle {self.path}: {error}") from error

        if private_key is None or certificate is None:
            raise ConfigurationError(f"PKCS#12 bundle {self.path} does not contain both a key and a certificate")

        key_pem = private_key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption())
        cert_pem = certificate.public_bytes(Encoding.PEM)
        return cert_pem, key_pem

    def apply(self, session: requests.Session) -> None:
        cert_pem, key_pem = self._decode()

        self._directory = tempfile.TemporaryDirectory(prefix="image-builder-")
        cert_path = os.path.join(self._directory.name, "client.crt")
        key_path = os.path.join(self._directory.name, "client.key")

        with open(os.open(cert_path, os.O_WRONLY | os.O_CREAT, 0o600), "wb") as fd:
            fd.write(cert_pem)
        with open(os.open(key_path, os.O_WRONLY | os.O_CREAT, 0o600), "wb") as fd:
            fd.write(key_pem)

        session.cert = (cert_path, key_path)
        logger.debug("Decoded PKCS#12 client certificate %s", self.path)

    def close(self) -> None:
        if self._directory is not None:
            self._directory.cleanup()
            self._directory = None


class TokenAuthenticator(Authenticator):
    """Bearer token sent with every request."""

    def __init__(self, token: str):
        if not token:
            raise ConfigurationError("Authentication token is empty")

        self._token = token

    def apply(self, session: requests.Session) -> None:
        session.headers["Authorization"] = f"Bearer {self._token}"


def create_authenticator(auth_config: AuthConfig) -> Authenticator:
    if isinstance(auth_config, CertificateAuthConfig):
        return CertificateAuthenticator(auth_config.cert_path, auth_config.key_path)
    elif isinstance(auth_config, Pkcs12AuthConfig):
        return Pkcs12Authenticator(auth_config.path, auth_config.password)
    elif isinstance(auth_config, TokenAuthConfig):
        return TokenAuthenticator(auth_config.token)
    else:
        raise ConfigurationError(f"Unsupported authentication: {auth_config}")
