from typing import Literal, Union

from pydantic import Field, field_validator

from ._base import BaseConfig as _BaseConfig

InstancePathStringType = Literal["instances", "containers"]


class CertificateAuthConfig(_BaseConfig):
    type: Literal["certificate"] = "certificate"
    cert_path: str = Field(..., description="Path to the PEM encoded client certificate trusted by the LXD server")
    key_path: str = Field(..., description="Path to the PEM encoded private key of the client certificate")


class Pkcs12AuthConfig(_BaseConfig):
    type: Literal["pkcs12"] = "pkcs12"
    path: str = Field(..., description="Path to the PKCS#12 (.pfx/.p12) client certificate bundle")
    password: str = Field(..., description="Passphrase protecting the PKCS#12 bundle")


class TokenAuthConfig(_BaseConfig):
    type: Literal["token"] = "token"
    token: str = Field(..., description="Bearer token sent in the Authorization header")


AuthConfig = Union[CertificateAuthConfig, Pkcs12AuthConfig, TokenAuthConfig]


class LxdConfig(_BaseConfig):
    host: str = Field(..., description="Hostname or IP address of the LXD server")
    port: int = Field(8443, description="HTTPS port of the LXD API")
    api_version: str = Field("1.0", description="API version prefix of every endpoint")
    instance_path: InstancePathStringType = Field("instances", description="Collection name used for instances, `containers` for older servers")
    verify: bool | str = Field(True, description="Verify the server certificate; may be a path to a CA bundle or the server certificate itself")
    request_timeout: int = Field(30, description="HTTP request timeout in seconds")
    auth: AuthConfig = Field(..., discriminator='type')

    @field_validator("host")
    def host_not_empty(cls, v: str):
        if not v or not v.strip():
            raise ValueError("host must not be empty")
        return v.strip()

    @property
    def base_url(self) -> str:
        return f"https://{self.host}:{self.port}"
