from ._auth import Authenticator as Authenticator
from ._auth import CertificateAuthenticator as CertificateAuthenticator
from ._auth import Pkcs12Authenticator as Pkcs12Authenticator
from ._auth import TokenAuthenticator as TokenAuthenticator
from ._auth import create_authenticator as create_authenticator
from ._client import LxdClient as LxdClient
from ._client import LxdResponse as LxdResponse
