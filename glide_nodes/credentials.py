import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx

from .config import Settings, get_settings
from .errors import ValidationError
from .schema import Credential, NodeProperty, PropertyOption


logger = logging.getLogger(__name__)


class CredentialType(ABC):
    """Static shape of a credential plus its header-injection rule and liveness probe."""

    name: str = ""
    display_name: str = ""
    documentation_url: str = ""
    secret_field: str = "apiToken"
    properties: List[NodeProperty] = []

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def load(self, data: Dict[str, Any]) -> Credential:
        secret = (data or {}).get(self.secret_field) or ""
        if not isinstance(secret, str) or not secret.strip():
            raise ValidationError(f"Credential '{self.name}' is missing '{self.secret_field}'")
        env = (data or {}).get("environment") or "test"
        if env not in ("test", "live"):
            raise ValidationError(f"Unknown environment '{env}'")
        return Credential(secret=secret.strip(), environment=env)

    @abstractmethod
    def base_url(self, credential: Credential) -> str:
        raise NotImplementedError

    @abstractmethod
    def authenticate(self, credential: Credential) -> Dict[str, str]:
        raise NotImplementedError

    @abstractmethod
    def test_request(self, credential: Credential) -> Dict[str, str]:
        raise NotImplementedError


_ENVIRONMENT = NodeProperty(
    displayName="Environment",
    name="environment",
    type="options",
    default="test",
    options=[
        PropertyOption(name="Test", value="test", description="Use test environment (sandbox)"),
        PropertyOption(name="Live", value="live", description="Use live environment (production)"),
    ],
)


class GlideappsApi(CredentialType):
    name = "glideappsApi"
    display_name = "Glide Apps API"
    documentation_url = "https://apidocs.glideapps.com/api-reference/v2/general/authentication"
    properties = [
        _ENVIRONMENT,
        NodeProperty(
            displayName="API Token",
            name="apiToken",
            type="string",
            required=True,
            default="",
            typeOptions={"password": True},
            description="Your Glide Apps API Token",
        ),
    ]

    def base_url(self, credential: Credential) -> str:
        return self.settings.glide_api_base

    def authenticate(self, credential: Credential) -> Dict[str, str]:
        return {"Authorization": f"Bearer {credential.secret}"}

    def test_request(self, credential: Credential) -> Dict[str, str]:
        return {"method": "GET", "url": self.base_url(credential) + "/apps"}


class ShippoApi(CredentialType):
    name = "shippoApi"
    display_name = "Shippo API"
    documentation_url = "https://docs.goshippo.com/docs/guides_general/authentication/"
    api_version = "2018-02-08"
    properties = [
        _ENVIRONMENT,
        NodeProperty(
            displayName="API Token",
            name="apiToken",
            type="string",
            required=True,
            default="",
            typeOptions={"password": True},
            description='Your Shippo API Token (starts with "shippo_test_" or "shippo_live_")',
        ),
    ]

    def base_url(self, credential: Credential) -> str:
        if credential.environment == "live":
            return self.settings.shippo_api_base_live
        return self.settings.shippo_api_base_test

    def authenticate(self, credential: Credential) -> Dict[str, str]:
        return {
            "Authorization": f"ShippoToken {credential.secret}",
            "Shippo-API-Version": self.api_version,
        }

    def test_request(self, credential: Credential) -> Dict[str, str]:
        return {"method": "GET", "url": self.base_url(credential) + "/addresses/"}


CREDENTIAL_TYPES = {c.name: c for c in (GlideappsApi, ShippoApi)}


def get_credential_type(name: str, settings: Optional[Settings] = None) -> CredentialType:
    cls = CREDENTIAL_TYPES.get(name)
    if cls is None:
        raise ValidationError(f"Unknown credential type '{name}'")
    return cls(settings)


async def verify_credential(cred_type: CredentialType, credential: Credential, http: httpx.AsyncClient) -> Dict[str, str]:
    """Run the liveness probe; never raises."""
    req = cred_type.test_request(credential)
    try:
        r = await http.request(req["method"], req["url"], headers=cred_type.authenticate(credential))
        r.raise_for_status()
    except httpx.HTTPStatusError as e:
        logger.info("credential test for %s failed with status %s", cred_type.name, e.response.status_code)
        return {"status": "Error", "message": f"Request failed with status code {e.response.status_code}"}
    except httpx.HTTPError as e:
        logger.info("credential test for %s failed: %s", cred_type.name, e)
        return {"status": "Error", "message": str(e) or e.__class__.__name__}
    return {"status": "OK", "message": "Connection successful"}
