"""
LibratoProvider reconciles alerts, metrics and services against the Librato API.
"""

import dataclasses
import os

import pydantic

from provisioner.exceptions.provider_config_exception import ProviderConfigException
from provisioner.providers.base.base_provider import BaseProvider
from provisioner.providers.librato_provider.librato_client import (
    LibratoApiException,
    LibratoClient,
)
from provisioner.providers.librato_provider.resources.alert_resource import (
    AlertResource,
)
from provisioner.providers.librato_provider.resources.metric_resource import (
    MetricResource,
)
from provisioner.providers.librato_provider.resources.service_resource import (
    ServiceResource,
)
from provisioner.providers.models.provider_config import ProviderConfig, ProviderScope


@pydantic.dataclasses.dataclass
class LibratoProviderAuthConfig:
    """
    Librato authentication configuration.
    """

    email: str = dataclasses.field(
        metadata={
            "required": True,
            "description": "The email address for the Librato account",
            "env": "LIBRATO_EMAIL",
        },
        default=None,
    )
    token: str = dataclasses.field(
        metadata={
            "required": True,
            "description": "The auth token for the Librato account",
            "sensitive": True,
            "env": "LIBRATO_TOKEN",
        },
        default=None,
    )
    url: pydantic.AnyHttpUrl | None = dataclasses.field(
        metadata={
            "required": False,
            "description": "The Librato API URL to use for all requests",
            "hint": "e.g. https://metrics-api.librato.com/v1/",
            "validation": "any_http_url",
            "env": "LIBRATO_URL",
        },
        default=None,
    )


class LibratoProvider(BaseProvider):
    PROVIDER_DISPLAY_NAME = "Librato"
    PROVIDER_SCOPES = [
        ProviderScope(
            name="alerts", description="Manage Librato alerts", mandatory=True
        ),
        ProviderScope(name="metrics", description="Manage Librato metrics"),
        ProviderScope(name="services", description="Manage Librato services"),
    ]
    RESOURCES = {
        AlertResource.RESOURCE_TYPE: AlertResource,
        MetricResource.RESOURCE_TYPE: MetricResource,
        ServiceResource.RESOURCE_TYPE: ServiceResource,
    }

    def __init__(self, provider_id: str, config: ProviderConfig, **resource_kwargs):
        self._client = None
        super().__init__(provider_id, config, **resource_kwargs)

    def dispose(self):
        if self._client is not None:
            self._client.session.close()
            self._client = None

    def validate_config(self):
        authentication = dict(self.config.authentication or {})
        # unset fields fall back to the LIBRATO_* environment variables
        for field in dataclasses.fields(LibratoProviderAuthConfig):
            env_name = field.metadata.get("env")
            if not authentication.get(field.name) and os.environ.get(env_name):
                authentication[field.name] = os.environ[env_name]

        try:
            self.authentication_config = LibratoProviderAuthConfig(**authentication)
        except (pydantic.ValidationError, TypeError) as e:
            raise ProviderConfigException(
                f"Invalid Librato configuration: {e}", self.provider_id
            ) from e

        for field in ("email", "token"):
            if not getattr(self.authentication_config, field):
                raise ProviderConfigException(
                    f"Librato {field} is required", self.provider_id
                )

    @property
    def client(self) -> LibratoClient:
        if self._client is None:
            url = self.authentication_config.url
            self._client = LibratoClient(
                self.authentication_config.email,
                self.authentication_config.token,
                base_url=str(url) if url else None,
            )
            self.logger.debug(
                "Librato client created", extra={"base_url": self._client.base_url}
            )
        return self._client

    def validate_scopes(self) -> dict[str, bool | str]:
        probes = {
            "alerts": self.client.alerts.list,
            "metrics": self.client.metrics.list,
            "services": self.client.services.list,
        }
        scopes = {}
        for scope, probe in probes.items():
            try:
                probe()
                scopes[scope] = True
            except LibratoApiException as e:
                self.logger.warning(
                    "Scope validation failed",
                    extra={"scope": scope, "status_code": e.status_code},
                )
                scopes[scope] = f"Unable to read {scope} from Librato: {e}"
        return scopes
