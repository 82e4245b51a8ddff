"""
Base class for all providers.
"""

import abc
import logging
import os
import re

from provisioner.providers.base.base_resource import BaseResource
from provisioner.providers.base.resource_exceptions import (
    ResourceValidationException,
)
from provisioner.providers.models.provider_config import (
    ProviderConfig,
    ProviderScope,
)
from provisioner.providers.models.resource_data import ResourceData


class BaseProvider(metaclass=abc.ABCMeta):
    PROVIDER_DISPLAY_NAME: str = ""
    PROVIDER_SCOPES: list[ProviderScope] = []
    # resource type name -> reconciler class
    RESOURCES: dict[str, type[BaseResource]] = {}

    def __init__(self, provider_id: str, config: ProviderConfig, **resource_kwargs):
        """
        Initialize a provider.

        Args:
            provider_id (str): The provider id.
            config (ProviderConfig): Provider configuration loaded from the provider yaml file.
            **resource_kwargs: Passed to every resource reconciler (e.g. clock/sleep overrides).
        """
        self.provider_id = provider_id
        self.config = config

        self.logger = logging.getLogger(self.provider_id)
        self.logger.setLevel(
            os.environ.get(
                "PROVISIONER_{}_PROVIDER_LOG_LEVEL".format(self.provider_id.upper()),
                os.environ.get("LOG_LEVEL", "INFO"),
            )
        )

        self.validate_config()
        self.logger.debug(
            "Base provider initialized", extra={"provider": self.__class__.__name__}
        )
        self.provider_type = self._extract_type()
        self.resources = {
            resource_type: resource_class(**resource_kwargs)
            for resource_type, resource_class in self.RESOURCES.items()
        }

    def _extract_type(self):
        """
        Extract the provider type from the provider class name.

        Returns:
            str: The provider type.
        """
        name = self.__class__.__name__
        name_without_provider = name.replace("Provider", "")
        name_with_spaces = (
            re.sub("([A-Z])", r" \1", name_without_provider).lower().strip()
        )
        return name_with_spaces.replace(" ", ".")

    @abc.abstractmethod
    def dispose(self):
        """
        Dispose of the provider.
        """
        raise NotImplementedError("dispose() method not implemented")

    @abc.abstractmethod
    def validate_config(self):
        """
        Validate provider configuration.
        """
        raise NotImplementedError("validate_config() method not implemented")

    @property
    @abc.abstractmethod
    def client(self):
        """
        The API client handed to every reconciler call.
        """
        raise NotImplementedError("client property not implemented")

    def validate_scopes(self) -> dict[str, bool | str]:
        """
        Validate provider scopes.

        Returns:
            dict: where key is the scope name and value is whether the scope is valid (True boolean) or string with error message.
        """
        return {}

    def get_resource(self, resource_type: str) -> BaseResource:
        try:
            return self.resources[resource_type]
        except KeyError:
            raise ResourceValidationException(
                f"unknown resource type '{resource_type}', expected one of {sorted(self.resources)}"
            ) from None

    def resource_data(
        self,
        resource_type: str,
        config: dict | None = None,
        prior_state: dict | None = None,
        id: str = "",
    ) -> ResourceData:
        resource = self.get_resource(resource_type)
        return ResourceData(
            resource.SCHEMA, config=config, prior_state=prior_state, id=id
        )

    def create(self, resource_type: str, d: ResourceData) -> str:
        return self.get_resource(resource_type).create(d, self.client)

    def read(self, resource_type: str, d: ResourceData) -> ResourceData:
        return self.get_resource(resource_type).read(d, self.client)

    def update(self, resource_type: str, d: ResourceData) -> ResourceData:
        return self.get_resource(resource_type).update(d, self.client)

    def delete(self, resource_type: str, d: ResourceData) -> None:
        self.get_resource(resource_type).delete(d, self.client)
