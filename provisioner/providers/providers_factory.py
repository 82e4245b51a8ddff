"""
The providers factory module.
"""

import importlib
import logging

from provisioner.providers.base.base_provider import BaseProvider
from provisioner.providers.models.provider_config import ProviderConfig

logger = logging.getLogger(__name__)


class ProviderConfigurationException(Exception):
    pass


class ProvidersFactory:
    @staticmethod
    def get_provider_class(provider_type: str) -> type[BaseProvider]:
        try:
            module = importlib.import_module(
                f"provisioner.providers.{provider_type}_provider.{provider_type}_provider"
            )
        except ModuleNotFoundError as e:
            if not (e.name or "").startswith("provisioner."):
                raise
            raise ProviderConfigurationException(
                f"Unknown provider type: {provider_type}"
            ) from e
        return getattr(module, provider_type.title().replace("_", "") + "Provider")

    @staticmethod
    def get_provider(
        provider_id: str,
        provider_type: str,
        provider_config: dict,
        **kwargs,
    ) -> BaseProvider:
        """
        Get the instantiated provider class according to the provider type.

        Args:
            provider_id (str): The provider id.
            provider_type (str): The provider type, e.g. "librato".
            provider_config (dict): The provider configuration.

        Returns:
            BaseProvider: The provider class.
        """
        provider_class = ProvidersFactory.get_provider_class(provider_type)
        provider_config = ProviderConfig(**provider_config)
        logger.debug(
            "Instantiating provider",
            extra={"provider_id": provider_id, "provider_type": provider_type},
        )
        return provider_class(provider_id=provider_id, config=provider_config, **kwargs)

    @staticmethod
    def get_resource_types(provider_type: str) -> dict:
        """Resource type name -> schema, without instantiating the provider."""
        provider_class = ProvidersFactory.get_provider_class(provider_type)
        return {
            resource_type: resource_class.SCHEMA
            for resource_type, resource_class in provider_class.RESOURCES.items()
        }
