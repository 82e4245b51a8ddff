"""
Provider configuration model.
"""
import os
from dataclasses import dataclass
from typing import Optional

import chevron
import yaml


@dataclass
class ProviderConfig:
    """
    Provider configuration model.

    Args:
        description (Optional[str]): The description of the provider.
        authentication (dict): The configuration for the provider.
    """

    authentication: Optional[dict]
    name: Optional[str] = None
    description: Optional[str] = None

    def __post_init__(self):
        if not self.authentication:
            return
        for key, value in self.authentication.items():
            if (
                isinstance(value, str)
                and value.startswith("{{")
                and value.endswith("}}")
            ):
                self.authentication[key] = chevron.render(value, {"env": os.environ})

    @classmethod
    def from_file(cls, path: str) -> "ProviderConfig":
        """
        Load a provider configuration from a yaml file:

            name: librato-prod
            authentication:
              email: ops@example.com
              token: "{{ env.LIBRATO_TOKEN }}"
        """
        with open(path, "r") as f:
            raw = yaml.safe_load(f) or {}
        return cls(
            authentication=raw.get("authentication") or {},
            name=raw.get("name"),
            description=raw.get("description"),
        )


@dataclass
class ProviderScope:
    """
    A permission the provider needs on the remote API.

    Args:
        name (str): The name of the scope.
        description (Optional[str]): What the scope is used for.
        mandatory (bool): Whether the provider is unusable without it.
    """

    name: str
    description: Optional[str] = None
    mandatory: bool = False
