"""
Reconciler for Librato notification services (the targets alerts notify).
"""

from provisioner.providers.base.resource_exceptions import (
    CreateFailedException,
    DeleteFailedException,
    ReadFailedException,
    ResourceNotFoundException,
    UpdateFailedException,
)
from provisioner.providers.librato_provider.librato_client import (
    LibratoApiException,
    LibratoClient,
)
from provisioner.providers.librato_provider.librato_converters import (
    expand_service,
    flatten_service,
)
from provisioner.providers.librato_provider.resources.librato_resource import (
    LibratoResource,
)
from provisioner.providers.models.resource_data import (
    TYPE_MAP,
    TYPE_STRING,
    Field,
    ResourceData,
)


class ServiceResource(LibratoResource):
    RESOURCE_TYPE = "librato_service"
    SCHEMA = {
        "type": Field(TYPE_STRING, required=True),
        "title": Field(TYPE_STRING, required=True),
        "settings": Field(TYPE_MAP, required=True, elem=TYPE_STRING),
    }

    def create(self, d: ResourceData, client: LibratoClient) -> str:
        d.validate()
        service = expand_service(d)

        self.logger.info(
            "Creating new service",
            extra={"type": service.type, "title": service.title},
        )
        try:
            created = client.services.create(service)
        except LibratoApiException as e:
            raise self.failure(
                e,
                CreateFailedException,
                f"Error creating Librato service {service.title}",
                None,
            ) from e

        service_id = created.id
        d.set_id(str(service_id))
        self.wait_until_visible(
            lambda: client.services.get(service_id), service_id, CreateFailedException
        )

        self.read(d, client)
        return d.id

    def read(self, d: ResourceData, client: LibratoClient) -> ResourceData:
        service_id = self.parse_numeric_id(d)
        try:
            service = client.services.get(service_id)
        except LibratoApiException as e:
            if e.is_not_found:
                self.logger.warning(
                    "Service not found, removing from state",
                    extra={"resource_id": service_id},
                )
                d.set_id("")
                d.clear()
                return d
            raise self.failure(
                e, ReadFailedException, "Error reading Librato service", d.id
            ) from e

        return self.apply_flattened(d, flatten_service(service))

    def update(self, d: ResourceData, client: LibratoClient) -> ResourceData:
        service_id = self.parse_numeric_id(d)
        d.validate()
        # services are small, always send the whole object
        service = expand_service(d)

        self.logger.info("Updating Librato service", extra={"resource_id": service_id})
        try:
            client.services.update(service_id, service)
        except LibratoApiException as e:
            if e.is_not_found:
                raise ResourceNotFoundException(
                    "Service no longer exists", self.RESOURCE_TYPE, d.id
                ) from e
            raise UpdateFailedException(
                f"Error updating Librato service: {e}", self.RESOURCE_TYPE, d.id
            ) from e

        self.wait_until_stable(
            lambda: client.services.get(service_id), d.id, UpdateFailedException
        )
        return self.read(d, client)

    def delete(self, d: ResourceData, client: LibratoClient) -> None:
        service_id = self.parse_numeric_id(d)

        self.logger.info("Deleting service", extra={"resource_id": service_id})
        try:
            client.services.delete(service_id)
        except LibratoApiException as e:
            if not e.is_not_found:
                raise DeleteFailedException(
                    f"Error deleting service: {e}", self.RESOURCE_TYPE, d.id
                ) from e
        else:
            self.wait_until_gone(
                lambda: client.services.get(service_id), d.id, DeleteFailedException
            )

        d.set_id("")
        d.clear()
