from provisioner.providers.base.base_resource import BaseResource
from provisioner.providers.base.resource_exceptions import (
    ResourceException,
    ResourceValidationException,
    ShapeException,
)
from provisioner.providers.librato_provider.librato_client import (
    LibratoApiException,
    LibratoDecodeException,
)
from provisioner.providers.models.resource_data import ResourceData


class LibratoResource(BaseResource):
    @staticmethod
    def is_not_found(error: Exception) -> bool:
        return isinstance(error, LibratoApiException) and error.is_not_found

    def failure(
        self,
        error: Exception,
        error_class: type[ResourceException],
        message: str,
        resource_id,
    ) -> ResourceException:
        if isinstance(error, LibratoDecodeException):
            return ShapeException(str(error), self.RESOURCE_TYPE, resource_id)
        return super().failure(error, error_class, message, resource_id)

    def parse_numeric_id(self, d: ResourceData) -> int:
        try:
            resource_id = int(d.id)
        except (TypeError, ValueError):
            raise ResourceValidationException(
                f"id '{d.id}' is not a number", self.RESOURCE_TYPE, d.id
            ) from None
        if resource_id < 0:
            raise ResourceValidationException(
                f"id '{d.id}' is negative", self.RESOURCE_TYPE, d.id
            )
        return resource_id

    def apply_flattened(self, d: ResourceData, flattened: dict) -> ResourceData:
        d.clear()
        for key, value in flattened.items():
            d.set(key, value)
        return d
