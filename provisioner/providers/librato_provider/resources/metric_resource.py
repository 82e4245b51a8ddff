"""
Reconciler for Librato metrics.

A metric is identified by its name, and the API creates and updates metrics
with the same PUT call.
"""

from provisioner.providers.base.resource_exceptions import (
    CreateFailedException,
    DeleteFailedException,
    ReadFailedException,
    ResourceNotFoundException,
    ResourceValidationException,
    UpdateFailedException,
)
from provisioner.providers.librato_provider.librato_client import (
    LibratoApiException,
    LibratoClient,
)
from provisioner.providers.librato_provider.librato_converters import (
    expand_metric,
    expand_metric_attributes,
    flatten_metric,
)
from provisioner.providers.librato_provider.librato_models import Metric
from provisioner.providers.librato_provider.resources.librato_resource import (
    LibratoResource,
)
from provisioner.providers.models.resource_data import (
    TYPE_BOOL,
    TYPE_INT,
    TYPE_LIST,
    TYPE_STRING,
    Field,
    ResourceData,
)

ATTRIBUTES_SCHEMA = {
    "color": Field(TYPE_STRING),
    "display_max": Field(TYPE_STRING),
    "display_min": Field(TYPE_STRING),
    "display_units_long": Field(TYPE_STRING),
    "display_units_short": Field(TYPE_STRING),
    "display_stacked": Field(TYPE_BOOL, default=False),
    "gap_detection": Field(TYPE_BOOL, default=False),
    "aggregate": Field(TYPE_BOOL, default=False),
}


class MetricResource(LibratoResource):
    RESOURCE_TYPE = "librato_metric"
    SCHEMA = {
        "name": Field(TYPE_STRING, required=True),
        "type": Field(TYPE_STRING, required=True),
        "display_name": Field(TYPE_STRING),
        "description": Field(TYPE_STRING),
        "period": Field(TYPE_INT),
        "composite": Field(TYPE_STRING),
        "attributes": Field(TYPE_LIST, elem=ATTRIBUTES_SCHEMA, max_items=1),
    }

    def _metric_name(self, d: ResourceData) -> str:
        if not d.id:
            raise ResourceValidationException(
                "metric id (its name) is empty", self.RESOURCE_TYPE, d.id
            )
        return d.id

    def create(self, d: ResourceData, client: LibratoClient) -> str:
        d.validate()
        metric = expand_metric(d)

        self.logger.info(
            "Creating new metric", extra={"metric": metric.to_payload()}
        )
        try:
            client.metrics.update(metric)
        except LibratoApiException as e:
            self.logger.error("Error creating metric", extra={"error": str(e)})
            raise CreateFailedException(
                f"Error creating Librato metric: {e}", self.RESOURCE_TYPE, metric.name
            ) from e

        d.set_id(metric.name)
        self.wait_until_visible(
            lambda: client.metrics.get(metric.name),
            metric.name,
            CreateFailedException,
        )

        self.read(d, client)
        return d.id

    def read(self, d: ResourceData, client: LibratoClient) -> ResourceData:
        name = self._metric_name(d)

        self.logger.info("Reading Librato metric", extra={"resource_id": name})
        try:
            metric = client.metrics.get(name)
        except LibratoApiException as e:
            if e.is_not_found:
                self.logger.warning(
                    "Metric not found, removing from state",
                    extra={"resource_id": name},
                )
                d.set_id("")
                d.clear()
                return d
            raise self.failure(
                e, ReadFailedException, "Error reading Librato metric", name
            ) from e

        return self.apply_flattened(d, flatten_metric(metric))

    def update(self, d: ResourceData, client: LibratoClient) -> ResourceData:
        name = self._metric_name(d)
        d.validate()
        if d.get("name") != name:
            raise ResourceValidationException(
                f"renaming metric '{name}' to '{d.get('name')}' is not supported, "
                "delete it and create a new one",
                self.RESOURCE_TYPE,
                name,
            )

        metric = Metric(name=name)
        for key in ("type", "description", "display_name", "period", "composite"):
            if d.has_change(key):
                setattr(metric, key, d.get(key))
        if d.has_change("attributes"):
            # a full object, possibly empty, so removed attributes get cleared
            metric.attributes = expand_metric_attributes(d.get("attributes"))

        self.logger.info(
            "Updating Librato metric", extra={"metric": metric.to_payload()}
        )
        try:
            client.metrics.update(metric)
        except LibratoApiException as e:
            if e.is_not_found:
                raise ResourceNotFoundException(
                    "Metric no longer exists", self.RESOURCE_TYPE, name
                ) from e
            raise UpdateFailedException(
                f"Error updating Librato metric: {e}", self.RESOURCE_TYPE, name
            ) from e

        self.logger.info("Updated Librato metric", extra={"resource_id": name})
        self.wait_until_stable(
            lambda: client.metrics.get(name), name, UpdateFailedException
        )
        return self.read(d, client)

    def delete(self, d: ResourceData, client: LibratoClient) -> None:
        name = self._metric_name(d)

        self.logger.info("Deleting metric", extra={"resource_id": name})
        try:
            client.metrics.delete(name)
        except LibratoApiException as e:
            if not e.is_not_found:
                raise DeleteFailedException(
                    f"Error deleting metric: {e}", self.RESOURCE_TYPE, name
                ) from e
            self.logger.info("Metric already gone", extra={"resource_id": name})
        else:
            self.logger.info("Verifying metric deleted", extra={"resource_id": name})
            self.wait_until_gone(
                lambda: client.metrics.get(name), name, DeleteFailedException
            )

        d.set_id("")
        d.clear()
