"""
Reconciler for Librato alerts.
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
    DEFAULT_REARM_SECONDS,
    expand_alert,
    expand_alert_condition,
    expand_services,
    flatten_alert,
)
from provisioner.providers.librato_provider.librato_models import (
    Alert,
    AlertAttributes,
)
from provisioner.providers.librato_provider.resources.librato_resource import (
    LibratoResource,
)
from provisioner.providers.models.resource_data import (
    TYPE_BOOL,
    TYPE_FLOAT,
    TYPE_INT,
    TYPE_LIST,
    TYPE_SET,
    TYPE_STRING,
    Field,
    ResourceData,
)

TAG_SCHEMA = {
    "name": Field(TYPE_STRING, required=True),
    "grouped": Field(TYPE_BOOL, default=False),
    "values": Field(TYPE_SET, elem=TYPE_STRING),
}

CONDITION_SCHEMA = {
    "type": Field(TYPE_STRING, required=True),
    "metric_name": Field(TYPE_STRING, required=True),
    "source": Field(TYPE_STRING),
    "tag": Field(TYPE_LIST, elem=TAG_SCHEMA),
    "detect_reset": Field(TYPE_BOOL),
    "duration": Field(TYPE_INT),
    "threshold": Field(TYPE_FLOAT),
    "summary_function": Field(TYPE_STRING),
}

ATTRIBUTES_SCHEMA = {
    "runbook_url": Field(TYPE_STRING),
}


class AlertResource(LibratoResource):
    RESOURCE_TYPE = "librato_alert"
    SCHEMA = {
        "name": Field(TYPE_STRING, required=True),
        "description": Field(TYPE_STRING),
        "active": Field(TYPE_BOOL, default=True),
        "md": Field(TYPE_BOOL, default=True),
        "rearm_seconds": Field(TYPE_INT, default=DEFAULT_REARM_SECONDS),
        "services": Field(TYPE_SET, elem=TYPE_STRING),
        "condition": Field(TYPE_LIST, elem=CONDITION_SCHEMA),
        "attributes": Field(TYPE_LIST, elem=ATTRIBUTES_SCHEMA, max_items=1),
    }

    def create(self, d: ResourceData, client: LibratoClient) -> str:
        d.validate()
        alert = expand_alert(d)

        self.logger.info("Creating new alert", extra={"alert": alert.to_payload()})
        try:
            created = client.alerts.create(alert)
        except LibratoApiException as e:
            raise self.failure(
                e, CreateFailedException, f"Error creating Librato alert {alert.name}", None
            ) from e

        alert_id = created.id
        d.set_id(str(alert_id))
        self.wait_until_visible(
            lambda: client.alerts.get(alert_id), alert_id, CreateFailedException
        )

        self.read(d, client)
        return d.id

    def read(self, d: ResourceData, client: LibratoClient) -> ResourceData:
        alert_id = self.parse_numeric_id(d)
        try:
            alert = client.alerts.get(alert_id)
        except LibratoApiException as e:
            if e.is_not_found:
                self.logger.warning(
                    "Alert not found, removing from state",
                    extra={"resource_id": alert_id},
                )
                d.set_id("")
                d.clear()
                return d
            raise self.failure(
                e, ReadFailedException, "Error reading Librato alert", d.id
            ) from e

        self.logger.debug("Librato alert read", extra={"alert": alert.model_dump()})
        return self.apply_flattened(d, flatten_alert(alert))

    def update(self, d: ResourceData, client: LibratoClient) -> ResourceData:
        alert_id = self.parse_numeric_id(d)
        d.validate()

        # the API requires these on every update
        alert = Alert(name=d.get("name"), active=d.get("active"), md=d.get("md"))

        if d.has_change("description"):
            alert.description = d.get("description")
        if d.has_change("rearm_seconds"):
            alert.rearm_seconds = d.get("rearm_seconds")
        if d.has_change("services"):
            alert.services = expand_services(d.get("services"))
        if d.has_change("condition"):
            alert.conditions = [expand_alert_condition(c) for c in d.get("condition")]
        if d.has_change("attributes"):
            alert.attributes = self._updated_attributes(d)

        self.logger.info(
            "Updating Librato alert",
            extra={"resource_id": alert_id, "alert": alert.to_payload()},
        )
        try:
            client.alerts.update(alert_id, alert)
        except LibratoApiException as e:
            if e.is_not_found:
                raise ResourceNotFoundException(
                    "Alert no longer exists", self.RESOURCE_TYPE, d.id
                ) from e
            raise UpdateFailedException(
                f"Error updating Librato alert: {e}", self.RESOURCE_TYPE, d.id
            ) from e

        self.logger.info("Updated Librato alert", extra={"resource_id": alert_id})
        self.wait_until_stable(
            lambda: client.alerts.get(alert_id), d.id, UpdateFailedException
        )
        return self.read(d, client)

    @staticmethod
    def _updated_attributes(d: ResourceData) -> AlertAttributes:
        attributes, ok = d.get_ok("attributes")
        if not ok or not attributes:
            # send an explicit empty runbook so the server drops it
            return AlertAttributes(runbook_url="")
        runbook_url = attributes[0].get("runbook_url")
        if runbook_url:
            return AlertAttributes(runbook_url=runbook_url)
        return AlertAttributes()

    def delete(self, d: ResourceData, client: LibratoClient) -> None:
        alert_id = self.parse_numeric_id(d)

        self.logger.info("Deleting alert", extra={"resource_id": alert_id})
        try:
            client.alerts.delete(alert_id)
        except LibratoApiException as e:
            if not e.is_not_found:
                raise DeleteFailedException(
                    f"Error deleting alert: {e}", self.RESOURCE_TYPE, d.id
                ) from e
            self.logger.info("Alert already gone", extra={"resource_id": alert_id})
        else:
            self.wait_until_gone(
                lambda: client.alerts.get(alert_id), d.id, DeleteFailedException
            )

        d.set_id("")
        d.clear()
