"""
Librato API resource models.

Every attribute is optional, None means "not sent" on writes and "not returned"
on reads.
"""

from typing import Any, Optional, Union

import pydantic


class ServiceRef(pydantic.BaseModel):
    """
    A notification service attached to an alert.

    The API accepts a list of service ids on writes and returns a list of full
    service objects on reads, both are decoded into this shape.
    """

    id: int
    title: Optional[str] = None
    type: Optional[str] = None
    settings: Optional[dict[str, Any]] = None


class AlertConditionTagSet(pydantic.BaseModel):
    name: Optional[str] = None
    grouped: Optional[bool] = None
    values: Optional[list[str]] = None


class AlertCondition(pydantic.BaseModel):
    type: Optional[str] = None
    metric_name: Optional[str] = None
    source: Optional[str] = None
    detect_reset: Optional[bool] = None
    duration: Optional[int] = None
    threshold: Optional[float] = None
    summary_function: Optional[str] = None
    tags: Optional[list[AlertConditionTagSet]] = None


class AlertAttributes(pydantic.BaseModel):
    runbook_url: Optional[str] = None


class Alert(pydantic.BaseModel):
    id: Optional[int] = None
    name: Optional[str] = None
    description: Optional[str] = None
    active: Optional[bool] = None
    md: Optional[bool] = None
    rearm_seconds: Optional[int] = None
    conditions: Optional[list[AlertCondition]] = None
    services: Optional[list[ServiceRef]] = None
    attributes: Optional[AlertAttributes] = None

    @pydantic.field_validator("services", mode="before")
    @classmethod
    def decode_services(cls, value):
        if value is None:
            return None
        services = []
        for service in value:
            if isinstance(service, ServiceRef):
                services.append(service)
            elif isinstance(service, dict):
                services.append(service)
            else:
                # bare ids, the shape used on writes
                services.append({"id": service})
        return services

    def to_payload(self) -> dict:
        payload = self.model_dump(exclude_none=True, exclude={"id", "services"})
        if self.services is not None:
            payload["services"] = [service.id for service in self.services]
        return payload


class MetricAttributes(pydantic.BaseModel):
    color: Optional[str] = None
    # the API returns numbers here, configuration holds strings
    display_max: Optional[Union[str, int, float]] = None
    display_min: Optional[Union[str, int, float]] = None
    display_units_long: Optional[str] = None
    display_units_short: Optional[str] = None
    display_stacked: Optional[bool] = None
    gap_detection: Optional[bool] = None
    aggregate: Optional[bool] = None


class Metric(pydantic.BaseModel):
    name: Optional[str] = None
    type: Optional[str] = None
    display_name: Optional[str] = None
    description: Optional[str] = None
    period: Optional[int] = None
    composite: Optional[str] = None
    attributes: Optional[MetricAttributes] = None

    def to_payload(self) -> dict:
        return self.model_dump(exclude_none=True)


class Service(pydantic.BaseModel):
    id: Optional[int] = None
    type: Optional[str] = None
    title: Optional[str] = None
    settings: Optional[dict[str, Any]] = None

    def to_payload(self) -> dict:
        return self.model_dump(exclude_none=True, exclude={"id"})
