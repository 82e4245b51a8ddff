"""
Expanders and flatteners between ResourceData and the Librato models.

Expanders only copy fields the configuration explicitly provides, so partial
updates never clobber values held by the server. Flatteners only return fields
the API actually returned.
"""

import math

from provisioner.providers.base.resource_exceptions import ShapeException
from provisioner.providers.librato_provider.librato_models import (
    Alert,
    AlertAttributes,
    AlertCondition,
    AlertConditionTagSet,
    Metric,
    MetricAttributes,
    Service,
    ServiceRef,
)
from provisioner.providers.models.resource_data import ResourceData

DEFAULT_REARM_SECONDS = 600

METRIC_ATTRIBUTES_STRINGS = [
    "color",
    "display_max",
    "display_min",
    "display_units_long",
    "display_units_short",
]
METRIC_ATTRIBUTES_BOOLS = ["display_stacked", "gap_detection", "aggregate"]


# Expanders


def expand_alert(d: ResourceData) -> Alert:
    alert = Alert(name=d.get("name"), active=d.get("active"), md=d.get("md"))

    if d.is_set("description"):
        alert.description = d.get("description")
    if d.is_set("rearm_seconds"):
        alert.rearm_seconds = d.get("rearm_seconds")
    if d.is_set("services"):
        alert.services = expand_services(d.get("services"))
    if d.is_set("condition"):
        alert.conditions = [expand_alert_condition(c) for c in d.get("condition")]
    if d.is_set("attributes"):
        alert.attributes = expand_alert_attributes(d.get("attributes"))
    return alert


def expand_services(services) -> list[ServiceRef]:
    ids = []
    for service_id in services:
        try:
            ids.append(int(service_id))
        except (TypeError, ValueError):
            raise ShapeException(
                f"service id '{service_id}' is not a number"
            ) from None
    return [ServiceRef(id=service_id) for service_id in sorted(set(ids))]


def expand_alert_condition(m: dict) -> AlertCondition:
    condition = AlertCondition()
    if m.get("type") is not None:
        condition.type = m["type"]
    if m.get("metric_name"):
        condition.metric_name = m["metric_name"]
    if m.get("source"):
        condition.source = m["source"]
    if m.get("detect_reset") is not None:
        condition.detect_reset = m["detect_reset"]
    if m.get("duration") is not None:
        condition.duration = m["duration"]
    if m.get("summary_function") is not None:
        condition.summary_function = m["summary_function"]
    threshold = m.get("threshold")
    if threshold is not None and not math.isnan(threshold):
        condition.threshold = threshold
    if m.get("tag"):
        condition.tags = [expand_alert_condition_tag_set(t) for t in m["tag"]]
    return condition


def expand_alert_condition_tag_set(m: dict) -> AlertConditionTagSet:
    tag = AlertConditionTagSet()
    if m.get("name") is not None:
        tag.name = m["name"]
    if m.get("grouped") is not None:
        tag.grouped = m["grouped"]
    if m.get("values") is not None:
        tag.values = sorted(m["values"])
    return tag


def expand_alert_attributes(attributes: list) -> AlertAttributes:
    """An empty list (or an empty block) means "clear the attributes"."""
    if not attributes or not attributes[0]:
        return AlertAttributes()
    attr = AlertAttributes()
    if attributes[0].get("runbook_url") is not None:
        attr.runbook_url = attributes[0]["runbook_url"]
    return attr


def expand_metric(d: ResourceData) -> Metric:
    metric = Metric(name=d.get("name"), type=d.get("type"))

    for key in ("display_name", "description", "period", "composite"):
        if d.is_set(key):
            setattr(metric, key, d.get(key))
    if d.is_set("attributes"):
        metric.attributes = expand_metric_attributes(d.get("attributes"))
    return metric


def expand_metric_attributes(attributes: list) -> MetricAttributes:
    """
    Build the full attributes object. An empty list yields a zero-valued
    object, which clears whatever the server holds.
    """
    attr = MetricAttributes()
    if len(attributes) != 1 or not attributes[0]:
        return attr

    m = attributes[0]
    for key in METRIC_ATTRIBUTES_STRINGS:
        if m.get(key):
            setattr(attr, key, m[key])
    for key in METRIC_ATTRIBUTES_BOOLS:
        if isinstance(m.get(key), bool):
            setattr(attr, key, m[key])
    return attr


def expand_service(d: ResourceData) -> Service:
    return Service(
        type=d.get("type"), title=d.get("title"), settings=dict(d.get("settings"))
    )


# Flatteners


def flatten_alert(alert: Alert) -> dict:
    m = {}
    for key in ("name", "description", "active", "md"):
        value = getattr(alert, key)
        if value is not None:
            m[key] = value
    if (
        alert.rearm_seconds is not None
        and alert.rearm_seconds != DEFAULT_REARM_SECONDS
    ):
        m["rearm_seconds"] = alert.rearm_seconds
    if alert.services:
        m["services"] = flatten_services(alert.services)
    if alert.conditions:
        m["condition"] = [flatten_condition(c) for c in alert.conditions]
    if alert.attributes is not None:
        attributes = flatten_alert_attributes(alert.attributes)
        if attributes:
            m["attributes"] = attributes
    return m


def flatten_services(services: list[ServiceRef]) -> frozenset:
    return frozenset(str(service.id) for service in services)


def flatten_condition(condition: AlertCondition) -> dict:
    m = {}
    for key in (
        "type",
        "metric_name",
        "source",
        "detect_reset",
        "threshold",
        "summary_function",
        "duration",
    ):
        value = getattr(condition, key)
        if value is not None:
            m[key] = value
    if condition.tags:
        m["tag"] = [flatten_tag_set(tag) for tag in condition.tags]
    return m


def flatten_tag_set(tag: AlertConditionTagSet) -> dict:
    m = {}
    if tag.name is not None:
        m["name"] = tag.name
    if tag.grouped is not None:
        m["grouped"] = tag.grouped
    if tag.values:
        m["values"] = frozenset(tag.values)
    return m


def flatten_alert_attributes(attributes: AlertAttributes) -> list:
    m = {}
    if attributes.runbook_url is not None:
        m["runbook_url"] = attributes.runbook_url
    if not m:
        return []
    return [m]


def flatten_metric(metric: Metric) -> dict:
    m = {}
    for key in (
        "name",
        "type",
        "description",
        "display_name",
        "period",
        "composite",
    ):
        value = getattr(metric, key)
        if value is not None:
            m[key] = value
    attributes = flatten_metric_attributes(metric.attributes)
    if attributes:
        m["attributes"] = attributes
    return m


def _display_bound(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def flatten_metric_attributes(attributes: MetricAttributes | None) -> list:
    if attributes is None:
        return []
    m = {}
    for key in METRIC_ATTRIBUTES_STRINGS:
        value = getattr(attributes, key)
        if value is None:
            continue
        if key in ("display_max", "display_min"):
            value = _display_bound(value)
        m[key] = value
    for key in METRIC_ATTRIBUTES_BOOLS:
        value = getattr(attributes, key)
        if value is not None:
            m[key] = value
    if not m:
        return []
    return [m]


def flatten_service(service: Service) -> dict:
    m = {}
    if service.type is not None:
        m["type"] = service.type
    if service.title is not None:
        m["title"] = service.title
    if service.settings is not None:
        m["settings"] = {
            key: value if isinstance(value, str) else str(value)
            for key, value in service.settings.items()
            if value is not None
        }
    return m
