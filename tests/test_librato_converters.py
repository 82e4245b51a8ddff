"""Tests for the Librato expanders and flatteners."""

import math

import pytest

from provisioner.providers.base.resource_exceptions import ShapeException
from provisioner.providers.librato_provider.librato_converters import (
    expand_alert,
    expand_alert_attributes,
    expand_alert_condition,
    expand_metric,
    expand_metric_attributes,
    flatten_alert,
    flatten_metric,
    flatten_service,
)
from provisioner.providers.librato_provider.librato_models import (
    Alert,
    AlertAttributes,
    Metric,
    MetricAttributes,
    Service,
)
from provisioner.providers.librato_provider.resources.alert_resource import (
    AlertResource,
)
from provisioner.providers.librato_provider.resources.metric_resource import (
    MetricResource,
)
from provisioner.providers.models.resource_data import ResourceData

FULL_ALERT = {
    "name": "cpu-high",
    "description": "CPU is high",
    "active": False,
    "md": True,
    "rearm_seconds": 300,
    "services": ["7", "12"],
    "condition": [
        {
            "type": "above",
            "metric_name": "cpu.load",
            "source": "web-*",
            "detect_reset": True,
            "duration": 300,
            "threshold": 90.5,
            "summary_function": "max",
            "tag": [{"name": "region", "grouped": True, "values": ["us", "eu"]}],
        },
        {"type": "absent", "metric_name": "cpu.idle", "duration": 600},
    ],
    "attributes": [{"runbook_url": "https://runbooks.example.com/cpu"}],
}


def test_minimal_alert_only_sends_required_flags():
    d = ResourceData(AlertResource.SCHEMA, config={"name": "cpu-high"})

    assert expand_alert(d).to_payload() == {
        "name": "cpu-high",
        "active": True,
        "md": True,
    }


def test_full_alert_round_trip():
    d = ResourceData(AlertResource.SCHEMA, config=FULL_ALERT)

    payload = expand_alert(d).to_payload()
    assert payload["services"] == [7, 12]
    assert payload["conditions"][0]["tags"] == [
        {"name": "region", "grouped": True, "values": ["eu", "us"]}
    ]

    flattened = flatten_alert(Alert.model_validate(payload))
    for key in FULL_ALERT:
        assert flattened[key] == d.get(key), key


def test_flatten_suppresses_default_rearm_seconds():
    assert "rearm_seconds" not in flatten_alert(Alert(name="a", rearm_seconds=600))
    assert flatten_alert(Alert(name="a", rearm_seconds=300))["rearm_seconds"] == 300


def test_flatten_leaves_null_fields_absent():
    flattened = flatten_alert(
        Alert(id=1, name="a", active=True, md=True, services=[], conditions=[])
    )

    assert flattened == {"name": "a", "active": True, "md": True}


def test_flatten_decodes_service_objects():
    alert = Alert.model_validate(
        {
            "name": "a",
            "services": [
                {"id": 7.0, "title": "ops mail", "type": "mail", "settings": {}},
                {"id": 12, "title": "pager", "type": "pagerduty"},
            ],
        }
    )

    assert alert.services[0].title == "ops mail"
    assert flatten_alert(alert)["services"] == frozenset({"7", "12"})


def test_non_numeric_service_id_is_a_shape_error():
    d = ResourceData(
        AlertResource.SCHEMA, config={"name": "a", "services": ["ops-mail"]}
    )

    with pytest.raises(ShapeException):
        expand_alert(d)


def test_nan_threshold_is_unset():
    condition = expand_alert_condition(
        {"type": "above", "metric_name": "m", "threshold": math.nan}
    )

    assert condition.threshold is None
    assert "threshold" not in condition.model_dump(exclude_none=True)


def test_condition_skips_empty_strings():
    condition = expand_alert_condition(
        {"type": "above", "metric_name": "m", "source": ""}
    )

    assert condition.source is None


def test_alert_attributes_clear_vs_untouched():
    untouched = ResourceData(AlertResource.SCHEMA, config={"name": "a"})
    cleared = ResourceData(
        AlertResource.SCHEMA, config={"name": "a", "attributes": []}
    )

    assert "attributes" not in expand_alert(untouched).to_payload()
    assert expand_alert(cleared).to_payload()["attributes"] == {}
    assert expand_alert_attributes([{}]) == AlertAttributes()


def test_flatten_skips_empty_alert_attributes():
    assert "attributes" not in flatten_alert(Alert(name="a", attributes={}))
    assert flatten_alert(
        Alert(name="a", attributes={"runbook_url": "https://x"})
    )["attributes"] == [{"runbook_url": "https://x"}]


def test_metric_round_trip():
    config = {
        "name": "cpu.load",
        "type": "gauge",
        "display_name": "CPU load",
        "description": "1 minute load",
        "period": 60,
        "attributes": [
            {
                "color": "#ff0000",
                "display_max": "100",
                "display_units_short": "%",
                "display_stacked": True,
            }
        ],
    }
    d = ResourceData(MetricResource.SCHEMA, config=config)

    payload = expand_metric(d).to_payload()
    assert payload["attributes"] == {
        "color": "#ff0000",
        "display_max": "100",
        "display_units_short": "%",
        "display_stacked": True,
        "gap_detection": False,
        "aggregate": False,
    }
    assert "composite" not in payload

    flattened = flatten_metric(Metric.model_validate(payload))
    for key in config:
        assert flattened[key] == d.get(key), key


def test_metric_display_bounds_read_back_as_strings():
    metric = Metric(
        name="m",
        type="gauge",
        attributes=MetricAttributes(display_max=100.0, display_min=0.5),
    )

    attributes = flatten_metric(metric)["attributes"][0]
    assert attributes["display_max"] == "100"
    assert attributes["display_min"] == "0.5"


def test_empty_metric_attributes_clear_everything():
    assert expand_metric_attributes([]) == MetricAttributes()
    assert "attributes" not in flatten_metric(Metric(name="m", attributes={}))


def test_flatten_service_stringifies_settings():
    service = Service(
        id=3, type="webhook", title="hook", settings={"url": "https://x", "retries": 3}
    )

    assert flatten_service(service) == {
        "type": "webhook",
        "title": "hook",
        "settings": {"url": "https://x", "retries": "3"},
    }
