"""HTTP level tests for the Librato client."""

import base64
import json

import pytest
import requests
import responses

from provisioner.providers.librato_provider.librato_client import (
    LibratoApiException,
    LibratoClient,
    LibratoDecodeException,
)
from provisioner.providers.librato_provider.librato_models import (
    Alert,
    Metric,
    ServiceRef,
)

BASE_URL = "https://metrics-api.librato.com/v1/"


@pytest.fixture
def client():
    return LibratoClient("foo@example.com", "the-token")


@responses.activate
def test_get_alert_decodes_services(client):
    responses.add(
        responses.GET,
        BASE_URL + "alerts/42",
        json={
            "id": 42,
            "name": "cpu-high",
            "active": True,
            "services": [{"id": 7, "type": "mail", "title": "ops", "settings": {}}],
            "conditions": [],
            "unknown_field": "ignored",
        },
    )

    alert = client.alerts.get(42)

    assert alert.id == 42
    assert alert.services == [ServiceRef(id=7, type="mail", title="ops", settings={})]
    expected = base64.b64encode(b"foo@example.com:the-token").decode()
    assert responses.calls[0].request.headers["Authorization"] == f"Basic {expected}"


@responses.activate
def test_not_found_is_distinguished(client):
    responses.add(responses.GET, BASE_URL + "alerts/1", status=404, json={})

    with pytest.raises(LibratoApiException) as e:
        client.alerts.get(1)

    assert e.value.status_code == 404
    assert e.value.is_not_found


@responses.activate
def test_other_errors_carry_the_status(client):
    responses.add(
        responses.POST,
        BASE_URL + "alerts",
        status=400,
        json={"errors": {"params": {"name": ["is required"]}}},
    )

    with pytest.raises(LibratoApiException) as e:
        client.alerts.create(Alert())

    assert e.value.status_code == 400
    assert not e.value.is_not_found
    assert "is required" in str(e.value)


@responses.activate
def test_create_alert_sends_service_ids(client):
    responses.add(
        responses.POST,
        BASE_URL + "alerts",
        status=201,
        json={"id": 42, "name": "cpu-high"},
    )

    created = client.alerts.create(
        Alert(name="cpu-high", active=True, md=True, services=[ServiceRef(id=7)])
    )

    assert created.id == 42
    body = json.loads(responses.calls[0].request.body)
    assert body == {"name": "cpu-high", "active": True, "md": True, "services": [7]}


@responses.activate
def test_update_returns_nothing_on_no_content(client):
    responses.add(responses.PUT, BASE_URL + "alerts/42", status=204)

    assert client.alerts.update(42, Alert(name="cpu-high")) is None


@responses.activate
def test_metric_upsert_uses_put_on_the_name(client):
    responses.add(responses.PUT, BASE_URL + "metrics/cpu.load", status=204)

    client.metrics.update(Metric(name="cpu.load", type="gauge"))

    assert responses.calls[0].request.method == "PUT"
    assert json.loads(responses.calls[0].request.body) == {
        "name": "cpu.load",
        "type": "gauge",
    }


@responses.activate
def test_custom_base_url():
    client = LibratoClient("foo@example.com", "t", base_url="https://some-url.com/v1")
    responses.add(responses.DELETE, "https://some-url.com/v1/services/3", status=204)

    client.services.delete(3)

    assert client.base_url == "https://some-url.com/v1/"
    assert len(responses.calls) == 1


@responses.activate
def test_connection_errors_have_no_status(client):
    responses.add(
        responses.GET,
        BASE_URL + "metrics/m",
        body=requests.exceptions.ConnectionError("refused"),
    )

    with pytest.raises(LibratoApiException) as e:
        client.metrics.get("m")

    assert e.value.status_code is None
    assert not e.value.is_not_found


@responses.activate
def test_list_services(client):
    responses.add(
        responses.GET,
        BASE_URL + "services",
        json={"services": [{"id": 1, "type": "mail", "title": "a"}], "query": {}},
    )

    services = client.services.list()

    assert [service.title for service in services] == ["a"]


@responses.activate
def test_malformed_body_is_a_decode_error(client):
    responses.add(
        responses.GET,
        BASE_URL + "alerts/42",
        json={"id": 42, "name": "cpu-high", "services": [{"title": "no id"}]},
    )

    with pytest.raises(LibratoDecodeException) as e:
        client.alerts.get(42)

    assert not e.value.is_not_found
    assert "unexpected alert" in str(e.value)
