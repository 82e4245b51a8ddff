"""Tests for the Librato provider configuration and dispatch."""

from unittest.mock import MagicMock

import pytest
import responses

from provisioner.exceptions.provider_config_exception import ProviderConfigException
from provisioner.providers.base.resource_exceptions import (
    ResourceValidationException,
)
from provisioner.providers.librato_provider.librato_models import Alert
from provisioner.providers.librato_provider.librato_provider import LibratoProvider
from provisioner.providers.models.provider_config import ProviderConfig
from provisioner.providers.providers_factory import (
    ProviderConfigurationException,
    ProvidersFactory,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("LIBRATO_EMAIL", "LIBRATO_TOKEN", "LIBRATO_URL"):
        monkeypatch.delenv(name, raising=False)


def make_provider(authentication, **kwargs):
    return LibratoProvider(
        "librato", ProviderConfig(authentication=authentication), **kwargs
    )


def test_default_base_url():
    provider = make_provider({"email": "foo@example.com", "token": "the-token"})

    assert provider.client.base_url == "https://metrics-api.librato.com/v1/"
    assert provider.provider_type == "librato"


def test_url_email_and_token():
    provider = make_provider(
        {
            "url": "https://some-url.com/v1/",
            "email": "foo@example.com",
            "token": "the-token",
        }
    )

    assert provider.client.base_url == "https://some-url.com/v1/"
    assert provider.client.email == "foo@example.com"
    assert provider.client.token == "the-token"


def test_falls_back_to_environment(monkeypatch):
    monkeypatch.setenv("LIBRATO_EMAIL", "env@example.com")
    monkeypatch.setenv("LIBRATO_TOKEN", "env-token")

    provider = make_provider({})

    assert provider.client.email == "env@example.com"
    assert provider.client.token == "env-token"


def test_renders_env_templates(monkeypatch):
    monkeypatch.setenv("SECRET_LIBRATO_TOKEN", "rendered")

    provider = make_provider(
        {"email": "foo@example.com", "token": "{{ env.SECRET_LIBRATO_TOKEN }}"}
    )

    assert provider.client.token == "rendered"


def test_missing_token_is_a_config_error():
    with pytest.raises(ProviderConfigException) as e:
        make_provider({"email": "foo@example.com"})

    assert e.value.provider_id == "librato"


def test_invalid_url_is_a_config_error():
    with pytest.raises(ProviderConfigException):
        make_provider({"email": "a@b.c", "token": "t", "url": "not a url"})


def test_dispatches_to_the_resource_with_the_client(clock):
    provider = make_provider(
        {"email": "foo@example.com", "token": "t"}, clock=clock, sleep=clock.sleep
    )
    client = MagicMock()
    client.alerts.get.return_value = Alert(id=1, name="a", active=True, md=True)
    provider._client = client

    d = provider.resource_data("librato_alert", id="1")
    provider.read("librato_alert", d)

    client.alerts.get.assert_called_once_with(1)
    assert d.state() == {"name": "a", "active": True, "md": True}


def test_unknown_resource_type():
    provider = make_provider({"email": "foo@example.com", "token": "t"})

    with pytest.raises(ResourceValidationException) as e:
        provider.resource_data("librato_space")

    assert "librato_space" in str(e.value)


@responses.activate
def test_validate_scopes():
    base = "https://metrics-api.librato.com/v1/"
    responses.add(responses.GET, base + "alerts", json={"alerts": []})
    responses.add(responses.GET, base + "metrics", json={"metrics": []})
    responses.add(responses.GET, base + "services", status=403, json={})
    provider = make_provider({"email": "foo@example.com", "token": "t"})

    scopes = provider.validate_scopes()

    assert scopes["alerts"] is True
    assert scopes["metrics"] is True
    assert "Unable to read services" in scopes["services"]


def test_factory_builds_the_provider():
    provider = ProvidersFactory.get_provider(
        provider_id="librato-prod",
        provider_type="librato",
        provider_config={"authentication": {"email": "a@b.c", "token": "t"}},
    )

    assert isinstance(provider, LibratoProvider)
    assert set(provider.resources) == {
        "librato_alert",
        "librato_metric",
        "librato_service",
    }


def test_factory_unknown_provider():
    with pytest.raises(ProviderConfigurationException):
        ProvidersFactory.get_provider_class("nagios")


def test_provider_config_from_file(tmp_path, monkeypatch):
    monkeypatch.setenv("LIBRATO_TOKEN_FROM_FILE", "secret")
    path = tmp_path / "librato.yaml"
    path.write_text(
        "name: prod\n"
        "authentication:\n"
        "  email: ops@example.com\n"
        '  token: "{{ env.LIBRATO_TOKEN_FROM_FILE }}"\n'
    )

    config = ProviderConfig.from_file(str(path))

    assert config.name == "prod"
    assert config.authentication == {"email": "ops@example.com", "token": "secret"}
