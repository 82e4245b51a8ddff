"""
Thin client for the Librato REST API (v1).
"""

import logging
from typing import Optional
from urllib.parse import quote, urljoin

import pydantic
import requests

from provisioner.providers.librato_provider.librato_models import (
    Alert,
    Metric,
    Service,
)

logger = logging.getLogger(__name__)


class LibratoApiException(Exception):
    """
    Error returned by the Librato API.

    `status_code` is None when the request never got a response.
    """

    def __init__(self, message, status_code: Optional[int] = None, response=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class LibratoDecodeException(LibratoApiException):
    """A response body that doesn't fit the expected model."""

    def __init__(self, message, validation_error: pydantic.ValidationError):
        super().__init__(message)
        self.validation_error = validation_error


def decode(model: type[pydantic.BaseModel], data):
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        raise LibratoDecodeException(
            f"unexpected {model.__name__.lower()} in Librato response: {e}", e
        ) from e


class LibratoClient:
    DEFAULT_BASE_URL = "https://metrics-api.librato.com/v1/"

    def __init__(
        self,
        email: str,
        token: str,
        base_url: Optional[str] = None,
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ):
        self.email = email
        self.token = token
        self.base_url = base_url or self.DEFAULT_BASE_URL
        if not self.base_url.endswith("/"):
            self.base_url += "/"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.auth = (email, token)
        self.session.headers.update(
            {"Accept": "application/json", "Content-Type": "application/json"}
        )

        self.alerts = AlertsService(self)
        self.metrics = MetricsService(self)
        self.services = ServicesService(self)

    def url(self, *paths) -> str:
        return urljoin(
            self.base_url, "/".join(quote(str(path), safe="") for path in paths)
        )

    def request(self, method: str, *paths, json: Optional[dict] = None):
        """
        Send a request and return the decoded JSON body, or None when the
        response has no content.
        """
        url = self.url(*paths)
        logger.debug("Librato request", extra={"method": method, "url": url})
        try:
            response = self.session.request(
                method, url, json=json, timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise LibratoApiException(f"{method} {url} failed: {e}") from e

        if not response.ok:
            raise LibratoApiException(
                f"{method} {url}: {response.status_code} {response.text}",
                status_code=response.status_code,
                response=response,
            )
        if response.status_code == 204 or not response.content:
            return None
        return response.json()


class AlertsService:
    def __init__(self, client: LibratoClient):
        self.client = client

    def get(self, alert_id: int) -> Alert:
        return decode(Alert, self.client.request("GET", "alerts", alert_id))

    def create(self, alert: Alert) -> Alert:
        data = self.client.request("POST", "alerts", json=alert.to_payload())
        return decode(Alert, data)

    def update(self, alert_id: int, alert: Alert) -> None:
        self.client.request("PUT", "alerts", alert_id, json=alert.to_payload())

    def delete(self, alert_id: int) -> None:
        self.client.request("DELETE", "alerts", alert_id)

    def list(self) -> list[Alert]:
        data = self.client.request("GET", "alerts") or {}
        return [decode(Alert, alert) for alert in data.get("alerts", [])]


class MetricsService:
    def __init__(self, client: LibratoClient):
        self.client = client

    def get(self, name: str) -> Metric:
        return decode(Metric, self.client.request("GET", "metrics", name))

    def update(self, metric: Metric) -> None:
        """Create or update, PUT on a metric name is an upsert."""
        self.client.request("PUT", "metrics", metric.name, json=metric.to_payload())

    def delete(self, name: str) -> None:
        self.client.request("DELETE", "metrics", name)

    def list(self) -> list[Metric]:
        data = self.client.request("GET", "metrics") or {}
        return [decode(Metric, metric) for metric in data.get("metrics", [])]


class ServicesService:
    def __init__(self, client: LibratoClient):
        self.client = client

    def get(self, service_id: int) -> Service:
        return decode(Service, self.client.request("GET", "services", service_id))

    def create(self, service: Service) -> Service:
        data = self.client.request("POST", "services", json=service.to_payload())
        return decode(Service, data)

    def update(self, service_id: int, service: Service) -> None:
        self.client.request("PUT", "services", service_id, json=service.to_payload())

    def delete(self, service_id: int) -> None:
        self.client.request("DELETE", "services", service_id)

    def list(self) -> list[Service]:
        data = self.client.request("GET", "services") or {}
        return [decode(Service, service) for service in data.get("services", [])]
