"""
Base class for resource reconcilers.
"""

import abc
import logging
import os
import time
from typing import Any, Callable

from provisioner.providers.base.resource_exceptions import (
    PropagationTimeoutException,
    ResourceException,
)
from provisioner.providers.models.resource_data import ResourceData, Schema
from provisioner.utils.waiter import RetryableError, WaitStatus, wait_for_state


class BaseResource(metaclass=abc.ABCMeta):
    """
    Reconciles one kind of remote resource.

    Reconcilers hold no per-instance state, the API client is passed into
    every call.
    """

    RESOURCE_TYPE: str = ""
    SCHEMA: Schema = {}

    CREATE_TIMEOUT = 60
    DELETE_TIMEOUT = 60
    POLL_INTERVAL = 1
    UPDATE_TIMEOUT = 5 * 60
    UPDATE_MIN_INTERVAL = 2
    UPDATE_CONTINUOUS_TARGET_OCCURRENCE = 5

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.clock = clock
        self.sleep = sleep
        self.logger = logging.getLogger(self.RESOURCE_TYPE or __name__)
        self.logger.setLevel(
            os.environ.get(
                "PROVISIONER_{}_LOG_LEVEL".format(self.RESOURCE_TYPE.upper()),
                os.environ.get("LOG_LEVEL", "INFO"),
            )
        )

    @abc.abstractmethod
    def create(self, d: ResourceData, client) -> str:
        """
        Create the resource and return its identifier.
        """
        raise NotImplementedError("create() method not implemented")

    @abc.abstractmethod
    def read(self, d: ResourceData, client) -> ResourceData:
        """
        Refresh `d` from the remote API. A missing resource clears `d.id`.
        """
        raise NotImplementedError("read() method not implemented")

    @abc.abstractmethod
    def update(self, d: ResourceData, client) -> ResourceData:
        raise NotImplementedError("update() method not implemented")

    @abc.abstractmethod
    def delete(self, d: ResourceData, client) -> None:
        raise NotImplementedError("delete() method not implemented")

    @staticmethod
    @abc.abstractmethod
    def is_not_found(error: Exception) -> bool:
        raise NotImplementedError("is_not_found() method not implemented")

    def failure(
        self,
        error: Exception,
        error_class: type[ResourceException],
        message: str,
        resource_id,
    ) -> ResourceException:
        """Build the exception raised for a failed remote call."""
        return error_class(f"{message}: {error}", self.RESOURCE_TYPE, resource_id)

    def _wait(self, resource_id, description: str, **kwargs):
        try:
            return wait_for_state(
                description=f"{self.RESOURCE_TYPE} {resource_id} {description}",
                clock=self.clock,
                sleep=self.sleep,
                **kwargs,
            )
        except PropagationTimeoutException as e:
            e.resource_type = self.RESOURCE_TYPE
            e.resource_id = resource_id
            self.logger.error(
                "Timed out waiting for %s",
                description,
                extra={"resource_id": resource_id, "error": str(e)},
            )
            raise

    def wait_until_visible(
        self,
        get: Callable[[], Any],
        resource_id,
        error_class: type[ResourceException],
    ):
        """Poll until `get` stops failing with not found."""

        def refresh():
            try:
                return get(), WaitStatus.DONE
            except Exception as e:
                if self.is_not_found(e):
                    raise RetryableError(e)
                raise self.failure(
                    e, error_class, "error waiting for creation", resource_id
                ) from e

        return self._wait(
            resource_id,
            "to become visible",
            refresh=refresh,
            timeout=self.CREATE_TIMEOUT,
            min_interval=self.POLL_INTERVAL,
        )

    def wait_until_stable(
        self,
        get: Callable[[], Any],
        resource_id,
        error_class: type[ResourceException],
    ):
        """
        Poll until `get` succeeds UPDATE_CONTINUOUS_TARGET_OCCURRENCE times in
        a row, reads can flap between old and new state while a write propagates.
        """

        def refresh():
            self.logger.debug(
                "Checking if %s was updated yet",
                self.RESOURCE_TYPE,
                extra={"resource_id": resource_id},
            )
            try:
                return get(), WaitStatus.DONE
            except Exception as e:
                if self.is_not_found(e):
                    raise RetryableError(e)
                raise self.failure(
                    e, error_class, "error waiting for update", resource_id
                ) from e

        return self._wait(
            resource_id,
            "to settle",
            refresh=refresh,
            timeout=self.UPDATE_TIMEOUT,
            min_interval=self.UPDATE_MIN_INTERVAL,
            required_successes=self.UPDATE_CONTINUOUS_TARGET_OCCURRENCE,
        )

    def wait_until_gone(
        self,
        get: Callable[[], Any],
        resource_id,
        error_class: type[ResourceException],
    ):
        """Poll until `get` fails with not found."""

        def refresh():
            try:
                get()
            except Exception as e:
                if self.is_not_found(e):
                    self.logger.info(
                        "%s not found, removing from state",
                        self.RESOURCE_TYPE,
                        extra={"resource_id": resource_id},
                    )
                    return None, WaitStatus.DONE
                raise self.failure(
                    e, error_class, "error waiting for deletion", resource_id
                ) from e
            raise RetryableError(f"{self.RESOURCE_TYPE} {resource_id} still exists")

        self._wait(
            resource_id,
            "to be deleted",
            refresh=refresh,
            timeout=self.DELETE_TIMEOUT,
            min_interval=self.POLL_INTERVAL,
        )
