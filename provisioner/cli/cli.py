import json
import logging
import logging.config
import os
import sys
from importlib import metadata

import click
import yaml
from dotenv import find_dotenv, load_dotenv
from prettytable import PrettyTable

from provisioner.exceptions.provider_config_exception import ProviderConfigException
from provisioner.providers.base.resource_exceptions import (
    PropagationTimeoutException,
    ResourceException,
)
from provisioner.providers.models.provider_config import ProviderConfig
from provisioner.providers.providers_factory import ProvidersFactory

load_dotenv(find_dotenv())

try:
    PROVISIONER_VERSION = metadata.version("librato-provisioner")
except metadata.PackageNotFoundError:
    PROVISIONER_VERSION = os.environ.get("PROVISIONER_VERSION", "unknown")

DEFAULT_STATE_FILE = "provisioner.state.json"

logging_config = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {"format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"},
        "json": {
            "format": "%(asctime)s %(message)s %(levelname)s %(name)s %(filename)s %(lineno)d",
            "class": "pythonjsonlogger.jsonlogger.JsonFormatter",
        },
    },
    "handlers": {
        "default": {
            "level": "DEBUG",
            "formatter": "standard",
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stderr",
        }
    },
    "loggers": {
        "": {  # root logger
            "handlers": ["default"],
            "level": "INFO",
            "propagate": False,
        }
    },
}
logger = logging.getLogger(__name__)


class Info:
    """An information object to pass data between CLI functions."""

    def __init__(self):  # Note: This object must have an empty constructor.
        """Create a new instance."""
        self.verbose: int = 0
        self.provider_type = "librato"
        self.provider_id = "librato"
        self.provider_config_path = None
        self._provider = None

    @property
    def provider(self):
        if self._provider is None:
            if self.provider_config_path:
                config = ProviderConfig.from_file(self.provider_config_path)
            else:
                config = ProviderConfig(authentication={})
            self._provider = ProvidersFactory.get_provider(
                provider_id=self.provider_id,
                provider_type=self.provider_type,
                provider_config={
                    "authentication": config.authentication,
                    "name": config.name,
                    "description": config.description,
                },
            )
        return self._provider

    def dispose(self):
        if self._provider is not None:
            self._provider.dispose()


# pass_info is a decorator for functions that pass 'Info' objects.
#: pylint: disable=invalid-name
pass_info = click.make_pass_decorator(Info, ensure=True)


def load_resource_file(path: str) -> tuple[str, dict]:
    with open(path, "r") as f:
        raw = yaml.safe_load(f) or {}
    resource_type = raw.get("type")
    if not resource_type:
        raise click.BadParameter(f"{path} has no 'type'", param_hint="FILE")
    return resource_type, raw.get("config") or {}


def load_state(path: str) -> dict:
    try:
        with open(path, "r") as f:
            return json.load(f)
    except FileNotFoundError:
        raise click.BadParameter(
            f"state file {path} does not exist", param_hint="--state"
        ) from None


def save_state(path: str, resource_type: str, d):
    state = {"type": resource_type, "id": d.id, "attributes": d.state()}
    with open(path, "w") as f:
        json.dump(state, f, indent=2, sort_keys=True)
    logger.debug("State saved", extra={"path": path, "resource_id": d.id})


def print_state(resource_type: str, resource_id: str, attributes: dict):
    table = PrettyTable()
    table.field_names = ["Field", "Value"]
    table.align = "l"
    table.add_row(["type", resource_type])
    table.add_row(["id", resource_id or "(absent)"])
    for key in sorted(attributes):
        value = attributes[key]
        if not isinstance(value, str):
            value = json.dumps(value)
        table.add_row([key, value])
    click.echo(table)


def run(operation, on_timeout=None):
    """Run a reconciler operation, turning failures into exit codes."""
    try:
        return operation()
    except PropagationTimeoutException as e:
        if on_timeout is not None:
            on_timeout(e)
        click.echo(
            click.style(
                f"The change was sent but is not visible yet: {e}", fg="yellow", bold=True
            )
        )
        sys.exit(2)
    except (ResourceException, ProviderConfigException) as e:
        click.echo(click.style(str(e), fg="red", bold=True))
        sys.exit(1)


@click.group()
@click.option("--verbose", "-v", count=True, help="Enable verbose output.")
@click.option("--json", "-j", default=False, is_flag=True, help="Enable json output.")
@click.option(
    "--provider-config",
    "-c",
    help="Path to a provider config yaml (defaults to LIBRATO_* environment variables).",
    required=False,
    type=click.Path(exists=True, dir_okay=False),
)
@pass_info
@click.pass_context
def cli(ctx, info: Info, verbose: int, json: bool, provider_config: str):
    """Reconcile Librato resources."""
    # Use the verbosity count to determine the logging level...
    if verbose > 0:
        # set the verbosity level to debug
        logging_config["loggers"][""]["level"] = "DEBUG"

    if json:
        logging_config["handlers"]["default"]["formatter"] = "json"
    logging.config.dictConfig(logging_config)
    info.verbose = verbose
    info.provider_config_path = provider_config

    @ctx.call_on_close
    def cleanup():
        info.dispose()


@cli.command()
def version():
    """Get the library version."""
    click.echo(click.style(PROVISIONER_VERSION, bold=True))


@cli.command()
@pass_info
def resources(info: Info):
    """List the resource types and their fields."""
    table = PrettyTable()
    table.field_names = ["Resource", "Field", "Type", "Required", "Default"]
    table.align = "l"
    for resource_type, schema in sorted(
        ProvidersFactory.get_resource_types(info.provider_type).items()
    ):
        for name, field in schema.items():
            table.add_row(
                [
                    resource_type,
                    name,
                    field.type,
                    "yes" if field.required else "",
                    "" if field.default is None else field.default,
                ]
            )
    click.echo(table)


state_option = click.option(
    "--state",
    "-s",
    "state_path",
    default=DEFAULT_STATE_FILE,
    show_default=True,
    help="The JSON file holding the resource state.",
)


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@state_option
@pass_info
def create(info: Info, file: str, state_path: str):
    """Create the resource described in FILE."""
    resource_type, config = load_resource_file(file)
    d = None

    def operation():
        nonlocal d
        d = info.provider.resource_data(resource_type, config=config)
        info.provider.create(resource_type, d)
        return d

    def keep_created(e: PropagationTimeoutException):
        # the resource exists remotely, a later read picks up its state
        if d is not None and not d.id and e.resource_id is not None:
            d.set_id(str(e.resource_id))
        if d is not None and d.id:
            save_state(state_path, resource_type, d)

    d = run(operation, on_timeout=keep_created)
    save_state(state_path, resource_type, d)
    click.echo(click.style(f"Created {resource_type} {d.id}", fg="green", bold=True))
    print_state(resource_type, d.id, d.state())


@cli.command()
@state_option
@pass_info
def read(info: Info, state_path: str):
    """Refresh the state from the remote API."""
    state = load_state(state_path)
    resource_type = state["type"]

    def operation():
        d = info.provider.resource_data(resource_type, id=state.get("id", ""))
        return info.provider.read(resource_type, d)

    d = run(operation)
    save_state(state_path, resource_type, d)
    if not d.id:
        click.echo(
            click.style(f"{resource_type} {state.get('id')} no longer exists", bold=True)
        )
    print_state(resource_type, d.id, d.state())


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@state_option
@pass_info
def update(info: Info, file: str, state_path: str):
    """Update the resource in the state file to match FILE."""
    resource_type, config = load_resource_file(file)
    state = load_state(state_path)
    if state["type"] != resource_type:
        raise click.BadParameter(
            f"{file} describes a {resource_type}, the state holds a {state['type']}",
            param_hint="FILE",
        )

    def operation():
        d = info.provider.resource_data(
            resource_type,
            config=config,
            prior_state=state.get("attributes"),
            id=state.get("id", ""),
        )
        return info.provider.update(resource_type, d)

    d = run(operation)
    save_state(state_path, resource_type, d)
    click.echo(click.style(f"Updated {resource_type} {d.id}", fg="green", bold=True))
    print_state(resource_type, d.id, d.state())


@cli.command()
@state_option
@pass_info
def delete(info: Info, state_path: str):
    """Delete the resource in the state file."""
    state = load_state(state_path)
    resource_type = state["type"]

    def operation():
        d = info.provider.resource_data(resource_type, id=state.get("id", ""))
        info.provider.delete(resource_type, d)
        return d

    d = run(operation)
    save_state(state_path, resource_type, d)
    click.echo(
        click.style(f"Deleted {resource_type} {state.get('id')}", fg="green", bold=True)
    )


@cli.command()
@state_option
def show(state_path: str):
    """Show the state file without calling the API."""
    state = load_state(state_path)
    print_state(state["type"], state.get("id", ""), state.get("attributes") or {})


if __name__ == "__main__":
    cli(auto_envvar_prefix="PROVISIONER")
