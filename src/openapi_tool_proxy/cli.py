"""CLI entry point for openapi-tool-proxy."""

import json
import logging
import os
from pathlib import Path

import click
from pydantic import ValidationError

from openapi_tool_proxy.config import ENV_DOCUMENTS, ENV_TARGET, ENV_TIMEOUT, ProxySettings
from openapi_tool_proxy.errors import StartupError
from openapi_tool_proxy.generator.manifest import to_descriptors
from openapi_tool_proxy.parser.base import Catalog
from openapi_tool_proxy.parser.swagger import build_catalog, parse_openapi
from openapi_tool_proxy.proxy import ToolProxy

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    logging.captureWarnings(True)


def _load_catalog(swagger: tuple[Path, ...]) -> Catalog:
    """Parse documents into a catalog, turning startup errors into CLI errors."""
    if not swagger:
        raise click.UsageError(f"No OpenAPI document given (use -s or {ENV_DOCUMENTS}).")
    try:
        return build_catalog([parse_openapi(path) for path in swagger])
    except StartupError as e:
        raise click.ClickException(str(e)) from e


def _parse_headers(values: tuple[str, ...]) -> dict[str, str]:
    headers = {}
    for value in values:
        name, sep, header_value = value.partition(":")
        if not sep or not name.strip():
            raise click.BadParameter(f"expected NAME:VALUE, got {value!r}", param_hint="--header")
        headers[name.strip()] = header_value.strip()
    return headers


def _split_documents(ctx, param, value):
    if value:
        return value
    env = os.environ.get(ENV_DOCUMENTS, "")
    return tuple(Path(p.strip()) for p in env.split(",") if p.strip())


swagger_option = click.option(
    "-s", "--swagger", multiple=True, type=click.Path(path_type=Path), callback=_split_documents,
    help=f"OpenAPI YAML file (repeatable). Defaults to ${ENV_DOCUMENTS}.",
)


@click.group()
@click.option("--log-level", default=lambda: os.environ.get("LOG_LEVEL", "WARNING").upper(),
              type=click.Choice(LOG_LEVELS, case_sensitive=False), help="Logging level (stderr).")
def main(log_level: str):
    """OpenAPI Tool Proxy — expose REST operations as callable tools."""
    _setup_logging(log_level.upper())


@main.command()
@swagger_option
def catalog(swagger: tuple[Path, ...]):
    """List the operations and the tool name each one is served under."""
    cat = _load_catalog(swagger)
    for op in cat.operations:
        click.echo(f"{op.label} -> {op.tool_name}")
    click.echo(f"{len(cat.operations)} operations.", err=True)


@main.command()
@swagger_option
@click.option("-o", "--output", type=click.Path(path_type=Path), help="Write the manifests to a file instead of stdout.")
def tools(swagger: tuple[Path, ...], output: Path | None):
    """Print tool manifests as a JSON array."""
    manifests = [d.to_manifest() for d in to_descriptors(_load_catalog(swagger))]
    text = json.dumps(manifests, indent=2, ensure_ascii=False)
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text + "\n", encoding="utf-8")
        click.echo(f"{len(manifests)} tool manifests saved to {output}", err=True)
    else:
        click.echo(text)


@main.command()
@click.argument("tool_name")
@swagger_option
@click.option("-t", "--target", help=f"Target root URL. Defaults to ${ENV_TARGET}.")
@click.option("--timeout", type=float, default=None, help=f"Request timeout in seconds. Defaults to ${ENV_TIMEOUT} or 30.")
@click.option("-H", "--header", "header", multiple=True, help="Extra request header NAME:VALUE (repeatable).")
@click.option("--args", "args_json", default="{}", help="Tool arguments as a JSON object.")
@click.pass_context
def call(ctx, tool_name: str, swagger: tuple[Path, ...], target: str | None, timeout: float | None,
         header: tuple[str, ...], args_json: str):
    """Invoke TOOL_NAME once and print the result envelope."""
    try:
        arguments = json.loads(args_json)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint="--args") from e
    if not isinstance(arguments, dict):
        raise click.BadParameter("must be a JSON object", param_hint="--args")

    try:
        settings = ProxySettings.from_env(
            documents=list(swagger) or None,
            target_url=target,
            timeout=timeout,
            headers=_parse_headers(header) or None,
        )
    except ValidationError as e:
        raise click.UsageError(str(e)) from e

    try:
        proxy = ToolProxy.from_settings(settings)
    except StartupError as e:
        raise click.ClickException(str(e)) from e

    with proxy:
        result = proxy.invoke(tool_name, arguments).to_result()
    click.echo(json.dumps(result, indent=2, ensure_ascii=False))
    if not result["success"]:
        ctx.exit(1)
