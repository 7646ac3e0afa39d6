"""kitn command line interface.

Thin shell over the library: loads the project from the working directory,
builds a RegistryFetcher and a Prompter, calls one operation and prints the
outcome. Any ComponentError becomes a red message and exit code 1.
"""

import asyncio
import logging
import sys
from collections.abc import Awaitable
from collections.abc import Callable
from dataclasses import dataclass
from functools import wraps
from pathlib import Path
from typing import Any
from typing import TypeVar

import click
import httpx

from .config import CONFIG_FILE
from .config import DEFAULT_BASE
from .config import DEFAULT_FRAMEWORK
from .config import DEFAULT_NAMESPACE
from .config import DEFAULT_RUNTIME
from .config import FRAMEWORKS
from .config import RUNTIMES
from .config import add_registry
from .config import read_config
from .config import remove_registry
from .config import write_config
from .exceptions import ComponentError
from .exceptions import ConfigError
from .fetcher import RegistryFetcher
from .installer import ROUTES_ALIAS
from .installer import InstallReport
from .installer import ListedComponent
from .installer import Project
from .installer import component_info
from .installer import diff_component
from .installer import expand_name_aliases
from .installer import find_orphaned_dependencies
from .installer import init_project
from .installer import install_components
from .installer import link_tool
from .installer import list_registry_components
from .installer import uninstall_component
from .installer import unlink_tool
from .installer import update_components
from .linker import LinkResult
from .protocols import Prompter
from .prompts import ClickPrompter
from .prompts import NonInteractivePrompter
from .refs import TYPE_ALIASES
from .refs import parse_component_ref
from .refs import resolve_type_alias
from .schema import ComponentType

T = TypeVar("T")

MAX_FILES_SHOWN = 10


@dataclass
class CliContext:
    """Per-invocation settings shared by all commands.

    http_client is injected by tests; normally each fetcher owns its client.
    """

    cwd: Path
    interactive: bool = True
    http_client: httpx.AsyncClient | None = None

    def project(self) -> Project:
        return Project.load(self.cwd)

    def prompter(self) -> Prompter:
        return ClickPrompter() if self.interactive else NonInteractivePrompter()

    def fetcher(self, project: Project) -> RegistryFetcher:
        return RegistryFetcher(project.config.registry_urls(), client=self.http_client)


def handle_errors(func: Callable[..., T]) -> Callable[..., T]:
    """Turn ComponentError into a styled message and exit code 1."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> T:
        try:
            return func(*args, **kwargs)
        except ComponentError as e:
            click.secho(f"Error: {e.message}", fg="red", err=True)
            raise SystemExit(1) from e

    return wrapper


def run_with_fetcher(ctx: CliContext, project: Project, operation: Callable[[RegistryFetcher], Awaitable[T]]) -> T:
    """Run an async operation with a fetcher that is closed afterwards."""

    async def runner() -> T:
        async with ctx.fetcher(project) as fetcher:
            return await operation(fetcher)

    return asyncio.run(runner())


def parse_type_option(value: str | None) -> ComponentType | None:
    if value is None:
        return None
    component_type = resolve_type_alias(value)
    if component_type is None:
        choices = ", ".join(sorted(TYPE_ALIASES))
        raise click.BadParameter(f"Unknown type '{value}'. Expected one of: {choices}", param_hint="--type")
    return component_type


def print_report(report: InstallReport) -> None:
    if report.resolved:
        click.echo(f"Resolved {len(report.resolved)} component(s):")
        for component in report.resolved:
            suffix = "" if component.explicit else click.style(" (dependency)", dim=True)
            click.echo(f"  {click.style(component.key, fg='cyan')}{suffix}")

    for key in report.replaced:
        click.secho(f"Replaced {key}", fg="yellow")
    if report.files.created:
        click.secho(f"Created {len(report.files.created)} file(s):", fg="green")
        for path in report.files.created:
            click.echo(f"  {click.style('+', fg='green')} {path}")
    if report.files.updated:
        click.secho(f"Updated {len(report.files.updated)} file(s):", fg="green")
        for path in report.files.updated:
            click.echo(f"  {click.style('~', fg='yellow')} {path}")
    if report.files.skipped:
        click.echo(f"Skipped {len(report.files.skipped)} file(s):")
        for path in report.files.skipped:
            click.echo(f"  {click.style('-', dim=True)} {path}")

    if report.packages:
        click.echo(f"Installed {len(report.packages)} package(s): {' '.join(report.packages)}")
    for warning in report.warnings:
        click.secho(f"Warning: {warning}", fg="yellow", err=True)

    if report.env_added:
        click.echo(f"Updated .env.example with {len(report.env_added)} variable(s)")
    if report.env_missing:
        click.secho(f"{len(report.env_missing)} environment variable(s) needed:", fg="yellow")
        for key in report.env_missing:
            click.echo(f"  {key}")

    for key, docs in report.docs.items():
        click.echo(f"{click.style(key, bold=True)}: {docs}")


@click.group()
@click.option(
    "--cwd",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
    help="Project directory (default: current directory)",
)
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging")
@click.option(
    "--no-input", is_flag=True, help="Never prompt (implied when stdin is not a terminal); keep local files, fail on ambiguity"
)
@click.pass_context
def cli(ctx: click.Context, cwd: Path, verbose: bool, no_input: bool) -> None:
    """Install and manage kitn AI components."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format="%(levelname)s: %(message)s")
    # Tests provide their own context
    if ctx.obj is None:
        ctx.obj = CliContext(cwd=cwd.resolve(), interactive=not no_input and sys.stdin.isatty())


@cli.command()
@click.option("--runtime", type=click.Choice(RUNTIMES), help="JavaScript runtime")
@click.option("--framework", type=click.Choice(FRAMEWORKS), help="HTTP framework adapter")
@click.option("--base", help=f"Directory components install under (default: {DEFAULT_BASE})")
@click.option("-y", "--yes", is_flag=True, help="Use defaults and overwrite an existing kitn.json")
@click.option("--skip-install", is_flag=True, help="Do not install the core engine and adapter")
@click.pass_obj
@handle_errors
def init(
    ctx: CliContext,
    runtime: str | None,
    framework: str | None,
    base: str | None,
    yes: bool,
    skip_install: bool,
) -> None:
    """Create kitn.json and install the core engine and framework adapter."""
    ask = ctx.interactive and not yes
    overwrite = yes
    if not yes and read_config(ctx.cwd) is not None:
        if not ask:
            raise ConfigError(f"{CONFIG_FILE} already exists. Use --yes to overwrite.")
        if not click.confirm(f"{CONFIG_FILE} already exists. Overwrite it?", default=False):
            click.echo("Init cancelled.")
            return
        overwrite = True

    if runtime is None:
        runtime = click.prompt("Runtime", type=click.Choice(RUNTIMES), default=DEFAULT_RUNTIME) if ask else DEFAULT_RUNTIME
    if framework is None:
        framework = (
            click.prompt("HTTP framework", type=click.Choice(FRAMEWORKS), default=DEFAULT_FRAMEWORK)
            if ask
            else DEFAULT_FRAMEWORK
        )
    if base is None:
        base = click.prompt("Install components under", default=DEFAULT_BASE) if ask else DEFAULT_BASE

    project, created = init_project(ctx.cwd, runtime, framework, base, overwrite=overwrite)
    for path in created:
        click.echo(f"  {click.style('+', fg='green')} {path}")

    if not skip_install:
        report = run_with_fetcher(
            ctx,
            project,
            lambda fetcher: install_components(["core", ROUTES_ALIAS], project, fetcher, ctx.prompter(), overwrite=True),
        )
        print_report(report)

    mount = "app.use(ai.router);" if framework == "elysia" else 'app.route("/api", ai.router);'
    click.echo("\nAdd this to your server entry point:")
    click.echo(f'  import {{ ai }} from "./{project.config.aliases.base}/plugin.js";')
    click.echo(f"  {mount}")
    click.secho("Done!", fg="green")


@cli.command()
@click.argument("component")
@click.pass_obj
@handle_errors
def info(ctx: CliContext, component: str) -> None:
    """Show details of a registry component."""
    project = ctx.project()
    result = run_with_fetcher(ctx, project, lambda fetcher: component_info(project, fetcher, component))
    item = result.item

    click.echo(f"{click.style(item.name, bold=True)} {click.style('v' + result.version, fg='cyan')}  {result.namespace}")
    if item.description:
        click.echo(f"  {item.description}")
    click.echo(f"  Type:           {item.type.value}")
    if item.dependencies:
        click.echo(f"  Dependencies:   {', '.join(item.dependencies)}")
    if item.registry_dependencies:
        click.echo(f"  Registry deps:  {', '.join(item.registry_dependencies)}")
    if item.categories:
        click.echo(f"  Categories:     {', '.join(item.categories)}")

    click.echo(f"  Files ({len(item.files)}):")
    for file in item.files[:MAX_FILES_SHOWN]:
        click.echo(f"    {file.path}")
    if len(item.files) > MAX_FILES_SHOWN:
        click.echo(f"    ... and {len(item.files) - MAX_FILES_SHOWN} more")

    if result.installed is not None:
        click.secho(f"  Installed v{result.installed.version}", fg="green")
        if result.update_available:
            click.secho(f"  Update available: v{result.installed.version} -> v{result.version}", fg="yellow")


@cli.command()
@click.argument("components", nargs=-1, required=True)
@click.option("-t", "--type", "type_name", help="Only match components of this type")
@click.option("-o", "--overwrite", is_flag=True, help="Overwrite modified files without asking")
@click.pass_obj
@handle_errors
def add(ctx: CliContext, components: tuple[str, ...], type_name: str | None, overwrite: bool) -> None:
    """Add components and their dependencies to the project."""
    type_filter = parse_type_option(type_name)
    project = ctx.project()
    report = run_with_fetcher(
        ctx,
        project,
        lambda fetcher: install_components(
            list(components), project, fetcher, ctx.prompter(), type_filter=type_filter, overwrite=overwrite
        ),
    )
    print_report(report)
    click.secho("Done!", fg="green")


@cli.command()
@click.argument("components", nargs=-1)
@click.pass_obj
@handle_errors
def update(ctx: CliContext, components: tuple[str, ...]) -> None:
    """Update installed components (all of them when none are named)."""
    project = ctx.project()
    if not components and not project.lock.keys():
        click.echo("No installed components to update.")
        return
    report = run_with_fetcher(
        ctx, project, lambda fetcher: update_components(list(components), project, fetcher, ctx.prompter())
    )
    print_report(report)
    click.secho("Done!", fg="green")


@cli.command()
@click.argument("component")
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_obj
@handle_errors
def remove(ctx: CliContext, component: str, yes: bool) -> None:
    """Remove an installed component."""
    project = ctx.project()
    key = parse_component_ref(expand_name_aliases([component], project.config)[0]).key
    entry = project.lock.get(key)
    if entry is None:
        raise ComponentError(f"Component '{key}' is not installed.")

    if ctx.interactive and not yes:
        if not click.confirm(f"Remove {key}? This will delete {len(entry.files)} file(s).", default=False):
            click.echo("Remove cancelled.")
            return

    removed = [key]
    for path in uninstall_component(project, key):
        click.echo(f"  {click.style('-', fg='red')} {path}")

    orphans = find_orphaned_dependencies(project, entry.registry_dependencies)
    for orphan in ctx.prompter().select_orphans(orphans) if orphans else []:
        for path in uninstall_component(project, orphan):
            click.echo(f"  {click.style('-', fg='red')} {path}")
        removed.append(orphan)

    click.secho(f"Removed {', '.join(removed)}", fg="green")


@cli.command()
@click.argument("component")
@click.pass_obj
@handle_errors
def diff(ctx: CliContext, component: str) -> None:
    """Show differences between local files and the registry version."""
    project = ctx.project()
    result = run_with_fetcher(ctx, project, lambda fetcher: diff_component(project, fetcher, component))
    for path in result.missing:
        click.secho(f"{path}: file missing locally", fg="yellow")
    for text in result.diffs.values():
        click.echo(text)
    if result.up_to_date:
        click.secho(f"{result.key}: up to date, no differences.", fg="green")


@cli.command(name="list")
@click.option("-i", "--installed", is_flag=True, help="Only show installed components")
@click.option("-t", "--type", "type_name", help="Only show components of this type")
@click.option("-r", "--registry", "namespace", help="Only show one registry namespace")
@click.pass_obj
@handle_errors
def list_command(ctx: CliContext, installed: bool, type_name: str | None, namespace: str | None) -> None:
    """List registry components and their installed state."""
    type_filter = parse_type_option(type_name)
    project = ctx.project()
    listed = run_with_fetcher(
        ctx,
        project,
        lambda fetcher: list_registry_components(
            project, fetcher, namespace=namespace, type_filter=type_filter, installed_only=installed
        ),
    )

    groups: dict[ComponentType, list[ListedComponent]] = {}
    for component in listed:
        groups.setdefault(component.type, []).append(component)

    for component_type, components in groups.items():
        click.secho(f"\n{component_type.value.capitalize()}s:", bold=True)
        for component in components:
            status = click.style("✓", fg="green") if component.installed else click.style("○", dim=True)
            line = f"  {status} {component.key:<20} v{component.version}  {component.description}"
            if component.update_available:
                line += click.style(f"  v{component.version} available", fg="yellow")
            click.echo(line)

    installed_count = sum(1 for component in listed if component.installed)
    updates = sum(1 for component in listed if component.update_available)
    summary = f"{installed_count} installed, {len(listed) - installed_count} available"
    if updates:
        summary += f", {updates} update(s) available"
    click.echo(f"\n  {summary}")


def _print_link_result(result: LinkResult, done: str, unchanged: str) -> None:
    if result.error:
        click.secho(result.error, fg="yellow", err=True)
        raise SystemExit(1)
    click.secho(done if result.changed else unchanged, fg="green" if result.changed else None)


@cli.command()
@click.argument("tool")
@click.option("--to", "agent", required=True, help="Agent to link the tool into")
@click.option("--as", "key", help="Key to use in the agent's tools object")
@click.pass_obj
@handle_errors
def link(ctx: CliContext, tool: str, agent: str, key: str | None) -> None:
    """Wire a tool into an agent's tools."""
    result = link_tool(ctx.project(), tool, agent, key)
    _print_link_result(result, f"Linked {tool} to {agent}", f"{tool} is already linked to {agent}")


@cli.command()
@click.argument("tool")
@click.option("--from", "agent", required=True, help="Agent to unlink the tool from")
@click.option("--as", "key", help="Key used in the agent's tools object")
@click.pass_obj
@handle_errors
def unlink(ctx: CliContext, tool: str, agent: str, key: str | None) -> None:
    """Remove a tool from an agent's tools."""
    result = unlink_tool(ctx.project(), tool, agent, key)
    _print_link_result(result, f"Unlinked {tool} from {agent}", f"{tool} is not linked to {agent}")


@cli.group()
def registry() -> None:
    """Manage component registries."""


@registry.command(name="add")
@click.argument("namespace")
@click.argument("url")
@click.option("--overwrite", is_flag=True, help="Replace an existing registry")
@click.option("--homepage", help="Registry homepage")
@click.option("--description", help="Registry description")
@click.pass_obj
@handle_errors
def registry_add(
    ctx: CliContext,
    namespace: str,
    url: str,
    overwrite: bool,
    homepage: str | None,
    description: str | None,
) -> None:
    """Add a registry: NAMESPACE (e.g. @myteam) and URL template with {type} and {name}."""
    project = ctx.project()
    add_registry(project.config, namespace, url, overwrite=overwrite, homepage=homepage, description=description)
    write_config(project.root, project.config)
    click.secho(f"Added registry {namespace}", fg="green")
    click.echo(f"  {url}")


@registry.command(name="remove")
@click.argument("namespace")
@click.option("--force", is_flag=True, help=f"Allow removing {DEFAULT_NAMESPACE}")
@click.pass_obj
@handle_errors
def registry_remove(ctx: CliContext, namespace: str, force: bool) -> None:
    """Remove a registry."""
    project = ctx.project()
    remove_registry(project.config, namespace, force=force)
    write_config(project.root, project.config)
    click.secho(f"Removed registry {namespace}", fg="green")

    affected = [key for key, entry in project.lock.items() if entry.registry == namespace]
    if affected:
        click.secho(f"{len(affected)} installed component(s) referenced this registry:", fg="yellow")
        for key in affected:
            click.echo(f"  ! {key}")


@registry.command(name="list")
@click.pass_obj
@handle_errors
def registry_list(ctx: CliContext) -> None:
    """List configured registries."""
    project = ctx.project()
    if not project.config.registries:
        click.echo("  No registries configured.")
        return
    for namespace, entry in project.config.registries.items():
        click.echo(f"  {namespace:<16} {entry.url}")


def main() -> None:
    """CLI entry point used by the `kitn` console script."""
    cli()
