"""CLI entry point: platform info, plugin add/rm/list/validate, modules, prepare, build settings."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.text import Text

from . import __version__
from .core.config import load_config
from .core.errors import PlatformError
from .core.log import setup_logging
from .core.utils import short_cwd

console = Console()


# ── Arg helpers ─────────────────────────────────────────────────────


def _pop_option(args: list[str], *names: str) -> str | None:
    """Remove ``--name value`` from *args* and return the value."""
    for i, a in enumerate(args):
        if a in names and i + 1 < len(args):
            value = args[i + 1]
            del args[i : i + 2]
            return value
    return None


def _pop_flag(args: list[str], *names: str) -> bool:
    found = False
    for name in names:
        while name in args:
            args.remove(name)
            found = True
    return found


def _pop_vars(args: list[str]) -> dict[str, str]:
    """Collect repeated ``--var KEY=VALUE`` options."""
    variables: dict[str, str] = {}
    while (raw := _pop_option(args, "--var")) is not None:
        if "=" not in raw:
            console.print(f"ignoring malformed --var {raw!r} (expected KEY=VALUE)", style="dim")
            continue
        key, value = raw.split("=", 1)
        variables[key.strip()] = value
    return variables


def _load(args: list[str]):
    from .platform import PlatformApi

    root = _pop_option(args, "--root", "-r")
    verbose = _pop_flag(args, "--verbose", "-v")
    setup_logging(verbose)
    config = load_config(root=Path(root) if root else None, verbose=verbose)
    return PlatformApi(config)


# ── Plugin CLI subcommands ──────────────────────────────────────────


def _handle_plugin_cli(args: list[str]) -> int:
    """Handle `appshell plugin add/rm/list/validate`."""
    from .plugins import load_plugin, validate_plugin

    if not args:
        _plugin_usage()
        return 0

    sub = args[0]
    rest = args[1:]

    if sub == "validate":
        target = rest[0] if rest else "."
        errors = validate_plugin(Path(target).resolve(), platform="electron")
        if errors:
            for e in errors:
                console.print(f"  [red]error:[/red] {e}")
            return 1
        console.print("[green]plugin is valid[/green]")
        return 0

    variables = _pop_vars(rest)
    platform_www = _pop_flag(rest, "--platform-www")
    api = _load(rest)

    if sub == "list":
        installed = api.installed_plugins()
        if not installed:
            console.print("no plugins installed", style="dim")
            console.print("use `appshell plugin add <dir>` to add one", style="dim")
            return 0
        for plugin_id, version in installed.items():
            n = len(api.platform_json.state.modules_for(plugin_id))
            ver = f"v{version}" if version else ""
            console.print(f"  [bold]{plugin_id}[/bold]  {ver}  [dim]{n} module(s)[/dim]")
        return 0

    if sub not in ("add", "install", "rm", "remove", "uninstall"):
        _plugin_usage()
        return 0

    if not rest:
        console.print(f"usage: appshell plugin {sub} <plugin_dir> [--root DIR]", style="dim")
        return 1

    options = {
        "variables": variables,
        "usePlatformWww": platform_www or api.config.use_platform_www,
    }
    plugin = load_plugin(Path(rest[0]))
    if sub in ("add", "install"):
        api.add_plugin(plugin, options)
        console.print(f"installed [bold]{plugin.id}[/bold] from {plugin.dir}")
    else:
        api.remove_plugin(plugin, options)
        console.print(f"removed [bold]{plugin.id}[/bold]")
    return 0


def _handle_modules_cli(args: list[str]) -> int:
    """Handle `appshell modules [--json]`: print the module registry."""
    as_json = _pop_flag(args, "--json")
    api = _load(args)
    state = api.platform_json.state
    if as_json:
        console.print_json(json.dumps([m.to_dict() for m in state.modules]))
        return 0
    if not state.modules:
        console.print("no js-modules registered", style="dim")
        return 0
    for m in state.modules:
        flags = []
        if m.clobbers:
            flags.append("clobbers " + ", ".join(m.clobbers))
        if m.merges:
            flags.append("merges " + ", ".join(m.merges))
        if m.runs:
            flags.append("runs")
        console.print(f"  [bold]{m.id}[/bold]  {m.file}  [dim]{'; '.join(flags)}[/dim]")
    return 0


def _handle_build_cli(args: list[str]) -> int:
    """Handle `appshell build [--dry-run] [--build-config FILE] [--debug]`."""
    from .platform import write_build_settings

    dry_run = _pop_flag(args, "--dry-run")
    debug = _pop_flag(args, "--debug")
    build_config = _pop_option(args, "--build-config")
    api = _load(args)
    settings, path = write_build_settings(
        api,
        build_config=Path(build_config) if build_config else None,
        build_type="development" if debug else "distribution",
        dry_run=dry_run,
    )
    if dry_run:
        console.print_json(json.dumps(settings))
    else:
        console.print(f"wrote build settings to {path}")
    return 0


def _handle_prepare_cli(args: list[str]) -> int:
    """Handle `appshell prepare [--www DIR] [--config-xml FILE] [--release]`."""
    from .platform import prepare

    release = _pop_flag(args, "--release")
    app_www = _pop_option(args, "--www")
    config_xml = _pop_option(args, "--config-xml")
    api = _load(args)
    written = prepare(
        api.config,
        app_www=Path(app_www) if app_www else None,
        config_xml=Path(config_xml) if config_xml else None,
        release=release,
    )
    for path in written:
        console.print(f"wrote {path}")
    return 0


def _plugin_usage() -> None:
    console.print("usage: appshell plugin <command>", style="dim")
    console.print()
    console.print("  [bold]add[/bold]        Install a plugin directory into the project")
    console.print("  [bold]rm[/bold]         Remove a plugin")
    console.print("  [bold]list[/bold]       List installed plugins")
    console.print("  [bold]validate[/bold]   Validate a plugin directory")
    console.print()
    console.print("options: --root DIR  --var KEY=VALUE  --platform-www  -v", style="dim")
    console.print()
    console.print("examples:", style="dim")
    console.print("  appshell plugin add ../plugins/device --root platforms/electron", style="dim")
    console.print("  appshell plugin add ./my-plugin --var API_KEY=abc123", style="dim")


# ── CLI entry point ─────────────────────────────────────────────────


@click.command()
@click.argument("root", required=False, default=None, type=click.Path(file_okay=False))
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def _click_main(root: str | None, verbose: bool):
    """appshell: manage plugins in an Electron platform project."""
    from .platform import PlatformApi

    setup_logging(verbose)
    config = load_config(root=Path(root) if root else None, verbose=verbose)
    api = PlatformApi(config)
    info = api.get_platform_info()

    header = Text("appshell ")
    header.append(f"v{__version__}", style="dim")
    header.append("  ")
    header.append(info["name"], style="bold")
    header.append(f" {info['version']}  ")
    header.append(short_cwd(config.root))
    console.print(header)
    for name, path in info["locations"].items():
        console.print(f"  {name:<12} [dim]{path}[/dim]")

    installed = api.installed_plugins()
    console.print()
    if installed:
        console.print(f"{len(installed)} plugin(s) installed:")
        for plugin_id, version in installed.items():
            console.print(f"  [bold]{plugin_id}[/bold] {version}")
    else:
        console.print("no plugins installed", style="dim")


_SUBCOMMANDS = {
    "plugin": _handle_plugin_cli,
    "modules": _handle_modules_cli,
    "build": _handle_build_cli,
    "prepare": _handle_prepare_cli,
}


def main():
    """True entry point; intercepts subcommands before click."""
    if len(sys.argv) > 1 and sys.argv[1] in _SUBCOMMANDS:
        try:
            code = _SUBCOMMANDS[sys.argv[1]](sys.argv[2:])
        except (PlatformError, OSError) as e:
            console.print(f"error: {e}", style="bold red")
            code = 1
        sys.exit(code)
    _click_main()


if __name__ == "__main__":
    main()
