"""Command-line entry point.

Usage:
    tlterm init                          # seed default documents
    tlterm config                        # print resolved configuration
    tlterm profiles                      # list gateway profiles
    tlterm profile lan                   # load a profile, remember it
    tlterm wifi MyNet secret             # store credentials securely
    tlterm settings                      # dump device settings as YAML
    tlterm reset-settings                # factory reset the settings record
    tlterm shell                         # interactive command console
    tlterm menu                          # Textual settings-menu simulator
    tlterm logs -n 20                    # tail the device log

Global flags pick the device filesystem (``--fs-root``) and the
non-volatile store (``--nvs-root``); both default to directories under
``$XDG_DATA_HOME/tlterm``.
"""

from __future__ import annotations

import argparse
import sys
from typing import Optional

import yaml

from .config import MAIN_DOCUMENT, format_config, seed_documents
from .context import DeviceContext
from .logging import DEVICE_LOG, format_entry, read_log_tail
from .settings import settings_to_dict
from .shell import CommandShell


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tlterm",
        description="Configuration, settings and menu tooling for the tlterm terminal appliance",
    )
    parser.add_argument("--fs-root", default=None, metavar="DIR",
                        help="Device filesystem root (default: $TLTERM_FS_ROOT or ~/.local/share/tlterm/fs)")
    parser.add_argument("--nvs-root", default=None, metavar="DIR",
                        help="Non-volatile store root (default: $TLTERM_NVS_ROOT or ~/.local/share/tlterm/nvs)")
    parser.add_argument("--config-path", default=MAIN_DOCUMENT, metavar="PATH",
                        help=f"Main config document path on the device filesystem (default: {MAIN_DOCUMENT})")
    parser.add_argument("--profile", default="", metavar="NAME",
                        help="Load this gateway profile at boot")
    parser.add_argument("--last-profile", action="store_true",
                        help="Load the last used gateway profile at boot")

    sub = parser.add_subparsers(dest="command", metavar="COMMAND")
    sub.add_parser("config", help="Print the resolved configuration")
    sub.add_parser("profiles", help="List gateway profiles")
    p = sub.add_parser("profile", help="Load a gateway profile and remember it")
    p.add_argument("name")
    p = sub.add_parser("wifi", help="Store Wi-Fi credentials in the secure store")
    p.add_argument("ssid")
    p.add_argument("password", nargs="?", default="")
    sub.add_parser("reload", help="Re-resolve configuration and report diagnostics")
    sub.add_parser("settings", help="Dump device settings as YAML")
    sub.add_parser("reset-settings", help="Reset device settings to factory defaults")
    sub.add_parser("init", help="Write default config, theme, keymap and profile documents")
    p = sub.add_parser("logs", help="Show the tail of the device log")
    p.add_argument("-n", "--lines", type=int, default=50)
    p.add_argument("--log-file", default=DEVICE_LOG)
    sub.add_parser("shell", help="Interactive command console")
    p = sub.add_parser("menu", help="Run the settings menu simulator")
    p.add_argument("--ephemeral", action="store_true",
                   help="Keep settings and credentials in memory only")
    return parser


def _context(args: argparse.Namespace, *, ephemeral: bool = False) -> DeviceContext:
    ctx = DeviceContext.create(
        args.fs_root, args.nvs_root, config_path=args.config_path, ephemeral=ephemeral,
    )
    return ctx.boot(profile=args.profile, use_last_profile=args.last_profile)


def _print_diagnostics(ctx: DeviceContext) -> None:
    for msg in ctx.resolver.diagnostics:
        print(f"warning: {msg}", file=sys.stderr)


def _cmd_config(args: argparse.Namespace) -> int:
    ctx = _context(args)
    _print_diagnostics(ctx)
    print(format_config(ctx.config))
    return 0


def _cmd_profiles(args: argparse.Namespace) -> int:
    ctx = _context(args)
    names = ctx.resolver.list_profiles()
    if not names:
        print("No profiles found")
        return 0
    last = ctx.resolver.last_profile()
    for name in names:
        marker = " (last used)" if name == last else ""
        print(f"  {name}{marker}")
    return 0


def _cmd_profile(args: argparse.Namespace) -> int:
    ctx = _context(args)
    if not ctx.resolver.load_profile(args.name):
        _print_diagnostics(ctx)
        print(f"Error: profile '{args.name}' not found", file=sys.stderr)
        return 1
    print(f"Profile '{args.name}' loaded: {ctx.config.gateway.url}")
    return 0


def _cmd_wifi(args: argparse.Namespace) -> int:
    ctx = _context(args)
    if not ctx.resolver.save_wifi(args.ssid, args.password):
        print("Error: failed to write secure store", file=sys.stderr)
        return 1
    print(f"Wi-Fi credentials for '{args.ssid}' saved")
    return 0


def _cmd_reload(args: argparse.Namespace) -> int:
    ctx = _context(args)
    ctx.resolver.reload()
    _print_diagnostics(ctx)
    count = len(ctx.resolver.diagnostics)
    print(f"Config reloaded ({count} warning{'s' if count != 1 else ''})")
    return 0


def _cmd_settings(args: argparse.Namespace) -> int:
    ctx = _context(args)
    data = settings_to_dict(ctx.settings)
    data["load_status"] = ctx.store.last_load_status
    print(yaml.safe_dump(data, default_flow_style=False, sort_keys=False), end="")
    return 0


def _cmd_reset_settings(args: argparse.Namespace) -> int:
    ctx = _context(args)
    ctx.store.reset()
    if not ctx.store.save():
        print("Error: failed to write settings", file=sys.stderr)
        return 1
    print("Settings reset to factory defaults")
    return 0


def _cmd_init(args: argparse.Namespace) -> int:
    ctx = DeviceContext.create(args.fs_root, args.nvs_root, config_path=args.config_path)
    written = seed_documents(ctx.source)
    if not written:
        print(f"Documents already present in {ctx.source.fs_root}")
        return 0
    for path in written:
        print(f"  wrote {path}")
    return 0


def _cmd_logs(args: argparse.Namespace) -> int:
    lines = read_log_tail(args.log_file, args.lines)
    if not lines:
        print(f"No log entries in {args.log_file}")
        return 0
    for line in lines:
        print(format_entry(line))
    return 0


def _cmd_shell(args: argparse.Namespace) -> int:
    ctx = _context(args)
    shell = CommandShell(ctx.resolver)
    print("tlterm shell. Type 'help' for commands, Ctrl-D to exit.")
    while True:
        try:
            line = input("> ")
        except (EOFError, KeyboardInterrupt):
            print()
            return 0
        if line.strip() in ("exit", "quit"):
            return 0
        reply = shell.execute(line)
        if reply:
            print(reply)


def _cmd_menu(args: argparse.Namespace) -> int:
    from .tui.app import MenuSimulatorApp

    ctx = _context(args, ephemeral=args.ephemeral)
    MenuSimulatorApp(ctx).run()
    return 0


_COMMANDS = {
    "config": _cmd_config,
    "profiles": _cmd_profiles,
    "profile": _cmd_profile,
    "wifi": _cmd_wifi,
    "reload": _cmd_reload,
    "settings": _cmd_settings,
    "reset-settings": _cmd_reset_settings,
    "init": _cmd_init,
    "logs": _cmd_logs,
    "shell": _cmd_shell,
    "menu": _cmd_menu,
}


def main(argv: Optional[list[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1
    return _COMMANDS[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
