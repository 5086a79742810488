"""Out-of-band command shell (the serial console of the device).

One line in, one reply out::

    config                 print the resolved configuration
    profiles               list profile documents
    profile NAME           load a gateway profile
    wifi SSID PASSWORD     store credentials in the secure store
    reload                 re-resolve configuration from the documents
    help                   this list
"""

from __future__ import annotations

from .config import ConfigResolver, format_config
from .logging import get_logger

_log = get_logger("tlterm.shell")

HELP_TEXT = """Commands:
  config                 Show resolved configuration
  profiles               List gateway profiles
  profile NAME           Load a gateway profile
  wifi SSID PASSWORD     Save Wi-Fi credentials to the secure store
  reload                 Reload configuration documents
  help                   Show this help"""


class CommandShell:
    def __init__(self, resolver: ConfigResolver):
        self.resolver = resolver

    def execute(self, line: str) -> str:
        cmd = line.strip()
        if not cmd:
            return ""
        _log.debug("Shell command: %s", cmd.split(" ", 1)[0])

        if cmd == "config":
            return format_config(self.resolver.config)

        if cmd == "profiles":
            names = self.resolver.list_profiles()
            if not names:
                return "Available profiles:\n  (none found)"
            return "Available profiles:\n" + "\n".join(f"  - {n}" for n in names)

        if cmd.startswith("profile "):
            name = cmd[len("profile "):].strip()
            if self.resolver.load_profile(name):
                return f"Profile '{name}' loaded: {self.resolver.config.gateway.url}"
            return "Profile not found"

        if cmd.startswith("wifi "):
            ssid, sep, password = cmd[len("wifi "):].partition(" ")
            if not sep or not ssid:
                return "Usage: wifi SSID PASSWORD"
            if not self.resolver.save_wifi(ssid, password):
                return "Failed to write secure store"
            return f"Wi-Fi credentials for '{ssid}' saved to secure store"

        if cmd == "reload":
            self.resolver.reload()
            issues = len(self.resolver.diagnostics)
            suffix = f" ({issues} warning{'s' if issues != 1 else ''})" if issues else ""
            return f"Config reloaded{suffix}"

        if cmd == "help":
            return HELP_TEXT

        return f"Unknown command '{cmd.split(' ', 1)[0]}'. Type 'help' for commands."
