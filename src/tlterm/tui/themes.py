"""Color schemes and CSS generation for the menu simulator.

One scheme per device theme palette, so the simulator looks like the
device screen: Green Terminal (default), Amber Retro, High Contrast,
Light Mode and Cyan Terminal.
"""

from __future__ import annotations

from ..settings import THEME_PALETTES, Palette, Theme


def _hex(value: int) -> str:
    return f"#{value:06x}"


def _scheme(p: Palette) -> dict[str, str]:
    return {
        "bg": _hex(p.background),
        "bg_alt": _hex(p.status_bar),
        "fg": _hex(p.foreground),
        "fg_dim": _hex(p.accent),
        "accent": _hex(p.accent),
        "highlight_bg": _hex(p.foreground),
        "highlight_fg": _hex(p.background),
        "border": _hex(p.accent),
    }


# ─── Color Schemes ────────────────────────────────────────────────────────

COLOR_SCHEMES: dict[Theme, dict[str, str]] = {
    theme: _scheme(palette) for theme, palette in THEME_PALETTES.items()
}

DEFAULT_SCHEME = Theme.GREEN


def get_scheme(theme: int = DEFAULT_SCHEME) -> dict[str, str]:
    """Get the scheme for a stored theme value, with fallback to default."""
    return COLOR_SCHEMES[Theme.coerce(theme)]


def build_css(theme: int = DEFAULT_SCHEME) -> str:
    """Build the Textual CSS for a device theme."""
    s = get_scheme(theme)
    return f"""
    Screen {{
        background: {s['bg']};
        color: {s['fg']};
    }}

    /* ─── Title bar ─────────────────────────────────────────── */

    #menu-title {{
        dock: top;
        height: 1;
        width: 1fr;
        background: {s['bg_alt']};
        color: {s['fg']};
        padding: 0 1;
        text-style: bold;
    }}

    /* ─── Rows / text capture ──────────────────────────────── */

    #menu-body {{
        height: 1fr;
        width: 1fr;
        padding: 1 2;
        color: {s['fg']};
    }}

    /* ─── Status line ─────────────────────────────────────── */

    #menu-status {{
        dock: bottom;
        height: 1;
        width: 1fr;
        background: {s['bg_alt']};
        color: {s['fg_dim']};
        padding: 0 1;
    }}

    #feedback {{
        dock: bottom;
        height: 1;
        width: 1fr;
        color: {s['fg_dim']};
        padding: 0 1;
    }}
    """
