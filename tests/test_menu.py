"""Tests for the settings menu state machine.

Navigation, wraparound, scroll window, value adjustment, toggles, reset,
scan polling and action hooks.  Text capture lives in
test_menu_text_capture.py.
"""

from __future__ import annotations

from unittest import mock

import pytest

from tlterm.menu import PARENT, VISIBLE_ROWS, MenuEngine, Screen
from tlterm.settings import SettingsStore, Theme, WifiNetwork, factory_defaults
from tlterm.storage import MemoryBlobStore
from tlterm.wifi_scan import ScanResult, StaticScanner


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_engine(networks: int = 1, scanner=None) -> MenuEngine:
    """Engine over an in-memory store holding *networks* saved networks."""
    store = SettingsStore(MemoryBlobStore("tlterm"))
    store.load()
    store.settings.wifi_networks = [
        WifiNetwork(f"Net{i}", f"pw{i}") for i in range(networks)
    ]
    store.save()
    store.blobs.writes.clear()
    return MenuEngine(store, scanner)


def saves(engine: MenuEngine) -> int:
    return engine.store.blobs.writes.get("settings", 0)


def open_screen(engine: MenuEngine, screen: Screen) -> MenuEngine:
    engine.show()
    if screen is not Screen.MAIN:
        engine.enter(screen)
    return engine


def focus(engine: MenuEngine, index: int) -> MenuEngine:
    """Put the cursor on row *index* without passing through adjust rows."""
    engine.selected = index
    return engine


def select_row(engine: MenuEngine, index: int) -> None:
    """Move to row *index* from the top, then select it."""
    assert engine.selected == 0
    for _ in range(index):
        engine.move(1)
    engine.select()


# ---------------------------------------------------------------------------
# Show / hide / back
# ---------------------------------------------------------------------------

class TestShowHide:
    def test_starts_hidden(self):
        engine = make_engine()
        assert engine.screen is Screen.HIDDEN
        assert engine.active is False

    def test_show_enters_main(self):
        engine = make_engine()
        engine.show()
        assert engine.screen is Screen.MAIN
        assert (engine.selected, engine.scroll) == (0, 0)

    def test_close_row_hides(self):
        engine = make_engine()
        engine.on_hide = mock.Mock()
        engine.show()
        engine.select()
        assert engine.screen is Screen.HIDDEN
        engine.on_hide.assert_called_once()

    def test_cancel_on_main_hides(self):
        engine = make_engine()
        engine.show()
        engine.cancel()
        assert engine.screen is Screen.HIDDEN

    def test_events_ignored_while_hidden(self):
        engine = make_engine()
        engine.move(1)
        engine.select()
        engine.cancel()
        assert engine.key("x") is False
        assert engine.screen is Screen.HIDDEN
        assert saves(engine) == 0

    @pytest.mark.parametrize("screen", [
        Screen.DISPLAY, Screen.WIFI_LIST, Screen.SERVER_LOCAL,
        Screen.SERVER_REMOTE, Screen.SYSTEM, Screen.ABOUT,
    ])
    def test_back_row_returns_to_main(self, screen):
        engine = open_screen(make_engine(), screen)
        engine.select()
        assert engine.screen is Screen.MAIN
        assert (engine.selected, engine.scroll) == (0, 0)

    def test_scan_back_returns_to_wifi_list(self):
        engine = open_screen(make_engine(scanner=StaticScanner()), Screen.WIFI_SCAN)
        engine.cancel()
        assert engine.screen is Screen.WIFI_LIST

    def test_q_goes_back(self):
        engine = open_screen(make_engine(), Screen.SYSTEM)
        assert engine.key("q") is True
        assert engine.screen is Screen.MAIN

    def test_parent_table_covers_every_visible_screen(self):
        assert set(PARENT) == set(Screen) - {Screen.HIDDEN}

    def test_main_rows_open_children(self):
        expected = {
            1: Screen.DISPLAY, 2: Screen.WIFI_LIST, 3: Screen.SERVER_LOCAL,
            4: Screen.SERVER_REMOTE, 5: Screen.SYSTEM, 6: Screen.ABOUT,
        }
        for row, screen in expected.items():
            engine = make_engine()
            engine.show()
            select_row(engine, row)
            assert engine.screen is screen


# ---------------------------------------------------------------------------
# Item counts
# ---------------------------------------------------------------------------

class TestItemCounts:
    @pytest.mark.parametrize("screen,count", [
        (Screen.MAIN, 7),
        (Screen.DISPLAY, 3),
        (Screen.SERVER_LOCAL, 10),
        (Screen.SERVER_REMOTE, 10),
        (Screen.SYSTEM, 9),
        (Screen.ABOUT, 1),
    ])
    def test_fixed_counts(self, screen, count):
        engine = open_screen(make_engine(), screen)
        assert engine.item_count() == count

    @pytest.mark.parametrize("networks", [0, 1, 3, 5])
    def test_wifi_list_count(self, networks):
        engine = open_screen(make_engine(networks), Screen.WIFI_LIST)
        assert engine.item_count() == 3 + networks

    def test_wifi_scan_count(self):
        results = [ScanResult(f"AP{i}", -40 - i) for i in range(4)]
        engine = open_screen(make_engine(scanner=StaticScanner(results, polls_until_done=2)),
                             Screen.WIFI_SCAN)
        assert engine.item_count() == 1
        engine.poll()
        assert engine.item_count() == 1
        engine.poll()
        assert engine.item_count() == 5

    def test_scan_results_capped(self):
        results = [ScanResult(f"AP{i}", -50) for i in range(30)]
        engine = open_screen(make_engine(scanner=StaticScanner(results)), Screen.WIFI_SCAN)
        engine.poll()
        assert engine.item_count() == 21


# ---------------------------------------------------------------------------
# Selection and scrolling
# ---------------------------------------------------------------------------

class TestNavigation:
    def test_wrap_backward_from_top(self):
        engine = open_screen(make_engine(), Screen.MAIN)
        engine.move(-1)
        assert engine.selected == 6

    def test_wrap_forward_from_bottom(self):
        engine = open_screen(make_engine(), Screen.MAIN)
        for _ in range(6):
            engine.move(1)
        assert engine.selected == 6
        engine.move(1)
        assert engine.selected == 0

    def test_selection_always_in_range(self):
        engine = open_screen(make_engine(), Screen.MAIN)
        for delta in [1, 1, -1, -1, -1, -1, 1] * 5:
            engine.move(delta)
            assert 0 <= engine.selected < engine.item_count()

    def test_scroll_keeps_selection_visible(self):
        engine = open_screen(make_engine(), Screen.MAIN)
        for _ in range(6):
            engine.move(1)
            assert engine.scroll <= engine.selected < engine.scroll + VISIBLE_ROWS
        assert engine.scroll == 2
        engine.move(1)
        assert (engine.selected, engine.scroll) == (0, 0)

    def test_scroll_on_backward_wrap(self):
        engine = open_screen(make_engine(), Screen.MAIN)
        engine.move(-1)
        assert (engine.selected, engine.scroll) == (6, 2)

    def test_scroll_only_adjusted_within_screen(self):
        engine = open_screen(make_engine(), Screen.MAIN)
        engine.move(-1)          # 6, scroll 2
        engine.move(-1)          # 5, scroll stays 2
        assert (engine.selected, engine.scroll) == (5, 2)
        engine.move(-1)
        engine.move(-1)
        engine.move(-1)          # 2, scroll 2
        engine.move(-1)          # 1, scroll follows
        assert (engine.selected, engine.scroll) == (1, 1)

    def test_scroll_resets_on_screen_change(self):
        engine = open_screen(make_engine(), Screen.MAIN)
        engine.move(-1)
        engine.select()          # About
        assert engine.screen is Screen.ABOUT
        assert (engine.selected, engine.scroll) == (0, 0)

    def test_single_row_screen(self):
        engine = open_screen(make_engine(), Screen.ABOUT)
        engine.move(1)
        assert engine.selected == 0
        engine.move(-1)
        assert engine.selected == 0

    def test_view_window_and_title(self):
        engine = open_screen(make_engine(), Screen.MAIN)
        engine.move(-1)
        view = engine.view()
        assert view.title == "SETTINGS [7/7]"
        assert len(view.visible_rows) == VISIBLE_ROWS
        assert view.visible_rows[-1].label == "About"

    def test_short_screen_title_has_no_marker(self):
        engine = open_screen(make_engine(), Screen.DISPLAY)
        assert engine.view().title == "DISPLAY"

    def test_navigation_does_not_save(self):
        engine = open_screen(make_engine(), Screen.MAIN)
        engine.move(1)
        engine.move(-1)
        assert saves(engine) == 0


# ---------------------------------------------------------------------------
# Display adjustments
# ---------------------------------------------------------------------------

class TestDisplay:
    def _on_row(self, row: int) -> MenuEngine:
        return focus(open_screen(make_engine(), Screen.DISPLAY), row)

    def test_brightness_adjusts_in_place(self):
        engine = self._on_row(1)
        engine.on_brightness = mock.Mock()
        engine.move(1)
        assert engine.settings.display.brightness == 225
        assert engine.selected == 1
        assert saves(engine) == 1
        engine.on_brightness.assert_called_once_with(225)

    def test_brightness_clamped_high(self):
        engine = self._on_row(1)
        for _ in range(5):
            engine.move(1)
        assert engine.settings.display.brightness == 255

    def test_brightness_clamped_low(self):
        engine = self._on_row(1)
        for _ in range(20):
            engine.move(-1)
        assert engine.settings.display.brightness == 10

    def test_brightness_percent_label(self):
        engine = self._on_row(1)
        assert engine.view().rows[1].value == "78%"

    def test_theme_wraps(self):
        engine = self._on_row(2)
        engine.on_theme = mock.Mock()
        engine.move(-1)
        assert engine.settings.display.theme is Theme.CYAN
        engine.move(1)
        assert engine.settings.display.theme is Theme.GREEN
        assert engine.on_theme.call_count == 2
        assert engine.view().rows[2].value == "Green Terminal"

    def test_stuck_on_adjust_row(self):
        engine = self._on_row(2)
        for _ in range(7):
            engine.move(1)
        assert engine.selected == 2

    def test_adjusted_value_persisted(self):
        engine = self._on_row(1)
        engine.move(-1)
        fresh = SettingsStore(engine.store.blobs)
        assert fresh.load().display.brightness == 175


# ---------------------------------------------------------------------------
# WiFi list
# ---------------------------------------------------------------------------

class TestWifiList:
    def test_rows(self):
        engine = open_screen(make_engine(2), Screen.WIFI_LIST)
        labels = [r.label for r in engine.view().rows]
        assert labels == [
            "[< Back]", "[~] Scan for Networks", "Net0", "Net1", "[+] Add Network Manually",
        ]

    def test_select_network_toggles_and_saves(self):
        engine = open_screen(make_engine(2), Screen.WIFI_LIST)
        select_row(engine, 3)
        assert engine.settings.wifi_networks[1].enabled is False
        assert engine.view().rows[3].value == "Disabled"
        assert saves(engine) == 1
        engine.select()
        assert engine.settings.wifi_networks[1].enabled is True
        assert saves(engine) == 2

    def test_connected_marker(self):
        engine = open_screen(make_engine(2), Screen.WIFI_LIST)
        engine.connected_ssid = "Net0"
        assert engine.view().rows[2].value == "Connected"

    def test_delete_key_shifts_entries(self):
        engine = open_screen(make_engine(4), Screen.WIFI_LIST)
        for _ in range(3):
            engine.move(1)           # Net1
        assert engine.key("d") is True
        assert [n.ssid for n in engine.settings.wifi_networks] == ["Net0", "Net2", "Net3"]
        assert engine.settings.wifi_networks[1].password == "pw2"
        assert saves(engine) == 1

    def test_delete_last_row_clamps_selection(self):
        engine = open_screen(make_engine(1), Screen.WIFI_LIST)
        engine.move(1)
        engine.move(1)               # Net0
        engine.key("d")
        assert engine.item_count() == 3
        assert 0 <= engine.selected < 3

    def test_delete_key_ignored_off_network_rows(self):
        engine = open_screen(make_engine(2), Screen.WIFI_LIST)
        assert engine.key("d") is False
        assert engine.settings.wifi_network_count == 2
        assert saves(engine) == 0

    def test_delete_persists(self):
        engine = open_screen(make_engine(3), Screen.WIFI_LIST)
        engine.delete_network(0)
        fresh = SettingsStore(engine.store.blobs)
        assert [n.ssid for n in fresh.load().wifi_networks] == ["Net1", "Net2"]


# ---------------------------------------------------------------------------
# WiFi scan
# ---------------------------------------------------------------------------

class TestWifiScan:
    def test_entering_starts_scan(self):
        scanner = StaticScanner([ScanResult("Cafe", -61)])
        engine = open_screen(make_engine(scanner=scanner), Screen.WIFI_LIST)
        select_row(engine, 1)
        assert engine.screen is Screen.WIFI_SCAN
        assert scanner.scans_started == 1
        assert engine.scanning is True
        assert engine.view().title == "SCANNING..."

    def test_zero_polls_stays_scanning(self):
        engine = open_screen(make_engine(scanner=StaticScanner([ScanResult("A", -1)])),
                             Screen.WIFI_SCAN)
        assert engine.scanning is True
        assert engine.item_count() == 1

    def test_many_polls_are_harmless(self):
        scanner = StaticScanner([ScanResult("Cafe", -61)], polls_until_done=3)
        engine = open_screen(make_engine(scanner=scanner), Screen.WIFI_SCAN)
        assert engine.poll() is False
        assert engine.poll() is False
        assert engine.poll() is True
        for _ in range(5):
            assert engine.poll() is False
        view = engine.view()
        assert view.title == "SELECT NETWORK"
        assert view.rows[1].label == "Cafe"
        assert view.rows[1].value == "-61dBm"

    def test_no_results_message(self):
        engine = open_screen(make_engine(scanner=StaticScanner([])), Screen.WIFI_SCAN)
        engine.poll()
        assert engine.view().status == "No networks found. Try again."

    def test_without_scanner(self):
        engine = open_screen(make_engine(), Screen.WIFI_SCAN)
        assert engine.scanning is False
        assert engine.poll() is False
        assert engine.item_count() == 1

    def test_poll_outside_scan_screen(self):
        scanner = StaticScanner([ScanResult("Cafe", -61)], polls_until_done=2)
        engine = open_screen(make_engine(scanner=scanner), Screen.WIFI_SCAN)
        engine.cancel()
        engine.poll()
        engine.poll()
        assert engine.screen is Screen.WIFI_LIST


# ---------------------------------------------------------------------------
# Server screens
# ---------------------------------------------------------------------------

class TestServer:
    def test_rows(self):
        engine = open_screen(make_engine(), Screen.SERVER_LOCAL)
        view = engine.view()
        assert [r.label for r in view.rows] == [
            "[< Back]", "Enabled", "Host", "Port", "Username", "Password",
            "SSL/TLS", "", "[Test Connection]", "[Connect Now]",
        ]
        assert view.rows[3].value == "22"
        assert view.rows[5].value == "****"

    def test_enabled_toggle(self):
        engine = open_screen(make_engine(), Screen.SERVER_REMOTE)
        select_row(engine, 1)
        assert engine.settings.remote_server.enabled is False
        assert engine.settings.local_server.enabled is True
        assert saves(engine) == 1

    def test_ssl_toggle(self):
        engine = open_screen(make_engine(), Screen.SERVER_LOCAL)
        select_row(engine, 6)
        assert engine.settings.local_server.use_ssl is True
        assert saves(engine) == 1

    def test_spacer_is_noop(self):
        engine = open_screen(make_engine(), Screen.SERVER_LOCAL)
        select_row(engine, 7)
        assert engine.screen is Screen.SERVER_LOCAL
        assert saves(engine) == 0

    def test_test_connection_stub(self):
        engine = open_screen(make_engine(), Screen.SERVER_LOCAL)
        select_row(engine, 8)
        assert engine.view().status == "Test not implemented yet"
        assert saves(engine) == 0

    def test_connect_now(self):
        engine = open_screen(make_engine(), Screen.SERVER_REMOTE)
        engine.on_connect = mock.Mock()
        select_row(engine, 9)
        assert engine.screen is Screen.HIDDEN
        engine.on_connect.assert_called_once_with(engine.settings.remote_server, True)

    def test_main_shows_server_state(self):
        engine = open_screen(make_engine(), Screen.SERVER_LOCAL)
        select_row(engine, 1)
        engine.go_back()
        assert engine.view().rows[3].value == "OFF"


# ---------------------------------------------------------------------------
# System screen
# ---------------------------------------------------------------------------

class TestSystem:
    def _on_row(self, row: int) -> MenuEngine:
        return focus(open_screen(make_engine(), Screen.SYSTEM), row)

    @pytest.mark.parametrize("row,getter", [
        (1, lambda s: s.sound.enabled),
        (3, lambda s: s.haptic.enabled),
        (5, lambda s: s.wifi_auto_connect),
        (6, lambda s: s.prefer_remote),
    ])
    def test_toggles(self, row, getter):
        engine = self._on_row(row)
        before = getter(engine.settings)
        engine.select()
        assert getter(engine.settings) is (not before)
        assert saves(engine) == 1

    def test_volume_step_and_clamp(self):
        engine = self._on_row(2)
        engine.move(1)
        assert engine.settings.sound.volume == 60
        for _ in range(10):
            engine.move(1)
        assert engine.settings.sound.volume == 100
        for _ in range(15):
            engine.move(-1)
        assert engine.settings.sound.volume == 0

    def test_haptic_intensity_step(self):
        engine = self._on_row(4)
        engine.move(-1)
        assert engine.settings.haptic.intensity == 70
        assert engine.view().rows[4].value == "70%"

    def test_reset_all(self):
        engine = self._on_row(2)
        engine.move(1)
        engine.settings.wifi_networks.clear()
        engine.on_theme = mock.Mock()
        focus(engine, 7).select()
        defaults = factory_defaults()
        assert engine.settings.sound.volume == defaults.sound.volume
        assert engine.settings.wifi_network_count == defaults.wifi_network_count
        assert engine.view().status == "Settings reset to defaults"
        engine.on_theme.assert_called_once_with(Theme.GREEN)
        fresh = SettingsStore(engine.store.blobs)
        assert fresh.load().sound.volume == defaults.sound.volume

    def test_restart_hook(self):
        engine = self._on_row(8)
        engine.on_restart = mock.Mock()
        engine.select()
        engine.on_restart.assert_called_once()


# ---------------------------------------------------------------------------
# Haptic feedback hook
# ---------------------------------------------------------------------------

class TestFeedback:
    def test_patterns(self):
        engine = make_engine()
        engine.on_feedback = mock.Mock()
        engine.show()
        engine.move(1)
        engine.select()
        engine.cancel()
        patterns = [c.args[0] for c in engine.on_feedback.call_args_list]
        assert patterns == ["double", "tick", "click", "bump"]

    def test_suppressed_when_disabled(self):
        engine = make_engine()
        engine.settings.haptic.enabled = False
        engine.on_feedback = mock.Mock()
        engine.show()
        engine.move(1)
        engine.on_feedback.assert_not_called()


# ---------------------------------------------------------------------------
# Render hook
# ---------------------------------------------------------------------------

class TestRender:
    def test_render_after_every_event(self):
        engine = make_engine()
        views = []
        engine.on_render = views.append
        engine.show()
        engine.move(1)
        assert [v.screen for v in views] == [Screen.MAIN, Screen.MAIN]
        assert views[-1].selected == 1

    def test_save_happens_before_render(self):
        engine = open_screen(make_engine(), Screen.DISPLAY)
        engine.move(1)
        seen = []
        engine.on_render = lambda view: seen.append(saves(engine))
        engine.move(1)
        assert seen == [1]

    def test_hidden_view(self):
        view = make_engine().view()
        assert view.screen is Screen.HIDDEN
        assert view.rows == ()

    def test_about_body(self):
        engine = open_screen(make_engine(), Screen.ABOUT)
        assert engine.view().body
