"""Tray application shell for Multimer.

Owns the shared collaborators (timer store, alarm center, tick
scheduler), restores every stored timer at launch and turns fired alarms
into a tray notification and the expiry chime.  Screens that list or
edit timers talk to ``registry``.
"""

from __future__ import annotations

import logging

from PyQt6.QtCore import QObject, Qt
from PyQt6.QtGui import QColor, QIcon, QImage, QPainter, QPen, QPixmap
from PyQt6.QtWidgets import QApplication, QMenu, QSystemTrayIcon

from .audio.chime import AlarmChime
from .database.store import SqlTimerStore
from .notifications.alarms import AlarmCenter
from .settings import Settings, load_settings
from .timer.engine import TimerEngine
from .timer.ports import AlarmPayload
from .timer.record import TimerState
from .timer.registry import EngineRegistry
from .timer.ticker import TickScheduler


logger = logging.getLogger(__name__)

def _make_tray_icon(active: bool) -> QIcon:
    """32×32 monochrome template icon: filled circle while any timer runs,
    outline otherwise."""
    size = 64  # draw at 2× for Retina
    img = QImage(size, size, QImage.Format.Format_ARGB32_Premultiplied)
    img.fill(Qt.GlobalColor.transparent)
    p = QPainter(img)
    p.setRenderHint(QPainter.RenderHint.Antialiasing)
    colour = QColor(0, 0, 0, 220)
    cx, cy, r = size // 2, size // 2, size // 2 - 4
    if active:
        p.setPen(Qt.PenStyle.NoPen)
        p.setBrush(colour)
    else:
        p.setPen(QPen(colour, 4))
        p.setBrush(Qt.BrushStyle.NoBrush)
    p.drawEllipse(cx - r, cy - r, r * 2, r * 2)
    p.end()

    img.setDevicePixelRatio(2.0)
    return QIcon(QPixmap.fromImage(img))


class MultimerApp(QObject):
    """Wires engines, alarms, the chime and the tray icon together."""

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        settings: Settings | None = None,
        chime: AlarmChime | None = None,
        show_tray: bool = True,
    ) -> None:
        super().__init__(parent)
        self._settings = settings or load_settings()

        self._scheduler = TickScheduler()
        self._alarms = AlarmCenter(self)
        self._store = SqlTimerStore()
        self.registry = EngineRegistry(
            self._store,
            self._alarms,
            self,
            scheduler=self._scheduler,
            tick_interval=self._settings.tick_interval,
        )

        self._chime = chime or AlarmChime(self, volume=self._settings.sound_volume)

        self._tray_icon: QSystemTrayIcon | None = None
        if show_tray and QSystemTrayIcon.isSystemTrayAvailable():
            self._tray_icon = QSystemTrayIcon(self)
            self._tray_icon.setIcon(_make_tray_icon(False))
            self._tray_icon.setToolTip("Multimer")
            menu = QMenu()
            menu.addAction("Quit", self._quit_app)
            self._tray_icon.setContextMenu(menu)
            self._tray_menu = menu
            self._tray_icon.show()

        # ── wire signals ──────────────────────────────────────────────
        self._alarms.alarm_fired.connect(self._on_alarm_fired)
        self.registry.engine_added.connect(self._on_engine_added)
        self.registry.engine_removed.connect(lambda _identity: self._refresh_tray())

    @property
    def settings(self) -> Settings:
        return self._settings

    def restore(self) -> list[TimerEngine]:
        """Bring back every stored timer, reconciled with the wall clock."""
        return self.registry.restore()

    def shutdown(self) -> None:
        """Stop background work; snapshots stay for the next launch."""
        self.registry.shutdown()
        self._alarms.shutdown()
        self._scheduler.shutdown()
        if self._tray_icon is not None:
            self._tray_icon.hide()
        logger.info("Multimer shut down")

    # ══════════════════════════════════════════════════════════════════
    #  CHIME / NOTIFICATION HELPERS
    # ══════════════════════════════════════════════════════════════════

    def _ring(self) -> None:
        """Play the expiry chime unless sound is off or DND is on."""
        if not self._settings.sound_enabled or self._settings.do_not_disturb:
            return
        self._chime.ring()

    def _send_notification(self, title: str, body: str) -> None:
        """Show a desktop notification via the tray icon."""
        if not self._settings.notifications_enabled:
            return
        if self._settings.do_not_disturb:
            return
        if self._tray_icon is not None:
            self._tray_icon.showMessage(title, body)

    # ══════════════════════════════════════════════════════════════════
    #  SIGNALS
    # ══════════════════════════════════════════════════════════════════

    def _on_alarm_fired(self, identifier: str, payload: AlarmPayload) -> None:
        self._send_notification(payload.title, payload.body)
        self._ring()

    def _on_engine_added(self, engine: TimerEngine) -> None:
        engine.state_changed.connect(self._on_state_changed)
        engine.error_occurred.connect(self._on_engine_error)
        self._refresh_tray()

    def _on_state_changed(self, _state: TimerState) -> None:
        self._refresh_tray()

    def _on_engine_error(self, error: Exception) -> None:
        logger.warning("Timer engine reported: %s", error)

    def _refresh_tray(self) -> None:
        if self._tray_icon is None:
            return
        running = sum(
            1 for engine in self.registry.engines if engine.state is TimerState.RUNNING
        )
        self._tray_icon.setIcon(_make_tray_icon(running > 0))
        self._tray_icon.setToolTip(
            f"Multimer: {running} running" if running else "Multimer"
        )

    def _quit_app(self) -> None:
        self.shutdown()
        QApplication.instance().quit()
