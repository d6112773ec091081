"""Messages shown by ShowNotification automations."""

from __future__ import annotations

import logging

from PyQt6.QtCore import QObject, pyqtSignal

logger = logging.getLogger(__name__)

NOTIFICATION_TITLE = "Automation"


class Notifier(QObject):
    """Fire-and-forget message display.

    Every message is emitted on ``shown`` and logged; when a
    ``QSystemTrayIcon`` is attached it also pops up as a tray balloon.
    """

    shown = pyqtSignal(str)

    def __init__(
        self,
        parent: QObject | None = None,
        *,
        tray_icon=None,
        enabled: bool = True,
    ) -> None:
        super().__init__(parent)
        self._tray_icon = tray_icon
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = enabled

    def attach_tray_icon(self, tray_icon) -> None:
        self._tray_icon = tray_icon

    def show(self, message: str) -> None:
        if not self._enabled:
            return
        logger.info("%s: %s", NOTIFICATION_TITLE, message)
        self.shown.emit(message)
        if self._tray_icon is not None:
            self._tray_icon.showMessage(NOTIFICATION_TITLE, message)
