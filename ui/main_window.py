"""Main window: checklist dashboard above a run log pane."""
from __future__ import annotations

import logging

from PySide6.QtCore import QThreadPool, Signal
from PySide6.QtGui import QColor, QPalette
from PySide6.QtWidgets import (
    QApplication,
    QLabel,
    QMainWindow,
    QPlainTextEdit,
    QPushButton,
    QStyleFactory,
    QVBoxLayout,
    QWidget,
)

from baseline_config.user_settings import SettingsStore, UserSettings
from services.checklist_service import ChecklistService
from services.logging_utils import CallbackHandler
from ui.checklist_tab import ChecklistTab
from ui.settings_dialog import SettingsDialog


def apply_dark_theme(app: QApplication) -> None:
    app.setStyle(QStyleFactory.create("Fusion"))
    text = QColor(228, 228, 228)
    surface = QColor(36, 36, 38)
    muted = QColor(128, 128, 128)

    palette = QPalette()
    palette.setColor(QPalette.Window, QColor("#1f1f22"))
    palette.setColor(QPalette.WindowText, text)
    palette.setColor(QPalette.Base, QColor(20, 20, 22))
    palette.setColor(QPalette.AlternateBase, surface)
    palette.setColor(QPalette.Text, text)
    palette.setColor(QPalette.Button, surface)
    palette.setColor(QPalette.ButtonText, text)
    palette.setColor(QPalette.Highlight, QColor("#2d7dd2"))
    palette.setColor(QPalette.HighlightedText, QColor("#ffffff"))
    for role in (QPalette.Text, QPalette.ButtonText, QPalette.WindowText):
        palette.setColor(QPalette.Disabled, role, muted)
    app.setPalette(palette)


class MainWindow(QMainWindow):
    log_message = Signal(str)

    def __init__(self, service: ChecklistService, settings: UserSettings, store: SettingsStore) -> None:
        super().__init__()
        self._service = service
        self._settings = settings
        self._store = store
        self._thread_pool = QThreadPool.globalInstance()
        self.setWindowTitle("Baseline Configurator")
        self.resize(980, 720)

        central = QWidget()
        layout = QVBoxLayout(central)
        self._tab = ChecklistTab(service, self.log_message.emit, self._thread_pool)
        layout.addWidget(self._tab, stretch=3)

        settings_button = QPushButton("Run Settings...")
        settings_button.clicked.connect(self._open_settings)
        layout.addWidget(settings_button)

        layout.addWidget(QLabel(f"Log ({service.context.log_path})"))
        self._log_view = QPlainTextEdit()
        self._log_view.setReadOnly(True)
        self._log_view.setMaximumBlockCount(5000)
        layout.addWidget(self._log_view, stretch=2)
        self.setCentralWidget(central)

        # Records arrive from worker threads; the queued signal hands them to the UI thread.
        self.log_message.connect(self._log_view.appendPlainText)
        self._log_handler = CallbackHandler(self.log_message.emit)
        logging.getLogger().addHandler(self._log_handler)

    def _open_settings(self) -> None:
        dialog = SettingsDialog(self._settings, self._store, self._service.available_apply_steps(), self)
        if dialog.exec():
            self.log_message.emit(f"Settings saved to {self._store.path}; restart to apply log and checklist changes.")

    def closeEvent(self, event) -> None:  # noqa: N802 - Qt override
        logging.getLogger().removeHandler(self._log_handler)
        self._thread_pool.waitForDone()
        super().closeEvent(event)
