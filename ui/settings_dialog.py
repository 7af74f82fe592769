"""Settings dialog for run options."""
from __future__ import annotations

from pathlib import Path
from typing import Sequence

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QDoubleSpinBox,
    QFileDialog,
    QFormLayout,
    QHBoxLayout,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from baseline_config.user_settings import SettingsStore, UserSettings


class SettingsDialog(QDialog):
    def __init__(
        self,
        settings: UserSettings,
        store: SettingsStore,
        step_titles: Sequence[str],
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self._settings = settings
        self._store = store
        self._step_titles = list(step_titles)
        self.setWindowTitle("Run Settings")
        self.setMinimumWidth(560)
        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout(self)
        form = QFormLayout()

        self._log_path = QLineEdit(self._settings.log_path)
        self._log_path.setPlaceholderText("Default: baseline-configurator.log in the temp directory")
        form.addRow("Log File", self._make_picker(self._log_path, self._browse_log_file))

        self._output_dir = QLineEdit(self._settings.output_directory)
        self._output_dir.setPlaceholderText("Default: next to the log file")
        form.addRow("Output Directory", self._make_picker(self._output_dir, self._browse_output_dir))

        self._checklist_path = QLineEdit(self._settings.checklist_path)
        self._checklist_path.setPlaceholderText("Optional JSON file with extra steps")
        form.addRow("Extra Checklist", self._make_picker(self._checklist_path, self._browse_checklist))

        self._unmount_delay = QDoubleSpinBox()
        self._unmount_delay.setRange(0.0, 30.0)
        self._unmount_delay.setSingleStep(0.5)
        self._unmount_delay.setSuffix(" s")
        self._unmount_delay.setValue(self._settings.unmount_delay_seconds)
        form.addRow("Delay Before Hive Unload", self._unmount_delay)

        self._skipped = QListWidget()
        for title in self._step_titles:
            item = QListWidgetItem(title)
            item.setFlags(item.flags() | Qt.ItemIsUserCheckable)
            item.setCheckState(Qt.Checked if self._settings.is_skipped(title) else Qt.Unchecked)
            self._skipped.addItem(item)
        form.addRow("Skip By Default", self._skipped)

        layout.addLayout(form)

        buttons = QDialogButtonBox(QDialogButtonBox.Save | QDialogButtonBox.Cancel)
        buttons.accepted.connect(self._save)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    def _make_picker(self, field: QLineEdit, handler) -> QWidget:
        container = QWidget()
        row = QHBoxLayout(container)
        row.setContentsMargins(0, 0, 0, 0)
        row.addWidget(field)
        browse = QPushButton("Browse")
        browse.clicked.connect(handler)
        row.addWidget(browse)
        return container

    def _start_dir(self, field: QLineEdit) -> str:
        current = field.text().strip()
        return str(Path(current).parent) if current else str(Path.home())

    def _browse_log_file(self) -> None:
        path, _ = QFileDialog.getSaveFileName(self, "Select Log File", self._start_dir(self._log_path), "Log Files (*.log);;All Files (*)")
        if path:
            self._log_path.setText(path)

    def _browse_output_dir(self) -> None:
        path = QFileDialog.getExistingDirectory(self, "Select Output Directory", self._output_dir.text().strip() or str(Path.home()))
        if path:
            self._output_dir.setText(path)

    def _browse_checklist(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Select Checklist", self._start_dir(self._checklist_path), "JSON Files (*.json);;All Files (*)")
        if path:
            self._checklist_path.setText(path)

    def _save(self) -> None:
        self._settings.log_path = self._log_path.text().strip()
        self._settings.output_directory = self._output_dir.text().strip()
        self._settings.checklist_path = self._checklist_path.text().strip()
        self._settings.unmount_delay_seconds = float(self._unmount_delay.value())
        self._settings.skipped_steps = [
            self._skipped.item(index).text()
            for index in range(self._skipped.count())
            if self._skipped.item(index).checkState() == Qt.Checked
        ]
        self._store.save(self._settings)
        self.accept()
