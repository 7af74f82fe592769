"""Checklist status dashboard with per-step apply selection."""
from __future__ import annotations

from typing import Callable, Dict

from PySide6.QtCore import Qt, QThreadPool
from PySide6.QtWidgets import (
    QCheckBox,
    QGridLayout,
    QHBoxLayout,
    QLabel,
    QMessageBox,
    QPushButton,
    QScrollArea,
    QVBoxLayout,
    QWidget,
)

from services.checklist_service import ApplyStepResult, ChecklistService, ConfigCheckResult
from ui.workers import ServiceWorker

LogCallback = Callable[[str], None]


class ChecklistTab(QWidget):
    def __init__(
        self,
        service: ChecklistService,
        log_callback: LogCallback,
        thread_pool: QThreadPool,
    ) -> None:
        super().__init__()
        self._service = service
        self._log = log_callback
        self._thread_pool = thread_pool
        self._status_labels: Dict[str, QLabel] = {}
        self._step_checks: Dict[str, QCheckBox] = {}
        self._busy = False
        self._build_ui()
        self._start_check()

    def _build_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.addWidget(QLabel("Machine values, and per-user values as set for the signed-in user only"))

        grid_host = QWidget()
        grid = QGridLayout(grid_host)
        grid.addWidget(QLabel("Apply"), 0, 0)
        grid.addWidget(QLabel("Step"), 0, 1)
        grid.addWidget(QLabel("Status"), 0, 2)

        for row, title in enumerate(self._service.available_apply_steps(), start=1):
            checkbox = QCheckBox()
            checkbox.setChecked(True)
            label = QLabel(f"{title}: {self._service.describe_step(title)}")
            value_label = QLabel("Checking...")
            value_label.setAlignment(Qt.AlignLeft)
            value_label.setWordWrap(True)
            grid.addWidget(checkbox, row, 0, alignment=Qt.AlignCenter)
            grid.addWidget(label, row, 1)
            grid.addWidget(value_label, row, 2)
            self._step_checks[title] = checkbox
            self._status_labels[title] = value_label

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setWidget(grid_host)
        layout.addWidget(scroll)

        button_row = QHBoxLayout()
        self._btn_select_all = QPushButton("Select All")
        self._btn_select_all.clicked.connect(lambda: self._set_all_selection(True))
        button_row.addWidget(self._btn_select_all)

        self._btn_deselect_all = QPushButton("Deselect All")
        self._btn_deselect_all.clicked.connect(lambda: self._set_all_selection(False))
        button_row.addWidget(self._btn_deselect_all)

        self._btn_refresh = QPushButton("Refresh Status")
        self._btn_refresh.clicked.connect(self._start_check)
        button_row.addWidget(self._btn_refresh)

        self._btn_apply = QPushButton("Apply Selected")
        self._btn_apply.clicked.connect(self._start_apply)
        button_row.addWidget(self._btn_apply)
        layout.addLayout(button_row)

    def _start_check(self) -> None:
        if self._busy:
            return
        self._busy = True
        self._set_controls_enabled(False)
        for label in self._status_labels.values():
            label.setText("Checking...")
            label.setStyleSheet("")
        worker = ServiceWorker(self._service.check)
        worker.signals.finished.connect(self._handle_check_results)
        worker.signals.error.connect(self._handle_error)
        self._thread_pool.start(worker)

    def _handle_check_results(self, results: list[ConfigCheckResult]) -> None:
        failures = 0
        for result in results:
            label = self._status_labels.get(result.name)
            if not label:
                continue
            label.setText(result.actual)
            color = "#4caf50" if result.in_desired_state else "#f44336"
            label.setStyleSheet(f"color: {color}; font-weight: bold;")
            if not result.in_desired_state:
                failures += 1
        self._busy = False
        self._set_controls_enabled(True)
        self._log("All steps compliant." if failures == 0 else f"{failures} step(s) differ from the checklist.")

    def _start_apply(self) -> None:
        if self._busy:
            return
        selected_steps = [title for title, checkbox in self._step_checks.items() if checkbox.isChecked()]
        if not selected_steps:
            QMessageBox.information(self, "No Selection", "Select at least one step to apply.")
            return
        self._busy = True
        self._set_controls_enabled(False)
        self._log(f"Applying checklist steps: {', '.join(selected_steps)}")
        worker = ServiceWorker(self._service.apply_with_results, selected_steps)
        worker.signals.finished.connect(self._handle_apply_finished)
        worker.signals.error.connect(self._handle_error)
        self._thread_pool.start(worker)

    def _handle_apply_finished(self, results: list[ApplyStepResult] | None) -> None:
        failed = [result for result in results or [] if not result.success]
        for result in failed:
            self._log(f"[Step failed] {result.name}: {result.detail}")
        if failed:
            self._log(f"See {self._service.context.log_path} for per-profile details.")
        self._busy = False
        self._start_check()

    def _set_all_selection(self, selected: bool) -> None:
        for checkbox in self._step_checks.values():
            checkbox.setChecked(selected)

    def _set_controls_enabled(self, enabled: bool) -> None:
        for button in (self._btn_apply, self._btn_refresh, self._btn_select_all, self._btn_deselect_all):
            button.setEnabled(enabled)
        for checkbox in self._step_checks.values():
            checkbox.setEnabled(enabled)

    def _handle_error(self, message: str) -> None:
        self._log(f"[ERROR] {message}")
        self._busy = False
        self._set_controls_enabled(True)
