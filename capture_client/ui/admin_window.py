"""
License administration window.
"""

import logging
from functools import partial
from typing import Any, Dict, List, Optional

from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QFormLayout, QGroupBox,
    QPushButton, QLabel, QLineEdit, QTableWidget, QTableWidgetItem,
    QHeaderView, QMessageBox, QApplication
)
from PySide6.QtCore import Qt

import qtawesome as qta

from .workers import LicenseListWorker, CreateLicenseWorker, LicenseActionWorker
from ..utils.admin_listing import LicenseListing, format_timestamp
from ..utils.api_client import AdminClient, describe_http_error

logger = logging.getLogger(__name__)

COLUMNS = ["Key", "Holder", "Email", "Active", "Expires", "Created", "Actions"]


class AdminWindow(QWidget):
    """Issue, list, toggle and revoke licenses."""

    def __init__(self, admin_client: AdminClient, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.admin_client = admin_client
        self.listing = LicenseListing()
        self._workers: List[Any] = []
        self.setWindowTitle("NextCap - License Administration")
        self.setMinimumSize(1000, 600)
        self.setup_ui()
        self.load_licenses()

    def setup_ui(self):
        layout = QVBoxLayout(self)
        layout.setContentsMargins(20, 20, 20, 20)
        layout.setSpacing(15)

        # Create form
        form_group = QGroupBox("Issue a license")
        form = QFormLayout(form_group)
        self.holder_input = QLineEdit()
        form.addRow("Holder name:", self.holder_input)
        self.email_input = QLineEdit()
        form.addRow("Email:", self.email_input)
        self.expiry_input = QLineEdit()
        self.expiry_input.setPlaceholderText("Optional, e.g. 2027-01-31T23:59:59Z")
        form.addRow("Expires at:", self.expiry_input)
        self.create_btn = QPushButton(qta.icon('fa5s.plus'), "Create")
        self.create_btn.clicked.connect(self.create_license)
        form.addRow(self.create_btn)
        layout.addWidget(form_group)

        # Header
        header_layout = QHBoxLayout()
        title = QLabel("Licenses")
        title.setStyleSheet("font-size: 18px; font-weight: bold;")
        header_layout.addWidget(title)
        header_layout.addStretch()
        self.refresh_btn = QPushButton(qta.icon('fa5s.sync'), "Refresh")
        self.refresh_btn.clicked.connect(self.load_licenses)
        header_layout.addWidget(self.refresh_btn)
        layout.addLayout(header_layout)

        self.table = QTableWidget()
        self.table.setColumnCount(len(COLUMNS))
        self.table.setHorizontalHeaderLabels(COLUMNS)
        self.table.horizontalHeader().setSectionResizeMode(0, QHeaderView.ResizeToContents)
        self.table.horizontalHeader().setSectionResizeMode(2, QHeaderView.Stretch)
        self.table.setSelectionBehavior(QTableWidget.SelectRows)
        self.table.setEditTriggers(QTableWidget.NoEditTriggers)
        layout.addWidget(self.table)

        self.status_label = QLabel("")
        self.status_label.setStyleSheet("color: #666; font-style: italic;")
        layout.addWidget(self.status_label)

    def _start(self, worker):
        self._workers = [w for w in self._workers if w.isRunning()]
        self._workers.append(worker)
        worker.start()

    # -- listing ----------------------------------------------------------

    def load_licenses(self):
        sequence = self.listing.begin_refresh()
        self.status_label.setText("Loading licenses...")
        worker = LicenseListWorker(self.admin_client, sequence)
        worker.finished.connect(self.licenses_loaded)
        self._start(worker)

    def licenses_loaded(self, sequence: int, success: bool, data):
        if success:
            applied = self.listing.apply(sequence, data)
        else:
            applied = self.listing.fail(sequence, describe_http_error(data))
        if not applied:
            return

        if self.listing.error:
            self.status_label.setText("Load failed")
            QMessageBox.critical(self, "Load Failed", f"Failed to load licenses: {self.listing.error}")
            return
        self.display_licenses(self.listing.rows)
        self.status_label.setText(f"{len(self.listing.rows)} license(s)")

    def display_licenses(self, rows: List[Dict[str, Any]]):
        self.table.setRowCount(len(rows))
        for i, row in enumerate(rows):
            self.table.setItem(i, 0, QTableWidgetItem(row.get("key", "")))
            self.table.setItem(i, 1, QTableWidgetItem(row.get("holder_name", "")))
            self.table.setItem(i, 2, QTableWidgetItem(row.get("email", "")))
            active_item = QTableWidgetItem("Yes" if row.get("is_active") else "No")
            active_item.setTextAlignment(Qt.AlignCenter)
            self.table.setItem(i, 3, active_item)
            self.table.setItem(i, 4, QTableWidgetItem(format_timestamp(row.get("expires_at"))))
            self.table.setItem(i, 5, QTableWidgetItem(format_timestamp(row.get("created_at"))))
            self.table.setCellWidget(i, 6, self._actions_widget(row))

    def _actions_widget(self, row: Dict[str, Any]) -> QWidget:
        widget = QWidget()
        actions = QHBoxLayout(widget)
        actions.setContentsMargins(2, 2, 2, 2)

        copy_btn = QPushButton(qta.icon('fa5s.copy'), "")
        copy_btn.setToolTip("Copy key")
        copy_btn.clicked.connect(partial(self.copy_key, row.get("key", "")))
        actions.addWidget(copy_btn)

        active = bool(row.get("is_active"))
        toggle_btn = QPushButton("Deactivate" if active else "Activate")
        toggle_btn.clicked.connect(partial(self.set_active, row["id"], not active))
        actions.addWidget(toggle_btn)

        delete_btn = QPushButton(qta.icon('fa5s.trash-alt', color='#dc2626'), "")
        delete_btn.setToolTip("Delete license")
        delete_btn.clicked.connect(partial(self.delete_license, row["id"]))
        actions.addWidget(delete_btn)
        return widget

    # -- mutations --------------------------------------------------------

    def create_license(self):
        holder_name = self.holder_input.text().strip()
        email = self.email_input.text().strip()
        if not holder_name or not email:
            QMessageBox.warning(self, "Missing Fields", "Holder name and email are required.")
            return

        self.create_btn.setEnabled(False)
        worker = CreateLicenseWorker(
            self.admin_client, holder_name, email,
            expires_at=self.expiry_input.text().strip() or None,
        )
        worker.finished.connect(self.license_created)
        self._start(worker)

    def license_created(self, success: bool, data):
        self.create_btn.setEnabled(True)
        if not success:
            QMessageBox.critical(self, "Create Failed", describe_http_error(data))
            return
        self.holder_input.clear()
        self.email_input.clear()
        self.expiry_input.clear()
        QMessageBox.information(self, "License Created", f"New key: {data.get('key')}")
        self.load_licenses()

    def set_active(self, license_id: int, is_active: bool):
        worker = LicenseActionWorker(self.admin_client, license_id, "toggle", is_active=is_active)
        worker.finished.connect(self.action_finished)
        self._start(worker)

    def delete_license(self, license_id: int):
        row = self.listing.find(license_id) or {}
        reply = QMessageBox.question(
            self,
            "Confirm Delete",
            f"Delete the license of {row.get('holder_name', license_id)}? This cannot be undone.",
            QMessageBox.Yes | QMessageBox.No,
            QMessageBox.No
        )
        if reply != QMessageBox.Yes:
            return
        worker = LicenseActionWorker(self.admin_client, license_id, "delete")
        worker.finished.connect(self.action_finished)
        self._start(worker)

    def action_finished(self, success: bool, data):
        if not success:
            QMessageBox.critical(self, "Update Failed", describe_http_error(data))
        self.load_licenses()

    def copy_key(self, key: str):
        QApplication.clipboard().setText(key)
        self.status_label.setText("Key copied to clipboard")
