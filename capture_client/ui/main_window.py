"""
Main window for the capture client.
"""

import logging
from typing import List, Optional

from PIL.ImageQt import ImageQt
from PySide6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QGroupBox,
    QStatusBar, QPushButton, QLabel, QLineEdit,
    QMessageBox, QFileDialog, QInputDialog, QApplication
)
from PySide6.QtCore import Qt
from PySide6.QtGui import QPixmap

import qtawesome as qta

from config import get_config
from .admin_window import AdminWindow
from .capture_view import CaptureView
from .workers import ValidateLicenseWorker
from ..utils import app_config
from ..utils.api_client import LicenseClient, AdminClient
from ..utils.capabilities import LocalFileDownloader, MssScreenCaptureSource
from ..utils.capture_pipeline import CapturePipeline, PipelineState
from ..utils.license_gate import GateStatus, LicenseGate

logger = logging.getLogger(__name__)


class QtClipboardSink:
    """ClipboardSink that puts images on the system clipboard."""

    def copy_image(self, image) -> None:
        QApplication.clipboard().setImage(ImageQt(image).copy())


def _monitor_label(index: int, monitor: dict) -> str:
    name = "All screens" if index == 0 else f"Screen {index}"
    return f"{name} ({monitor['width']}x{monitor['height']})"


class MainWindow(QMainWindow):
    """Main application window."""

    def __init__(self):
        super().__init__()

        self.config = get_config()
        server_url = app_config.get_server_url(self.config.client.server_url)
        self.license_client = LicenseClient(server_url, timeout=self.config.client.timeout)
        self.gate = LicenseGate(self.license_client.validate_license)
        self._validate_workers: List[ValidateLicenseWorker] = []
        self.admin_window: Optional[AdminWindow] = None

        self.capture_view = CaptureView(self.config.capture.frame_interval_ms)
        self.pipeline = CapturePipeline(
            source=MssScreenCaptureSource(chooser=self.choose_monitor),
            sink=self.capture_view,
            downloader=LocalFileDownloader(app_config.get_save_dir()),
            clipboard=QtClipboardSink(),
            min_selection_px=self.config.capture.min_selection_px,
            filename_prefix=self.config.capture.filename_prefix,
        )
        self.capture_view.pipeline = self.pipeline

        self.setup_ui()
        self.update_gate_ui()
        self.update_capture_ui()

    def setup_ui(self):
        """Setup the user interface."""
        self.setWindowTitle("NextCap")
        self.setMinimumSize(1000, 760)

        central_widget = QWidget()
        self.setCentralWidget(central_widget)

        layout = QVBoxLayout(central_widget)
        layout.setContentsMargins(20, 20, 20, 20)
        layout.setSpacing(15)

        self.create_license_panel(layout)
        self.create_capture_panel(layout)

        self.status_bar = QStatusBar()
        self.setStatusBar(self.status_bar)
        self.status_bar.showMessage(f"Server: {self.license_client.base_url}")

    def create_license_panel(self, parent_layout):
        group = QGroupBox("License")
        row = QHBoxLayout(group)

        self.key_input = QLineEdit()
        self.key_input.setPlaceholderText("XXXX-XXXX-XXXX-XXXX")
        self.key_input.returnPressed.connect(self.submit_key)
        row.addWidget(self.key_input, 1)

        self.validate_btn = QPushButton(qta.icon('fa5s.key'), "Activate")
        self.validate_btn.clicked.connect(self.submit_key)
        row.addWidget(self.validate_btn)

        self.sign_out_btn = QPushButton(qta.icon('fa5s.sign-out-alt'), "Sign out")
        self.sign_out_btn.clicked.connect(self.sign_out)
        row.addWidget(self.sign_out_btn)

        self.gate_label = QLabel()
        row.addWidget(self.gate_label, 1)

        self.admin_btn = QPushButton(qta.icon('fa5s.user-shield'), "Admin")
        self.admin_btn.clicked.connect(self.open_admin)
        row.addWidget(self.admin_btn)

        parent_layout.addWidget(group)

    def create_capture_panel(self, parent_layout):
        self.capture_group = QGroupBox("Capture")
        layout = QVBoxLayout(self.capture_group)

        controls = QHBoxLayout()
        self.start_btn = QPushButton(qta.icon('fa5s.desktop'), "Share screen")
        self.start_btn.clicked.connect(self.start_sharing)
        controls.addWidget(self.start_btn)

        self.stop_btn = QPushButton(qta.icon('fa5s.stop'), "Stop")
        self.stop_btn.clicked.connect(self.stop_sharing)
        controls.addWidget(self.stop_btn)

        self.clear_btn = QPushButton("Clear selection")
        self.clear_btn.clicked.connect(self.clear_selection)
        controls.addWidget(self.clear_btn)

        self.capture_btn = QPushButton(qta.icon('fa5s.camera'), "Capture")
        self.capture_btn.clicked.connect(self.capture)
        controls.addWidget(self.capture_btn)
        controls.addStretch()
        layout.addLayout(controls)

        self.capture_view.selection_changed.connect(self.update_capture_ui)
        self.capture_view.detached.connect(self.update_capture_ui)
        layout.addWidget(self.capture_view, 1)

        self.error_label = QLabel()
        self.error_label.setStyleSheet("color: #dc2626;")
        self.error_label.setWordWrap(True)
        layout.addWidget(self.error_label)

        result_group = QGroupBox("Last capture")
        result_layout = QHBoxLayout(result_group)
        self.frame_preview = QLabel("Nothing captured yet")
        self.frame_preview.setAlignment(Qt.AlignCenter)
        self.frame_preview.setMinimumHeight(140)
        result_layout.addWidget(self.frame_preview, 1)

        actions = QVBoxLayout()
        self.download_btn = QPushButton(qta.icon('fa5s.download'), "Download")
        self.download_btn.clicked.connect(self.download)
        actions.addWidget(self.download_btn)

        self.copy_btn = QPushButton(qta.icon('fa5s.copy'), "Copy")
        self.copy_btn.clicked.connect(self.copy_to_clipboard)
        actions.addWidget(self.copy_btn)

        self.save_dir_btn = QPushButton(qta.icon('fa5s.folder-open'), "Save folder...")
        self.save_dir_btn.clicked.connect(self.choose_save_dir)
        actions.addWidget(self.save_dir_btn)

        self.discard_btn = QPushButton(qta.icon('fa5s.trash-alt'), "Discard")
        self.discard_btn.clicked.connect(self.discard_frame)
        actions.addWidget(self.discard_btn)
        actions.addStretch()
        result_layout.addLayout(actions)

        layout.addWidget(result_group)
        parent_layout.addWidget(self.capture_group, 1)

    # -- license gate -----------------------------------------------------

    def submit_key(self):
        key = self.key_input.text()
        sequence = self.gate.begin(key)
        if sequence is None:
            return
        self.update_gate_ui()

        worker = ValidateLicenseWorker(self.license_client, sequence, key.strip())
        worker.finished.connect(self.on_validation_finished)
        # Keep references until the threads have exited
        self._validate_workers = [w for w in self._validate_workers if w.isRunning()]
        self._validate_workers.append(worker)
        worker.start()

    def on_validation_finished(self, sequence: int, success: bool, payload):
        if success:
            self.gate.resolve(sequence, payload)
        else:
            self.gate.fail(sequence, payload)
        self.update_gate_ui()

    def sign_out(self):
        self.pipeline.stop_sharing()
        self.pipeline.discard_frame()
        self.gate.reset()
        self.key_input.clear()
        self.update_gate_ui()
        self.update_capture_ui()

    def update_gate_ui(self):
        state = self.gate.state
        if state.status == GateStatus.AUTHORIZED:
            self.gate_label.setText(f"Licensed to {state.holder_name}")
            self.gate_label.setStyleSheet("color: #16a34a;")
        elif state.status == GateStatus.DENIED:
            self.gate_label.setText(state.reason)
            self.gate_label.setStyleSheet("color: #dc2626;")
        elif state.status == GateStatus.VALIDATING:
            self.gate_label.setText("Validating...")
            self.gate_label.setStyleSheet("color: #2563eb; font-style: italic;")
        else:
            self.gate_label.setText("Enter your license key")
            self.gate_label.setStyleSheet("color: #9ca3af;")

        authorized = self.gate.is_authorized
        self.key_input.setEnabled(not authorized)
        self.validate_btn.setEnabled(not authorized)
        self.sign_out_btn.setEnabled(authorized)
        self.capture_group.setEnabled(authorized)

    # -- capture ----------------------------------------------------------

    def choose_monitor(self, monitors: List[dict]) -> Optional[int]:
        labels = [_monitor_label(i, m) for i, m in enumerate(monitors)]
        default = 1 if len(monitors) > 1 else 0
        choice, ok = QInputDialog.getItem(
            self, "Share screen", "Choose what to share:", labels, default, False
        )
        if not ok:
            return None
        return labels.index(choice)

    def start_sharing(self):
        self.pipeline.start_sharing()
        self.update_capture_ui()

    def stop_sharing(self):
        self.pipeline.stop_sharing()
        self.update_capture_ui()

    def clear_selection(self):
        self.pipeline.clear_selection()
        self.capture_view.update()
        self.update_capture_ui()

    def capture(self):
        frame = self.pipeline.capture()
        if frame is not None:
            self.status_bar.showMessage(f"Captured {frame.width}x{frame.height}", 5000)
        self.update_capture_ui()

    def download(self):
        try:
            self.pipeline.download()
        except OSError as e:
            QMessageBox.critical(self, "Save Failed", f"Could not save the capture: {e}")
            return
        self.status_bar.showMessage(f"Saved to {self.pipeline.downloader.directory}", 5000)

    def copy_to_clipboard(self):
        if self.pipeline.copy_to_clipboard():
            self.status_bar.showMessage("Copied to clipboard", 3000)

    def discard_frame(self):
        self.pipeline.discard_frame()
        self.update_capture_ui()

    def choose_save_dir(self):
        directory = QFileDialog.getExistingDirectory(
            self, "Save captures to", str(self.pipeline.downloader.directory)
        )
        if directory:
            app_config.set_save_dir(directory)
            self.pipeline.downloader = LocalFileDownloader(app_config.get_save_dir())

    def update_capture_ui(self):
        state = self.pipeline.state
        sharing = state != PipelineState.IDLE
        self.start_btn.setEnabled(not sharing)
        self.stop_btn.setEnabled(sharing)
        self.capture_btn.setEnabled(sharing)
        self.clear_btn.setEnabled(state == PipelineState.SELECTED)
        self.error_label.setText(self.pipeline.error or "")

        frame = self.pipeline.frame
        has_frame = frame is not None
        self.download_btn.setEnabled(has_frame)
        self.copy_btn.setEnabled(has_frame)
        self.discard_btn.setEnabled(has_frame)
        if has_frame:
            pixmap = QPixmap.fromImage(ImageQt(frame.image))
            self.frame_preview.setPixmap(
                pixmap.scaled(320, 180, Qt.KeepAspectRatio, Qt.SmoothTransformation)
            )
        else:
            self.frame_preview.setPixmap(QPixmap())
            self.frame_preview.setText("Nothing captured yet")

    # -- admin ------------------------------------------------------------

    def open_admin(self):
        password, ok = QInputDialog.getText(
            self, "Administration", "Admin password:", QLineEdit.Password
        )
        if not ok or not password:
            return
        client = AdminClient(
            self.license_client.base_url, password, timeout=self.config.client.timeout
        )
        self.admin_window = AdminWindow(client)
        self.admin_window.show()

    def closeEvent(self, event):
        self.pipeline.stop_sharing()
        super().closeEvent(event)
