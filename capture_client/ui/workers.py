import logging
from PySide6.QtCore import QThread, Signal

logger = logging.getLogger(__name__)


class ValidateLicenseWorker(QThread):
    """Worker thread for validating a license key."""
    finished = Signal(int, bool, object)  # sequence, success, response or error

    def __init__(self, license_client, sequence, key):
        super().__init__()
        self.license_client = license_client
        self.sequence = sequence
        self.key = key

    def run(self):
        try:
            response = self.license_client.validate_license(self.key)
            self.finished.emit(self.sequence, True, response)
        except Exception as e:
            logger.error(f"License validation failed: {e}")
            self.finished.emit(self.sequence, False, e)


class LicenseListWorker(QThread):
    """Worker thread for loading the license list."""
    finished = Signal(int, bool, object)  # sequence, success, rows or message

    def __init__(self, admin_client, sequence):
        super().__init__()
        self.admin_client = admin_client
        self.sequence = sequence

    def run(self):
        try:
            rows = self.admin_client.list_licenses()
            self.finished.emit(self.sequence, True, rows)
        except Exception as e:
            logger.error(f"Load licenses failed: {e}")
            self.finished.emit(self.sequence, False, e)


class CreateLicenseWorker(QThread):
    """Worker thread for issuing a license."""
    finished = Signal(bool, object)

    def __init__(self, admin_client, holder_name, email, expires_at=None):
        super().__init__()
        self.admin_client = admin_client
        self.holder_name = holder_name
        self.email = email
        self.expires_at = expires_at

    def run(self):
        try:
            record = self.admin_client.create_license(
                self.holder_name, self.email, expires_at=self.expires_at
            )
            self.finished.emit(True, record)
        except Exception as e:
            logger.error(f"Create license failed: {e}")
            self.finished.emit(False, e)


class LicenseActionWorker(QThread):
    """Worker thread for toggling or deleting a license."""
    finished = Signal(bool, object)

    def __init__(self, admin_client, license_id, action, is_active=None):
        super().__init__()
        self.admin_client = admin_client
        self.license_id = license_id
        self.action = action
        self.is_active = is_active

    def run(self):
        try:
            if self.action == "delete":
                result = self.admin_client.delete_license(self.license_id)
            else:
                result = self.admin_client.set_active(self.license_id, self.is_active)
            self.finished.emit(True, result)
        except Exception as e:
            logger.error(f"License {self.action} failed: {e}")
            self.finished.emit(False, e)
