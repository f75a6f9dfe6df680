from __future__ import annotations

from ...utils.validators import non_empty
from ..errors import ValidationError
from ..models import ClinicData, ClinicSettings
from .sync_queue_repo import SyncQueueRepo


class SettingsRepo:
    """Clinic letterhead settings (name, logo, address, email, phone)."""

    def __init__(self, data: ClinicData, sync: SyncQueueRepo):
        self.data = data
        self.sync = sync

    def get(self) -> ClinicSettings:
        return self.data.clinic_settings.copy()

    def save(self, settings: ClinicSettings) -> None:
        if not non_empty(settings.name):
            raise ValidationError("Clinic name cannot be empty.")
        new = settings.copy()
        new.name = new.name.strip()
        self.data.clinic_settings = new
        self.sync.log("clinicSettings", "update", new)
