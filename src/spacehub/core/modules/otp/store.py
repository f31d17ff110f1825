import threading
from abc import ABC, abstractmethod
from datetime import datetime

from spacehub.core.modules.otp.models import OtpRecord


class OtpStore(ABC):
    """Keyed storage for live OTP records.

    The in-memory implementation is process-local; a deployment with several
    instances needs an implementation backed by shared storage.
    """

    @abstractmethod
    def get(self, contact: str) -> OtpRecord | None: ...

    @abstractmethod
    def set(self, record: OtpRecord) -> None: ...

    @abstractmethod
    def delete(self, contact: str) -> None: ...

    @abstractmethod
    def sweep(self, now: datetime) -> list[str]:
        """Delete records expired at `now` and return their contacts."""


class MemoryOtpStore(OtpStore):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, OtpRecord] = {}

    def get(self, contact: str) -> OtpRecord | None:
        with self._lock:
            record = self._records.get(contact)
            return record.model_copy() if record is not None else None

    def set(self, record: OtpRecord) -> None:
        with self._lock:
            self._records[record.contact] = record.model_copy()

    def delete(self, contact: str) -> None:
        with self._lock:
            self._records.pop(contact, None)

    def sweep(self, now: datetime) -> list[str]:
        with self._lock:
            expired = [contact for contact, record in self._records.items() if now > record.expires_at]
            for contact in expired:
                del self._records[contact]
            return expired

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
