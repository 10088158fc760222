"""
Patient Store

CRUD over a local key-value store. Records are held as plain dicts
(Patient.to_dict()) so callers never share mutable state with the store.

Backends:
  - InMemoryPatientStore  : process-local dict (tests, demos)
  - DiskPatientStore      : diskcache.Cache on local disk
"""
import sqlite3
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from diskcache import Cache

from dhbnn.core.clinical.patient import Patient, utcnow
from dhbnn.utils import get_logger, PatientStoreError

logger = get_logger(__name__)


class PatientStore(ABC):
    """Key-value store of patients, keyed by an auto-incremented integer id."""

    backend = "abstract"

    @abstractmethod
    def _next_id(self) -> int: ...

    @abstractmethod
    def _read(self, patient_id: int) -> Optional[dict]: ...

    @abstractmethod
    def _write(self, patient_id: int, record: dict) -> None: ...

    @abstractmethod
    def _remove(self, patient_id: int) -> bool: ...

    @abstractmethod
    def _all(self) -> List[dict]: ...

    @abstractmethod
    def clear(self) -> None: ...

    def get(self, patient_id: int) -> Optional[Patient]:
        """Return the patient, or None if no record has this id."""
        record = self._read(patient_id)
        if record is None:
            logger.debug(f"Patient {patient_id} not found")
            return None
        return Patient.from_dict(record)

    def put(self, patient: Patient) -> Patient:
        """
        Insert or replace a patient.

        Assigns an id when the patient has none, sets date_created on first
        write and refreshes date_modified on every write.
        """
        now = utcnow()
        if patient.patient_id is None:
            patient.patient_id = self._next_id()
        if patient.date_created is None:
            patient.date_created = now
        patient.date_modified = now

        self._write(patient.patient_id, patient.to_dict())
        logger.info(f"Patient {patient.patient_id} saved ({self.backend})")
        return Patient.from_dict(self._read(patient.patient_id))

    def delete(self, patient_id: int) -> None:
        if self._remove(patient_id):
            logger.info(f"Patient {patient_id} deleted ({self.backend})")
        else:
            logger.debug(f"Delete ignored: patient {patient_id} not present")

    def list(self) -> List[Patient]:
        patients = [Patient.from_dict(r) for r in self._all()]
        logger.debug(f"Retrieved {len(patients)} patient record(s)")
        return patients

    def search(self, term: str) -> List[Patient]:
        """Case-insensitive partial match on "<last name> <first name>"."""
        needle = (term or "").strip().lower()
        return [p for p in self.list() if needle in p.full_name.lower()]

    def count(self) -> int:
        return len(self._all())


class InMemoryPatientStore(PatientStore):
    backend = "memory"

    def __init__(self):
        self._records: Dict[int, dict] = {}
        self._last_id = 0

    def _next_id(self) -> int:
        self._last_id += 1
        return self._last_id

    def _read(self, patient_id: int) -> Optional[dict]:
        return self._records.get(patient_id)

    def _write(self, patient_id: int, record: dict) -> None:
        self._records[patient_id] = record
        self._last_id = max(self._last_id, patient_id)

    def _remove(self, patient_id: int) -> bool:
        return self._records.pop(patient_id, None) is not None

    def _all(self) -> List[dict]:
        return [self._records[k] for k in sorted(self._records)]

    def clear(self) -> None:
        self._records.clear()


class DiskPatientStore(PatientStore):
    """Persistent store backed by a diskcache directory."""

    backend = "disk"

    _ID_KEY = "__next_patient_id__"
    _PREFIX = "patient:"

    def __init__(self, directory: str):
        self.directory = directory
        try:
            self._cache = Cache(directory)
        except (OSError, sqlite3.Error) as exc:
            raise PatientStoreError(
                f"Cannot open patient store at {directory}: {exc}",
                backend=self.backend,
            ) from exc

    def _key(self, patient_id: int) -> str:
        return f"{self._PREFIX}{patient_id}"

    def _next_id(self) -> int:
        return self._cache.incr(self._ID_KEY, delta=1, default=0)

    def _read(self, patient_id: int) -> Optional[dict]:
        return self._cache.get(self._key(patient_id))

    def _write(self, patient_id: int, record: dict) -> None:
        try:
            self._cache.set(self._key(patient_id), record)
        except (OSError, sqlite3.Error) as exc:
            raise PatientStoreError(
                f"Error saving patient {patient_id}: {exc}",
                backend=self.backend,
                details={"patient_id": patient_id},
            ) from exc
        # Keep the counter ahead of ids supplied by the caller
        if patient_id > self._cache.get(self._ID_KEY, 0):
            self._cache.set(self._ID_KEY, patient_id)

    def _remove(self, patient_id: int) -> bool:
        return self._cache.delete(self._key(patient_id))

    def _all(self) -> List[dict]:
        keys = [k for k in self._cache.iterkeys() if isinstance(k, str) and k.startswith(self._PREFIX)]
        ids = sorted(int(k[len(self._PREFIX):]) for k in keys)
        records = (self._cache.get(self._key(i)) for i in ids)
        return [r for r in records if r is not None]

    def clear(self) -> None:
        for key in list(self._cache.iterkeys()):
            if isinstance(key, str) and key.startswith(self._PREFIX):
                self._cache.delete(key)

    def close(self) -> None:
        self._cache.close()


def create_patient_store(backend: str, directory: Optional[str] = None) -> PatientStore:
    """Build the store named by configuration ("memory" or "disk")."""
    if backend == "memory":
        return InMemoryPatientStore()
    if backend == "disk":
        if not directory:
            raise PatientStoreError("PATIENT_STORE_DIR is required for the disk backend", backend=backend)
        return DiskPatientStore(directory)
    raise PatientStoreError(f"Unknown patient store backend: {backend}", backend=backend)
