# carelog/services/stores.py
from typing import Optional

from carelog.db.db_config import DB_PATH, FIELD_SETTINGS_PATH
from carelog.services.field_settings import FieldSettingsStore
from carelog.services.records_store import RecordStore

_record_store: Optional[RecordStore] = None
_settings_store: Optional[FieldSettingsStore] = None


def get_record_store() -> RecordStore:
    global _record_store
    if _record_store is None:
        _record_store = RecordStore(DB_PATH)
    return _record_store


def set_record_store(store: Optional[RecordStore]) -> None:
    global _record_store
    _record_store = store


def get_field_settings_store() -> FieldSettingsStore:
    global _settings_store
    if _settings_store is None:
        _settings_store = FieldSettingsStore(FIELD_SETTINGS_PATH)
    return _settings_store


def set_field_settings_store(store: Optional[FieldSettingsStore]) -> None:
    global _settings_store
    _settings_store = store
