import os
import tempfile
from pathlib import Path

import pytest

# storage paths are read at import time; keep every test run out of the package dir
_TMP = Path(tempfile.mkdtemp(prefix="carelog-tests-"))
os.environ["CARELOG_DB_PATH"] = str(_TMP / "care_records.db")
os.environ["CARELOG_CHECKPOINT_DB_PATH"] = str(_TMP / "checkpoints.db")
os.environ["CARELOG_FIELD_SETTINGS_PATH"] = str(_TMP / "field_settings.json")
os.environ["LLM_PROVIDER"] = "ollama"
os.environ["USE_FALLBACK_EXTRACTION"] = "true"

from unittest.mock import patch  # noqa: E402

from carelog.services.field_settings import FieldSettingsStore, default_field_settings  # noqa: E402
from carelog.services.records_store import RecordStore  # noqa: E402


@pytest.fixture
def settings():
    return default_field_settings()


@pytest.fixture
def record_store(tmp_path):
    store = RecordStore(tmp_path / "records.db")
    yield store
    store.close()


@pytest.fixture
def settings_store(tmp_path):
    return FieldSettingsStore(tmp_path / "field_settings.json")


@pytest.fixture
def fake_service():
    """Patch the extraction-service call; set `.return_value` or `.side_effect` per test."""
    with patch("carelog.services.parsing.llm_extract_record") as mocked:
        yield mocked
