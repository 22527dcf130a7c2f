import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure project root is on sys.path so 'src' is importable during tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("SUPABASE_DISABLED", "1")
os.environ.setdefault("REQUEST_LOG_SINK", "supabase")

from tests.fakes import VALID_TOKEN, FakeAuthService, RecordingLogger, encode_image  # noqa: E402


@pytest.fixture()
def make_image():
    return encode_image


@pytest.fixture()
def auth_service() -> FakeAuthService:
    return FakeAuthService()


@pytest.fixture()
def request_log() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture()
def client(auth_service, request_log):
    # lazy import after env configured
    from src.main import create_app

    app = create_app(auth_service=auth_service, request_logger=request_log)
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def auth_header() -> dict[str, str]:
    return {"Authorization": f"Bearer {VALID_TOKEN}"}
