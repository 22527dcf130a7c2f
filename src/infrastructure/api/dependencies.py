from __future__ import annotations

import os

from fastapi import Request

from src.application.handlers.auth_decorator import AuthService
from src.application.handlers.logging_decorator import RequestLogger
from src.application.use_cases.run_pipeline import PipelineRunner
from src.infrastructure.auth.supabase_auth import SupabaseAuthService
from src.infrastructure.database.supabase_client import get_supabase_client
from src.infrastructure.request_logs.file_logger import FileRequestLogger
from src.infrastructure.request_logs.supabase_logger import SupabaseRequestLogger


# --------- collaborator factories, called once by create_app ---------
def build_auth_service() -> SupabaseAuthService:
    return SupabaseAuthService(get_supabase_client())


def build_request_logger() -> RequestLogger:
    sink = os.getenv("REQUEST_LOG_SINK", "file").lower()
    if sink == "supabase":
        return SupabaseRequestLogger(get_supabase_client())
    if sink != "file":
        raise ValueError(f"Unsupported REQUEST_LOG_SINK: {sink}")
    return FileRequestLogger()


def max_upload_bytes() -> int:
    return int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))


# --------- request-scoped dependencies ---------
def get_pipeline_runner(request: Request) -> PipelineRunner:
    return request.app.state.pipeline_runner


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service
