from __future__ import annotations

import os

from supabase import Client, create_client


def supabase_disabled() -> bool:
    return os.getenv("SUPABASE_DISABLED", "0") == "1"


# Simple reusable singleton client getter for auth and request logs
_CLIENT_SINGLETON: Client | None = None


def get_supabase_client() -> Client | None:
    """Shared Supabase client, or None when disabled or not configured."""
    global _CLIENT_SINGLETON
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_ANON_KEY")
    if supabase_disabled() or not url or not key:
        return None
    if _CLIENT_SINGLETON is None:
        _CLIENT_SINGLETON = create_client(url, key)
    return _CLIENT_SINGLETON
