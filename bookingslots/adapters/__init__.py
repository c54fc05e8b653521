"""
Adapters layer - External integrations (Supabase REST API).
"""

from .supabase_client import SupabaseClient
from .mock_supabase_client import MockSupabaseClient

__all__ = ["SupabaseClient", "MockSupabaseClient"]
