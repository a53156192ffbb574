"""
Database client configuration.

Mail rows are written by the webhook and read by mailbox address, never on
behalf of a signed-in user, so the backend only needs the service-role
client (bypasses RLS).
"""

import os
from typing import Optional

from supabase import create_client, Client
from dotenv import load_dotenv

load_dotenv()

SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY")

if not SUPABASE_URL:
    raise ValueError("SUPABASE_URL must be set in environment variables")

# None when SUPABASE_SERVICE_KEY is unset; datastore helpers and /health/db
# report that instead of failing at import time.
supabase_admin: Optional[Client] = (
    create_client(SUPABASE_URL, SUPABASE_SERVICE_KEY) if SUPABASE_SERVICE_KEY else None
)
