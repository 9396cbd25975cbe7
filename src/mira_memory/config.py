# mira_memory/config.py
from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()

# Central defaults: each can be overridden by environment variable
DEFAULT_DATABASE_URL = os.getenv("MIRA_DATABASE_URL", "sqlite+aiosqlite:///mira.db")

DEFAULT_TOOL_TTL = int(os.getenv("MIRA_TOOL_TTL", "5"))
DEFAULT_MAX_ACTIVE_TOOLS = int(os.getenv("MIRA_MAX_ACTIVE_TOOLS", "5"))

DEFAULT_MAX_WORKING_MESSAGES = int(os.getenv("MIRA_MAX_WORKING_MESSAGES", "50"))
DEFAULT_MAX_CONTEXT_TOKENS = int(os.getenv("MIRA_MAX_CONTEXT_TOKENS", "8000"))
DEFAULT_SEGMENT_IDLE_MINUTES = float(os.getenv("MIRA_SEGMENT_IDLE_MINUTES", "120"))
