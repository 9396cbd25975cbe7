# mira_memory/tools/builtin.py
"""Tools registered by default. Only the browser is always active."""

from __future__ import annotations

from .models import ToolCategory, ToolDefinition

BUILTIN_TOOLS: list[ToolDefinition] = [
    ToolDefinition(
        name="mino_browser",
        description="Browse websites and extract information",
        triggers=["website", "browse", "check", "look up", "find on", "menu", "price", "availability"],
        category=ToolCategory.BROWSER,
        always_active=True,
    ),
    ToolDefinition(
        name="voice_message",
        description="Send a voice message",
        triggers=["voice", "speak", "say", "read aloud", "audio"],
        category=ToolCategory.IOS,
    ),
    ToolDefinition(
        name="location_card",
        description="Send a location/map card",
        triggers=["location", "address", "directions", "map", "where is", "how to get"],
        category=ToolCategory.IOS,
    ),
    ToolDefinition(
        name="calendar_event",
        description="Create a calendar event",
        triggers=["calendar", "schedule", "appointment", "meeting", "reminder", "event"],
        category=ToolCategory.IOS,
    ),
    ToolDefinition(
        name="homekit",
        description="Control HomeKit scenes",
        triggers=["homekit", "lights", "home", "scene", "smart home"],
        category=ToolCategory.IOS,
    ),
    ToolDefinition(
        name="alert_monitor",
        description="Set up recurring monitoring alerts",
        triggers=["alert", "notify", "monitor", "watch", "check for", "let me know"],
        category=ToolCategory.UTILITY,
    ),
    ToolDefinition(
        name="weather",
        description="Get weather information",
        triggers=["weather", "temperature", "rain", "sunny", "forecast", "cold", "hot"],
        category=ToolCategory.EXTERNAL,
    ),
    ToolDefinition(
        name="maps",
        description="Get directions and distance",
        triggers=["directions", "route", "how far", "drive to", "walk to", "distance"],
        category=ToolCategory.EXTERNAL,
    ),
]
