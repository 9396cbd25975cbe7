# mira_memory/exceptions.py
"""Exceptions raised by the MIRA memory engine."""


class MiraError(Exception):
    """Base class for all engine errors."""


class StorageError(MiraError):
    """The persistent store is misconfigured, unreachable or not initialized."""


class UnknownToolError(MiraError, KeyError):
    """A tool name was looked up that is not in the registry."""

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Unknown tool: {tool_name}")
