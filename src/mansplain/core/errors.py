class MansplainError(Exception):
    """Base class for every failure that ends a run."""

    stage = "running mansplain"


class SourceError(MansplainError):
    """The manual page could not be read."""

    stage = "reading the manual"


class ToolUnavailable(SourceError):
    """The `man` executable could not be located or started."""

    def __init__(self, tool: str, reason: str = ""):
        self.tool = tool
        detail = f": {reason}" if reason else ""
        super().__init__(f"Failed to execute {tool} command. Is '{tool}' installed?{detail}")


class NotFound(SourceError):
    """`man` ran but exited non-zero (usually: no manual entry)."""

    def __init__(self, command: str, stderr: str = ""):
        self.command = command
        self.stderr = stderr
        msg = f"No manual entry for '{command}'"
        if stderr.strip():
            msg += f": {stderr.strip()}"
        super().__init__(msg)


class EncodingError(SourceError):
    def __init__(self, command: str):
        self.command = command
        super().__init__(f"Man page output for '{command}' is not valid UTF-8")


class ConfigError(MansplainError, ValueError):
    """
    Caller/config issue: unknown backend, bad YAML, missing credential.
    The fix is to change input or config, never to retry.
    """

    stage = "configuring the backend"


class TransportError(MansplainError):
    """Connection failure or non-success HTTP status from the backend."""

    stage = "reaching the backend"


class DecodeError(MansplainError):
    """
    The response body could not be read to completion.
    Malformed lines inside the body are not errors; they are skipped.
    """

    stage = "decoding the response"
