"""
Exception types raised by the audit engine
"""


class ComposeAuditError(Exception):
    """Base class for all engine errors"""


class ParseError(ComposeAuditError):
    """Manifest text is structurally malformed"""

    def __init__(self, message: str, line: int = None):
        self.line = line
        if line is not None:
            message = f"{message} (line {line})"
        super().__init__(message)


class PatternError(ComposeAuditError):
    """A caller-supplied secret pattern failed to compile"""

    def __init__(self, name: str, reason: str):
        self.name = name
        super().__init__(f"Invalid pattern '{name}': {reason}")


class ConfigError(ComposeAuditError):
    """An engine profile could not be loaded"""
