"""
vanity_errors.py - Error types shared by the vanity address generator

Every error carries a context dict (chain, pattern, stage, ...) that is
rendered into the message, so a caller can tell what failed and where
without reading the logs.
"""


class VanityError(Exception):
    """Base class for all vanity generator errors"""

    def __init__(self, message, **context):
        self.message = message
        self.context = {k: v for k, v in context.items() if v is not None}
        super().__init__(message)

    def __str__(self):
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} ({details})"


class ConfigError(VanityError):
    """A configuration value is missing or out of its valid range"""


class PatternError(ConfigError):
    """A prefix/suffix pattern cannot be searched for on the selected chain"""


class CandidateError(VanityError):
    """A single candidate could not be generated or encoded; retry with fresh material"""


class EntropyError(VanityError):
    """The operating system could not supply secure random bytes"""


class WorkerFailedError(VanityError):
    """A search worker died or reported a fatal error"""


class ToolError(VanityError):
    """Base class for failures of the external GPU search tool"""

    def __init__(self, message, output="", **context):
        super().__init__(message, **context)
        self.output = output


class ToolNotFoundError(ToolError):
    """The external tool executable could not be found or started"""


class ToolExecutionError(ToolError):
    """The external tool exited with an error before producing a result"""


class ToolOutputError(ToolError):
    """The external tool output did not contain the expected fields"""


class KeyCompositionError(ToolError):
    """The tweak returned by the external tool does not reproduce its reported address"""
