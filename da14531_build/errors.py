"""Error taxonomy for the SDK build engine."""


class BuildError(Exception):
    """Base class for every error raised by the engine."""


class ConfigurationConflict(BuildError):
    """Mutually exclusive features are active, or a required group is empty."""


class EnvironmentCheckError(BuildError):
    """A required environment variable or path is missing, or the target is wrong."""


class VersionError(BuildError):
    """The SDK version header is missing or malformed.

    Never fatal: the pipeline reports it as a warning and keeps going.
    """


class TemplateError(BuildError):
    """A header template could not be read, substituted or written."""


class GenerationError(BuildError):
    """The binding generator or the sysroot lookup failed."""


class CompilationError(BuildError):
    """A native toolchain invocation returned failure."""

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        return_code: int = -1,
        stdout: str = "",
        stderr: str = "",
    ):
        super().__init__(message)
        self.command = command or []
        self.return_code = return_code
        self.stdout = stdout
        self.stderr = stderr

    def __str__(self) -> str:
        text = super().__str__()
        if self.stderr:
            text = f"{text}\n{self.stderr}"
        return text
