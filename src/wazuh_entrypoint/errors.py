"""Exceptions raised by the bootstrap steps"""

from typing import Optional


class BootstrapError(Exception):
    """Base exception for startup failures"""

    def __init__(self, operation: str, message: str = ""):
        self.operation = operation
        self.message = message
        super().__init__(f"{operation}: {message}" if message else operation)


class FilesystemError(BootstrapError):
    """I/O failure while touching the install tree or the volume"""

    pass


class MissingInputError(BootstrapError):
    """A required input is absent"""

    pass


class ConfigError(BootstrapError):
    """Invalid configuration value"""

    pass


class CommandError(BootstrapError):
    """External tool or service failure"""

    def __init__(self, operation: str, returncode: Optional[int] = None, stderr: str = ""):
        self.returncode = returncode
        self.stderr = stderr
        detail = f"exit code {returncode}" if returncode is not None else "failed"
        if stderr:
            detail = f"{detail}: {stderr.strip()}"
        super().__init__(operation, detail)
