class ExternalToolError(Exception):
    """Raised when an external command cannot start or exits with a nonzero code."""

    def __init__(self, command: str, returncode: int | None, stderr: str = "") -> None:
        if returncode is None:
            prefix = f"Failed to start {command} process"
        else:
            prefix = f"{command} process errored with code {returncode}"
        super().__init__(f"{prefix}: {stderr}" if stderr else f"{prefix}.")
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
