"""Exception hierarchy for minio-deploy."""

from typing import List, Optional


class DeployError(Exception):
    """Base exception for every failure the CLI reports to the user."""

    def __init__(self, message: str, details: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigError(DeployError):
    """Raised when required configuration keys are missing, blank or malformed."""

    def __init__(self, missing: List[str], message: Optional[str] = None) -> None:
        self.missing = list(missing)
        super().__init__(
            message or "Missing required configuration: " + ", ".join(self.missing),
            details={"missing": ",".join(self.missing)},
        )


class SourceNotFoundError(DeployError):
    """Raised when the local directory to mirror does not exist."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(
            f"Source directory not found: {path}. Run the build first (e.g. npm run build).",
            details={"path": path},
        )


class ProvisioningError(DeployError):
    """Raised when the bucket cannot be checked or created."""

    def __init__(self, message: str, hint: Optional[str] = None) -> None:
        super().__init__(message)
        self.hint = hint


class TransferError(DeployError):
    """Raised when an upload or delete fails; the run stops at that point."""

    def __init__(self, message: str, completed: int = 0, total: int = 0) -> None:
        super().__init__(message, details={"completed": str(completed), "total": str(total)})
        self.completed = completed
        self.total = total


class ToolNotFoundError(DeployError):
    """Raised when an external CLI the chosen transport depends on is missing."""
