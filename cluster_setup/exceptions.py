"""Custom exceptions for cluster setup."""


class ClusterSetupError(Exception):
    """Base exception for all cluster setup errors."""

    def __init__(self, message: str, details: str = None):
        """Initialize the exception.

        Args:
            message: Main error message
            details: Additional details or suggestions
        """
        self.message = message
        self.details = details
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format the complete error message.

        Returns:
            Formatted error message with details
        """
        if self.details:
            return f"{self.message}\n\nDetails: {self.details}"
        return self.message


class ValidationError(ClusterSetupError):
    """Exception raised when required input is missing or malformed.

    Raised before anything is written or any remote call is made.
    """

    pass


class PrecedenceWarning(ClusterSetupError):
    """Raised when the administrator has to retry with a different selection.

    Not a system fault: e.g. roles submitted without choosing a master.
    """

    pass


class PersistenceError(ClusterSetupError):
    """Exception raised when a pillar or minion write fails."""

    def __init__(self, message: str, details: str = None, errors: list[str] | None = None):
        self.errors = list(errors or [])
        super().__init__(message, details)


class RemoteAssignmentError(ClusterSetupError):
    """Exception raised when a remote agent call fails or returns false."""

    pass


class ConfigurationError(ClusterSetupError):
    """Exception raised for configuration errors."""

    pass


class DiscoveryError(ClusterSetupError):
    """Exception raised when the node discovery feed cannot be read."""

    pass
