"""Setup and bootstrap orchestration for a Kubernetes management console."""

__version__ = "0.1.0"
