"""Mission control dashboard, store tooling and task-lifecycle worker."""

__version__ = "0.3.0"
