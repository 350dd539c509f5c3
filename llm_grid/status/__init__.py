"""Change-detection polling of the open-target set."""

from llm_grid.status.poller import StatusPoller, targets_signature

__all__ = ["StatusPoller", "targets_signature"]
