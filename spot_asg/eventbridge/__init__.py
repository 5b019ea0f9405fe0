"""EventBridge publication of discovery results."""
