"""Exception types shared across ChatBridge."""
