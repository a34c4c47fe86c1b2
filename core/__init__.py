"""Core integrations for ChatBridge."""
