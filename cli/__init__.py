"""Command line interface for ChatBridge."""
