"""Configuration for ChatBridge (environment / .env based)."""
