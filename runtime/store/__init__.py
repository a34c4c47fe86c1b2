"""
Storage abstractions for the ChatBridge runtime.

Includes:
- SessionStore: chat_id -> thread registry (in-memory + optional file-backed)
- LogStore / ConsoleLogStore: append-only event logging
"""
