"""
Agents used by the ChatBridge runtime.

- ConversationAgent: sessions, input dispatch and text exchanges
- RunPoller: waits for an assistant run to complete
- AudioBridge: speech-to-text -> exchange -> text-to-speech
"""
