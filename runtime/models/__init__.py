"""
Pydantic datamodels used by the ChatBridge runtime.

Split into:
- session_models: Session + AudioReply
- api_models: request/response schemas and AssistantReply
"""
