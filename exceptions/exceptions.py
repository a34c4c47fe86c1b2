"""
Custom exceptions for ChatBridge.

These exceptions are intentionally simple and descriptive.
They are used across:

  - configs/
  - runtime/agents/
  - runtime/api/

Placing them at the project root (exceptions/) avoids circular imports and
keeps exception types consistent across modules. Errors raised by the OpenAI
SDK itself (openai.OpenAIError) are not wrapped; they propagate as-is.
"""


class ChatBridgeException(Exception):
    """Base class for every error raised by ChatBridge itself."""


class ConfigurationException(ChatBridgeException):
    """
    Raised when a required setting (API key, assistant id) is read while it
    is not configured.
    """

    def __init__(self, setting, hint=None):
        self.setting = setting
        self.hint = hint
        msg = f"{setting} is not set."
        if hint:
            msg = f"{msg} {hint}"
        super().__init__(msg)


class SessionNotFoundException(ChatBridgeException):
    """
    Raised when an exchange is requested for a chat id that has no session.

    Sessions are created with ConversationAgent.ensure_session(chat_id).
    """

    def __init__(self, chat_id):
        self.chat_id = chat_id
        super().__init__(f"No assistant session for chat_id={chat_id!r}")


class RunFailedException(ChatBridgeException):
    """
    Raised when an assistant run reaches a terminal status other than
    'completed' (failed, cancelled, expired, incomplete, requires_action).
    """

    def __init__(self, run_id, status, details=None):
        self.run_id = run_id
        self.status = status
        self.details = details
        msg = f"Run {run_id} ended with status {status!r}"
        if details:
            msg = f"{msg}: {details}"
        super().__init__(msg)


class RunTimeoutException(ChatBridgeException):
    """
    Raised when a run is still pending after the configured number of poll
    attempts or the configured deadline.
    """

    def __init__(self, run_id, attempts, elapsed, last_status=None):
        self.run_id = run_id
        self.attempts = attempts
        self.elapsed = elapsed
        self.last_status = last_status
        msg = (
            f"Run {run_id} did not complete after {attempts} status checks "
            f"({elapsed:.1f}s, last status {last_status!r})"
        )
        super().__init__(msg)


class RunCancelledException(ChatBridgeException):
    """Raised when the caller cancels the wait for a run."""

    def __init__(self, run_id):
        self.run_id = run_id
        super().__init__(f"Waiting for run {run_id} was cancelled")


class EmptyReplyException(ChatBridgeException):
    """
    Raised when the most recent message of a thread carries no text block
    (e.g. the assistant only produced an image or the list is empty).
    """

    def __init__(self, thread_id, details=None):
        self.thread_id = thread_id
        self.details = details or "No text content in the latest message."
        super().__init__(f"Empty assistant reply on thread {thread_id}: {self.details}")


class EmptyTranscriptionException(ChatBridgeException):
    """
    Raised when speech-to-text returns no text (silence, noise), so there is
    nothing to send to the assistant.
    """

    def __init__(self, chat_id):
        self.chat_id = chat_id
        super().__init__(f"No speech recognized in the audio for chat_id={chat_id!r}")
