"""
Assistant Exceptions

Custom exception classes for the conversational turn engine.
"""

from typing import Optional


class AssistantError(Exception):
    """Base exception for the assistant engine"""
    pass


class ConfigurationError(AssistantError):
    """Exception for missing or invalid configuration"""
    pass


class DispatchError(AssistantError):
    """Base exception for webhook dispatch errors"""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 response: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response


class DispatchTimeoutError(DispatchError):
    """Exception raised when the dispatch deadline elapses"""
    pass


class DispatchCancelledError(DispatchError):
    """Exception raised when a dispatch is cancelled by its caller"""
    pass


class DispatchTransportError(DispatchError):
    """Exception for network, HTTP status and body parsing errors"""
    pass


class RemoteBusinessError(DispatchError):
    """Exception for an explicit failure reported by the automation service"""
    pass
