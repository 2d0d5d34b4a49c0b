"""
Ops Assistant Package

Conversational turn engine for the small-business operations dashboard:
- Intent classification and entity extraction
- Dispatch of classified requests to the automation webhook
- Response formatting
- Conversation transcript and voice coordination
"""

__version__ = "1.0.0"
__author__ = "Ops Assistant Team"
