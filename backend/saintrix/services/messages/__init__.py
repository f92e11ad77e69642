"""Messaging and realtime delivery."""
from .realtime import RealtimeChannel, Subscription, get_channel
from .message_service import MessageService

__all__ = ["RealtimeChannel", "Subscription", "get_channel", "MessageService"]
