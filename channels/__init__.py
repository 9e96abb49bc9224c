from channels.base import ChannelError, Transport, TransportNotReadyError
from channels.whatsapp_adapter import WhatsAppCloudTransport

__all__ = ["ChannelError", "Transport", "TransportNotReadyError", "WhatsAppCloudTransport"]
