from .protocol import ItemValue, ProtocolError, SendResult, item_value
from .sender import Transport, TransportError, ZabbixSender

__all__ = [
    "ItemValue",
    "ProtocolError",
    "SendResult",
    "Transport",
    "TransportError",
    "ZabbixSender",
    "item_value",
]
