from .messages import (
    BeaconMessage, DataMessage, MessageHeader, MessageType, TLV, TLVType, decode,
)

__all__ = [
    'BeaconMessage', 'DataMessage', 'MessageHeader', 'MessageType', 'TLV', 'TLVType', 'decode',
]
