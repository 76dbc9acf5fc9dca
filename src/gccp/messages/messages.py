import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional, Union

from gccp.protocol.config import ProtocolConfig
from gccp.protocol.errors import UnknownMessageError


class MessageType(IntEnum):
    BEACON = 1
    DATA = 2


class TLVType(IntEnum):
    # Beacon
    COLOR = 1
    ROLE = 2
    CLUSTER_ID = 3

    # Data
    DESTINATION = 10
    NEXT_HOP = 11
    CREATION_TIME = 12
    PAYLOAD = 13


class MessageHeader:
    # Format: ! H B I i H
    # H: msg_type (2 bytes)
    # B: ttl (1 byte)
    # I: sequence_number (4 bytes)
    # i: sender_id (4 bytes) - originator for DATA
    # H: payload_length (2 bytes)
    FORMAT = "!HBIiH"
    SIZE = struct.calcsize(FORMAT)

    def __init__(self, msg_type: int, ttl: int, seq_num: int, sender_id: int, payload_len: int = 0):
        self.msg_type = msg_type
        self.ttl = ttl
        self.seq_num = seq_num
        self.sender_id = sender_id
        self.payload_len = payload_len

    def pack(self) -> bytes:
        try:
            return struct.pack(self.FORMAT, self.msg_type, self.ttl, self.seq_num,
                               self.sender_id, self.payload_len)
        except struct.error as e:
            raise ValueError(f"Header field out of range: {e}") from e

    @classmethod
    def unpack(cls, data: bytes) -> 'MessageHeader':
        unpacked = struct.unpack(cls.FORMAT, data)
        return cls(unpacked[0], unpacked[1], unpacked[2], unpacked[3], unpacked[4])


class TLV:
    def __init__(self, tlv_type: int, value: bytes):
        self.type = tlv_type
        self.length = len(value)
        self.value = value

    def pack(self) -> bytes:
        # T (1 byte), L (1 byte), V (length bytes)
        if len(self.value) > ProtocolConfig.TLV_MAX_VALUE_SIZE:
            raise ValueError(
                f"TLV value too long: {len(self.value)} bytes "
                f"(max {ProtocolConfig.TLV_MAX_VALUE_SIZE})"
            )
        return struct.pack("!BB", self.type, len(self.value)) + self.value

    @classmethod
    def unpack_from(cls, data: bytes, offset: int = 0) -> 'TLV':
        if len(data) < offset + 2:
            raise ValueError("Data too short for TLV header")

        tlv_type, length = struct.unpack_from("!BB", data, offset)
        if len(data) < offset + 2 + length:
            raise ValueError(f"Data too short for TLV value (expected {length}, got {len(data) - offset - 2})")

        value = data[offset + 2: offset + 2 + length]
        return cls(tlv_type, value)


def _pack_tlvs(tlvs: List[TLV]) -> bytes:
    return b"".join(tlv.pack() for tlv in tlvs)


def _unpack_tlvs(payload: bytes) -> dict:
    values = {}
    offset = 0
    while offset < len(payload):
        tlv = TLV.unpack_from(payload, offset)
        values[tlv.type] = tlv.value
        offset += 2 + tlv.length
    return values


def _require(values: dict, tlv_type: TLVType, fmt: str):
    raw = values.get(tlv_type)
    if raw is None:
        raise ValueError(f"Missing {tlv_type.name} field")
    try:
        return struct.unpack(fmt, raw)[0]
    except struct.error as e:
        raise ValueError(f"Malformed {tlv_type.name} field: {e}") from e


@dataclass
class BeaconMessage:
    """Periodic discovery broadcast announcing id/color/role/cluster."""
    sender_id: int
    color: int
    role: int
    cluster_id: int
    seq_num: int = 0
    kind: MessageType = field(default=MessageType.BEACON, init=False)

    def encode(self) -> bytes:
        tlvs = [
            TLV(TLVType.COLOR, struct.pack("!i", self.color)),
            TLV(TLVType.ROLE, struct.pack("!B", int(self.role))),
            TLV(TLVType.CLUSTER_ID, struct.pack("!i", self.cluster_id)),
        ]
        payload = _pack_tlvs(tlvs)
        header = MessageHeader(self.kind, 1, self.seq_num, self.sender_id, len(payload))
        return header.pack() + payload


@dataclass
class DataMessage:
    """
    Application data, unicast or flooded over the backbone.

    next_hop is ANY_HOP when no specific recipient is named.
    """
    source_id: int
    seq_num: int
    ttl: int
    destination_id: int
    next_hop: int = ProtocolConfig.ANY_HOP
    creation_time: float = 0.0
    payload: bytes = b""
    kind: MessageType = field(default=MessageType.DATA, init=False)

    @property
    def key(self) -> tuple:
        """Duplicate-suppression key."""
        return (self.source_id, self.seq_num)

    def copy(self, **changes) -> 'DataMessage':
        """Copy with some fields replaced (ttl, next_hop)."""
        values = {
            'source_id': self.source_id,
            'seq_num': self.seq_num,
            'ttl': self.ttl,
            'destination_id': self.destination_id,
            'next_hop': self.next_hop,
            'creation_time': self.creation_time,
            'payload': self.payload,
        }
        values.update(changes)
        return DataMessage(**values)

    def encode(self) -> bytes:
        tlvs = [
            TLV(TLVType.DESTINATION, struct.pack("!i", self.destination_id)),
            TLV(TLVType.NEXT_HOP, struct.pack("!i", self.next_hop)),
            TLV(TLVType.CREATION_TIME, struct.pack("!d", self.creation_time)),
        ]
        if self.payload:
            tlvs.append(TLV(TLVType.PAYLOAD, bytes(self.payload)))
        payload = _pack_tlvs(tlvs)
        header = MessageHeader(self.kind, self.ttl, self.seq_num, self.source_id, len(payload))
        return header.pack() + payload


Message = Union[BeaconMessage, DataMessage]


def decode(data: bytes) -> Message:
    """
    Decode bytes into a tagged message.

    Raises:
        UnknownMessageError: unknown message type
        ValueError: truncated or malformed input
    """
    if len(data) < MessageHeader.SIZE:
        raise ValueError("Data too short for GCCP header")

    header = MessageHeader.unpack(data[:MessageHeader.SIZE])
    payload = data[MessageHeader.SIZE: MessageHeader.SIZE + header.payload_len]
    if len(payload) < header.payload_len:
        raise ValueError(
            f"Payload truncated (expected {header.payload_len}, got {len(payload)})"
        )

    if header.msg_type == MessageType.BEACON:
        values = _unpack_tlvs(payload)
        return BeaconMessage(
            sender_id=header.sender_id,
            color=_require(values, TLVType.COLOR, "!i"),
            role=_require(values, TLVType.ROLE, "!B"),
            cluster_id=_require(values, TLVType.CLUSTER_ID, "!i"),
            seq_num=header.seq_num,
        )

    if header.msg_type == MessageType.DATA:
        values = _unpack_tlvs(payload)
        return DataMessage(
            source_id=header.sender_id,
            seq_num=header.seq_num,
            ttl=header.ttl,
            destination_id=_require(values, TLVType.DESTINATION, "!i"),
            next_hop=_require(values, TLVType.NEXT_HOP, "!i"),
            creation_time=_require(values, TLVType.CREATION_TIME, "!d"),
            payload=values.get(TLVType.PAYLOAD, b""),
        )

    raise UnknownMessageError(f"Unknown message type: {header.msg_type}")


def peek_type(data: bytes) -> Optional[int]:
    """Message type of an encoded packet without decoding the body."""
    if len(data) < MessageHeader.SIZE:
        return None
    return MessageHeader.unpack(data[:MessageHeader.SIZE]).msg_type
