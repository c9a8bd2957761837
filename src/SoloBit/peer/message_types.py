from ..errors import ProtocolViolation

from enum import IntEnum
from typing import NamedTuple, Union
import struct
import bitstring


class MessageId(IntEnum):
    """
    peer wire message ids
    """
    CHOKE = 0
    UNCHOKE = 1
    INTERESTED = 2
    NOT_INTERESTED = 3
    HAVE = 4
    BITFIELD = 5
    REQUEST = 6
    PIECE = 7
    CANCEL = 8
    PORT = 9


# default request block size
BLOCK_SIZE = 2 ** 14
# a piece message carrying a full block, plus some slack for bitfields of large torrents
MAX_ALLOWED_MSG_SIZE = 2 ** 17 + 9

PROTOCOL_NAME = b'BitTorrent protocol'
HANDSHAKE_LENGTH = 68


class WireMessage(NamedTuple):
    """
    a framed message: <len=0001+X><id><payload>
    """
    id: Union[MessageId, int]
    payload: bytes = b''

    def encode(self) -> bytes:
        return struct.pack(f'>IB{len(self.payload)}s',
                           len(self.payload) + 1,
                           self.id,
                           self.payload)

    @classmethod
    def from_wire(cls, message_id: int, payload: bytes) -> 'WireMessage':
        try:
            message_id = MessageId(message_id)
        except ValueError:
            # unknown ids (extensions) are kept as plain ints
            pass
        return cls(message_id, payload)


class Handshake(NamedTuple):
    """
    the first message on every connection
    handshake: <pstrlen=19><pstr><reserved=8 bytes><info_hash><peer_id>
    """
    info_hash: bytes
    peer_id: bytes
    reserved: bytes = bytes(8)

    def encode(self) -> bytes:
        if len(self.info_hash) != 20 or len(self.peer_id) != 20:
            raise ValueError("info hash and peer id must both be 20 bytes long")
        return struct.pack('>B19s8s20s20s',
                           len(PROTOCOL_NAME),  # len of protocol name
                           PROTOCOL_NAME,  # protocol name
                           self.reserved,  # reserve 8 bytes for extensions, none will be used
                           self.info_hash,  # info hash of info dictionary
                           self.peer_id)  # my id for this download

    @classmethod
    def decode(cls, data: bytes) -> 'Handshake':
        if len(data) != HANDSHAKE_LENGTH:
            raise ProtocolViolation(f"handshake must be {HANDSHAKE_LENGTH} bytes, got {len(data)}")
        pstrlen, pstr, reserved, info_hash, peer_id = struct.unpack('>B19s8s20s20s', data)
        if pstrlen != len(PROTOCOL_NAME) or pstr != PROTOCOL_NAME:
            raise ProtocolViolation(f"peer does not speak the BitTorrent protocol: {data[:20]!r}")
        return cls(info_hash, peer_id, reserved)


class Request(NamedTuple):
    """
    request the data of a block
    request: <len=0013><id=6><index><begin><length>
    """
    piece_index: int
    begin: int
    length: int = BLOCK_SIZE

    def encode(self) -> bytes:
        return WireMessage(MessageId.REQUEST, self.payload()).encode()

    def payload(self) -> bytes:
        return struct.pack('>III', self.piece_index, self.begin, self.length)

    @classmethod
    def decode(cls, payload: bytes) -> 'Request':
        if len(payload) != 12:
            raise ProtocolViolation(f"request payload must be 12 bytes, got {len(payload)}")
        return cls(*struct.unpack('>III', payload))


class Piece(NamedTuple):
    """
    contains the data of a requested block
    piece: <len=0009+X><id=7><index><begin><block>
    """
    piece_index: int
    begin: int
    data: bytes

    @property
    def length(self) -> int:
        return len(self.data)

    def payload(self) -> bytes:
        return struct.pack(f'>II{len(self.data)}s', self.piece_index, self.begin, self.data)

    def encode(self) -> bytes:
        return WireMessage(MessageId.PIECE, self.payload()).encode()

    @classmethod
    def decode(cls, payload: bytes) -> 'Piece':
        if len(payload) < 8:
            raise ProtocolViolation(f"piece payload too short: {len(payload)} bytes")
        piece_index, begin = struct.unpack('>II', payload[:8])
        return cls(piece_index, begin, payload[8:])


class Bitfield(object):
    """
    to let the downloader know which pieces it can request
    bitfield: <len=0001+X><id=5><bitfield>
    """

    def __init__(self, bitfield: bitstring.BitArray):
        self.bitfield = bitfield

    @staticmethod
    def encode(org_bitfield: bitstring.BitArray) -> bytes:
        bitfield = org_bitfield[:]
        if len(bitfield) % 8 != 0:  # add padding
            bitfield += bitstring.BitArray(uint=0, length=(8 - (len(bitfield) % 8)))
        return WireMessage(MessageId.BITFIELD, bitfield.bytes).encode()

    @classmethod
    def decode(cls, payload: bytes, pieces_num: Union[int, None] = None) -> 'Bitfield':
        bitfield = bitstring.BitArray(bytes=payload)
        if pieces_num is not None:
            bitfield = bitfield[:pieces_num]
        return cls(bitfield)

    def __getitem__(self, index: int) -> bool:
        return bool(self.bitfield[index])

    def __len__(self) -> int:
        return len(self.bitfield)
