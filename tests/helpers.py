from SoloBit.bencode import encode
from SoloBit.peer.message_types import Bitfield, Handshake, MessageId, Piece, Request, WireMessage
from SoloBit.errors import PeerConnectionError

from hashlib import sha1
from typing import List, Tuple, Union
import asyncio
import struct
import bitstring

MY_PEER_ID = b'00112233445566778899'
REMOTE_PEER_ID = b'-SB0100-remotepeer01'
ANNOUNCE = 'http://tracker.test/announce'


def piece_hashes(content: bytes, piece_length: int) -> bytes:
    return b''.join(sha1(content[i: i + piece_length]).digest() for i in range(0, len(content), piece_length))


def make_info(content: bytes, piece_length: int, name: bytes = b'sample.txt') -> dict:
    return {
        b'length': len(content),
        b'name': name,
        b'piece length': piece_length,
        b'pieces': piece_hashes(content, piece_length),
    }


def make_torrent_bytes(content: bytes, piece_length: int, announce: str = ANNOUNCE, extra: dict = None) -> bytes:
    torrent = {b'announce': announce.encode(), b'info': make_info(content, piece_length)}
    torrent.update(extra or {})
    return encode(torrent)


def raw_dict(pairs: List[Tuple[bytes, bytes]]) -> bytes:
    """
    a bencoded dict with its keys in the given order, already-encoded values
    """
    return b'd' + b''.join(encode(key) + value for key, value in pairs) + b'e'


def make_content(length: int) -> bytes:
    return bytes((i * 7 + i // 256) % 251 for i in range(length))


def make_reader(data: bytes, eof: bool = True) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    reader.feed_data(data)
    if eof:
        reader.feed_eof()
    return reader


class FakeWriter(object):
    """
    records everything written instead of sending it
    """

    def __init__(self):
        self.data = bytearray()
        self.closed = False

    def write(self, data: bytes) -> None:
        if self.closed:
            raise ConnectionResetError('writer is closed')
        self.data += data

    async def drain(self) -> None:
        pass

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        pass

    def messages(self) -> List[WireMessage]:
        """
        splits what was written into framed messages, skipping a leading handshake
        """
        data = bytes(self.data)
        if data[:1] == b'\x13':
            data = data[68:]
        result = []
        while data:
            length = struct.unpack('>I', data[:4])[0]
            if length:
                result.append(WireMessage.from_wire(data[4], data[5: 4 + length]))
            data = data[4 + length:]
        return result


class MockChannel(object):
    """
    stands in for a PeerChannel: records sent messages and replays canned ones
    """

    def __init__(self, responses: List[Tuple[int, bytes]]):
        self.responses = list(responses)
        self.sent: List[Tuple[int, bytes]] = []
        self.aborted = False

    async def send_message(self, message_id: MessageId, payload: bytes = b'') -> None:
        self.sent.append((message_id, payload))

    async def wait_for(self, message_id: MessageId, timeout: Union[float, None] = None) -> bytes:
        while self.responses:
            received_id, payload = self.responses.pop(0)
            if received_id == message_id:
                return payload
        raise PeerConnectionError('mock peer has nothing left to send')

    def abort(self) -> None:
        self.aborted = True


def piece_message(index: int, begin: int, data: bytes) -> Tuple[int, bytes]:
    return MessageId.PIECE, Piece(index, begin, data).payload()


class FakePeer(object):
    """
    a loopback peer that seeds one file
    """

    def __init__(self, content: bytes, piece_length: int, info_hash: bytes, reply_hash: Union[bytes, None] = None,
                 corrupt_piece: Union[int, None] = None):
        self.content = content
        self.piece_length = piece_length
        self.info_hash = info_hash
        self.reply_hash = reply_hash or info_hash
        self.corrupt_piece = corrupt_piece
        self.received_handshake = None
        self.requests: List[Request] = []
        self.server = None
        self.address = None

    async def start(self):
        self.server = await asyncio.start_server(self._handle, '127.0.0.1', 0)
        self.address = self.server.sockets[0].getsockname()[:2]
        return self

    async def close(self):
        self.server.close()
        await self.server.wait_closed()

    def _block(self, request: Request) -> bytes:
        start = request.piece_index * self.piece_length + request.begin
        data = self.content[start: start + request.length]
        if request.piece_index == self.corrupt_piece:
            data = bytes(len(data))
        return data

    async def _handle(self, reader, writer):
        try:
            self.received_handshake = Handshake.decode(await reader.readexactly(68))
            writer.write(Handshake(self.reply_hash, REMOTE_PEER_ID).encode())
            writer.write(struct.pack('>I', 0))  # keep-alive
            pieces = -(-len(self.content) // self.piece_length)
            writer.write(Bitfield.encode(bitstring.BitArray(bin='1' * pieces)))
            await writer.drain()

            while True:
                length = struct.unpack('>I', await reader.readexactly(4))[0]
                if length == 0:
                    continue
                body = await reader.readexactly(length)
                if body[0] == MessageId.INTERESTED:
                    writer.write(WireMessage(MessageId.HAVE, struct.pack('>I', 0)).encode())
                    writer.write(WireMessage(MessageId.UNCHOKE).encode())
                elif body[0] == MessageId.REQUEST:
                    request = Request.decode(body[1:])
                    self.requests.append(request)
                    writer.write(Piece(request.piece_index, request.begin, self._block(request)).encode())
                await writer.drain()
        except (asyncio.IncompleteReadError, ConnectionError):
            pass
        finally:
            writer.close()
