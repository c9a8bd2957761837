from ..errors import PeerConnectionError, ProtocolViolation
from .handshake import open_tcp_connection
from .message_types import (MessageId, WireMessage, Handshake, Bitfield,
                            HANDSHAKE_LENGTH, MAX_ALLOWED_MSG_SIZE)
from .peer_object import PeerAddress

from enum import Enum
from typing import Awaitable, Union, Any
import asyncio
import logging
import struct
import bitstring

logger = logging.getLogger(__name__)


class ChannelState(Enum):
    IDLE = 'idle'  # not dialed yet, a PeerChannel is only built around an open connection
    DIALED = 'dialed'
    HANDSHAKE_SENT = 'handshake sent'
    HANDSHAKE_ACKED = 'handshake acked'
    AWAITING_BITFIELD = 'awaiting bitfield'
    INTERESTED = 'interested'
    UNCHOKED = 'unchoked'
    BROKEN = 'broken'
    CLOSED = 'closed'


class PeerChannel(object):
    """
    a single connection to a single peer.
    performs the handshake and frames messages on the wire.

    a channel that hits an I/O error or a protocol violation is BROKEN and can't be used again,
    the stream may be in the middle of a message.
    """

    def __init__(self, reader: asyncio.StreamReader, writer: Any, address: Union[PeerAddress, None] = None) -> None:
        """
        :param reader: asyncio reader instance
        :param writer: asyncio writer instance
        :param address: (ip, port) of the peer, for logging
        :return: None
        """
        self.reader = reader
        self.writer = writer
        self.address = address
        self.state = ChannelState.DIALED

        self.remote_peer_id: Union[bytes, None] = None
        self.have_pieces: Union[bitstring.BitArray, None] = None  # from the peer's bitfield
        self.is_choked = True  # am I choked?

    @classmethod
    async def open(cls, address: PeerAddress, timeout: Union[float, None] = None) -> 'PeerChannel':
        reader, writer = await open_tcp_connection(address, timeout)
        return cls(reader, writer, address)

    async def __aenter__(self) -> 'PeerChannel':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def __repr__(self):
        return f"PeerChannel(address: {self.address}, state: {self.state.value})"

    # ---- helpers

    def _break(self) -> None:
        if self.state != ChannelState.CLOSED:
            self.state = ChannelState.BROKEN

    def abort(self) -> None:
        """
        marks the channel BROKEN after the caller found a protocol violation in data it returned
        """
        self._break()

    def _check_usable(self) -> None:
        if self.state in (ChannelState.BROKEN, ChannelState.CLOSED):
            raise PeerConnectionError(f"channel to {self.address} is {self.state.value}")

    async def _deadline(self, work: Awaitable, timeout: Union[float, None], what: str) -> Any:
        try:
            return await asyncio.wait_for(work, timeout)
        except asyncio.TimeoutError:
            self._break()
            raise PeerConnectionError(f"timed out after {timeout}s waiting for {what} from {self.address}",
                                      timeout=True) from None
        except ProtocolViolation:
            self._break()
            raise

    async def _read_exactly(self, n: int) -> bytes:
        try:
            return await self.reader.readexactly(n)
        except asyncio.IncompleteReadError as e:
            self._break()
            raise PeerConnectionError(f"{self.address} closed the connection "
                                      f"({len(e.partial)} of {n} bytes read)") from e
        except OSError as e:
            self._break()
            raise PeerConnectionError(f"reading from {self.address} failed: {e}") from e

    async def _write(self, data: bytes) -> None:
        try:
            self.writer.write(data)
            await self.writer.drain()
        except OSError as e:
            self._break()
            raise PeerConnectionError(f"writing to {self.address} failed: {e}") from e

    # ---- handshake

    async def handshake(self, info_hash: bytes, peer_id: bytes, timeout: Union[float, None] = None) -> bytes:
        """
        exchanges handshakes and checks the peer serves the same torrent
        :param info_hash: info hash of the torrent
        :param peer_id: my peer id
        :param timeout: seconds to wait for the peer's handshake
        :return: the peer's id
        """
        request_data = Handshake(info_hash, peer_id).encode()
        self._check_usable()
        if self.state != ChannelState.DIALED:
            raise RuntimeError(f"handshake already performed on {self!r}")

        await self._write(request_data)
        self.state = ChannelState.HANDSHAKE_SENT

        async def exchange() -> Handshake:
            return Handshake.decode(await self._read_exactly(HANDSHAKE_LENGTH))

        reply = await self._deadline(exchange(), timeout, 'the handshake')
        if reply.info_hash != info_hash:
            self._break()
            raise ProtocolViolation(f"{self.address} answered with info hash {reply.info_hash.hex()}, "
                                    f"expected {info_hash.hex()}")

        self.remote_peer_id = reply.peer_id
        self.state = ChannelState.HANDSHAKE_ACKED
        logger.info(f"handshake with {self.address} done, peer id {reply.peer_id.hex()}")
        return reply.peer_id

    # ---- framing

    async def _read_message(self) -> Union[WireMessage, None]:
        length = struct.unpack('>I', await self._read_exactly(4))[0]
        if length == 0:  # keepalive
            logger.debug(f"keep-alive from {self.address}")
            return None

        # defend overflow
        if length > MAX_ALLOWED_MSG_SIZE:
            raise ProtocolViolation(f"{self.address} announced a {length} bytes message")

        body = await self._read_exactly(length)
        message = WireMessage.from_wire(body[0], body[1:])
        self._track(message)
        logger.debug(f"received message {message.id!r} ({len(message.payload)} bytes) from {self.address}")
        return message

    def _track(self, message: WireMessage) -> None:
        if message.id == MessageId.CHOKE:
            self.is_choked = True
        elif message.id == MessageId.UNCHOKE:
            self.is_choked = False
        elif message.id == MessageId.HAVE and self.have_pieces is not None and len(message.payload) == 4:
            index = struct.unpack('>I', message.payload)[0]
            if index < len(self.have_pieces):
                self.have_pieces[index] = True

    async def read_message(self, timeout: Union[float, None] = None) -> Union[WireMessage, None]:
        """
        reads one framed message
        :param timeout: seconds to wait, None waits forever
        :return: WireMessage | None for a keep-alive
        """
        self._check_usable()
        return await self._deadline(self._read_message(), timeout, 'a message')

    async def wait_for(self, message_id: MessageId, timeout: Union[float, None] = None) -> bytes:
        """
        reads messages until one with the given id arrives, everything else is dropped
        :param message_id: id to wait for
        :param timeout: overall deadline in seconds. None waits forever, a silent peer then stalls the caller
        :return: payload of the matching message
        """
        self._check_usable()

        async def wait() -> bytes:
            while True:
                message = await self._read_message()
                if message is None:
                    continue
                if message.id == message_id:
                    return message.payload
                logger.debug(f"skipping message {message.id!r} while waiting for {message_id!r}")

        return await self._deadline(wait(), timeout, repr(message_id))

    async def send_message(self, message_id: MessageId, payload: bytes = b'') -> None:
        """
        writes <len=1+len(payload)><id><payload>
        """
        self._check_usable()
        await self._write(WireMessage(message_id, payload).encode())
        logger.debug(f"sent message {message_id!r} ({len(payload)} bytes) to {self.address}")

    # ---- session setup

    async def prepare(self, info_hash: bytes, peer_id: bytes, timeout: Union[float, None] = None) -> None:
        """
        gets the channel ready for requests: handshake, bitfield, interested, unchoke
        :param info_hash: info hash of the torrent
        :param peer_id: my peer id
        :param timeout: deadline for each step
        :return: None
        """
        await self.handshake(info_hash, peer_id, timeout)

        self.state = ChannelState.AWAITING_BITFIELD
        payload = await self.wait_for(MessageId.BITFIELD, timeout)
        self.have_pieces = Bitfield.decode(payload).bitfield

        # I am always interested in the peer
        await self.send_message(MessageId.INTERESTED)
        self.state = ChannelState.INTERESTED

        await self.wait_for(MessageId.UNCHOKE, timeout)
        self.state = ChannelState.UNCHOKED
        logger.info(f"{self.address} unchoked me, ready to request pieces")

    def has_piece(self, index: int) -> Union[bool, None]:
        """
        what the peer's bitfield says about a piece
        :return: bool | None if no bitfield was received
        """
        if self.have_pieces is None:
            return None
        if not 0 <= index < len(self.have_pieces):
            return False
        return bool(self.have_pieces[index])

    async def close(self) -> None:
        if self.state == ChannelState.CLOSED:
            return
        self.state = ChannelState.CLOSED
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except OSError as e:
            logger.debug(f"error while closing connection to {self.address}: {e}")
        logger.info(f"closed connection to {self.address}")
