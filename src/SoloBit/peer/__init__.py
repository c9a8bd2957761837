from .message_types import MessageId, WireMessage, Handshake, Request, Piece, Bitfield, BLOCK_SIZE
from .peer_channel import PeerChannel, ChannelState
from .peer_object import PeerAddress

__all__ = ['MessageId', 'WireMessage', 'Handshake', 'Request', 'Piece', 'Bitfield', 'BLOCK_SIZE',
           'PeerChannel', 'ChannelState',
           'PeerAddress']
