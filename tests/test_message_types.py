from SoloBit.errors import ProtocolViolation
from SoloBit.peer import PeerAddress
from SoloBit.peer.message_types import (Bitfield, Handshake, MessageId, Piece, Request, WireMessage,
                                        BLOCK_SIZE, HANDSHAKE_LENGTH)

import struct
import unittest
import bitstring

INFO_HASH = bytes(range(20))
PEER_ID = b'00112233445566778899'


class TestMessageId(unittest.TestCase):

    def test_values(self):
        self.assertEqual(MessageId.UNCHOKE, 1)
        self.assertEqual(MessageId.INTERESTED, 2)
        self.assertEqual(MessageId.HAVE, 4)
        self.assertEqual(MessageId.BITFIELD, 5)
        self.assertEqual(MessageId.REQUEST, 6)
        self.assertEqual(MessageId.PIECE, 7)
        self.assertEqual(MessageId.CANCEL, 8)


class TestWireMessage(unittest.TestCase):

    def test_length_prefix_counts_the_id(self):
        self.assertEqual(WireMessage(MessageId.INTERESTED).encode(), b'\x00\x00\x00\x01\x02')
        self.assertEqual(WireMessage(MessageId.HAVE, b'\x00\x00\x00\x07').encode(),
                         b'\x00\x00\x00\x05\x04\x00\x00\x00\x07')

    def test_unknown_id_is_kept(self):
        message = WireMessage.from_wire(20, b'x')
        self.assertEqual(message.id, 20)
        self.assertEqual(WireMessage.from_wire(7, b'').id, MessageId.PIECE)


class TestHandshake(unittest.TestCase):

    def test_layout(self):
        data = Handshake(INFO_HASH, PEER_ID).encode()
        self.assertEqual(len(data), HANDSHAKE_LENGTH)
        self.assertEqual(data[0], 19)
        self.assertEqual(data[1:20], b'BitTorrent protocol')
        self.assertEqual(data[20:28], bytes(8))
        self.assertEqual(data[28:48], INFO_HASH)
        self.assertEqual(data[48:], PEER_ID)

    def test_decode(self):
        reply = Handshake.decode(Handshake(INFO_HASH, PEER_ID).encode())
        self.assertEqual(reply.info_hash, INFO_HASH)
        self.assertEqual(reply.peer_id, PEER_ID)

    def test_wrong_protocol(self):
        data = b'\x13BitTorrent protokol' + bytes(48)
        with self.assertRaises(ProtocolViolation):
            Handshake.decode(data)

    def test_wrong_length(self):
        with self.assertRaises(ProtocolViolation):
            Handshake.decode(Handshake(INFO_HASH, PEER_ID).encode()[:-1])

    def test_bad_ids(self):
        with self.assertRaises(ValueError):
            Handshake(INFO_HASH[:19], PEER_ID).encode()
        with self.assertRaises(ValueError):
            Handshake(INFO_HASH, b'short').encode()


class TestRequestAndPiece(unittest.TestCase):

    def test_request(self):
        request = Request(3, 16384, 100)
        self.assertEqual(request.payload(), struct.pack('>III', 3, 16384, 100))
        self.assertEqual(request.encode(), struct.pack('>IBIII', 13, 6, 3, 16384, 100))
        self.assertEqual(Request.decode(request.payload()), request)
        self.assertEqual(Request(0, 0).length, BLOCK_SIZE)

    def test_bad_request(self):
        with self.assertRaises(ProtocolViolation):
            Request.decode(b'\x00' * 11)

    def test_piece(self):
        piece = Piece(2, 32768, b'abc')
        self.assertEqual(piece.encode(), struct.pack('>IBII3s', 12, 7, 2, 32768, b'abc'))
        self.assertEqual(Piece.decode(piece.payload()), piece)
        self.assertEqual(piece.length, 3)

    def test_short_piece(self):
        with self.assertRaises(ProtocolViolation):
            Piece.decode(b'\x00' * 7)


class TestBitfield(unittest.TestCase):

    def test_encode_pads_to_bytes(self):
        data = Bitfield.encode(bitstring.BitArray(bin='101'))
        self.assertEqual(data, b'\x00\x00\x00\x02\x05\xa0')

    def test_decode(self):
        bitfield = Bitfield.decode(b'\xa0', 3)
        self.assertEqual(len(bitfield), 3)
        self.assertTrue(bitfield[0])
        self.assertFalse(bitfield[1])
        self.assertTrue(bitfield[2])
        self.assertEqual(len(Bitfield.decode(b'\xa0\x00')), 16)


class TestPeerAddress(unittest.TestCase):

    def test_from_compact(self):
        self.assertEqual(PeerAddress.from_compact(b'\xa5\xe8\x21\x4d\xc9\x0b'), PeerAddress('165.232.33.77', 51467))

    def test_bad_compact_length(self):
        with self.assertRaises(ValueError):
            PeerAddress.from_compact(b'\x01\x02\x03\x04\x05')

    def test_parse_and_str(self):
        address = PeerAddress.parse('127.0.0.1:6881')
        self.assertEqual(address, ('127.0.0.1', 6881))
        self.assertEqual(str(address), '127.0.0.1:6881')

    def test_parse_errors(self):
        for text in ('127.0.0.1', ':6881', '127.0.0.1:port', '127.0.0.1:70000', '127.0.0.1:0'):
            with self.assertRaises(ValueError, msg=text):
                PeerAddress.parse(text)


if __name__ == '__main__':
    unittest.main()
