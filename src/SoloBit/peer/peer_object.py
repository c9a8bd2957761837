from typing import NamedTuple
import socket
import struct

COMPACT_PEER_LENGTH = 6


class PeerAddress(NamedTuple):
    """
    (ip, port) of a peer
    """
    ip: str
    port: int

    @classmethod
    def from_compact(cls, data: bytes) -> 'PeerAddress':
        """
        parses a compact peer record: 4 bytes ipv4 address, 2 bytes big endian port
        :param data: 6 raw bytes
        :return: PeerAddress
        """
        if len(data) != COMPACT_PEER_LENGTH:
            raise ValueError(f"compact peer record must be {COMPACT_PEER_LENGTH} bytes, got {len(data)}")
        ip, port = struct.unpack('>4sH', data)
        return cls(socket.inet_ntop(socket.AF_INET, ip), port)

    @classmethod
    def parse(cls, text: str) -> 'PeerAddress':
        """
        parses 'host:port'
        """
        host, sep, port = text.rpartition(':')
        if not sep or not host or not port.isdigit() or not 0 < int(port) < 2 ** 16:
            raise ValueError(f"peer address should look like <ip>:<port>, got {text!r}")
        return cls(host, int(port))

    def __str__(self):
        return f"{self.ip}:{self.port}"
