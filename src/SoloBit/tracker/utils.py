from ..bencode import decode
from ..errors import SchemaError, TrackerError
from ..peer.peer_object import PeerAddress, COMPACT_PEER_LENGTH

from typing import List, NamedTuple, Any
from urllib.parse import urlencode


class AnnounceResponse(NamedTuple):
    interval: int  # seconds the tracker wants me to wait before announcing again
    peers: List[PeerAddress]


def build_announce_url(announce: str, info_hash: bytes, peer_id: bytes, port: int, left: int,
                       uploaded: int = 0, downloaded: int = 0, compact: int = 1) -> str:
    """
    builds the GET url of an announce
    :param announce: url of the tracker
    :param info_hash: info_hash of the torrent file, sent as raw url-encoded bytes
    :param peer_id: my peer id
    :param port: tells the tracker where the client is listening
    :param left: bytes left to download
    :param uploaded: bytes uploaded
    :param downloaded: bytes downloaded
    :param compact: ask for the 6 bytes per peer format
    :return: full url
    """
    params = {
        'info_hash': info_hash,
        'peer_id': peer_id,
        'port': port,
        'uploaded': uploaded,
        'downloaded': downloaded,
        'left': left,
        'compact': compact
    }
    separator = '&' if '?' in announce else '?'
    return f"{announce}{separator}{urlencode(params)}"


def format_compact_peers(data: bytes) -> List[PeerAddress]:
    """
    splits a compact peers string into addresses, keeping the tracker's order
    :param data: concatenated 6 bytes records
    :return: list of PeerAddress
    """
    if len(data) % COMPACT_PEER_LENGTH != 0:
        raise SchemaError(f"compact peers length {len(data)} is not a multiple of {COMPACT_PEER_LENGTH}", 'peers')
    return [PeerAddress.from_compact(data[i: i + COMPACT_PEER_LENGTH])
            for i in range(0, len(data), COMPACT_PEER_LENGTH)]


def _format_dict_peers(peers: List[Any]) -> List[PeerAddress]:
    result = []
    for peer in peers:
        if not isinstance(peer, dict) or not isinstance(peer.get(b'ip'), bytes) \
                or not isinstance(peer.get(b'port'), int):
            raise SchemaError(f"malformed peer entry {peer!r}", 'peers')
        result.append(PeerAddress(peer[b'ip'].decode('utf-8'), peer[b'port']))
    return result


def parse_announce_response(body: bytes) -> AnnounceResponse:
    """
    decodes the tracker's answer
    :param body: bencoded response body
    :return: AnnounceResponse
    """
    content = decode(body)
    if not isinstance(content, dict):
        raise SchemaError(f"tracker response should be a dictionary, got {type(content).__name__}")

    if b'failure reason' in content:
        reason = content[b'failure reason']
        raise TrackerError(reason.decode('utf-8', errors='replace') if isinstance(reason, bytes) else repr(reason))

    interval = content.get(b'interval')
    if not isinstance(interval, int):
        raise SchemaError("tracker response has no integer 'interval'", 'interval')

    peers = content.get(b'peers')
    if isinstance(peers, bytes):
        addresses = format_compact_peers(peers)
    elif isinstance(peers, list):  # the tracker ignored compact=1
        addresses = _format_dict_peers(peers)
    else:
        raise SchemaError("tracker response has no 'peers'", 'peers')

    return AnnounceResponse(interval, addresses)
