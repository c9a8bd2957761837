from ..bencode import decode, encode
from ..errors import SchemaError
from .torrent_object import Torrent

from hashlib import sha1
import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

HASH_LENGTH = 20


def info_hash(info: Dict[bytes, Any]) -> bytes:
    """
    the info hash identifies the torrent: sha-1 over the canonical encoding of the info dict.
    re-encoding sorts the keys, so the original key order of the file does not matter
    :param info: decoded info dictionary
    :return: 20 bytes digest
    """
    return sha1(encode(info)).digest()


def _require(container: Dict[bytes, Any], key: bytes, kind: type, where: str) -> Any:
    if key not in container:
        raise SchemaError(f"{where} is missing the '{key.decode()}' key", key.decode())
    value = container[key]
    if not isinstance(value, kind):
        raise SchemaError(f"'{key.decode()}' in {where} should be {kind.__name__}, "
                          f"got {type(value).__name__}", key.decode())
    return value


def _text(value: bytes, key: str) -> str:
    try:
        return value.decode('utf-8')
    except UnicodeDecodeError:
        raise SchemaError(f"'{key}' is not valid utf-8", key)


def _optional_text(content: Dict[bytes, Any], key: bytes) -> Optional[str]:
    value = content.get(key)
    if isinstance(value, bytes):
        return value.decode('utf-8', errors='replace')
    return None


def _announce_list(content: Dict[bytes, Any]) -> Optional[List[List[str]]]:
    tiers = content.get(b'announce-list')
    if not isinstance(tiers, list):
        return None
    result = []
    for tier in tiers:
        if isinstance(tier, list):
            urls = [url.decode('utf-8', errors='replace') for url in tier if isinstance(url, bytes)]
            if urls:
                result.append(urls)
    return result or None


def parse_torrent(data: bytes) -> Torrent:
    """
    reads a bencoded torrent file into a Torrent instance
    :param data: raw content of the .torrent file
    :return: Torrent instance with the file's data
    """
    content = decode(data)
    if not isinstance(content, dict):
        raise SchemaError(f"torrent should be a dictionary, got {type(content).__name__}")

    announce = _text(_require(content, b'announce', bytes, 'torrent'), 'announce')
    info = _require(content, b'info', dict, 'torrent')

    length = _require(info, b'length', int, 'info')
    name = _text(_require(info, b'name', bytes, 'info'), 'name')
    piece_length = _require(info, b'piece length', int, 'info')
    pieces = _require(info, b'pieces', bytes, 'info')

    if length < 0:
        raise SchemaError(f"negative length {length}", 'length')
    if piece_length <= 0:
        raise SchemaError(f"piece length must be positive, got {piece_length}", 'piece length')
    if len(pieces) % HASH_LENGTH != 0:
        raise SchemaError(f"pieces length {len(pieces)} is not a multiple of {HASH_LENGTH}", 'pieces')

    # hashes are in sha1, 20 bytes long
    piece_hashes = [pieces[i: i + HASH_LENGTH] for i in range(0, len(pieces), HASH_LENGTH)]
    expected_count = -(-length // piece_length)
    if len(piece_hashes) != expected_count:
        raise SchemaError(f"torrent of {length} bytes in pieces of {piece_length} needs "
                          f"{expected_count} hashes, found {len(piece_hashes)}", 'pieces')

    creation_date = content.get(b'creation date')
    torrent = Torrent(announce=announce,
                      name=name,
                      length=length,
                      piece_length=piece_length,
                      piece_hashes=piece_hashes,
                      info_hash=info_hash(info),
                      info=info,
                      comment=_optional_text(content, b'comment'),
                      created_by=_optional_text(content, b'created by'),
                      creation_date=creation_date if isinstance(creation_date, int) else None,
                      announce_list=_announce_list(content))

    logger.debug(f"parsed torrent {torrent.name}: {torrent.pieces_count} pieces, info hash {torrent.hex_info_hash}")
    return torrent


def read_torrent(path: str) -> Torrent:
    """
    function to read a .torrent file into a Torrent object
    :param path: path of the torrent file
    :return: Torrent instance with the file's data
    """
    with open(path, 'rb') as file:
        content = file.read()
    return parse_torrent(content)
