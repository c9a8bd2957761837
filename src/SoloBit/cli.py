"""
command line interface of the SoloBit client

    solobit decode <bencoded value>
    solobit info <torrent>
    solobit peers <torrent>
    solobit handshake <torrent> <ip:port>
    solobit download_piece -o <output> <torrent> <piece index>
    solobit download -o <output> <torrent>
"""

from .app_data import load_configuration
from .bencode import decode, to_printable
from .download import DownloadSession
from .errors import SoloBitError
from .peer import PeerAddress
from .torrent import read_torrent

from datetime import datetime, timezone
from pathlib import Path
from typing import List, Union
import argparse
import asyncio
import json
import logging
import os
import sys


def create_logger(verbose: bool) -> logging.Logger:
    logger = logging.getLogger(__package__)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter('%(asctime)s [%(levelname)s] %(message)s', datefmt="%H:%M:%S"))

    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    return logger


def write_result(path: str, data: bytes) -> None:
    """
    writes downloaded data to disk, creating missing directories
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='solobit', description="Single peer BitTorrent client")
    parser.add_argument('-v', '--verbose', action='store_true', help="Print debug logs.")
    parser.add_argument('--timeout', type=float, default=None,
                        help="Seconds to wait for a peer message before giving up (default: wait forever).")
    parser.add_argument('--config', type=str, default=None, help="Path of a JSON config file.")
    commands = parser.add_subparsers(dest='command', required=True)

    command = commands.add_parser('decode', help="Decode a bencoded value and print it as JSON.")
    command.add_argument('value')

    command = commands.add_parser('info', help="Print the details of a torrent file.")
    command.add_argument('torrent')

    command = commands.add_parser('peers', help="Ask the tracker for peers.")
    command.add_argument('torrent')

    command = commands.add_parser('handshake', help="Handshake with a peer and print its id.")
    command.add_argument('torrent')
    command.add_argument('peer', type=PeerAddress.parse)

    command = commands.add_parser('download_piece', help="Download and verify one piece.")
    command.add_argument('-o', '--output', required=True)
    command.add_argument('--peer', type=PeerAddress.parse, default=None,
                         help="Download from this peer instead of asking the tracker.")
    command.add_argument('torrent')
    command.add_argument('index', type=int)

    command = commands.add_parser('download', help="Download the whole file.")
    command.add_argument('-o', '--output', required=True)
    command.add_argument('--peer', type=PeerAddress.parse, default=None,
                         help="Download from this peer instead of asking the tracker.")
    command.add_argument('torrent')

    return parser


def print_info(torrent_path: str) -> None:
    torrent = read_torrent(torrent_path)
    print(f"Tracker URL: {torrent.announce}")
    print(f"Length: {torrent.length}")
    print(f"Info Hash: {torrent.hex_info_hash}")
    print(f"Piece Length: {torrent.piece_length}")
    if torrent.comment is not None:
        print(f"Comment: {torrent.comment}")
    if torrent.created_by is not None:
        print(f"Created By: {torrent.created_by}")
    if torrent.creation_date is not None:
        try:
            created = datetime.fromtimestamp(torrent.creation_date, tz=timezone.utc).isoformat()
        except (OverflowError, OSError, ValueError):
            created = str(torrent.creation_date)
        print(f"Creation Date: {created}")
    if torrent.announce_list:
        # one line per tier
        for tier in torrent.announce_list:
            print(f"Trackers: {' '.join(tier)}")
    print("Piece Hashes:")
    for piece_hash in torrent.piece_hashes:
        print(piece_hash.hex())


async def run_command(args: argparse.Namespace) -> None:
    if args.command == 'decode':
        print(json.dumps(to_printable(decode(os.fsencode(args.value))), sort_keys=True))
        return

    if args.command == 'info':
        print_info(args.torrent)
        return

    config = load_configuration({'message_timeout': args.timeout}, args.config)
    session = DownloadSession(read_torrent(args.torrent), config)

    if args.command == 'peers':
        for peer in await session.get_peers():
            print(peer)

    elif args.command == 'handshake':
        peer_id = await session.handshake(args.peer)
        print(f"Peer ID: {peer_id.hex()}")

    elif args.command == 'download_piece':
        if args.peer is not None:
            session.peers = [args.peer]
        data = await session.download_piece(args.index)
        write_result(args.output, data)
        print(f"Piece {args.index} downloaded to {args.output}.")

    elif args.command == 'download':
        if args.peer is not None:
            session.peers = [args.peer]
        data = await session.download()
        write_result(args.output, data)
        print(f"Downloaded {args.torrent} to {args.output}.")


def main(argv: Union[List[str], None] = None) -> int:
    args = build_parser().parse_args(argv)
    create_logger(args.verbose)

    try:
        asyncio.run(run_command(args))
    except (SoloBitError, OSError, ValueError, IndexError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
