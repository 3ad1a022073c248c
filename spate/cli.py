"""
Command-line interface: ``spate decode | info | check | serve``.
"""
import argparse
import json
import logging
import sys
from typing import List, Optional

from . import config
from .bencode import bdecode, bencode
from .errors import BencodeDecodeError
from .torrent import MetainfoError, Torrent
from .value import to_jsonable

EXIT_OK = 0
EXIT_NOT_CANONICAL = 1
EXIT_INVALID = 2


def _read(path: str) -> bytes:
    if path == '-':
        return sys.stdin.buffer.read()
    with open(path, 'rb') as f:
        return f.read()


def _depth(text: str) -> int:
    depth = int(text)
    if not 0 <= depth <= config.MAX_DEPTH_CEILING:
        raise argparse.ArgumentTypeError(f"must be between 0 and {config.MAX_DEPTH_CEILING}")
    return depth


def cmd_decode(args: argparse.Namespace) -> int:
    value = bdecode(_read(args.file), strict=not args.lenient, max_depth=args.max_depth)
    print(json.dumps(to_jsonable(value), indent=2, ensure_ascii=False))
    return EXIT_OK


def cmd_info(args: argparse.Namespace) -> int:
    torrent = Torrent.from_bytes(_read(args.file), strict=not args.lenient)
    if args.json:
        print(json.dumps(torrent.to_dict(), indent=2, ensure_ascii=False))
        return EXIT_OK

    print(torrent)
    for url in torrent.trackers:
        print(f"Tracker: {url}")
    for path in torrent.get_file_list():
        print(f"  {path}")
    return EXIT_OK


def cmd_check(args: argparse.Namespace) -> int:
    data = _read(args.file)
    # Malformed input raises here and exits with EXIT_INVALID
    value = bdecode(data, strict=False)
    if bencode(value) == data:
        print(f"{args.file}: canonical")
        return EXIT_OK
    print(f"{args.file}: not canonical")
    return EXIT_NOT_CANONICAL


def cmd_serve(args: argparse.Namespace) -> int:
    from .main import run
    run(host=args.host, port=args.port)
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='spate', description="Bencode codec and torrent inspector")
    parser.add_argument('-v', '--verbose', action='store_true', help="log at DEBUG level")
    commands = parser.add_subparsers(dest='command', required=True)

    decode = commands.add_parser('decode', help="print a bencoded file as JSON")
    decode.add_argument('file', help="path, or - for standard input")
    decode.add_argument('--lenient', action='store_true',
                        help="accept and re-sort out-of-order dictionary keys")
    decode.add_argument('--max-depth', type=_depth, default=config.MAX_DEPTH,
                        help="maximum nesting of lists and dictionaries")
    decode.set_defaults(func=cmd_decode)

    info = commands.add_parser('info', help="summarize a .torrent file")
    info.add_argument('file', help="path, or - for standard input")
    info.add_argument('--lenient', action='store_true',
                      help="accept and re-sort out-of-order dictionary keys")
    info.add_argument('--json', action='store_true', help="print the summary as JSON")
    info.set_defaults(func=cmd_info)

    check = commands.add_parser('check', help="exit 0 if a file is canonical bencode")
    check.add_argument('file', help="path, or - for standard input")
    check.set_defaults(func=cmd_check)

    serve = commands.add_parser('serve', help="run the HTTP service")
    serve.add_argument('--host', default=config.HOST)
    serve.add_argument('--port', type=int, default=config.PORT)
    serve.set_defaults(func=cmd_serve)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level='DEBUG' if args.verbose else config.LOG_LEVEL,
                        format=config.LOG_FORMAT)
    try:
        return args.func(args)
    except (BencodeDecodeError, MetainfoError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_INVALID


if __name__ == '__main__':
    sys.exit(main())
