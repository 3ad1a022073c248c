"""
HTTP service for decoding bencoded payloads and .torrent files.
"""
import logging
from typing import Any, Dict, Optional, Tuple

from flask import Flask, jsonify, request
from flask_cors import CORS

from . import config
from .bencode import bdecode, bencode
from .errors import BencodeDecodeError
from .torrent import MetainfoError, Torrent, find_info_bytes
from .value import to_jsonable


def _error(status: int, error: str, message: str, **extra: Any) -> Tuple[Any, int]:
    body: Dict[str, Any] = {'success': False, 'error': error, 'message': message}
    body.update(extra)
    return jsonify(body), status


def _strict_arg() -> Optional[bool]:
    value = request.args.get('strict')
    if value is None:
        return None
    return value.lower() in ('true', '1', 't', 'yes')


def _payload(*fields: str) -> Optional[bytes]:
    """Return the uploaded file from one of ``fields``, or the raw body."""
    for field in fields:
        if field in request.files:
            return request.files[field].read()
    data = request.get_data()
    return data or None


def create_app(overrides: Optional[Dict[str, Any]] = None) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)

    # Basic configuration
    app.config['MAX_CONTENT_LENGTH'] = config.MAX_CONTENT_LENGTH
    app.config['STRICT_KEY_ORDER'] = config.STRICT_KEY_ORDER
    app.config['MAX_DEPTH'] = config.MAX_DEPTH
    if overrides:
        app.config.update(overrides)

    CORS(app, resources={
        r"/api/*": {
            "origins": "*",
            "methods": ["GET", "POST", "OPTIONS"],
            "allow_headers": ["Content-Type"],
        }
    })

    def decode_options() -> Dict[str, Any]:
        strict = _strict_arg()
        return {
            'strict': app.config['STRICT_KEY_ORDER'] if strict is None else strict,
            'max_depth': app.config['MAX_DEPTH'],
        }

    @app.errorhandler(BencodeDecodeError)
    def handle_decode_error(e: BencodeDecodeError):
        app.logger.info("Rejected payload: %s", e)
        return _error(400, e.kind, e.message, position=e.position)

    @app.errorhandler(MetainfoError)
    def handle_metainfo_error(e: MetainfoError):
        app.logger.info("Rejected torrent: %s", e)
        return _error(422, 'MetainfoError', str(e))

    # Configuration endpoint
    @app.route('/api/config')
    def get_config():
        return jsonify({
            'strictKeyOrder': app.config['STRICT_KEY_ORDER'],
            'maxDepth': app.config['MAX_DEPTH'],
            'maxContentLength': app.config['MAX_CONTENT_LENGTH'],
        })

    @app.route('/api/decode', methods=['POST'])
    def decode_payload():
        """Decode one bencoded value and report whether it was canonical."""
        data = _payload('file')
        if data is None:
            return _error(400, 'No payload', "Send the bencoded data as the body or a 'file' field")

        value = bdecode(data, **decode_options())
        return jsonify({
            'success': True,
            'value': to_jsonable(value),
            'canonical': bencode(value) == data,
        })

    @app.route('/api/torrents', methods=['POST'])
    def handle_upload():
        """Parse an uploaded .torrent file."""
        data = _payload('file', 'torrent')
        if data is None:
            return _error(400, 'No file part', "Expected a 'file' or 'torrent' field")

        options = decode_options()
        value = bdecode(data, **options)
        torrent = Torrent(value, find_info_bytes(data, max_depth=options['max_depth']))
        return jsonify({'success': True, 'torrent': torrent.to_dict()})

    return app


def run(host: str = config.HOST, port: int = config.PORT) -> None:
    """Start the development server."""
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
    app = create_app()
    app.logger.info("Serving on http://%s:%d", host, port)
    app.run(host=host, port=port, debug=config.DEBUG, use_reloader=False)


if __name__ == '__main__':
    run()
