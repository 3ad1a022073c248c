"""
Configuration settings for spate.
Loads configuration from .env file with fallback to defaults.
"""
import os
import sys

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ('true', '1', 't', 'yes')


# ===== Codec Settings =====
# Each nesting level costs two interpreter frames in the decoder
MAX_DEPTH_CEILING = sys.getrecursionlimit() // 4
MAX_DEPTH = min(int(os.getenv('SPATE_MAX_DEPTH', '64')), MAX_DEPTH_CEILING)  # nested lists/dicts
STRICT_KEY_ORDER = _flag('SPATE_STRICT_KEY_ORDER', 'True')

# ===== Network Settings =====
HOST = os.getenv('HOST', '127.0.0.1')
PORT = int(os.getenv('PORT', '5000'))
MAX_CONTENT_LENGTH = int(os.getenv('MAX_CONTENT_LENGTH', str(16 * 1024 * 1024)))  # bytes

# ===== Application Settings =====
DEBUG = _flag('DEBUG', 'False')
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO' if not DEBUG else 'DEBUG')
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
