"""
Constants and exit codes for cache-pull.
"""

METADATA_FILENAME = 'archive_info.json'

DEFAULT_EXTRACT_ROOT = '/'
DEFAULT_STAGING_PATH = '/tmp/cache-archive.tar'

LOCAL_URI_PREFIX = 'file://'

# Only the download URL lookup is bounded; the archive transfer is not.
CACHE_API_TIMEOUT = 20

COPY_CHUNK_SIZE = 1024 * 1024


class ExitCodes:
    """Exit codes for different error conditions."""
    OK = 0
    UNEXPECTED_ERROR = 1
    SOURCE_ERROR = 2
    ARCHIVE_FORMAT_ERROR = 3
    METADATA_PARSE_ERROR = 4
    FALLBACK_FAILED = 5
    READER_MISUSE = 6
