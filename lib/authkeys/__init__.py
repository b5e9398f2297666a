""" Round-trip friendly parsing of OpenSSH authorized_keys files """

from authkeys.options import (
    AuthkeyOption,
    format_options,
    tokenize_options,
)
from authkeys.entry import (
    MAX_PUBKEY_BYTES,
    KEY_TYPES,
    AuthkeyAlreadyParsedError,
    AuthkeyEntry,
    AuthkeyLine,
    AuthkeyMetaEntry,
    AuthkeyNoKeyDataError,
    AuthkeyParseError,
    AuthkeyTooLargeError,
    AuthkeyUnparsableKeyError,
    is_meta_line,
    parse_entry,
)
from authkeys.authorized_keys import AuthorizedKeys

__all__ = [
    'MAX_PUBKEY_BYTES',
    'KEY_TYPES',
    'AuthkeyAlreadyParsedError',
    'AuthkeyEntry',
    'AuthkeyLine',
    'AuthkeyMetaEntry',
    'AuthkeyNoKeyDataError',
    'AuthkeyOption',
    'AuthkeyParseError',
    'AuthkeyTooLargeError',
    'AuthkeyUnparsableKeyError',
    'AuthorizedKeys',
    'format_options',
    'is_meta_line',
    'parse_entry',
    'tokenize_options',
]
