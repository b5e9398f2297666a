# -*- coding: utf-8 -*- vim: fileencoding=utf-8 :

""" Representation of individual OpenSSH authorized_keys entries

The format of the lines is described in the AUTHORIZED_KEYS FILE FORMAT
section of `sshd(8) <https://man.openbsd.org/sshd.8>`_.  Each line holds
optional leading options, a public key and an optional trailing comment.
The data is only weakly validated: no effort is made to confirm whether the
options are valid for any particular OpenSSH version, and the key material
is not decoded.

Overview
--------

Parse a line by passing it to :class:`AuthkeyEntry` (or :func:`parse_entry`)::

    >>> entry = AuthkeyEntry('no-pty ' + EXAMPLE_KEY + ' user@example.org')
    >>> entry.protocol, entry.keytype, entry.comment
    (2, 'rsa', 'user@example.org')
    >>> entry.get_option('no-pty')
    ['no-pty']
    >>> entry.set_option('from', '10.0.0.0/8')
    >>> entry.options
    'no-pty,from="10.0.0.0/8"'

Lines that do not hold a key raise a subclass of :class:`AuthkeyParseError`.
Blank lines and comments are represented by :class:`AuthkeyMetaEntry` when
read via :class:`authkeys.authorized_keys.AuthorizedKeys`.

Classes
-------
"""

# Copyright (C) The python-authkeys developers
#
# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation; either version 2 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program; if not, write to the Free Software
# Foundation, Inc., 51 Franklin Street, Fifth Floor, Boston, MA 02110-1301 USA

import re
import weakref
from weakref import ReferenceType

from typing import Dict, List, Optional, Tuple

from authkeys.options import (
    AuthkeyOption,
    check_option_value,
    format_options,
    tokenize_options,
)


# sshd(8) uses this limit for the lines of authorized_keys files.
MAX_PUBKEY_BYTES = 8192

# Key type prefix of an SSHv2 key -> name accepted by ssh-keygen -t
KEY_TYPES = {
    'ssh-rsa': 'rsa',
    'ssh-dss': 'dsa',
}  # type: Dict[str, str]

_RE_META_LINE = re.compile(r'^\s*(?:#.*)?$', re.DOTALL)

_RE_SSH2_KEY = re.compile(r'''
    (?P<key>
        (?P<type> ''' + '|'.join(re.escape(t) for t in sorted(KEY_TYPES)) + r''' )
        [ \t]+
        [A-Za-z0-9+/]+ =*                  # base64 blob
    )
    [ \t]*
''', re.VERBOSE)

_RE_SSH1_KEY = re.compile(r'''
    (?P<key>
        \d{3,5}                            # bits
        [ \t]+ \d+                         # exponent
        [ \t]+ \d+                         # modulus
    )
    [ \t]*
''', re.VERBOSE)

# A whitespace delimited piece of the options field.  Quoted values may hold
# whitespace; an unterminated quote runs to the end of the line.
_RE_OPTIONS_CHUNK = re.compile(r'''
    (?: [^ \t"] | " (?: \\" | [^"] )* "? )+
    [ \t]*
''', re.VERBOSE)


class AuthkeyParseError(Exception):
    """Indicates that a line could not be parsed as an authorized_keys entry"""

    is_user_error = True
    message = 'unable to parse entry'

    def __init__(self, line=None, line_number=None):
        # type: (Optional[str], Optional[int]) -> None
        self.line = line
        self.line_number = line_number
        super().__init__(self.message)

    def __str__(self):
        # type: () -> str
        return self.message


class AuthkeyNoKeyDataError(AuthkeyParseError):
    """The line is blank or a comment"""

    message = 'no public key data'


class AuthkeyTooLargeError(AuthkeyParseError):
    """The line is longer than sshd(8) accepts"""

    message = 'exceeds size limit'


class AuthkeyUnparsableKeyError(AuthkeyParseError):
    """No public key could be found in the line"""

    message = 'unable to parse public key'


class AuthkeyAlreadyParsedError(Exception):
    """An entry holding key data was asked to parse another line"""

    def __str__(self):
        # type: () -> str
        return 'entry already holds a public key'


def is_meta_line(line):
    # type: (str) -> bool
    """Whether the line is blank or a comment (i.e. holds no key data)"""
    return _RE_META_LINE.match(line) is not None


def _split_entry(line):
    # type: (str) -> Tuple[str, int, str, Optional[str], Optional[str]]
    """Split a line into (key, protocol, keytype, options, comment)

    Raises a subclass of AuthkeyParseError if the line holds no key.
    """
    line = line.rstrip('\r\n')

    if is_meta_line(line):
        raise AuthkeyNoKeyDataError(line)
    if len(line.encode('utf-8')) >= MAX_PUBKEY_BYTES:
        raise AuthkeyTooLargeError(line)

    # sshd allows whitespace before the options or key
    line = line.lstrip(' \t')

    options = ''
    key_match = None
    protocol = 0
    keytype = ''
    pos = 0
    while pos < len(line):
        key_match = _RE_SSH2_KEY.match(line, pos)
        if key_match is not None:
            protocol = 2
            keytype = KEY_TYPES[key_match.group('type')]
            break
        key_match = _RE_SSH1_KEY.match(line, pos)
        if key_match is not None:
            protocol = 1
            keytype = 'rsa1'
            break
        chunk = _RE_OPTIONS_CHUNK.match(line, pos)
        if chunk is None:
            break
        options += chunk.group(0)
        pos = chunk.end()

    if key_match is None:
        raise AuthkeyUnparsableKeyError(line)

    comment = line[key_match.end():].rstrip() or None
    return key_match.group('key'), protocol, keytype, options.rstrip() or None, comment


class AuthkeyLine:
    """Common base for the lines of an authorized_keys file

    A file is read into a series of lines.  If these lines are converted
    to text in the same order (joined by newlines), you get the file back.
    """

    __slots__ = ()

    @property
    def is_key_entry(self):
        # type: () -> bool
        return False

    @property
    def is_meta(self):
        # type: () -> bool
        return False

    def as_string(self):
        # type: () -> str
        raise NotImplementedError  # pragma: no cover

    def __str__(self):
        # type: () -> str
        return self.as_string()


class AuthkeyMetaEntry(AuthkeyLine):
    """A line without key data (blank or a comment), kept verbatim"""

    __slots__ = ('_text',)

    def __init__(self, text):
        # type: (str) -> None
        self._text = text.rstrip('\r\n')

    @property
    def is_meta(self):
        # type: () -> bool
        return True

    @property
    def text(self):
        # type: () -> str
        return self._text

    def as_string(self):
        # type: () -> str
        return self._text

    def __repr__(self):
        # type: () -> str
        return "{clsname}({text!r})".format(clsname=self.__class__.__name__,
                                            text=self._text)


class AuthkeyEntry(AuthkeyLine):
    """Holds one public key line from an authorized_keys file.

    The options can be handled as a single string (:attr:`options`,
    :meth:`unset_options`) or as individual options (:meth:`get_option`,
    :meth:`set_option`, :meth:`unset_option`).  The options string is only
    tokenized once individual options are accessed, and the original string
    is written back as is until an option is set or removed.  From then on
    the tokenized records are authoritative and the options are written
    back in a normalised form.

    There are a number of errors that may be raised when parsing:

    - :class:`AuthkeyNoKeyDataError`: the line is blank or a comment.
    - :class:`AuthkeyTooLargeError`: the line is at least
      :data:`MAX_PUBKEY_BYTES` long.
    - :class:`AuthkeyUnparsableKeyError`: no public key could be found.
    - :class:`AuthkeyAlreadyParsedError`: :meth:`parse` was called on an
      entry which already holds a key.
    """

    __slots__ = ('_key', '_protocol', '_keytype', '_options', '_parsed_options',
                 '_comment', '_duplicate_of', '__weakref__')

    def __init__(self, line=None):
        # type: (Optional[str]) -> None
        self._clear()
        if line is not None:
            self.parse(line)

    def _clear(self):
        # type: () -> None
        self._key = None  # type: Optional[str]
        self._protocol = None  # type: Optional[int]
        self._keytype = None  # type: Optional[str]
        self._options = None  # type: Optional[str]
        self._parsed_options = None  # type: Optional[List[AuthkeyOption]]
        self._comment = None  # type: Optional[str]
        self._duplicate_of = None  # type: Optional[ReferenceType[AuthkeyEntry]]

    def _load(self, line):
        # type: (str) -> None
        # Split first so a failed parse leaves the entry untouched
        key, protocol, keytype, options, comment = _split_entry(line)
        self._clear()
        self._key = key
        self._protocol = protocol
        self._keytype = keytype
        self._options = options
        self._comment = comment

    def parse(self, line):
        # type: (str) -> None
        """Parse a line into this (empty) entry"""
        if self._key is not None:
            raise AuthkeyAlreadyParsedError()
        self._load(line)

    @property
    def is_key_entry(self):
        # type: () -> bool
        return True

    def _get_key(self):
        # type: () -> Optional[str]
        return self._key

    def _set_key(self, line):
        # type: (str) -> None
        self._load(line)

    key = property(
        _get_key, _set_key,
        doc="""\
The public key material (key type and base64 blob, or the three numbers of
an SSHv1 key).  Assigning a string parses it as a complete new line,
replacing the options, comment and every other attribute."""
    )

    @property
    def protocol(self):
        # type: () -> Optional[int]
        """The major SSH protocol version of the key, 1 or 2"""
        return self._protocol

    @property
    def keytype(self):
        # type: () -> Optional[str]
        """The key type as accepted by ``ssh-keygen -t``: rsa1, rsa or dsa"""
        return self._keytype

    @property
    def comment(self):
        # type: () -> Optional[str]
        return self._comment

    @comment.setter
    def comment(self, comment):
        # type: (Optional[str]) -> None
        self._comment = comment

    def unset_comment(self):
        # type: () -> None
        self._comment = None

    # The options can be dealt with as a string until individual options are
    # changed.  Reading individual options tokenizes the string but keeps it;
    # changing one drops the string in favour of the records.

    def _options_records(self):
        # type: () -> List[AuthkeyOption]
        if self._parsed_options is None:
            self._parsed_options = list(tokenize_options(self._options or ''))
        return self._parsed_options

    @property
    def options(self):
        # type: () -> Optional[str]
        """The options as a comma separated string (None if there are none)

        Assigning a string replaces all options; the string is kept as
        given until individual options are set or removed.
        """
        if self._options is not None:
            return self._options
        if self._parsed_options is not None:
            return format_options(self._parsed_options) or None
        return None

    @options.setter
    def options(self, options):
        # type: (Optional[str]) -> None
        self._parsed_options = None
        self._options = options or None

    def unset_options(self):
        # type: () -> None
        self._parsed_options = None
        self._options = None

    @property
    def parsed_options(self):
        # type: () -> List[AuthkeyOption]
        """A copy of the tokenized options, in their original order"""
        return [AuthkeyOption(o.name, o.value) for o in self._options_records()]

    def get_option(self, name):
        # type: (str) -> List[str]
        """Returns the values of all options with the given name

        Boolean options return their own name, string options their value:

          >>> entry = AuthkeyEntry('from="10.0.0.1",no-pty ' + EXAMPLE_KEY)
          >>> entry.get_option('from'), entry.get_option('no-pty')
          (['10.0.0.1'], ['no-pty'])
          >>> entry.get_option('command')
          []
        """
        return [o.name if o.value is None else o.value
                for o in self._options_records() if o.matches(name)]

    def first_option(self, name, default=None):
        # type: (str, Optional[str]) -> Optional[str]
        """Like get_option, but only returns the first value (or default)"""
        values = self.get_option(name)
        return values[0] if values else default

    def has_option(self, name):
        # type: (str) -> bool
        return any(o.matches(name) for o in self._options_records())

    def set_option(self, name, value=None):
        # type: (str, Optional[str]) -> None
        """Enables an option, or with a value, sets the string value of it

        If the option occurs more than once, the first occurrence is kept
        (and updated) while the rest are removed.  Without a value, an
        existing option keeps the value it has.

        Values ending in a backslash are rejected (ValueError), as the
        backslash would escape the closing double quote.
        """
        if not name:
            raise ValueError('set_option requires an option name')
        if value is not None:
            check_option_value(value)
        records = self._options_records()
        first = None  # type: Optional[AuthkeyOption]
        kept = []  # type: List[AuthkeyOption]
        for option in records:
            if option.matches(name):
                if first is not None:
                    continue
                first = option
            kept.append(option)
        if first is None:
            kept.append(AuthkeyOption(name, value))
        elif value is not None:
            first.value = value
        self._parsed_options = kept
        self._options = None

    def unset_option(self, name):
        # type: (str) -> int
        """Removes all occurrences of an option, returning how many there were"""
        records = self._options_records()
        kept = [o for o in records if not o.matches(name)]
        if len(kept) != len(records):
            self._parsed_options = kept
            self._options = None
        return len(records) - len(kept)

    @property
    def duplicate_of(self):
        # type: () -> Optional[AuthkeyEntry]
        """The first entry seen with the same key, or None

        Only a weak reference is held; the entry is owned by whoever stored
        it (normally :class:`authkeys.authorized_keys.AuthorizedKeys`).
        """
        return self._duplicate_of() if self._duplicate_of is not None else None

    @duplicate_of.setter
    def duplicate_of(self, entry):
        # type: (Optional[AuthkeyEntry]) -> None
        if entry is self:
            raise ValueError('An entry cannot be a duplicate of itself')
        self._duplicate_of = weakref.ref(entry) if entry is not None else None

    @property
    def is_duplicate(self):
        # type: () -> bool
        return self.duplicate_of is not None

    def as_string(self):
        # type: () -> str
        """Returns the entry formatted as an authorized_keys line"""
        if self._key is None:
            raise ValueError('Entry holds no public key')
        parts = []
        options = self.options
        if options:
            parts.append(options)
        parts.append(self._key)
        if self._comment:
            parts.append(self._comment)
        return ' '.join(parts)

    def __repr__(self):
        # type: () -> str
        if self._key is None:
            return self.__class__.__name__ + '()'
        return "{clsname}({line!r})".format(clsname=self.__class__.__name__,
                                            line=self.as_string())


def parse_entry(line):
    # type: (str) -> AuthkeyEntry
    """Parse a single authorized_keys line

    :param line: The line, with or without the trailing newline
    :raises AuthkeyParseError: (a subclass of it) if the line holds no key
    """
    return AuthkeyEntry(line)
