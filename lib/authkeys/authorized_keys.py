# -*- coding: utf-8 -*- vim: fileencoding=utf-8 :

""" Facilities for reading whole OpenSSH authorized_keys files

:class:`AuthorizedKeys` reads the lines of a file one at a time and turns
each into an :class:`authkeys.entry.AuthkeyEntry` (a public key) or an
:class:`authkeys.entry.AuthkeyMetaEntry` (blank line or comment).  It can
optionally keep the lines it has read, and tag entries whose key was already
seen earlier in the input::

    >>> lines = ['# admins\\n',
    ...          EXAMPLE_KEY + ' alice\\n',
    ...          EXAMPLE_KEY + ' bob\\n']
    >>> [line.is_meta for line in AuthorizedKeys(lines)]
    [True, False, False]
    >>> keys = AuthorizedKeys(lines, check_duplicates=True).consume_all()
    >>> entries = keys.get_stored_entries()
    >>> entries[2].duplicate_of is entries[1]
    True
    >>> str(keys) == ''.join(lines)
    True

Errors from parsing a line are raised to the caller of :meth:`next_entry`
(or of ``next()``), who may skip the line and carry on reading.  OpenSSH
only consults the first occurrence of a key, so a duplicate is still
returned, merely tagged via ``duplicate_of``.
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

import logging

from types import TracebackType
from typing import (
    IO, Any, Dict, Iterable, Iterator, List, Optional, Tuple, Type, Union,
)

from authkeys.entry import (
    AuthkeyEntry,
    AuthkeyLine,
    AuthkeyMetaEntry,
    AuthkeyParseError,
    is_meta_line,
)


logger = logging.getLogger(__name__)


class AuthorizedKeys:
    """Reads an authorized_keys file line by line.

    The source can be a path (see :meth:`from_path` and :meth:`attach_path`),
    in which case the file is opened and closed by this object, or anything
    yielding lines: an open file (text or binary), a list of lines or the
    whole content as a single string (see :meth:`attach_file`).  Open files
    passed in are never closed here.

    Three flags control what happens to the lines read, each of which can be
    changed at any time:

    - ``auto_store``: keep every line read, see :meth:`get_stored_entries`.
    - ``check_duplicates``: set ``duplicate_of`` on entries whose key was
      seen before.
    - ``skip_non_key_data``: do not keep blank lines and comments (they are
      still returned by :meth:`next_entry`).

    Note that a str passed as ``file`` is taken as the contents of a file,
    not as a path: ``AuthorizedKeys('/home/u/.ssh/authorized_keys')`` parses
    the path itself as a line.  Use :meth:`from_path` to read a file by name.
    """

    def __init__(self,
                 file=None,  # type: Optional[Union[str, bytes, Iterable[Union[str, bytes]]]]
                 auto_store=False,  # type: bool
                 check_duplicates=False,  # type: bool
                 skip_non_key_data=False,  # type: bool
                 encoding='utf-8',  # type: str
                 ):
        # type: (...) -> None
        self.auto_store = auto_store
        self.check_duplicates = check_duplicates
        self.skip_non_key_data = skip_non_key_data
        self._encoding = encoding
        self._entries = []  # type: List[AuthkeyLine]
        self._seen_keys = {}  # type: Dict[str, Tuple[AuthkeyEntry, int]]
        self._lines = None  # type: Optional[Iterator[Union[str, bytes]]]
        self._owned_handle = None  # type: Optional[IO[str]]
        self.line_number = 0
        if file is not None:
            self.attach_file(file)

    @classmethod
    def from_path(cls, path, **kwargs):
        # type: (str, Any) -> AuthorizedKeys
        """Create an instance reading from the file at path

        Use it as a context manager to have the file closed even if not
        read to the end::

            with AuthorizedKeys.from_path(path) as keys:
                for line in keys:
                    ...
        """
        keys = cls(**kwargs)
        keys.attach_path(path)
        return keys

    def attach_path(self, path):
        # type: (str) -> None
        """Read lines from the file at path, which is opened (and owned) here

        Errors opening the file (OSError) are not caught.
        """
        handle = open(path, encoding=self._encoding)
        self.close()
        self._owned_handle = handle
        self._lines = iter(handle)
        self.line_number = 0

    def attach_file(self, file):
        # type: (Union[str, bytes, Iterable[Union[str, bytes]]]) -> None
        """Read lines from file, which is never closed by this object

        :param file: An open file, an iterable of lines (with or without
          trailing newlines) or the contents of a file as str or bytes.
        """
        self.close()
        if isinstance(file, bytes):
            file = file.decode(self._encoding)
        if isinstance(file, str):
            file = file.splitlines()
        self._lines = iter(file)
        self.line_number = 0

    def close(self):
        # type: () -> None
        """Detach the current source, closing it if it was opened by path"""
        handle = self._owned_handle
        self._owned_handle = None
        self._lines = None
        if handle is not None:
            handle.close()

    def __enter__(self):
        # type: () -> AuthorizedKeys
        return self

    def __exit__(self,
                 exc_type,  # type: Optional[Type[BaseException]]
                 exc_val,  # type: Optional[BaseException]
                 exc_tb,  # type: Optional[TracebackType]
                 ):
        # type: (...) -> None
        self.close()

    def _read_line(self):
        # type: () -> Optional[str]
        if self._lines is None:
            return None
        try:
            line = next(self._lines)
        except StopIteration:
            self.close()
            return None
        if isinstance(line, bytes):
            line = line.decode(self._encoding)
        return line

    def _check_duplicate(self, entry):
        # type: (AuthkeyEntry) -> None
        assert entry.key is not None
        # The whitespace between key type and blob is not part of the key
        material = ' '.join(entry.key.split())
        seen = self._seen_keys.get(material)
        if seen is None:
            self._seen_keys[material] = (entry, self.line_number)
            return
        first, first_line_number = seen
        entry.duplicate_of = first
        logger.info("Duplicate key at line %d (first seen at line %d)",
                    self.line_number, first_line_number)

    def parse_line(self, line):
        # type: (str) -> AuthkeyLine
        """Parse a single line, storing and duplicate-checking it as configured

        Blank lines and comments give an AuthkeyMetaEntry; anything else
        must hold a public key or an AuthkeyParseError is raised (with its
        ``line_number`` set).
        """
        self.line_number += 1
        if is_meta_line(line):
            meta = AuthkeyMetaEntry(line)
            if self.auto_store and not self.skip_non_key_data:
                self._entries.append(meta)
            return meta

        try:
            entry = AuthkeyEntry(line)
        except AuthkeyParseError as e:
            e.line_number = self.line_number
            raise

        if self.check_duplicates:
            self._check_duplicate(entry)
        if self.auto_store:
            self._entries.append(entry)
        return entry

    def next_entry(self):
        # type: () -> Optional[AuthkeyLine]
        """Parse the next line of the source, returning None at end of input"""
        line = self._read_line()
        if line is None:
            return None
        return self.parse_line(line)

    def __iter__(self):
        # type: () -> AuthorizedKeys
        return self

    def __next__(self):
        # type: () -> AuthkeyLine
        # A parse error leaves the iterator usable, so callers can skip the
        # offending line and keep going.
        line = self.next_entry()
        if line is None:
            raise StopIteration
        return line

    def consume_all(self, strict=True):
        # type: (bool) -> AuthorizedKeys
        """Read the rest of the source, storing every line

        ``auto_store`` is enabled while reading and restored afterwards.

        :param strict: If True, parse errors are raised (reading stops at
          the offending line).  Otherwise they are logged as warnings and
          the line is skipped.
        """
        auto_store = self.auto_store
        self.auto_store = True
        try:
            while True:
                try:
                    line = self.next_entry()
                except AuthkeyParseError as e:
                    if strict:
                        raise
                    logger.warning("Skipping unparsable entry at line %d: %s",
                                   e.line_number, e)
                    continue
                if line is None:
                    break
        finally:
            self.auto_store = auto_store
        return self

    def get_stored_entries(self):
        # type: () -> List[AuthkeyLine]
        """The lines kept so far (only those read while auto_store was on)"""
        return list(self._entries)

    def reset_store(self):
        # type: () -> None
        """Forget the stored lines and the keys seen for duplicate checks

        ``duplicate_of`` is a weak reference, so entries the caller kept read
        as not being duplicates any more once nothing else holds on to the
        first entry with their key.
        """
        self._entries = []
        self._seen_keys = {}

    def reset_duplicates(self):
        # type: () -> None
        """Forget the keys seen, so the next occurrence of any key is a first

        As with :meth:`reset_store`, ``duplicate_of`` of earlier duplicates
        only resolves while the first entry is still stored or referenced.
        """
        self._seen_keys = {}

    def __str__(self):
        # type: () -> str
        return ''.join(line.as_string() + '\n' for line in self._entries)

    def write_to_open_file(self, file):
        # type: (IO[str]) -> None
        """Write the stored lines to an open file"""
        file.write(self.__str__())
