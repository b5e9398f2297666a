# -*- coding: utf-8 -*- vim: fileencoding=utf-8 :

""" Tokenizer for the options field of OpenSSH authorized_keys entries

The options field is a comma separated list of options, each of which is
either a boolean option (the mere presence of the name enables it) or a
string valued option (``name="value"``).  Inside a string value, double
quotes must be escaped with a backslash::

    >>> for option in tokenize_options('command="who am i",no-pty'):
    ...     print(repr(option))
    AuthkeyOption('command', 'who am i')
    AuthkeyOption('no-pty')

The tokenizer is more permissive than sshd(8): any option name is accepted,
regardless of whether OpenSSH knows about it or whether it has the right
kind (boolean vs. string).  Duplicate options are kept, in their original
order.
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

from typing import Iterable, Iterator, Optional


# Delved from sshd(8) and auth-options.c.  OpenSSH compares option names
# with strncasecmp(3), hence the case-insensitive match.
_OPTION_NAME = r'[A-Za-z0-9_-]+'

_RE_STRING_OPTION = re.compile(r'''
    (?P<name> ''' + _OPTION_NAME + r''' )
    ="
    (?P<value> (?: \\" | [^"] )*? )        # Embedded quotes must be escaped
    "
    (?: , | [ \t]+ )?                      # Optional separator
''', re.VERBOSE)

_RE_BOOLEAN_OPTION = re.compile(r'''
    (?P<name> ''' + _OPTION_NAME + r''' )
    (?: , | [ \t]+ )?
''', re.VERBOSE)


def _unescape_value(value):
    # type: (str) -> str
    return value.replace('\\"', '"')


def _escape_value(value):
    # type: (str) -> str
    return value.replace('"', '\\"')


def check_option_value(value):
    # type: (str) -> None
    """Raise ValueError if value cannot be written as a quoted option value

    sshd(8) reads a backslash in front of a double quote as an escaped
    quote, so a value must not end in a backslash.
    """
    if value.endswith('\\'):
        raise ValueError('Option values must not end in a backslash: %r' % value)


class AuthkeyOption:
    """A single option from the options field of an entry

    ``value`` is None for boolean options.  String valued options always
    have a (possibly empty) string as value, stored without the escaping
    backslashes.
    """

    __slots__ = ('name', 'value')

    def __init__(self, name, value=None):
        # type: (str, Optional[str]) -> None
        if not name:
            raise ValueError("Options must have a name")
        self.name = name
        self.value = value

    @property
    def is_boolean(self):
        # type: () -> bool
        return self.value is None

    def matches(self, name):
        # type: (str) -> bool
        """Whether this option has the given name (ignoring case)"""
        return self.name.lower() == name.lower()

    def convert_to_text(self):
        # type: () -> str
        if self.value is None:
            return self.name
        return '{name}="{value}"'.format(name=self.name,
                                         value=_escape_value(self.value))

    def __eq__(self, other):
        # type: (object) -> bool
        if not isinstance(other, AuthkeyOption):
            return NotImplemented
        return self.name == other.name and self.value == other.value

    def __hash__(self):
        # type: () -> int
        return hash((self.name, self.value))

    def __repr__(self):
        # type: () -> str
        if self.value is None:
            return "{clsname}('{name}')".format(clsname=self.__class__.__name__,
                                                name=self.name)
        return "{clsname}('{name}', '{value}')".format(
            clsname=self.__class__.__name__,
            name=self.name,
            value=self.value,
        )


def tokenize_options(text):
    # type: (str) -> Iterator[AuthkeyOption]
    """Split an options string into AuthkeyOption records

    Tokenization stops silently at the first piece of text that is neither a
    string valued nor a boolean option; the remainder is dropped.  This never
    raises on malformed input.

    :param text: The raw options field (without the key and comment)
    """
    pos = 0
    end = len(text)
    while pos < end:
        # The string form must be tried first, as 'name="..."' would
        # otherwise be taken as the boolean "name" followed by garbage.
        m = _RE_STRING_OPTION.match(text, pos)
        if m is not None:
            yield AuthkeyOption(m.group('name'), _unescape_value(m.group('value')))
            pos = m.end()
            continue
        m = _RE_BOOLEAN_OPTION.match(text, pos)
        if m is not None:
            yield AuthkeyOption(m.group('name'))
            pos = m.end()
            continue
        break


def format_options(options):
    # type: (Iterable[AuthkeyOption]) -> str
    """Join option records into an options field

    >>> format_options([AuthkeyOption('from', '10.0.0.1'), AuthkeyOption('no-pty')])
    'from="10.0.0.1",no-pty'
    """
    return ','.join(o.convert_to_text() for o in options)
