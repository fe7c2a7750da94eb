# errors.py -- errors for gitplumb
# Copyright (C) 2007 James Westby <jw+debian@jameswestby.net>
# Copyright (C) 2009-2012 Jelmer Vernooij <jelmer@jelmer.uk>
#
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later
# gitplumb is dual-licensed under the Apache License, Version 2.0 and the GNU
# General Public License as published by the Free Software Foundation; version 2.0
# or (at your option) any later version. You can redistribute it and/or
# modify it under the terms of either of these two licenses.
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# You should have received a copy of the licenses; if not, see
# <http://www.gnu.org/licenses/> for a copy of the GNU General Public License
# and <http://www.apache.org/licenses/LICENSE-2.0> for a copy of the Apache
# License, Version 2.0.
#

"""gitplumb-related exception classes.

Protocol errors form a small closed set of ``GitProtocolError`` subclasses so
callers can branch on the kind (retry on ``AuthRequired``, give up on
``UnsupportedVCS``) instead of matching message strings.
"""

import binascii
from collections.abc import Sequence
from typing import Optional, Union


class ChecksumMismatch(Exception):
    """A checksum didn't match the expected contents."""

    def __init__(
        self,
        expected: Union[bytes, str],
        got: Union[bytes, str],
        extra: Optional[str] = None,
    ) -> None:
        """Initialize a ChecksumMismatch exception.

        Args:
            expected: The expected checksum value (binary or hex).
            got: The actual checksum value (binary or hex).
            extra: Optional additional error information.
        """
        self.expected = _to_hex(expected)
        self.got = _to_hex(got)
        self.extra = extra
        message = f"Checksum mismatch: Expected {self.expected}, got {self.got}"
        if extra is not None:
            message += f"; {extra}"
        Exception.__init__(self, message)


def _to_hex(sha: Union[bytes, str]) -> str:
    if isinstance(sha, bytes) and len(sha) == 20:
        return binascii.hexlify(sha).decode("ascii")
    return sha if isinstance(sha, str) else sha.decode("ascii")


class WrongObjectException(Exception):
    """Baseclass for all the _ is not a _ exceptions on objects.

    Subclasses define a type_name attribute naming what was expected.
    """

    type_name: str

    def __init__(self, sha: bytes, *args: object, **kwargs: object) -> None:
        Exception.__init__(self, f"{_to_hex(sha)} is not a {self.type_name}")


class NotTreeError(WrongObjectException):
    """Indicates that the sha requested does not point to a tree."""

    type_name = "tree"


class NotBlobError(WrongObjectException):
    """Indicates that the sha requested does not point to a blob."""

    type_name = "blob"


class ObjectFormatException(Exception):
    """Indicates an error parsing an object."""


class FileNotFound(KeyError):
    """A path could not be resolved to a blob in a tree.

    Raised alike for a missing entry, a path that treats a file as a
    directory (or a directory as a file), and a submodule entry whose object
    is not in the local store.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        KeyError.__init__(self, f"file not found: {path!r}")

    def __str__(self) -> str:
        return self.args[0]


class GitProtocolError(Exception):
    """Git protocol exception."""

    def __init__(self, *args: object, **kwargs: object) -> None:
        Exception.__init__(self, *args, **kwargs)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, GitProtocolError) and self.args == other.args

    def __hash__(self) -> int:
        return hash((type(self), self.args))


class AuthRequired(GitProtocolError):
    """No usable credential, or the remote rejected it."""

    def __init__(self, *args: object) -> None:
        super().__init__(*(args or ("cannot connect: auth required",)))


class AlreadyConnected(GitProtocolError):
    """The session is already connected."""

    def __init__(self, *args: object) -> None:
        super().__init__(*(args or ("ssh session already created",)))


class NotConnected(GitProtocolError):
    """The operation requires a connected session."""

    def __init__(self, *args: object) -> None:
        super().__init__(*(args or ("not connected",)))


class SessionClosed(NotConnected):
    """The session was closed and can not be used again."""

    def __init__(self, *args: object) -> None:
        super().__init__(*(args or ("session already closed",)))


class UnsupportedVCS(GitProtocolError):
    """The endpoint refers to a version control system other than git."""

    def __init__(self, *args: object) -> None:
        super().__init__(*(args or ("only git is supported",)))


class UnsupportedRepositoryHost(GitProtocolError):
    """The endpoint host is not one this client talks to."""

    def __init__(self, *args: object) -> None:
        super().__init__(*(args or ("unsupported repository host",)))


class AdvertisedReferencesAlreadyCalled(GitProtocolError):
    """The reference advertisement was requested a second time."""

    def __init__(self, *args: object) -> None:
        super().__init__(*(args or ("cannot call advertised_references twice",)))


class AnswerFormatError(GitProtocolError):
    """The remote answer does not have the expected framing."""

    def __init__(self, *args: object) -> None:
        super().__init__(*(args or ("bad answer format",)))


class CommandAlreadyExecuted(GitProtocolError):
    """A remote command was already run on this channel."""

    def __init__(self, *args: object) -> None:
        super().__init__(*(args or ("a command was already run on this channel",)))


class SendPackError(GitProtocolError):
    """An error occurred during send_pack."""


class HangupException(GitProtocolError):
    """Hangup exception."""

    def __init__(self, stderr_lines: Optional[Sequence[bytes]] = None) -> None:
        """Initialize a HangupException.

        Args:
            stderr_lines: Optional list of stderr output lines from the remote.
        """
        if stderr_lines:
            super().__init__(
                "\n".join(
                    line.decode("utf-8", "surrogateescape") for line in stderr_lines
                )
            )
        else:
            super().__init__("The remote server unexpectedly closed the connection.")
        self.stderr_lines = stderr_lines

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, HangupException)
            and self.stderr_lines == other.stderr_lines
        )

    def __hash__(self) -> int:
        return hash((type(self), tuple(self.stderr_lines or ())))


class InvalidAuthMethod(TypeError):
    """The object given as authentication method is not an AuthMethod."""
