# protocol.py -- Shared parts of the git protocols
# Copyright (C) 2008 John Carr <john.carr@unrouted.co.uk>
# Copyright (C) 2008-2012 Jelmer Vernooij <jelmer@jelmer.uk>
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

"""Generic functions for talking the git smart server protocol."""

import string
from collections.abc import Iterable, Iterator
from typing import Callable, Optional

import gitplumb

from .errors import AnswerFormatError, GitProtocolError, HangupException

CAPABILITIES_REF = b"capabilities^{}"
PEELED_TAG_SUFFIX = b"^{}"

CAPABILITY_AGENT = b"agent"
CAPABILITY_DELETE_REFS = b"delete-refs"
CAPABILITY_OFS_DELTA = b"ofs-delta"
CAPABILITY_REPORT_STATUS = b"report-status"
CAPABILITY_SYMREF = b"symref"
CAPABILITY_THIN_PACK = b"thin-pack"

COMMAND_WANT = b"want"
COMMAND_HAVE = b"have"
COMMAND_DONE = b"done"

# Capabilities this client knows how to honour without side-band or
# multi-ack negotiation.
KNOWN_UPLOAD_CAPABILITIES = {CAPABILITY_OFS_DELTA, CAPABILITY_THIN_PACK}
KNOWN_RECEIVE_CAPABILITIES = {
    CAPABILITY_REPORT_STATUS,
    CAPABILITY_DELETE_REFS,
    CAPABILITY_OFS_DELTA,
}

MAX_PKT_LINE_DATA = 65516

_HEX_DIGITS = frozenset(string.hexdigits.encode("ascii"))


def agent_string() -> bytes:
    """Return the agent string announced to servers."""
    return ("gitplumb/" + ".".join(map(str, gitplumb.__version__))).encode("ascii")


def capability_agent() -> bytes:
    """Return the agent capability with this client's agent string."""
    return CAPABILITY_AGENT + b"=" + agent_string()


def parse_capability(capability: bytes) -> tuple[bytes, Optional[bytes]]:
    """Split a capability into its name and optional value."""
    parts = capability.split(b"=", 1)
    if len(parts) == 1:
        return (parts[0], None)
    return (parts[0], parts[1])


def extract_capabilities(text: bytes) -> tuple[bytes, list[bytes]]:
    """Extract a capabilities list from a string, if present.

    Args:
      text: String to extract from
    Returns: Tuple with text with capabilities removed and list of capabilities
    """
    if b"\0" not in text:
        return text, []
    text, capabilities = text.rstrip().split(b"\0")
    return (text, capabilities.strip().split(b" "))


def pkt_line(data: Optional[bytes]) -> bytes:
    """Wrap data in a pkt-line.

    Args:
      data: The data to wrap, as a str or None.
    Returns: The data prefixed with its length in pkt-line format; if data was
        None, returns the flush-pkt ('0000').
    """
    if data is None:
        return b"0000"
    if len(data) > MAX_PKT_LINE_DATA:
        raise ValueError(f"pkt-line payload too long: {len(data)} bytes")
    return f"{len(data) + 4:04x}".encode("ascii") + data


def pkt_seq(*seq: Optional[bytes]) -> bytes:
    """Wrap a sequence of data in pkt-lines, followed by a flush-pkt."""
    return b"".join([pkt_line(s) for s in seq]) + pkt_line(None)


class Protocol:
    """Class for interacting with a remote git process over the wire.

    Parts of the git wire protocol use 'pkt-lines' to communicate. A pkt-line
    consists of the length of the line as a 4-byte hex string, followed by the
    payload data. The length includes the 4-byte header. The special line
    '0000' indicates the end of a section of input and is called a 'flush-pkt'.

    For details on the pkt-line format, see the cgit distribution:
        Documentation/technical/protocol-common.txt
    """

    def __init__(
        self,
        read: Callable[[int], bytes],
        write: Callable[[bytes], object],
        close: Optional[Callable[[], None]] = None,
    ) -> None:
        self.read = read
        self.write = write
        self._close = close

    def close(self) -> None:
        """Close the underlying stream, if a close callback was given."""
        if self._close:
            self._close()

    def read_pkt_line(self) -> Optional[bytes]:
        """Reads a pkt-line from the remote git process.

        Returns: The next string from the stream, or None for a flush-pkt
        Raises:
          HangupException: if the stream ends before a length header
          AnswerFormatError: if the length header is malformed or the
            payload is shorter than announced
          GitProtocolError: if the remote sent an ERR line
        """
        try:
            sizestr = self.read(4)
        except OSError as exc:
            raise GitProtocolError(exc) from exc
        if not sizestr:
            raise HangupException()
        if len(sizestr) != 4 or not _HEX_DIGITS.issuperset(sizestr):
            raise AnswerFormatError(f"invalid pkt-line length {sizestr!r}")
        size = int(sizestr, 16)
        if size == 0:
            return None
        if size < 4:
            raise AnswerFormatError(f"invalid pkt-line length {sizestr!r}")
        try:
            pkt = self.read(size - 4)
        except OSError as exc:
            raise GitProtocolError(exc) from exc
        if len(pkt) != size - 4:
            raise AnswerFormatError(
                f"short pkt-line: expected {size - 4} bytes, got {len(pkt)}"
            )
        if pkt.startswith(b"ERR "):
            raise GitProtocolError(pkt[4:].rstrip(b"\n").decode("utf-8", "replace"))
        return pkt

    def read_pkt_seq(self) -> Iterator[bytes]:
        """Read a sequence of pkt-lines up to the next flush-pkt."""
        pkt = self.read_pkt_line()
        while pkt:
            yield pkt
            pkt = self.read_pkt_line()

    def write_pkt_line(self, line: Optional[bytes]) -> None:
        """Sends a pkt-line to the remote git process.

        Args:
          line: A string containing the data to send, or None to send a
            flush-pkt.
        """
        try:
            self.write(pkt_line(line))
        except OSError as exc:
            raise GitProtocolError(exc) from exc

    def write_pkt_seq(self, lines: Iterable[Optional[bytes]]) -> None:
        """Send each line as a pkt-line; None sends a flush-pkt."""
        for line in lines:
            self.write_pkt_line(line)
