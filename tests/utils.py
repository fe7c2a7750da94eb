# utils.py -- Test utilities for gitplumb
# Copyright (C) 2026 The gitplumb Authors
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

"""Utility functions common to gitplumb tests."""

import threading
from io import BytesIO
from typing import Optional

from gitplumb.object_store import MemoryObjectStore
from gitplumb.objects import ObjectID, ObjectType, RawObject, Tree
from gitplumb.protocol import pkt_line

MODE_FILE = 0o100644
MODE_EXEC = 0o100755
MODE_LINK = 0o120000
MODE_DIR = 0o040000
MODE_SUBMODULE = 0o160000

# A sha that is not in any test store
SUBMODULE_SHA = b"\x5a" * 20


def build_tree(store: MemoryObjectStore, spec: dict) -> ObjectID:
    """Add a nested tree to store.

    Args:
      store: store to add the objects to
      spec: maps names to bytes (a blob), a dict (a subtree) or None (a
        submodule whose commit is not in the store)
    Returns: sha of the top-level tree
    """
    entries = []
    for name, value in spec.items():
        if value is None:
            entries.append((name, MODE_SUBMODULE, SUBMODULE_SHA))
        elif isinstance(value, dict):
            entries.append((name, MODE_DIR, build_tree(store, value)))
        else:
            entries.append((name, MODE_FILE, store.add_blob(value)))
    return store.add_tree(entries)


def make_tree(spec: dict) -> tuple[MemoryObjectStore, Tree]:
    store = MemoryObjectStore()
    return store, store.tree(build_tree(store, spec))


def add_raw_tree(store: MemoryObjectStore, data: bytes) -> ObjectID:
    """Add a tree object with arbitrary, possibly corrupt, content."""
    return store.add_raw_object(RawObject(ObjectType.TREE, data))


def advertisement(refs: list[tuple[bytes, bytes]], capabilities: bytes) -> bytes:
    """Build a reference advertisement as sent by git-upload-pack."""
    lines = []
    for i, (sha, ref) in enumerate(refs):
        line = sha + b" " + ref
        if i == 0:
            line += b"\0" + capabilities
        lines.append(pkt_line(line + b"\n"))
    return b"".join(lines) + pkt_line(None)


class FakeStdin(BytesIO):
    """Channel stdin that remembers what was written after it is closed."""

    def __init__(self) -> None:
        super().__init__()
        self.half_closed = False

    def close(self) -> None:
        self.half_closed = True

    def write(self, data: bytes) -> int:
        if self.half_closed:
            raise OSError("write after half-close")
        return super().write(data)


class FakeChannel:
    """An SSH channel whose remote side is canned output."""

    def __init__(
        self, output: bytes = b"", stderr: bytes = b"", exit_status: int = 0
    ) -> None:
        self.stdin = FakeStdin()
        self.stdout = BytesIO(output)
        self.stderr = BytesIO(stderr)
        self.exit_status = exit_status
        self.commands: list[bytes] = []
        self.closed = False
        self.exited = threading.Event()

    def setblocking(self, flag: bool) -> None:
        pass

    def makefile_stdin(self, mode: str) -> FakeStdin:
        return self.stdin

    def makefile(self, mode: str) -> BytesIO:
        return self.stdout

    def makefile_stderr(self, mode: str) -> BytesIO:
        return self.stderr

    def exec_command(self, command: bytes) -> None:
        self.commands.append(command)

    def recv_exit_status(self) -> int:
        self.exited.set()
        return self.exit_status

    def close(self) -> None:
        self.closed = True

    @property
    def written(self) -> bytes:
        return self.stdin.getvalue()


class FakeTransport:
    def __init__(self, connection: "FakeConnection") -> None:
        self._connection = connection

    def open_session(self) -> FakeChannel:
        if self._connection.open_session_error is not None:
            raise self._connection.open_session_error
        return self._connection.channel


class FakeConnection:
    def __init__(
        self,
        channel: FakeChannel,
        open_session_error: Optional[Exception] = None,
    ) -> None:
        self.channel = channel
        self.open_session_error = open_session_error
        self.closed = False

    def get_transport(self) -> FakeTransport:
        return FakeTransport(self)

    def close(self) -> None:
        self.closed = True


class DummyVendor:
    """SSH vendor that records connection requests."""

    def __init__(
        self,
        channel: Optional[FakeChannel] = None,
        error: Optional[Exception] = None,
        open_session_error: Optional[Exception] = None,
    ) -> None:
        self.channel = channel if channel is not None else FakeChannel()
        self.error = error
        self.open_session_error = open_session_error
        self.calls: list[tuple[str, Optional[int], dict]] = []
        self.connections: list[FakeConnection] = []

    def connect(self, host, port=None, **config):
        self.calls.append((host, port, config))
        if self.error is not None:
            raise self.error
        connection = FakeConnection(self.channel, self.open_session_error)
        self.connections.append(connection)
        return connection
