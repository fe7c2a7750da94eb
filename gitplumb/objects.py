# objects.py -- Access to base git objects
# Copyright (C) 2007 James Westby <jw+debian@jameswestby.net>
# Copyright (C) 2008-2013 Jelmer Vernooij <jelmer@jelmer.uk>
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

"""Access to base git objects.

Objects are read out of an object store (see :mod:`gitplumb.object_store`)
as :class:`RawObject` instances: a type, a declared size, an id and a byte
stream. Trees are decoded from those streams on demand and give a
filesystem-like view (:meth:`Tree.file`, :meth:`Tree.files`) over the blobs
they reference.
"""

import binascii
import enum
import hashlib
import posixpath
import queue
import stat
import threading
from collections.abc import Iterable, Iterator
from io import BytesIO
from typing import IO, TYPE_CHECKING, NamedTuple, Optional, Union

from .errors import FileNotFound, NotBlobError, NotTreeError, ObjectFormatException
from .log_utils import getLogger

if TYPE_CHECKING:
    from .object_store import BaseObjectStore

logger = getLogger(__name__)

ObjectID = bytes

ZERO_SHA = b"0" * 40

# Header of a gitlink (submodule) tree entry
S_IFGITLINK = 0o160000

# Size of the hand-off queue between the traversal thread and its consumer
FILES_QUEUE_SIZE = 1

# Seconds the traversal thread blocks on a full queue before re-checking
# whether its consumer went away
_PRODUCER_POLL_INTERVAL = 0.1


def S_ISGITLINK(m: int) -> bool:
    """Check if a mode indicates a submodule.

    Args:
      m: Mode to check
    Returns: a ``boolean``
    """
    return stat.S_IFMT(m) == S_IFGITLINK


def sha_to_hex(sha: ObjectID) -> bytes:
    """Takes a string and returns the hex of the sha within."""
    hexsha = binascii.hexlify(sha)
    if len(hexsha) != 40:
        raise ValueError(f"Incorrect length of sha1 string: {hexsha!r}")
    return hexsha


def hex_to_sha(hex: Union[bytes, str]) -> ObjectID:
    """Takes a hex sha and returns a binary sha."""
    if len(hex) != 40:
        raise ValueError(f"Incorrect length of hexsha: {hex!r}")
    try:
        return binascii.unhexlify(hex)
    except binascii.Error as exc:
        raise ValueError(exc.args[0]) from exc


def valid_hexsha(hex: Union[bytes, str]) -> bool:
    """Check if a string is a valid hex sha."""
    if len(hex) != 40:
        return False
    try:
        binascii.unhexlify(hex)
    except (TypeError, binascii.Error):
        return False
    else:
        return True


def to_binary_sha(sha: Union[bytes, str]) -> ObjectID:
    """Accept either a 20 byte binary sha or a 40 character hex sha."""
    if isinstance(sha, bytes) and len(sha) == 20:
        return sha
    return hex_to_sha(sha)


class ObjectType(enum.Enum):
    """Kinds of git objects, valued by their pack type number."""

    COMMIT = 1
    TREE = 2
    BLOB = 3
    TAG = 4

    @property
    def type_num(self) -> int:
        """Pack type number of this object type."""
        return self.value

    @property
    def type_name(self) -> bytes:
        """Name of this type as used in object headers."""
        return self.name.lower().encode("ascii")

    @classmethod
    def from_type_name(cls, name: bytes) -> "ObjectType":
        """Look up a type by its header name."""
        try:
            return cls[name.decode("ascii").upper()]
        except (KeyError, UnicodeDecodeError) as exc:
            raise ObjectFormatException(f"Not a known type: {name!r}") from exc


def object_id(type: ObjectType, data: bytes) -> ObjectID:
    """Compute the binary id of an object from its type and content."""
    sha = hashlib.sha1(type.type_name + b" " + str(len(data)).encode("ascii") + b"\0")
    sha.update(data)
    return sha.digest()


class RawObject:
    """A typed, sized, immutable byte stream identified by its sha.

    This is what an object store hands out. Any object offering ``type``,
    ``size``, ``id`` and ``reader()`` can stand in for it.
    """

    __slots__ = ("_data", "id", "type")

    def __init__(
        self, type: ObjectType, data: bytes, sha: Optional[ObjectID] = None
    ) -> None:
        self.type = type
        self._data = bytes(data)
        self.id = sha if sha is not None else object_id(type, self._data)

    @property
    def size(self) -> int:
        """Length of the object content in bytes."""
        return len(self._data)

    def reader(self) -> IO[bytes]:
        """Return a fresh stream over the object content."""
        return BytesIO(self._data)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.type.name.lower()} {sha_to_hex(self.id).decode('ascii')}>"


def parse_tree(text: bytes) -> Iterator[tuple[str, int, ObjectID]]:
    """Parse a tree text.

    Args:
      text: Serialized text to parse
    Returns: iterator of tuples of (name, mode, sha)
    Raises:
      ObjectFormatException: if a record is cut short or its mode is not octal
    """
    count = 0
    length = len(text)
    while count < length:
        mode_end = text.find(b" ", count)
        if mode_end == -1:
            raise ObjectFormatException("truncated tree entry: no mode terminator")
        mode_text = text[count:mode_end]
        if not mode_text.isdigit():
            raise ObjectFormatException(f"invalid mode {mode_text!r}")
        try:
            mode = int(mode_text, 8)
        except ValueError as exc:
            raise ObjectFormatException(f"invalid mode {mode_text!r}") from exc
        name_end = text.find(b"\0", mode_end)
        if name_end == -1:
            raise ObjectFormatException("truncated tree entry: no name terminator")
        name = text[mode_end + 1 : name_end]
        count = name_end + 21
        sha = text[name_end + 1 : count]
        if len(sha) != 20:
            raise ObjectFormatException(
                f"truncated tree entry {name!r}: {len(sha)} of 20 sha bytes"
            )
        yield name.decode("utf-8", "surrogateescape"), mode, sha


def serialize_tree(items: Iterable[tuple[str, int, ObjectID]]) -> Iterator[bytes]:
    """Serialize the items in a tree to a text.

    Args:
      items: Iterable over (name, mode, sha) tuples
    Returns: Serialized tree text as chunks
    """
    for name, mode, sha in items:
        yield (
            (f"{mode:o}").encode("ascii")
            + b" "
            + name.encode("utf-8", "surrogateescape")
            + b"\0"
            + sha
        )


class TreeEntry(NamedTuple):
    """Named tuple encapsulating a single tree entry."""

    name: str
    mode: int
    sha: ObjectID

    @property
    def is_dir(self) -> bool:
        """Whether this entry is a subtree."""
        return stat.S_ISDIR(self.mode)

    @property
    def is_submodule(self) -> bool:
        """Whether this entry is a gitlink to a commit in another repository."""
        return S_ISGITLINK(self.mode)

    @property
    def is_symlink(self) -> bool:
        """Whether this entry is a symbolic link."""
        return stat.S_ISLNK(self.mode)

    @property
    def is_regular(self) -> bool:
        """Whether this entry is a regular file."""
        return stat.S_ISREG(self.mode)

    @property
    def is_executable(self) -> bool:
        """Whether this entry is a regular file with the executable bit."""
        return self.is_regular and bool(self.mode & stat.S_IXUSR)


class Blob:
    """File content identified by its sha."""

    type = ObjectType.BLOB

    def __init__(self, obj: RawObject) -> None:
        self._obj = obj
        self.sha = obj.id
        self.size = obj.size

    @classmethod
    def from_object(cls, obj: RawObject) -> "Blob":
        """Wrap obj as a blob.

        Raises:
          NotBlobError: if obj is not a blob
        """
        if obj.type is not ObjectType.BLOB:
            raise NotBlobError(obj.id)
        return cls(obj)

    def reader(self) -> IO[bytes]:
        """Return a fresh stream over the blob content."""
        return self._obj.reader()

    @property
    def data(self) -> bytes:
        """The content contained within the blob object."""
        with self.reader() as f:
            return f.read()


class File:
    """A blob as seen through a path in a tree.

    Files are handed out by :meth:`Tree.file` and :meth:`Tree.files`; each
    one carries its own stream over the blob content.
    """

    def __init__(self, name: str, sha: ObjectID, size: int, reader: IO[bytes]) -> None:
        self.name = name
        self.sha = sha
        self.size = size
        self.reader = reader

    def read(self, size: int = -1) -> bytes:
        """Read up to size bytes of the file content."""
        return self.reader.read(size)

    def close(self) -> None:
        """Close the content stream."""
        self.reader.close()

    def __enter__(self) -> "File":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.name!r}, "
            f"{sha_to_hex(self.sha).decode('ascii')}, size={self.size})"
        )


class _ProducerFailure:
    """Wraps an exception raised by the traversal thread."""

    __slots__ = ("error",)

    def __init__(self, error: BaseException) -> None:
        self.error = error


_END_OF_FILES = object()


def _hand_off(results: queue.Queue, cancelled: threading.Event, item: object) -> bool:
    """Put item on the queue unless the consumer has gone away."""
    while not cancelled.is_set():
        try:
            results.put(item, timeout=_PRODUCER_POLL_INTERVAL)
        except queue.Full:
            continue
        return True
    return False


class Tree:
    """A directory snapshot: a mapping from entry name to TreeEntry.

    The entries mapping has no meaningful order. The tree refers to the
    object store it was read from so that child entries can be resolved;
    it never owns that store.
    """

    type = ObjectType.TREE

    def __init__(
        self,
        store: "BaseObjectStore",
        sha: Optional[ObjectID] = None,
        entries: Optional[dict[str, TreeEntry]] = None,
    ) -> None:
        self._store = store
        self.sha = sha
        self.entries: dict[str, TreeEntry] = dict(entries or {})

    @classmethod
    def from_object(cls, store: "BaseObjectStore", obj: RawObject) -> "Tree":
        """Decode a tree object read from store."""
        tree = cls(store)
        tree.decode(obj)
        return tree

    def decode(self, obj: RawObject) -> None:
        """Replace this tree's entries with those decoded from obj.

        Raises:
          NotTreeError: if obj is not a tree
          ObjectFormatException: if the tree data is truncated or malformed
        """
        if obj.type is not ObjectType.TREE:
            raise NotTreeError(obj.id)
        self.sha = obj.id
        self.entries = {}
        if obj.size == 0:
            return
        with obj.reader() as f:
            text = f.read()
        if len(text) != obj.size:
            raise ObjectFormatException(
                f"tree {sha_to_hex(obj.id)!r} declares {obj.size} bytes, "
                f"read {len(text)}"
            )
        for name, mode, sha in parse_tree(text):
            if name in self.entries:
                raise ObjectFormatException(f"duplicate tree entry {name!r}")
            self.entries[name] = TreeEntry(name, mode, sha)

    def encode(self) -> bytes:
        """Serialize the entries back to the tree binary format."""
        return b"".join(serialize_tree(self.entries.values()))

    def __contains__(self, name: str) -> bool:
        return name in self.entries

    def __getitem__(self, name: str) -> TreeEntry:
        return self.entries[name]

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def items(self) -> Iterator[TreeEntry]:
        """Iterate over the entries of this tree."""
        return iter(self.entries.values())

    def __repr__(self) -> str:
        sha = sha_to_hex(self.sha).decode("ascii") if self.sha else None
        return f"<{type(self).__name__} {sha} ({len(self.entries)} entries)>"

    def _subtree(self, name: str) -> "Tree":
        entry = self.entries[name]
        obj = self._store.get(entry.sha)
        if obj is None:
            # submodule: the commit it points at lives in another repository
            raise KeyError(name)
        return Tree.from_object(self._store, obj)

    def file(self, path: str) -> File:
        """Look up the blob at path, relative to this tree.

        Args:
          path: '/'-separated path
        Returns: a File named after path
        Raises:
          FileNotFound: if any segment is missing, is a submodule without a
            local object, or has the wrong type for its position in the path
        """
        parts = path.split("/")
        tree = self
        try:
            for part in parts[:-1]:
                tree = tree._subtree(part)
            entry = tree.entries[parts[-1]]
        except (KeyError, NotTreeError):
            raise FileNotFound(path) from None

        obj = self._store.get(entry.sha)
        if obj is None or obj.type is not ObjectType.BLOB:
            raise FileNotFound(path)

        blob = Blob.from_object(obj)
        return File(path, entry.sha, blob.size, blob.reader())

    def walk(
        self, base: str = "", cancelled: Optional[threading.Event] = None
    ) -> Iterator[tuple[str, TreeEntry, RawObject]]:
        """Recursively iterate over the entries reachable from this tree.

        Yields (path, entry, object) for every entry whose object is present
        in the store, subtrees included. Entries without a local object
        (submodules) are skipped.

        Args:
          base: path prefix for the yielded paths
          cancelled: stop early once this event is set
        """
        for entry in list(self.entries.values()):
            if cancelled is not None and cancelled.is_set():
                return
            obj = self._store.get(entry.sha)
            path = posixpath.join(base, entry.name)
            if obj is None:
                logger.debug("skipping %s: %s not in store", path, sha_to_hex(entry.sha))
                continue
            yield path, entry, obj
            if obj.type is ObjectType.TREE:
                yield from Tree.from_object(self._store, obj).walk(path, cancelled)

    def files(self) -> Iterator[File]:
        """Iterate over every blob reachable from this tree.

        The traversal runs in a background thread that hands files over
        through a bounded queue; iteration ends when the traversal is
        complete. Order between siblings is unspecified. The iterator is
        single pass. Decode errors met during the traversal are raised from
        the iterator.
        """
        results: queue.Queue = queue.Queue(maxsize=FILES_QUEUE_SIZE)
        cancelled = threading.Event()
        producer = threading.Thread(
            target=self._produce_files,
            args=(results, cancelled),
            name="gitplumb-tree-files",
            daemon=True,
        )
        producer.start()
        try:
            while True:
                item = results.get()
                if item is _END_OF_FILES:
                    return
                if isinstance(item, _ProducerFailure):
                    raise item.error
                yield item
        finally:
            cancelled.set()

    def _produce_files(self, results: queue.Queue, cancelled: threading.Event) -> None:
        try:
            for path, entry, obj in self.walk(cancelled=cancelled):
                if obj.type is not ObjectType.BLOB:
                    continue
                f = File(path, entry.sha, obj.size, obj.reader())
                if not _hand_off(results, cancelled, f):
                    return
        except Exception as e:
            _hand_off(results, cancelled, _ProducerFailure(e))
            return
        _hand_off(results, cancelled, _END_OF_FILES)


class TreeIter:
    """Decode trees one by one from a feed of tree objects.

    The feed defaults to every tree in the store; objects of other types in
    an explicit feed are passed over. Exhaustion is signalled
    with ``StopIteration``; a malformed tree raises
    ``ObjectFormatException`` instead.
    """

    def __init__(
        self, store: "BaseObjectStore", feed: Optional[Iterable[RawObject]] = None
    ) -> None:
        self._store = store
        if feed is None:
            feed = store.iter_objects(ObjectType.TREE)
        self._feed = iter(feed)

    def __iter__(self) -> "TreeIter":
        return self

    def __next__(self) -> Tree:
        for obj in self._feed:
            if obj.type is ObjectType.TREE:
                return Tree.from_object(self._store, obj)
        raise StopIteration
