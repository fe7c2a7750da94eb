# object_store.py -- Object store for git objects
# Copyright (C) 2008-2013 Jelmer Vernooij <jelmer@jelmer.uk>
#                         and others
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

"""Git object store interfaces and an in-memory implementation.

The object model only needs ``get``; persistent stores (loose objects,
packs) are provided by whoever embeds this package.
"""

import threading
from collections.abc import Iterable, Iterator
from typing import Optional, Union

from .errors import ChecksumMismatch
from .objects import (
    ObjectID,
    ObjectType,
    RawObject,
    Tree,
    TreeEntry,
    object_id,
    serialize_tree,
    to_binary_sha,
)


class BaseObjectStore:
    """Object store interface."""

    def get(self, sha: Union[ObjectID, str]) -> Optional[RawObject]:
        """Obtain an object by sha.

        Args:
          sha: binary or hex sha of the object
        Returns: the object, or None if it is not in this store
        """
        raise NotImplementedError(self.get)

    def __iter__(self) -> Iterator[ObjectID]:
        """Iterate over the binary shas present in this store."""
        raise NotImplementedError(self.__iter__)

    def __contains__(self, sha: Union[ObjectID, str]) -> bool:
        return self.get(sha) is not None

    def __getitem__(self, sha: Union[ObjectID, str]) -> RawObject:
        obj = self.get(sha)
        if obj is None:
            raise KeyError(sha)
        return obj

    def iter_objects(self, type: Optional[ObjectType] = None) -> Iterator[RawObject]:
        """Iterate over the objects in this store.

        Args:
          type: only yield objects of this type
        """
        for sha in self:
            obj = self.get(sha)
            if obj is None:
                continue
            if type is None or obj.type is type:
                yield obj

    def tree(self, sha: Union[ObjectID, str]) -> Tree:
        """Read and decode the tree with the given sha."""
        return Tree.from_object(self, self[sha])


class MemoryObjectStore(BaseObjectStore):
    """Object store that keeps all objects in memory."""

    def __init__(self) -> None:
        self._data: dict[ObjectID, RawObject] = {}
        self._lock = threading.Lock()

    def get(self, sha: Union[ObjectID, str]) -> Optional[RawObject]:
        """Obtain an object by binary or hex sha, None if absent or invalid."""
        try:
            sha = to_binary_sha(sha)
        except ValueError:
            return None
        return self._data.get(sha)

    def __iter__(self) -> Iterator[ObjectID]:
        with self._lock:
            return iter(list(self._data))

    def __len__(self) -> int:
        return len(self._data)

    def add_raw_object(self, obj: RawObject) -> ObjectID:
        """Add a single object to this object store."""
        with self._lock:
            self._data[obj.id] = obj
        return obj.id

    def add_object(
        self, type: ObjectType, data: bytes, sha: Optional[ObjectID] = None
    ) -> ObjectID:
        """Add content to this object store.

        Args:
          type: object type
          data: object content
          sha: expected sha of the content
        Returns: binary sha of the stored object
        Raises:
          ChecksumMismatch: if sha does not match the content
        """
        actual = object_id(type, data)
        if sha is not None and to_binary_sha(sha) != actual:
            raise ChecksumMismatch(to_binary_sha(sha), actual)
        return self.add_raw_object(RawObject(type, data, actual))

    def add_objects(self, objects: Iterable[RawObject]) -> None:
        """Add a set of objects to this object store."""
        for obj in objects:
            self.add_raw_object(obj)

    def add_blob(self, data: bytes) -> ObjectID:
        """Add a blob with the given content and return its sha."""
        return self.add_object(ObjectType.BLOB, data)

    def add_tree(self, entries: Iterable[tuple[str, int, ObjectID]]) -> ObjectID:
        """Serialize and add a tree.

        Args:
          entries: (name, mode, sha) tuples
        Returns: binary sha of the tree
        """
        items = [TreeEntry(*entry) for entry in entries]
        return self.add_object(ObjectType.TREE, b"".join(serialize_tree(items)))
