# test_objects.py -- tests for objects.py
# Copyright (C) 2007 James Westby <jw+debian@jameswestby.net>
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

"""Tests for git base objects."""

import threading

from gitplumb.errors import (
    FileNotFound,
    NotBlobError,
    NotTreeError,
    ObjectFormatException,
)
from gitplumb.object_store import MemoryObjectStore
from gitplumb.objects import (
    S_ISGITLINK,
    Blob,
    File,
    ObjectType,
    RawObject,
    Tree,
    TreeEntry,
    TreeIter,
    hex_to_sha,
    object_id,
    parse_tree,
    serialize_tree,
    sha_to_hex,
    valid_hexsha,
)

from . import TestCase
from .utils import (
    MODE_DIR,
    MODE_EXEC,
    MODE_FILE,
    MODE_LINK,
    MODE_SUBMODULE,
    SUBMODULE_SHA,
    add_raw_tree,
    make_tree,
)

a_sha = b"6f670c0fb53f9463760b7295fbb814e965fb20c8"
b_sha = b"2969be3e8ee1c0222396a5611407e4769f14e54b"

EXAMPLE = {
    "README": b"read me\n",
    "src": {
        "main.py": b"print('hello')\n",
        "lib": {"util.py": b"pass\n", "empty": b""},
    },
    "docs": {"index.txt": b"docs\n"},
    "vendored": None,
}

EXAMPLE_FILES = {
    "README": b"read me\n",
    "src/main.py": b"print('hello')\n",
    "src/lib/util.py": b"pass\n",
    "src/lib/empty": b"",
    "docs/index.txt": b"docs\n",
}


class ShaTests(TestCase):
    def test_sha_to_hex(self) -> None:
        self.assertEqual(a_sha, sha_to_hex(hex_to_sha(a_sha)))

    def test_hex_to_sha_invalid(self) -> None:
        self.assertRaises(ValueError, hex_to_sha, b"abc")
        self.assertRaises(ValueError, hex_to_sha, b"z" * 40)

    def test_valid_hexsha(self) -> None:
        self.assertTrue(valid_hexsha(a_sha))
        self.assertTrue(valid_hexsha(a_sha.decode("ascii")))
        self.assertFalse(valid_hexsha(b"z" * 40))
        self.assertFalse(valid_hexsha(a_sha[:-1]))

    def test_object_id(self) -> None:
        # git hash-object of an empty blob
        self.assertEqual(
            b"e69de29bb2d1d6434b8b29ae775ad8c2e48c5391",
            sha_to_hex(object_id(ObjectType.BLOB, b"")),
        )
        # git's well-known empty tree
        self.assertEqual(
            b"4b825dc642cb6eb9a060e54bf8d69288fbee4904",
            sha_to_hex(object_id(ObjectType.TREE, b"")),
        )


class ObjectTypeTests(TestCase):
    def test_type_names(self) -> None:
        self.assertEqual(b"blob", ObjectType.BLOB.type_name)
        self.assertEqual(2, ObjectType.TREE.type_num)
        self.assertIs(ObjectType.TAG, ObjectType.from_type_name(b"tag"))

    def test_unknown_type_name(self) -> None:
        self.assertRaises(ObjectFormatException, ObjectType.from_type_name, b"note")


class RawObjectTests(TestCase):
    def test_reader_is_fresh(self) -> None:
        obj = RawObject(ObjectType.BLOB, b"data")
        self.assertEqual(4, obj.size)
        self.assertEqual(b"da", obj.reader().read(2))
        self.assertEqual(b"data", obj.reader().read())


class ParseTreeTests(TestCase):
    def test_parse(self) -> None:
        text = (
            b"100644 a\0" + hex_to_sha(a_sha) + b"40000 dir\0" + hex_to_sha(b_sha)
        )
        self.assertEqual(
            [
                ("a", MODE_FILE, hex_to_sha(a_sha)),
                ("dir", MODE_DIR, hex_to_sha(b_sha)),
            ],
            list(parse_tree(text)),
        )

    def test_serialize_then_parse(self) -> None:
        items = [
            ("file", MODE_FILE, hex_to_sha(a_sha)),
            ("tool.sh", MODE_EXEC, hex_to_sha(b_sha)),
            ("link", MODE_LINK, hex_to_sha(a_sha)),
            ("sub", MODE_SUBMODULE, hex_to_sha(b_sha)),
            ("naïve", MODE_DIR, hex_to_sha(a_sha)),
        ]
        text = b"".join(serialize_tree(items))
        self.assertEqual(items, list(parse_tree(text)))

    def test_directory_mode_is_unpadded(self) -> None:
        self.assertEqual(
            b"40000 d\0" + hex_to_sha(a_sha),
            b"".join(serialize_tree([("d", MODE_DIR, hex_to_sha(a_sha))])),
        )

    def test_empty(self) -> None:
        self.assertEqual([], list(parse_tree(b"")))

    def test_truncated_in_mode(self) -> None:
        text = b"100644 a\0" + hex_to_sha(a_sha) + b"1006"
        self.assertRaises(ObjectFormatException, list, parse_tree(text))

    def test_truncated_in_name(self) -> None:
        self.assertRaises(ObjectFormatException, list, parse_tree(b"100644 abc"))

    def test_truncated_in_sha(self) -> None:
        text = b"100644 a\0" + hex_to_sha(a_sha)[:12]
        self.assertRaises(ObjectFormatException, list, parse_tree(text))

    def test_invalid_mode(self) -> None:
        text = b"10z644 a\0" + hex_to_sha(a_sha)
        self.assertRaises(ObjectFormatException, list, parse_tree(text))
        text = b"100694 a\0" + hex_to_sha(a_sha)
        self.assertRaises(ObjectFormatException, list, parse_tree(text))


class TreeEntryTests(TestCase):
    def test_modes(self) -> None:
        sha = hex_to_sha(a_sha)
        self.assertTrue(TreeEntry("d", MODE_DIR, sha).is_dir)
        self.assertTrue(TreeEntry("s", MODE_SUBMODULE, sha).is_submodule)
        self.assertFalse(TreeEntry("s", MODE_SUBMODULE, sha).is_dir)
        self.assertTrue(TreeEntry("l", MODE_LINK, sha).is_symlink)
        self.assertTrue(TreeEntry("x", MODE_EXEC, sha).is_executable)
        self.assertFalse(TreeEntry("f", MODE_FILE, sha).is_executable)
        self.assertTrue(TreeEntry("f", MODE_FILE, sha).is_regular)
        self.assertTrue(S_ISGITLINK(MODE_SUBMODULE))
        self.assertFalse(S_ISGITLINK(MODE_DIR))


class TreeDecodeTests(TestCase):
    def test_zero_size(self) -> None:
        store = MemoryObjectStore()
        tree = store.tree(add_raw_tree(store, b""))
        self.assertEqual({}, tree.entries)
        self.assertEqual(0, len(tree))

    def test_decode(self) -> None:
        store, tree = make_tree({"a": b"A", "b": {"c": b"C"}})
        self.assertEqual({"a", "b"}, set(tree))
        self.assertEqual(MODE_FILE, tree["a"].mode)
        self.assertTrue(tree["b"].is_dir)
        self.assertEqual(store.add_blob(b"A"), tree["a"].sha)
        self.assertIn("b", tree)
        self.assertEqual(
            tree.entries, Tree.from_object(store, store[tree.sha]).entries
        )

    def test_encode_roundtrip(self) -> None:
        store, tree = make_tree({"x": b"1", "y": {"z": b"2"}})
        self.assertEqual(store[tree.sha].reader().read(), tree.encode())

    def test_truncated(self) -> None:
        store = MemoryObjectStore()
        sha = add_raw_tree(store, b"100644 a\0" + hex_to_sha(a_sha)[:5])
        self.assertRaises(ObjectFormatException, store.tree, sha)

    def test_duplicate_name(self) -> None:
        store = MemoryObjectStore()
        record = b"100644 a\0" + hex_to_sha(a_sha)
        sha = add_raw_tree(store, record + record)
        self.assertRaises(ObjectFormatException, store.tree, sha)

    def test_not_a_tree(self) -> None:
        store = MemoryObjectStore()
        sha = store.add_blob(b"blob")
        self.assertRaises(NotTreeError, store.tree, sha)


class TreeFileTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.store, self.tree = make_tree(EXAMPLE)

    def test_top_level(self) -> None:
        f = self.tree.file("README")
        self.assertIsInstance(f, File)
        self.assertEqual("README", f.name)
        self.assertEqual(8, f.size)
        self.assertEqual(self.store.add_blob(b"read me\n"), f.sha)
        self.assertEqual(b"read me\n", f.read())

    def test_nested(self) -> None:
        with self.tree.file("src/lib/util.py") as f:
            self.assertEqual("src/lib/util.py", f.name)
            self.assertEqual(b"pass\n", f.read())

    def test_fresh_reader(self) -> None:
        self.assertEqual(b"pass\n", self.tree.file("src/lib/util.py").read())
        self.assertEqual(b"pass\n", self.tree.file("src/lib/util.py").read())

    def test_missing(self) -> None:
        self.assertRaises(FileNotFound, self.tree.file, "missing")
        self.assertRaises(FileNotFound, self.tree.file, "missing/x")
        self.assertRaises(FileNotFound, self.tree.file, "src/missing.py")

    def test_directory_as_file(self) -> None:
        self.assertRaises(FileNotFound, self.tree.file, "src")
        self.assertRaises(FileNotFound, self.tree.file, "src/lib")

    def test_file_as_directory(self) -> None:
        self.assertRaises(FileNotFound, self.tree.file, "README/x")

    def test_submodule(self) -> None:
        self.assertRaises(FileNotFound, self.tree.file, "vendored")
        self.assertRaises(FileNotFound, self.tree.file, "vendored/x")

    def test_empty_path(self) -> None:
        self.assertRaises(FileNotFound, self.tree.file, "")
        self.assertRaises(FileNotFound, self.tree.file, "src/")

    def test_is_key_error(self) -> None:
        with self.assertRaises(KeyError) as cm:
            self.tree.file("missing/x")
        self.assertEqual("missing/x", cm.exception.path)

    def test_corrupt_subtree_is_not_hidden(self) -> None:
        store = MemoryObjectStore()
        bad = add_raw_tree(store, b"100644 a\0" + b"\x01" * 3)
        top = store.tree(store.add_tree([("bad", MODE_DIR, bad)]))
        self.assertRaises(ObjectFormatException, top.file, "bad/a")


class TreeFilesTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.store, self.tree = make_tree(EXAMPLE)

    def test_files(self) -> None:
        files = {f.name: f.read() for f in self.tree.files()}
        self.assertEqual(EXAMPLE_FILES, files)

    def test_no_duplicates(self) -> None:
        names = [f.name for f in self.tree.files()]
        self.assertEqual(len(set(names)), len(names))

    def test_file_agrees_with_files(self) -> None:
        for f in self.tree.files():
            looked_up = self.tree.file(f.name)
            self.assertEqual(f.sha, looked_up.sha)
            self.assertEqual(f.size, looked_up.size)

    def test_empty_tree(self) -> None:
        store = MemoryObjectStore()
        tree = store.tree(store.add_tree([]))
        self.assertEqual([], list(tree.files()))

    def test_only_submodule(self) -> None:
        store = MemoryObjectStore()
        tree = store.tree(store.add_tree([("sub", MODE_SUBMODULE, SUBMODULE_SHA)]))
        self.assertEqual([], list(tree.files()))

    def test_exhausted(self) -> None:
        it = self.tree.files()
        self.assertEqual(len(EXAMPLE_FILES), len(list(it)))
        self.assertEqual([], list(it))

    def test_abandon_early(self) -> None:
        it = self.tree.files()
        first = next(it)
        self.assertIn(first.name, EXAMPLE_FILES)
        it.close()
        self.assertRaises(StopIteration, next, it)

    def test_decode_error_propagates(self) -> None:
        store = MemoryObjectStore()
        bad = add_raw_tree(store, b"100644 trunc")
        top = store.tree(
            store.add_tree(
                [("bad", MODE_DIR, bad), ("ok", MODE_FILE, store.add_blob(b"x"))]
            )
        )
        self.assertRaises(ObjectFormatException, list, top.files())

    def test_walk(self) -> None:
        paths = {path: entry.mode for path, entry, obj in self.tree.walk()}
        self.assertEqual(MODE_DIR, paths["src"])
        self.assertEqual(MODE_DIR, paths["src/lib"])
        self.assertEqual(MODE_FILE, paths["src/lib/util.py"])
        self.assertNotIn("vendored", paths)

    def test_walk_cancelled(self) -> None:
        cancelled = threading.Event()
        cancelled.set()
        self.assertEqual([], list(self.tree.walk(cancelled=cancelled)))


class TreeIterTests(TestCase):
    def test_iterates_trees(self) -> None:
        store, tree = make_tree({"a": {"b": {"c": b"C"}}, "d": b"D"})
        shas = {t.sha for t in TreeIter(store)}
        self.assertEqual(3, len(shas))
        self.assertIn(tree.sha, shas)

    def test_explicit_feed(self) -> None:
        store, tree = make_tree({"a": b"A"})
        it = TreeIter(store, [store[tree.sha]])
        self.assertEqual(tree.entries, next(it).entries)
        self.assertRaises(StopIteration, next, it)

    def test_skips_other_types(self) -> None:
        store, tree = make_tree({"a": b"A"})
        blob = store[tree["a"].sha]
        it = TreeIter(store, [blob, store[tree.sha], blob])
        self.assertEqual(tree.sha, next(it).sha)
        self.assertRaises(StopIteration, next, it)

    def test_decode_failure_is_distinct(self) -> None:
        store = MemoryObjectStore()
        bad = add_raw_tree(store, b"100644 a")
        it = TreeIter(store, [store[bad]])
        self.assertRaises(ObjectFormatException, next, it)


class BlobTests(TestCase):
    def test_from_object(self) -> None:
        store = MemoryObjectStore()
        sha = store.add_blob(b"content")
        blob = Blob.from_object(store[sha])
        self.assertEqual(sha, blob.sha)
        self.assertEqual(7, blob.size)
        self.assertEqual(b"content", blob.data)

    def test_not_a_blob(self) -> None:
        store = MemoryObjectStore()
        sha = store.add_tree([])
        self.assertRaises(NotBlobError, Blob.from_object, store[sha])
