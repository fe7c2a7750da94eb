# test_auth.py -- Tests for SSH authentication methods
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

"""Tests for gitplumb.auth."""

from unittest import mock

from gitplumb.auth import (
    PasswordAuth,
    PublicKeysAuth,
    SSHAgentAuth,
    default_auth,
)
from gitplumb.client import Endpoint
from gitplumb.errors import AuthRequired

from . import TestCase


class SSHAgentAuthTests(TestCase):
    def test_agent_available(self) -> None:
        self.overrideEnv("SSH_AUTH_SOCK", "/tmp/agent.sock")
        self.assertEqual(
            {"allow_agent": True, "look_for_keys": False, "username": "git"},
            SSHAgentAuth("git").client_config(),
        )

    def test_no_agent(self) -> None:
        self.overrideEnv("SSH_AUTH_SOCK", None)
        self.assertRaises(AuthRequired, SSHAgentAuth("git").client_config)

    def test_empty_agent_socket(self) -> None:
        self.overrideEnv("SSH_AUTH_SOCK", "")
        self.assertRaises(AuthRequired, SSHAgentAuth("git").client_config)

    def test_no_username(self) -> None:
        self.overrideEnv("SSH_AUTH_SOCK", "/tmp/agent.sock")
        self.assertNotIn("username", SSHAgentAuth().client_config())

    def test_str(self) -> None:
        self.assertEqual(
            "user: git, name: ssh-public-key-agent", str(SSHAgentAuth("git"))
        )


class PublicKeysAuthTests(TestCase):
    def test_key_filename(self) -> None:
        auth = PublicKeysAuth("git", key_filename="/keys/id_ed25519", passphrase="pw")
        self.assertEqual(
            {
                "allow_agent": False,
                "look_for_keys": False,
                "username": "git",
                "key_filename": "/keys/id_ed25519",
                "passphrase": "pw",
            },
            auth.client_config(),
        )

    def test_pkey(self) -> None:
        pkey = mock.Mock()
        config = PublicKeysAuth("git", pkey=pkey).client_config()
        self.assertIs(pkey, config["pkey"])
        self.assertNotIn("key_filename", config)

    def test_requires_key(self) -> None:
        self.assertRaises(ValueError, PublicKeysAuth, "git")


class PasswordAuthTests(TestCase):
    def test_config(self) -> None:
        config = PasswordAuth("git", "s3cret").client_config()
        self.assertEqual("s3cret", config["password"])
        self.assertFalse(config["allow_agent"])

    def test_repr_hides_password(self) -> None:
        self.assertNotIn("s3cret", repr(PasswordAuth("git", "s3cret")))


class DefaultAuthTests(TestCase):
    def test_uses_endpoint_user(self) -> None:
        auth = default_auth(Endpoint.parse("ssh://alice@example.com/repo.git"))
        self.assertIsInstance(auth, SSHAgentAuth)
        self.assertEqual("alice", auth.username)
