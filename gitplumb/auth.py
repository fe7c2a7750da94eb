# auth.py -- SSH authentication methods
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

"""Pluggable SSH authentication methods.

An auth method turns whatever credential it holds into the keyword
arguments of :meth:`paramiko.SSHClient.connect`. Sessions keep a reference
to the method they were given; they never store the credential themselves.
"""

import os
from typing import TYPE_CHECKING, Any, Optional

import paramiko

from .errors import AuthRequired

if TYPE_CHECKING:
    from .client import Endpoint

SSH_AUTH_SOCK = "SSH_AUTH_SOCK"


class AuthMethod:
    """A strategy for authenticating an SSH connection."""

    name = "abstract"

    def __init__(self, username: Optional[str] = None) -> None:
        self.username = username

    def client_config(self) -> dict[str, Any]:
        """Return connect keyword arguments for this credential.

        Raises:
          AuthRequired: if no usable credential is available
        """
        raise NotImplementedError(self.client_config)

    def _base_config(self) -> dict[str, Any]:
        config: dict[str, Any] = {"allow_agent": False, "look_for_keys": False}
        if self.username:
            config["username"] = self.username
        return config

    def __repr__(self) -> str:
        return f"{type(self).__name__}(username={self.username!r})"

    def __str__(self) -> str:
        return f"user: {self.username}, name: {self.name}"


class SSHAgentAuth(AuthMethod):
    """Authenticate with the keys held by the local SSH agent.

    The agent is located through the SSH_AUTH_SOCK environment variable.
    """

    name = "ssh-public-key-agent"

    def client_config(self) -> dict[str, Any]:
        """Enable the agent.

        Raises:
          AuthRequired: if SSH_AUTH_SOCK is unset or empty
        """
        if not os.environ.get(SSH_AUTH_SOCK):
            raise AuthRequired(
                f"cannot connect: {SSH_AUTH_SOCK} is not set, no SSH agent available"
            )
        config = self._base_config()
        config["allow_agent"] = True
        return config


class PublicKeysAuth(AuthMethod):
    """Authenticate with an explicit private key.

    Either a key file (optionally encrypted with passphrase) or an already
    loaded ``paramiko.PKey``.
    """

    name = "ssh-public-keys"

    def __init__(
        self,
        username: Optional[str] = None,
        key_filename: Optional[str] = None,
        pkey: Optional[paramiko.PKey] = None,
        passphrase: Optional[str] = None,
    ) -> None:
        if key_filename is None and pkey is None:
            raise ValueError("either key_filename or pkey is required")
        super().__init__(username)
        self.key_filename = key_filename
        self.pkey = pkey
        self.passphrase = passphrase

    def client_config(self) -> dict[str, Any]:
        """Offer only the configured key."""
        config = self._base_config()
        if self.pkey is not None:
            config["pkey"] = self.pkey
        if self.key_filename is not None:
            config["key_filename"] = self.key_filename
        if self.passphrase is not None:
            config["passphrase"] = self.passphrase
        return config


class PasswordAuth(AuthMethod):
    """Authenticate with a password."""

    name = "ssh-password"

    def __init__(self, username: Optional[str], password: str) -> None:
        super().__init__(username)
        self.password = password

    def client_config(self) -> dict[str, Any]:
        """Offer only the password."""
        config = self._base_config()
        config["password"] = self.password
        return config

    def __repr__(self) -> str:
        return f"{type(self).__name__}(username={self.username!r}, password=***)"


def default_auth(endpoint: "Endpoint") -> AuthMethod:
    """Auth method used when none was set: the agent, as the endpoint user."""
    return SSHAgentAuth(endpoint.user)
