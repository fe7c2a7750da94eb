# paramiko_vendor.py -- paramiko implementation of the SSHVendor interface
# Copyright (C) 2013 Aaron O'Mullan <aaron.omullan@friendco.de>
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

"""Paramiko SSH support for gitplumb.

This is the default SSH vendor used by :class:`gitplumb.client.Client`.
Another vendor can be passed to the client:

  >>> from gitplumb.client import Client
  >>> from gitplumb.paramiko_vendor import ParamikoSSHVendor
  >>> client = Client(vendor=ParamikoSSHVendor(timeout=30))
"""

import os
import warnings
from typing import Any, Optional

import paramiko
import paramiko.client
import paramiko.config

from .errors import AuthRequired, GitProtocolError
from .log_utils import getLogger

logger = getLogger(__name__)

DEFAULT_SSH_CONFIG_PATH = "~/.ssh/config"


class ParamikoSSHVendor:
    # http://docs.paramiko.org/en/stable/api/client.html

    def __init__(
        self,
        ssh_config_path: Optional[str] = None,
        host_key_policy: Optional[paramiko.client.MissingHostKeyPolicy] = None,
        **kwargs: object,
    ) -> None:
        """Initialize the vendor.

        Args:
          ssh_config_path: OpenSSH client config to read host settings from
          host_key_policy: policy for hosts missing from the known hosts
          **kwargs: passed on to paramiko.SSHClient.connect
        """
        self.kwargs = kwargs
        self.host_key_policy = host_key_policy
        self.ssh_config = self._load_ssh_config(
            ssh_config_path or DEFAULT_SSH_CONFIG_PATH
        )

    def _load_ssh_config(self, path: str) -> paramiko.config.SSHConfig:
        """Load SSH configuration, ~/.ssh/config by default."""
        ssh_config = paramiko.config.SSHConfig()
        config_path = os.path.expanduser(path)
        try:
            with open(config_path) as config_file:
                ssh_config.parse(config_file)
        except FileNotFoundError:
            pass
        except OSError as e:
            warnings.warn(f"Could not read SSH config file {config_path}: {e}")
        return ssh_config

    def connect(
        self,
        host: str,
        port: Optional[int] = None,
        username: Optional[str] = None,
        **config: Any,
    ) -> paramiko.SSHClient:
        """Open an authenticated SSH connection.

        Args:
          host: host name, possibly an alias from the SSH config
          port: port, or None for the SSH config value or 22
          username: user to log in as, or None for the SSH config value
          **config: authentication keyword arguments from an AuthMethod
        Returns: a connected paramiko.SSHClient
        Raises:
          AuthRequired: if no credential could be offered or the server
            rejected every one
          GitProtocolError: if the connection could not be established
        """
        client = paramiko.SSHClient()

        host_config = self.ssh_config.lookup(host)

        connection_kwargs: dict[str, Any] = {
            "hostname": host_config.get("hostname", host)
        }
        connection_kwargs.update(self.kwargs)

        if username:
            connection_kwargs["username"] = username
        elif "user" in host_config:
            connection_kwargs["username"] = host_config["user"]

        if port:
            connection_kwargs["port"] = port
        elif "port" in host_config:
            connection_kwargs["port"] = int(host_config["port"])

        if "identityfile" in host_config and not (
            config.get("key_filename") or config.get("pkey")
        ):
            identity_files = host_config["identityfile"]
            if isinstance(identity_files, list) and identity_files:
                connection_kwargs["key_filename"] = identity_files[0]
            elif isinstance(identity_files, str):
                connection_kwargs["key_filename"] = identity_files

        connection_kwargs.update(config)

        policy = self.host_key_policy or paramiko.client.MissingHostKeyPolicy()
        client.set_missing_host_key_policy(policy)
        logger.debug(
            "connecting to %s:%s as %s",
            connection_kwargs["hostname"],
            connection_kwargs.get("port", 22),
            connection_kwargs.get("username"),
        )
        try:
            client.connect(**connection_kwargs)
        except paramiko.AuthenticationException as e:
            client.close()
            raise AuthRequired(f"cannot connect to {host}: {e}") from e
        except (paramiko.SSHException, OSError) as e:
            transport = client.get_transport()
            # reached the server but offered nothing it accepted: no agent
            # keys, unreadable key file
            unauthenticated = (
                transport is not None
                and transport.is_active()
                and not transport.is_authenticated()
            )
            client.close()
            if unauthenticated:
                raise AuthRequired(f"cannot connect to {host}: {e}") from e
            raise GitProtocolError(f"cannot connect to {host}: {e}") from e
        return client
