# log_utils.py -- Logging utilities for gitplumb
# Copyright (C) 2010 Google, Inc.
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

"""Logging utilities for gitplumb.

gitplumb is a library, so its loggers stay silent until the calling
application configures logging. A null handler is attached to the top-level
``gitplumb`` logger at import time; ``default_logging_config`` removes it and
sets up output.

``GIT_TRACE`` turns on DEBUG output for the ``gitplumb`` loggers only: the
session loggers (connect target, auth method, remote command, advertised
refs, close) and the tree traversal logger. Other libraries keep their own
levels, so paramiko's transport chatter stays off. Accepted values follow
git:

- "1", "2" or "true": trace to stderr
- an integer 3-9: trace to that file descriptor
- an absolute path: append to that file, or to ``trace.<pid>`` inside it
  when it names a directory
"""

import logging
import os
import sys
from typing import Optional, Union

getLogger = logging.getLogger

TRACE_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"
DEFAULT_FORMAT = "%(asctime)s %(levelname)s: %(message)s"


class _NullHandler(logging.Handler):
    """No-op logging handler to avoid unexpected logging warnings."""

    def emit(self, record: logging.LogRecord) -> None:
        pass


_NULL_HANDLER = _NullHandler()
_GITPLUMB_LOGGER = getLogger("gitplumb")
_GITPLUMB_LOGGER.addHandler(_NULL_HANDLER)


def _get_trace_target() -> Optional[Union[str, int]]:
    """Get the trace target from the GIT_TRACE environment variable.

    Returns: None if tracing is disabled, 2 for stderr, an int 3-9 for a
        file descriptor or an absolute file or directory path
    """
    trace_value = os.environ.get("GIT_TRACE", "")
    if trace_value.lower() in ("", "0", "false"):
        return None
    if trace_value.lower() in ("1", "2", "true"):
        return 2
    if trace_value.isdigit():
        fd = int(trace_value)
        return fd if 3 <= fd <= 9 else None
    if os.path.isabs(trace_value):
        return trace_value
    return None


def _trace_handler() -> Optional[logging.Handler]:
    """Build the handler GIT_TRACE asks for, None when tracing is off."""
    target = _get_trace_target()
    if target is None:
        return None
    if target == 2:
        return logging.StreamHandler(sys.stderr)
    try:
        if isinstance(target, int):
            return logging.StreamHandler(os.fdopen(target, "w", buffering=1))
        if os.path.isdir(target):
            target = os.path.join(target, f"trace.{os.getpid()}")
        return logging.FileHandler(target, mode="a")
    except OSError as e:
        sys.stderr.write(f"Warning: cannot open GIT_TRACE target {target}: {e}\n")
        return None


def default_logging_config() -> None:
    """Set up the default gitplumb loggers.

    With GIT_TRACE set, the gitplumb loggers log at DEBUG to the trace
    target and stop propagating, so nothing is written twice. Otherwise
    INFO and above go to stderr through the root logger.
    """
    remove_null_handler()

    handler = _trace_handler()
    if handler is None:
        logging.basicConfig(level=logging.INFO, stream=sys.stderr, format=DEFAULT_FORMAT)
        return
    handler.setFormatter(logging.Formatter(TRACE_FORMAT))
    _GITPLUMB_LOGGER.addHandler(handler)
    _GITPLUMB_LOGGER.setLevel(logging.DEBUG)
    _GITPLUMB_LOGGER.propagate = False


def remove_null_handler() -> None:
    """Remove the null handler from the gitplumb loggers.

    Callers that set up logging some other way can call this first to avoid
    the overhead of the null handler.
    """
    _GITPLUMB_LOGGER.removeHandler(_NULL_HANDLER)
