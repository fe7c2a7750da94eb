# client.py -- Implementation of the client side git protocols over SSH
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

"""Client side support for the git smart protocol over SSH.

A :class:`Client` hands out one session per endpoint. A session owns one SSH
connection and one channel, on which it runs exactly one remote command
(``git-upload-pack`` for fetching, ``git-receive-pack`` for sending)::

  client = Client()
  with client.new_fetch_pack_session("git@example.com:project.git") as session:
      session.connect()
      refs = session.advertised_references()
      with session.fetch_pack([refs.refs[b"HEAD"]]) as pack:
          data = pack.read()

Requests must be written completely, and stdin half-closed, before the
response is read; the sessions below do this in that order.

Supported capabilities:

 * ofs-delta
 * thin-pack
 * report-status
 * delete-refs
 * agent

Known capabilities that are not supported:

 * multi_ack, multi_ack_detailed
 * side-band, side-band-64k
 * shallow
"""

import enum
import threading
from collections.abc import Iterable, Iterator, Sequence
from concurrent.futures import Future
from dataclasses import dataclass
from io import BytesIO
from typing import IO, Any, Optional, Union
from urllib.parse import quote as urlquote
from urllib.parse import unquote, urlparse, urlunsplit

import paramiko

from .auth import AuthMethod, default_auth
from .errors import (
    AdvertisedReferencesAlreadyCalled,
    AlreadyConnected,
    AnswerFormatError,
    CommandAlreadyExecuted,
    GitProtocolError,
    HangupException,
    InvalidAuthMethod,
    NotConnected,
    SendPackError,
    SessionClosed,
    UnsupportedRepositoryHost,
    UnsupportedVCS,
)
from .log_utils import getLogger
from .objects import ZERO_SHA, sha_to_hex, valid_hexsha
from .protocol import (
    CAPABILITIES_REF,
    CAPABILITY_DELETE_REFS,
    CAPABILITY_REPORT_STATUS,
    CAPABILITY_SYMREF,
    COMMAND_DONE,
    COMMAND_HAVE,
    COMMAND_WANT,
    KNOWN_RECEIVE_CAPABILITIES,
    KNOWN_UPLOAD_CAPABILITIES,
    PEELED_TAG_SUFFIX,
    Protocol,
    capability_agent,
    extract_capabilities,
    parse_capability,
)

logger = getLogger(__name__)

SSH_DEFAULT_PORT = 22

SSH_SCHEMES = ("ssh", "git+ssh", "ssh+git")

# URL schemes of other version control systems
NON_GIT_SCHEMES = frozenset(
    ["hg", "svn", "svn+ssh", "bzr", "bzr+ssh", "cvs", "darcs", "fossil"]
)

_COPY_BUFSIZE = 65536


def parse_rsync_url(location: str) -> tuple[Optional[str], str, str]:
    """Parse a rsync-style URL."""
    if ":" in location and "@" not in location:
        # SSH with no user@, zero or one leading slash.
        (host, path) = location.split(":", 1)
        user = None
    elif ":" in location:
        # SSH with user@host:foo.
        user_host, path = location.split(":", 1)
        if "@" in user_host:
            user, host = user_host.rsplit("@", 1)
        else:
            user = None
            host = user_host
    else:
        raise ValueError("not a valid rsync-style URL")
    return (user, host, path)


@dataclass(frozen=True)
class Endpoint:
    """Address of a remote repository."""

    protocol: str
    host: str
    path: str
    user: Optional[str] = None
    port: Optional[int] = None

    @classmethod
    def parse(cls, address: str) -> "Endpoint":
        """Parse ``ssh://[user@]host[:port]/path`` or ``[user@]host:path``.

        Raises:
          ValueError: if the address has no host or an invalid port
        """
        if "://" in address:
            parsed = urlparse(address)
            protocol = parsed.scheme
            if protocol in SSH_SCHEMES:
                protocol = "ssh"
            if not parsed.hostname:
                raise ValueError(f"no host in {address!r}")
            path = unquote(parsed.path)
            if path.startswith("/~"):
                path = path[1:]
            user = unquote(parsed.username) if parsed.username else None
            return cls(protocol, parsed.hostname, path, user, parsed.port)
        user, host, path = parse_rsync_url(address)
        if not host:
            raise ValueError(f"no host in {address!r}")
        return cls("ssh", host, path, user or None)

    @property
    def effective_port(self) -> int:
        """The port to dial, 22 when none was given."""
        return self.port if self.port is not None else SSH_DEFAULT_PORT

    def host_with_port(self) -> str:
        """Render the endpoint as ``host:port``."""
        return f"{self.host}:{self.effective_port}"

    def __str__(self) -> str:
        netloc = self.host
        if self.port is not None:
            netloc += f":{self.port}"
        if self.user is not None:
            netloc = urlquote(self.user, "@/:") + "@" + netloc
        path = self.path
        if path.startswith("~"):
            path = "/" + path
        return urlunsplit((self.protocol, netloc, path, "", ""))


class SSHVendor:
    """A client side SSH implementation."""

    def connect(
        self,
        host: str,
        port: Optional[int] = None,
        username: Optional[str] = None,
        **config: Any,
    ) -> paramiko.SSHClient:
        """Open an authenticated SSH connection.

        The returned connection provides ``get_transport().open_session()``
        and ``close()``.

        Args:
          host: Host name
          port: Optional SSH port to use
          username: Optional name of user to log in as
          **config: Authentication settings produced by an AuthMethod
        """
        raise NotImplementedError(self.connect)


class SessionState(enum.Enum):
    """Lifecycle of a session."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    COMMAND_RUNNING = "command-running"
    USED = "used"
    CLOSED = "closed"


def quote_path(path: str) -> str:
    """Quote a repository path as a single shell word."""
    return "'" + path.replace("'", "'\\''") + "'"


class AdvertisedRefs:
    """References and capabilities announced by the remote."""

    def __init__(
        self,
        refs: dict[bytes, bytes],
        capabilities: set[bytes],
        peeled: Optional[dict[bytes, bytes]] = None,
    ) -> None:
        self.refs = refs
        self.capabilities = capabilities
        self.peeled = peeled or {}

    @classmethod
    def from_pkt_seq(cls, pkt_seq: Iterable[bytes]) -> "AdvertisedRefs":
        """Parse the reference advertisement.

        Raises:
          AnswerFormatError: if a line is not ``<hexsha> <refname>``
        """
        refs: dict[bytes, bytes] = {}
        peeled: dict[bytes, bytes] = {}
        capabilities: set[bytes] = set()
        first = True
        for pkt in pkt_seq:
            text = pkt.rstrip(b"\n")
            if first:
                try:
                    text, caps = extract_capabilities(text)
                except ValueError as exc:
                    raise AnswerFormatError(
                        f"malformed capabilities in {pkt!r}"
                    ) from exc
                capabilities.update(caps)
                first = False
            try:
                sha, ref = text.split(b" ", 1)
            except ValueError as exc:
                raise AnswerFormatError(f"malformed reference line {pkt!r}") from exc
            if not valid_hexsha(sha):
                raise AnswerFormatError(f"invalid sha in reference line {pkt!r}")
            if ref == CAPABILITIES_REF:
                # empty repository: only the capabilities were announced
                continue
            if ref.endswith(PEELED_TAG_SUFFIX):
                peeled[ref[: -len(PEELED_TAG_SUFFIX)]] = sha
            else:
                refs[ref] = sha
        return cls(refs, capabilities, peeled)

    @property
    def capability_names(self) -> set[bytes]:
        """Capability names without their values."""
        return {parse_capability(c)[0] for c in self.capabilities}

    @property
    def symrefs(self) -> dict[bytes, bytes]:
        """Symbolic refs announced with the symref capability."""
        symrefs = {}
        for capability in self.capabilities:
            name, value = parse_capability(capability)
            if name == CAPABILITY_SYMREF and value and b":" in value:
                src, dst = value.split(b":", 1)
                symrefs[src] = dst
        return symrefs

    @property
    def head(self) -> Optional[bytes]:
        """The ref HEAD points at, if the remote announced it."""
        return self.symrefs.get(b"HEAD")

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, AdvertisedRefs)
            and self.refs == other.refs
            and self.capabilities == other.capabilities
            and self.peeled == other.peeled
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.refs!r}, {self.capabilities!r})"


class ReportStatusParser:
    """Handle status as reported by servers with 'report-status' capability."""

    def __init__(self) -> None:
        self._done = False
        self._pack_status: Optional[bytes] = None
        self._ref_statuses: list[bytes] = []

    def check(self) -> Iterator[tuple[bytes, Optional[str]]]:
        """Check if there were any errors and, if so, raise exceptions.

        Raises:
          SendPackError: Raised when the server could not unpack
        Returns:
          iterator over refs
        """
        if self._pack_status not in (b"unpack ok", None):
            raise SendPackError(self._pack_status)
        for status in self._ref_statuses:
            try:
                status, rest = status.split(b" ", 1)
            except ValueError:
                # malformed response, move on to the next one
                continue
            if status == b"ng":
                ref, _, error = rest.partition(b" ")
                yield ref, error.decode("utf-8", "replace") or "rejected"
            elif status == b"ok":
                yield rest, None
            else:
                raise GitProtocolError(f"invalid ref status {status!r}")

    def handle_packet(self, pkt: Optional[bytes]) -> None:
        """Handle a packet.

        Raises:
          GitProtocolError: Raised when packets are received after a flush
          packet.
        """
        if self._done:
            raise GitProtocolError("received more data after status report")
        if pkt is None:
            self._done = True
            return
        if self._pack_status is None:
            self._pack_status = pkt.strip()
        else:
            self._ref_statuses.append(pkt.strip())


class SendPackResult:
    """Result of a send-pack operation.

    Attributes:
      ref_status: Mapping of ref name to None on success, or an error
        message on failure.
    """

    def __init__(self, ref_status: dict[bytes, Optional[str]]) -> None:
        self.ref_status = ref_status

    def __eq__(self, other: object) -> bool:
        return isinstance(other, SendPackResult) and self.ref_status == other.ref_status

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.ref_status!r})"


def _as_hexsha(sha: Union[bytes, str]) -> bytes:
    if isinstance(sha, str):
        sha = sha.encode("ascii")
    if len(sha) == 20:
        return sha_to_hex(sha)
    if not valid_hexsha(sha):
        raise ValueError(f"invalid sha {sha!r}")
    return sha


class SSHSession:
    """A connection to a remote repository running one git command.

    Subclasses set ``program`` to the remote command to run.
    """

    program: bytes

    DEFAULT_ENCODING = "utf-8"

    def __init__(
        self,
        endpoint: Endpoint,
        vendor: SSHVendor,
        path_encoding: str = DEFAULT_ENCODING,
        connect_timeout: Optional[float] = None,
    ) -> None:
        self.endpoint = endpoint
        self._vendor = vendor
        self._path_encoding = path_encoding
        self._connect_timeout = connect_timeout
        self._auth: Optional[AuthMethod] = None
        self._state = SessionState.DISCONNECTED
        self._connect_attempted = False
        self._connection: Optional[paramiko.SSHClient] = None
        self._channel: Optional[paramiko.Channel] = None
        self._stdin: Optional[IO[bytes]] = None
        self._stdout: Optional[IO[bytes]] = None
        self._stderr: Optional[IO[bytes]] = None
        self._stderr_lines: Optional[list[bytes]] = None
        self._stderr_lock = threading.Lock()
        self._done: Optional[Future] = None
        self._advertised: Optional[AdvertisedRefs] = None
        self._advertised_called = False

    @property
    def state(self) -> SessionState:
        """Current lifecycle state of the session."""
        if (
            self._state is SessionState.COMMAND_RUNNING
            and self._done is not None
            and self._done.done()
        ):
            return SessionState.USED
        return self._state

    @property
    def auth(self) -> Optional[AuthMethod]:
        """The auth method used to connect, if one was set or resolved."""
        return self._auth

    def set_auth(self, auth: AuthMethod) -> None:
        """Set the authentication method used to connect.

        Raises:
          InvalidAuthMethod: if auth is not an AuthMethod
          AlreadyConnected: if a connection attempt was already made
        """
        if not isinstance(auth, AuthMethod):
            raise InvalidAuthMethod(f"not an ssh auth method: {auth!r}")
        if self._connect_attempted:
            raise AlreadyConnected("auth method must be set before connecting")
        self._auth = auth

    def connect(self) -> None:
        """Connect to the remote host and open the command channel.

        Uses the auth method given to set_auth or, by default, the SSH
        agent found through SSH_AUTH_SOCK as the endpoint's user. On failure
        anything opened is closed again and the session stays disconnected.

        Raises:
          AlreadyConnected: if the session is connected
          SessionClosed: if the session was closed
          AuthRequired: if no credential is usable or the remote rejected it
          GitProtocolError: if the connection or channel could not be opened
        """
        if self._state is SessionState.CLOSED:
            raise SessionClosed()
        if self._state is not SessionState.DISCONNECTED:
            raise AlreadyConnected()
        self._connect_attempted = True

        if self._auth is None:
            self._auth = default_auth(self.endpoint)
        config = self._auth.client_config()
        if self._connect_timeout is not None:
            config.setdefault("timeout", self._connect_timeout)

        logger.debug(
            "connecting to %s with %s", self.endpoint.host_with_port(), self._auth.name
        )
        connection = self._vendor.connect(
            self.endpoint.host, self.endpoint.port, **config
        )
        try:
            self._open_channel(connection)
        except BaseException:
            connection.close()
            self._channel = self._stdin = self._stdout = self._stderr = None
            raise
        self._connection = connection
        self._state = SessionState.CONNECTED

    def _open_channel(self, connection: paramiko.SSHClient) -> None:
        transport = connection.get_transport()
        if transport is None:
            raise GitProtocolError("cannot open SSH session: transport is not active")
        try:
            channel = transport.open_session()
            channel.setblocking(True)
            self._stdin = channel.makefile_stdin("wb")
            self._stdout = channel.makefile("rb")
            self._stderr = channel.makefile_stderr("rb")
        except (paramiko.SSHException, OSError) as e:
            raise GitProtocolError(f"cannot open SSH session: {e}") from e
        self._channel = channel

    def _ensure_connected(self) -> None:
        if self._state is SessionState.CLOSED:
            raise SessionClosed()
        if self._state is SessionState.DISCONNECTED:
            raise NotConnected()

    @property
    def stdin(self) -> IO[bytes]:
        """Input of the remote command; closing it half-closes the channel."""
        self._ensure_connected()
        assert self._stdin is not None
        return self._stdin

    @property
    def stdout(self) -> IO[bytes]:
        """Output of the remote command."""
        self._ensure_connected()
        assert self._stdout is not None
        return self._stdout

    def command(self) -> bytes:
        """The remote command line for this session's endpoint."""
        return (
            self.program
            + b" "
            + quote_path(self.endpoint.path).encode(self._path_encoding)
        )

    def run_command(self, cmd: bytes) -> Future:
        """Start cmd on the channel.

        Returns: a future that resolves once, when the remote command exits,
            to its exit status, or fails with GitProtocolError if the command
            failed.
        Raises:
          NotConnected: if the session is not connected
          CommandAlreadyExecuted: if a command already ran on this channel
        """
        self._ensure_connected()
        if self._done is not None:
            raise CommandAlreadyExecuted()
        assert self._channel is not None
        logger.debug("running %r on %s", cmd, self.endpoint.host)
        try:
            self._channel.exec_command(cmd)
        except (paramiko.SSHException, OSError) as e:
            raise GitProtocolError(f"cannot run {cmd!r}: {e}") from e

        done: Future = Future()
        done.set_running_or_notify_cancel()
        self._done = done
        self._state = SessionState.COMMAND_RUNNING
        waiter = threading.Thread(
            target=self._wait_for_exit,
            args=(self._channel, done, cmd),
            name="gitplumb-command-wait",
            daemon=True,
        )
        waiter.start()
        return done

    def _wait_for_exit(
        self, channel: paramiko.Channel, done: Future, cmd: bytes
    ) -> None:
        try:
            status = channel.recv_exit_status()
        except Exception as e:
            done.set_exception(GitProtocolError(f"{cmd!r} did not complete: {e}"))
            return
        if status == 0:
            done.set_result(status)
            return
        message = f"{cmd!r} exited with status {status}"
        stderr = b"\n".join(self._read_stderr()).decode("utf-8", "replace")
        if stderr:
            message += f": {stderr}"
        done.set_exception(GitProtocolError(message))

    def _read_stderr(self) -> list[bytes]:
        with self._stderr_lock:
            if self._stderr_lines is None:
                if self._stderr is None:
                    self._stderr_lines = []
                else:
                    self._stderr_lines = [
                        line.rstrip(b"\n") for line in self._stderr.readlines()
                    ]
            return self._stderr_lines

    def _remote_error(self) -> GitProtocolError:
        lines = self._read_stderr()
        for line in lines:
            if line.startswith(b"ERROR: "):
                return GitProtocolError(
                    line[len(b"ERROR: ") :].decode("utf-8", "replace")
                )
        return HangupException(lines)

    def _ensure_command(self) -> None:
        if self._done is None:
            self.run_command(self.command())

    @property
    def _protocol(self) -> Protocol:
        return Protocol(self.stdout.read, self.stdin.write)

    def _finish_input(self) -> None:
        self.stdin.flush()
        self.stdin.close()

    def advertised_references(self) -> AdvertisedRefs:
        """Start the remote command and read the references it announces.

        Can only be called once per session.

        Raises:
          NotConnected: if the session is not connected
          AdvertisedReferencesAlreadyCalled: on a second call
          AnswerFormatError: if the advertisement is not framed correctly
          HangupException: if the remote closed the stream
        """
        if self._advertised_called:
            raise AdvertisedReferencesAlreadyCalled()
        self._ensure_connected()
        self._advertised_called = True
        self._ensure_command()
        try:
            advertised = AdvertisedRefs.from_pkt_seq(self._protocol.read_pkt_seq())
        except HangupException:
            raise self._remote_error() from None
        logger.debug(
            "%s advertised %d references", self.endpoint.host, len(advertised.refs)
        )
        self._advertised = advertised
        return advertised

    def _require_advertised(self) -> AdvertisedRefs:
        self._ensure_connected()
        if self._advertised is None:
            raise GitProtocolError(
                "advertised_references must be read before negotiating"
            )
        return self._advertised

    def wait(self, timeout: Optional[float] = None) -> int:
        """Wait for the remote command to exit and return its status."""
        if self._done is None:
            raise NotConnected("no command was run")
        return self._done.result(timeout)

    def close(self) -> None:
        """Close the SSH connection.

        Closing a session that never connected does nothing.
        """
        if self._state in (SessionState.DISCONNECTED, SessionState.CLOSED):
            return
        logger.debug("closing session to %s", self.endpoint.host)
        self._state = SessionState.CLOSED
        try:
            if self._channel is not None:
                self._channel.close()
        finally:
            if self._connection is not None:
                self._connection.close()

    def __enter__(self) -> "SSHSession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.endpoint} {self.state.value}>"


class FetchPackResponse:
    """The pack stream sent by the remote after negotiation.

    Closing the response drains any unread data and waits for the remote
    command to exit.
    """

    def __init__(self, stream: IO[bytes], session: Optional[SSHSession]) -> None:
        self._stream = stream
        self._session = session
        self._closed = False

    def read(self, size: int = -1) -> bytes:
        """Read up to size bytes of pack data."""
        return self._stream.read(size)

    def __iter__(self) -> Iterator[bytes]:
        return iter(lambda: self.read(_COPY_BUFSIZE), b"")

    def close(self) -> None:
        """Discard unread pack data and wait for the remote command to exit."""
        if self._closed:
            return
        self._closed = True
        for _ in self:
            pass
        if self._session is not None:
            self._session.wait()

    def __enter__(self) -> "FetchPackResponse":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class FetchPackSession(SSHSession):
    """Session running git-upload-pack to fetch a pack."""

    program = b"git-upload-pack"

    def default_capabilities(self) -> list[bytes]:
        """Capabilities to request: those both sides support, plus the agent."""
        advertised = self._require_advertised()
        return sorted(
            advertised.capability_names & KNOWN_UPLOAD_CAPABILITIES
        ) + [capability_agent()]

    def fetch_pack(
        self,
        wants: Sequence[Union[bytes, str]],
        haves: Iterable[Union[bytes, str]] = (),
        capabilities: Optional[Sequence[bytes]] = None,
    ) -> FetchPackResponse:
        """Ask for the objects in wants and return the pack stream.

        Args:
          wants: shas the remote should send, with their history
          haves: shas already present locally
          capabilities: capabilities to request, by default those both
            sides support
        Raises:
          NotConnected: if the session is not connected
          AnswerFormatError: if the remote does not answer with NAK or ACK
        """
        self._require_advertised()
        proto = self._protocol
        if not wants:
            proto.write_pkt_line(None)
            self._finish_input()
            return FetchPackResponse(BytesIO(), self)
        if capabilities is None:
            capabilities = self.default_capabilities()

        for i, want in enumerate(wants):
            line = COMMAND_WANT + b" " + _as_hexsha(want)
            if i == 0 and capabilities:
                line += b" " + b" ".join(capabilities)
            proto.write_pkt_line(line + b"\n")
        proto.write_pkt_line(None)
        for have in haves:
            proto.write_pkt_line(COMMAND_HAVE + b" " + _as_hexsha(have) + b"\n")
        proto.write_pkt_line(COMMAND_DONE + b"\n")
        self._finish_input()

        try:
            answer = proto.read_pkt_line()
        except HangupException:
            raise self._remote_error() from None
        if answer is None or not (
            answer.rstrip(b"\n") == b"NAK" or answer.startswith(b"ACK ")
        ):
            raise AnswerFormatError(f"expecting NAK or ACK, found {answer!r} instead")
        return FetchPackResponse(self.stdout, self)


class SendPackSession(SSHSession):
    """Session running git-receive-pack to send a pack."""

    program = b"git-receive-pack"

    def send_pack(
        self,
        commands: Sequence[tuple[bytes, bytes, bytes]],
        pack_data: Union[bytes, Iterable[bytes], IO[bytes]] = b"",
    ) -> SendPackResult:
        """Update remote refs and upload the objects they need.

        Args:
          commands: (old_sha, new_sha, ref) triples; a zero new_sha deletes
          pack_data: the pack, as bytes, an iterable of chunks or a file
        Raises:
          NotConnected: if the session is not connected
          SendPackError: if the remote could not unpack the data
        """
        advertised = self._require_advertised()
        proto = self._protocol
        supported = advertised.capability_names
        capabilities = sorted(supported & KNOWN_RECEIVE_CAPABILITIES)
        capabilities.append(capability_agent())

        ref_status: dict[bytes, Optional[str]] = {}
        lines = []
        for old_sha, new_sha, ref in commands:
            old_sha, new_sha = _as_hexsha(old_sha), _as_hexsha(new_sha)
            if new_sha == ZERO_SHA and CAPABILITY_DELETE_REFS not in supported:
                ref_status[ref] = "remote does not support deleting refs"
                continue
            lines.append(old_sha + b" " + new_sha + b" " + ref)

        if not lines:
            proto.write_pkt_line(None)
            self._finish_input()
            return SendPackResult(ref_status)

        proto.write_pkt_line(lines[0] + b"\0" + b" ".join(capabilities))
        for line in lines[1:]:
            proto.write_pkt_line(line)
        proto.write_pkt_line(None)
        if any(line.split(b" ")[1] != ZERO_SHA for line in lines):
            self._write_pack(pack_data)
        self._finish_input()

        if CAPABILITY_REPORT_STATUS in supported:
            parser = ReportStatusParser()
            try:
                for pkt in proto.read_pkt_seq():
                    parser.handle_packet(pkt)
            except HangupException:
                raise self._remote_error() from None
            parser.handle_packet(None)
            ref_status.update(parser.check())
        else:
            for line in lines:
                ref_status[line.split(b" ", 2)[2]] = None
        self.wait()
        return SendPackResult(ref_status)

    def _write_pack(self, pack_data: Union[bytes, Iterable[bytes], IO[bytes]]) -> None:
        stdin = self.stdin
        if isinstance(pack_data, bytes):
            stdin.write(pack_data)
        elif hasattr(pack_data, "read"):
            for chunk in iter(lambda: pack_data.read(_COPY_BUFSIZE), b""):
                stdin.write(chunk)
        else:
            for chunk in pack_data:
                stdin.write(chunk)


class Client:
    """Creates SSH sessions for endpoints.

    Holds configuration only; every session it creates is independent.
    """

    def __init__(
        self,
        vendor: Optional[SSHVendor] = None,
        allowed_hosts: Optional[Iterable[str]] = None,
        path_encoding: str = SSHSession.DEFAULT_ENCODING,
        connect_timeout: Optional[float] = None,
    ) -> None:
        """Initialize a Client.

        Args:
          vendor: SSH implementation, a ParamikoSSHVendor by default
          allowed_hosts: hosts sessions may be opened to; any host if None
          path_encoding: encoding of repository paths on the remote
          connect_timeout: seconds to wait for the TCP connection
        """
        if vendor is None:
            from .paramiko_vendor import ParamikoSSHVendor

            vendor = ParamikoSSHVendor()
        self.vendor = vendor
        self.allowed_hosts = (
            frozenset(h.lower() for h in allowed_hosts)
            if allowed_hosts is not None
            else None
        )
        self.path_encoding = path_encoding
        self.connect_timeout = connect_timeout

    def _check_endpoint(self, endpoint: Union[Endpoint, str]) -> Endpoint:
        if isinstance(endpoint, str):
            endpoint = Endpoint.parse(endpoint)
        if endpoint.protocol in NON_GIT_SCHEMES:
            raise UnsupportedVCS(f"only git is supported, not {endpoint.protocol}")
        if endpoint.protocol != "ssh":
            raise ValueError(f"unsupported transport protocol {endpoint.protocol!r}")
        if (
            self.allowed_hosts is not None
            and endpoint.host.lower() not in self.allowed_hosts
        ):
            raise UnsupportedRepositoryHost(
                f"unsupported repository host {endpoint.host!r}"
            )
        return endpoint

    def new_fetch_pack_session(
        self, endpoint: Union[Endpoint, str]
    ) -> FetchPackSession:
        """Create a session fetching from endpoint.

        Raises:
          UnsupportedVCS: if the endpoint names another version control system
          UnsupportedRepositoryHost: if the host is not allowed
          ValueError: if the address is invalid or not an ssh address
        """
        return FetchPackSession(
            self._check_endpoint(endpoint),
            self.vendor,
            path_encoding=self.path_encoding,
            connect_timeout=self.connect_timeout,
        )

    def new_send_pack_session(self, endpoint: Union[Endpoint, str]) -> SendPackSession:
        """Create a session sending to endpoint, checked as for fetching."""
        return SendPackSession(
            self._check_endpoint(endpoint),
            self.vendor,
            path_encoding=self.path_encoding,
            connect_timeout=self.connect_timeout,
        )
