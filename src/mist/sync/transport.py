"""
Remote transport -- where the archive travels.

A single paramiko SSH session carries everything: ``test -f`` to ask
whether a file exists, SFTP to read it back, and one of two writers
to put bytes on the remote side.

Piped: ``dd of=<path>`` on the remote host, stdin fed from memory.
Staged: a local temporary copy shipped with ``rsync --progress``, for
large archives where watching the transfer matters.

Both writers leave byte-identical files behind.
"""

from __future__ import annotations

import logging
import shlex
import socket
import subprocess
import tempfile
from pathlib import Path
from typing import Optional, Protocol

import paramiko

from ..errors import RemoteConnectionError, TransportError

logger = logging.getLogger("mist.sync.transport")

DEFAULT_SSH_PORT = 22
CONNECT_TIMEOUT = 30
STAGED_COPY_PROGRAM = "rsync"


class RemoteTransport(Protocol):
    """What the sync engine needs from the remote side."""

    def exists(self, path: str) -> bool: ...

    def read(self, path: str) -> bytes: ...

    def write(self, data: bytes, path: str) -> bool: ...

    def close(self) -> None: ...


class RemoteWriter(Protocol):
    """One of the two strategies for putting bytes on the remote host."""

    def write(self, session: RemoteSession, data: bytes, path: str) -> bool: ...


def parse_address(address: str) -> tuple[Optional[str], str, Optional[int]]:
    """Split ``[user@]host[:port]`` into its parts.

    Raises:
        RemoteConnectionError: If the host part is empty or the port is not a number.
    """
    user: Optional[str] = None
    hostport = address
    if "@" in address:
        user, hostport = address.rsplit("@", 1)
        user = user or None

    port: Optional[int] = None
    host = hostport
    if hostport.count(":") == 1:
        host, port_str = hostport.split(":")
        try:
            port = int(port_str)
        except ValueError as exc:
            raise RemoteConnectionError(f"Invalid port in ssh address {address!r}") from exc

    if not host:
        raise RemoteConnectionError(f"Invalid ssh address {address!r}")
    return user, host, port


class RemoteSession:
    """An authenticated SSH connection to the profile's remote host.

    Unknown host keys are rejected, like ``ssh -o StrictHostKeyChecking=yes``.
    Use as a context manager so the connection is closed on every exit path.
    """

    def __init__(self, address: str, client: paramiko.SSHClient):
        self.address = address
        self.client = client
        self._sftp: Optional[paramiko.SFTPClient] = None

    @classmethod
    def connect(
        cls, address: str, ssh_config_path: Optional[Path] = None
    ) -> RemoteSession:
        """Open a session to ``[user@]host[:port]``.

        Host aliases, user, port and identity files from ``~/.ssh/config``
        are honoured; explicit parts of ``address`` win over them.

        Raises:
            RemoteConnectionError: If the host cannot be reached or
                authentication fails.
        """
        user, host, port = parse_address(address)

        ssh_config_path = (ssh_config_path or Path("~/.ssh/config")).expanduser()
        host_config: dict = {}
        if ssh_config_path.is_file():
            host_config = paramiko.SSHConfig.from_path(str(ssh_config_path)).lookup(host)

        kwargs: dict = {
            "hostname": host_config.get("hostname", host),
            "port": port or int(host_config.get("port", DEFAULT_SSH_PORT)),
            "username": user or host_config.get("user"),
            "timeout": CONNECT_TIMEOUT,
            "allow_agent": True,
            "look_for_keys": True,
        }
        if host_config.get("identityfile"):
            kwargs["key_filename"] = host_config["identityfile"]

        client = paramiko.SSHClient()
        client.load_system_host_keys()
        client.set_missing_host_key_policy(paramiko.RejectPolicy())
        try:
            client.connect(**kwargs)
        except (paramiko.SSHException, socket.error) as exc:
            client.close()
            raise RemoteConnectionError(f"Cannot connect to {address}: {exc}") from exc

        logger.info("Connected to %s", address)
        return cls(address, client)

    @property
    def sftp(self) -> paramiko.SFTPClient:
        if self._sftp is None:
            try:
                self._sftp = self.client.open_sftp()
            except paramiko.SSHException as exc:
                raise TransportError(f"SFTP unavailable on {self.address}: {exc}") from exc
        return self._sftp

    def close(self) -> None:
        """Close the SFTP channel and the SSH connection."""
        if self._sftp is not None:
            self._sftp.close()
            self._sftp = None
        self.client.close()
        logger.debug("Closed session to %s", self.address)

    def __enter__(self) -> RemoteSession:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class PipedWriter:
    """Stream bytes into ``dd`` on the remote host."""

    def write(self, session: RemoteSession, data: bytes, path: str) -> bool:
        try:
            stdin, stdout, _stderr = session.client.exec_command(f"dd of={shlex.quote(path)}")
            stdin.write(data)
            stdin.flush()
            stdin.channel.shutdown_write()
            status = stdout.channel.recv_exit_status()
        except (paramiko.SSHException, OSError) as exc:
            # dd exiting early closes the channel under a pending write
            logger.warning("dd: %s to remote host failed: %s", path, exc)
            return False

        if status == 0:
            logger.info("dd: %s to remote host", path)
            return True
        if status == -1:
            logger.warning("dd %s on remote host: no exit code", path)
        else:
            logger.warning("dd: %s to remote host failed (exit %d)", path, status)
        return False


class StagedCopyWriter:
    """Write a local temporary copy and ship it with rsync."""

    def __init__(self, program: str = STAGED_COPY_PROGRAM):
        self.program = program

    def write(self, session: RemoteSession, data: bytes, path: str) -> bool:
        with tempfile.TemporaryDirectory(prefix="mist-") as tmp:
            local = Path(tmp) / Path(path).name
            local.write_bytes(data)
            user, host, port = parse_address(session.address)
            cmd = [self.program, "--progress"]
            if port:
                cmd.extend(["-e", f"ssh -p {port}"])
            target = f"{user}@{host}" if user else host
            cmd.extend([str(local), f"{target}:{path}"])
            try:
                result = subprocess.run(cmd, check=False)
            except FileNotFoundError:
                logger.warning("%s not found, %s was not written", self.program, path)
                return False
            finally:
                local.unlink(missing_ok=True)

        if result.returncode != 0:
            logger.warning(
                "%s: %s to remote host failed (exit %d)", self.program, path, result.returncode
            )
            return False
        logger.info("%s: %s to remote host", self.program, path)
        return True


class SshTransport:
    """RemoteTransport over a RemoteSession with a chosen writer."""

    def __init__(self, session: RemoteSession, writer: Optional[RemoteWriter] = None):
        self.session = session
        self.writer = writer or PipedWriter()

    def exists(self, path: str) -> bool:
        """Ask the remote host whether ``path`` is a regular file.

        Raises:
            TransportError: If the command cannot be run or ``test``
                answers with anything but 0 or 1.
        """
        try:
            _stdin, stdout, stderr = self.session.client.exec_command(
                f"test -f {shlex.quote(path)}"
            )
            status = stdout.channel.recv_exit_status()
            if status in (0, 1):
                return status == 0
            err = stderr.read().decode("utf-8", errors="replace").strip()
        except (paramiko.SSHException, OSError) as exc:
            raise TransportError(f"Remote 'test -f {path}' failed: {exc}") from exc

        if status == -1:
            raise TransportError(f"Remote 'test -f {path}': no exit code")
        raise TransportError(f"Remote 'test -f {path}' exited {status}: {err}")

    def read(self, path: str) -> bytes:
        """Read a whole remote file into memory.

        Raises:
            TransportError: If the file is missing or cannot be read.
        """
        try:
            with self.session.sftp.open(path, "rb") as f:
                f.prefetch()
                data = f.read()
        except (OSError, paramiko.SSHException) as exc:
            raise TransportError(f"Cannot read remote {path}: {exc}") from exc
        logger.debug("Read %d bytes from remote %s", len(data), path)
        return data

    def write(self, data: bytes, path: str) -> bool:
        """Write bytes to a remote file. Returns False on a soft failure."""
        return self.writer.write(self.session, data, path)

    def close(self) -> None:
        self.session.close()
