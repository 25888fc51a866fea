"""TCP server, frame transport and heartbeat loops."""

from __future__ import annotations

import socket
import sys
import time

from mrjsystem.frames import (
    FRAME_SIZE,
    HEARTBEAT_INTERVAL,
    HEARTBEAT_MSG,
    FrameError,
    Frame,
    FrameType,
    build_frame,
    parse_frame,
)


class ConnectionClosed(ConnectionError):
    """The peer closed the connection before a whole frame arrived."""


class Server:
    """A listening TCP server bound to an IPv4 address and port."""

    def __init__(self, ip_addr: str, port: int, max_connections: int) -> None:
        self.max_connections = max_connections
        self._sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self._sock.bind((ip_addr, port))
        except OSError:
            self._sock.close()
            raise
        self.ip_addr, self.port = self._sock.getsockname()[:2]
        self._closed = False

    def start(self) -> None:
        """Start listening for incoming connections."""
        self._sock.listen(self.max_connections)
        print(f"Servidor escuchando en el puerto {self.port}..")

    def accept(self) -> socket.socket:
        """Wait for and return the next client connection."""
        connection, _address = self._sock.accept()
        return connection

    def close(self) -> None:
        """Close the listening socket."""
        if not self._closed:
            self._sock.close()
            self._closed = True
            print("Servidor cerrado.")

    def __enter__(self) -> "Server":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def send_frame(sock: socket.socket, frame_type: int, data: bytes | str = b"") -> None:
    """Build a frame and send all of it over ``sock``."""
    sock.sendall(build_frame(frame_type, data))


def receive_frame(sock: socket.socket) -> Frame:
    """Receive one whole frame from ``sock`` and validate it.

    Raises ConnectionClosed when the peer closes the connection and
    FrameError when the frame is invalid.
    """
    chunks = bytearray()
    while len(chunks) < FRAME_SIZE:
        chunk = sock.recv(FRAME_SIZE - len(chunks))
        if not chunk:
            raise ConnectionClosed("connection closed by peer")
        chunks.extend(chunk)
    return parse_frame(bytes(chunks))


def send_heartbeats(sock: socket.socket, interval: float = HEARTBEAT_INTERVAL) -> None:
    """Send heartbeats to a client every ``interval`` seconds.

    Returns when the client closes the connection, announces a
    disconnection or an error occurs.
    """
    while True:
        try:
            send_frame(sock, FrameType.HEARTBEAT, HEARTBEAT_MSG)
        except OSError as exc:
            print(f"Error enviando heartbeat: {exc}", file=sys.stderr)
            sock.close()
            return

        try:
            frame = receive_frame(sock)
        except ConnectionClosed:
            print("El cliente ha cerrado la conexión..")
            return
        except FrameError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            frame = None
        except OSError as exc:
            print(f"Error leyendo respuesta del cliente: {exc}", file=sys.stderr)
            return

        if frame is not None and frame.frame_type == FrameType.DISCONNECTION:
            print("El cliente ha cerrado la conexión...")
            return

        time.sleep(interval)


def answer_heartbeats(sock: socket.socket) -> None:
    """Answer every heartbeat received on ``sock`` until the server goes away.

    The socket is closed when the loop ends.
    """
    while True:
        try:
            frame = receive_frame(sock)
        except ConnectionClosed:
            print("El servidor ha cerrado la conexión.")
            sock.close()
            return
        except FrameError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            continue
        except OSError as exc:
            print(f"Error leyendo mensaje del servidor: {exc}", file=sys.stderr)
            sock.close()
            return

        if frame.frame_type == FrameType.HEARTBEAT:
            try:
                send_frame(sock, FrameType.HEARTBEAT, b"")
            except OSError as exc:
                print(f"Error enviando respuesta al servidor: {exc}", file=sys.stderr)
                sock.close()
                return