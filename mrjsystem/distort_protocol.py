"""Fleck's side of the distortion protocol with Gotham and the workers."""

from __future__ import annotations

import socket

from mrjsystem.frames import CHECK_OK, OK_MSG, Frame, FrameError, FrameType
from mrjsystem.models import DistortRequest, WorkerInfo
from mrjsystem.network import ConnectionClosed, receive_frame, send_frame

DISTORT_KO = "DISTORT_KO"
MEDIA_KO = "MEDIA_KO"
CON_KO = "CON_KO"


class DistortError(RuntimeError):
    """A step of the distortion protocol failed or was refused."""


def send_distort_request(sock: socket.socket, filename: str, media_type: str) -> None:
    """Ask Gotham for a worker able to distort ``filename`` of ``media_type``."""
    send_frame(sock, FrameType.DISTORT_FLECK_GOTHAM, f"{media_type}&{filename}")
    print("Solicitud de distorsión enviada a Gotham.")


def receive_distort_reply(sock: socket.socket) -> Frame:
    """Receive Gotham's answer to a distortion request.

    The socket is closed, and ConnectionClosed raised, when Gotham has
    closed the connection.
    """
    try:
        return receive_frame(sock)
    except ConnectionClosed:
        print("Gotham ha cerrado la conexión.")
        sock.close()
        raise


def _tokens(text: str) -> list[str]:
    return [token for token in text.split("&") if token]


def parse_worker(frame: Frame, media_type: str) -> WorkerInfo:
    """Build the worker described by a ``<IP>&<port>`` payload."""
    tokens = _tokens(frame.text())
    if len(tokens) < 2:
        raise DistortError("Error: Formato de datos inválido.")
    ip, port_text = tokens[0], tokens[1]
    try:
        port = int(port_text)
    except ValueError as exc:
        raise DistortError(f"Error: puerto de Worker inválido {port_text!r}") from exc
    return WorkerInfo(ip=ip, port=port, worker_type=media_type)


def request_worker(sock: socket.socket, media_type: str, filename: str) -> WorkerInfo:
    """Request a worker from Gotham and return the one it assigns.

    Raises DistortError when no worker is available, the media type is not
    recognised or the reply is missing or unexpected.
    """
    send_distort_request(sock, filename, media_type)
    try:
        reply = receive_distort_reply(sock)
    except (ConnectionClosed, FrameError) as exc:
        raise DistortError(f"Error leyendo trama: {exc}") from exc

    if reply.frame_type != FrameType.DISTORT_FLECK_GOTHAM:
        raise DistortError("Error: El mensaje recibido de Gotham es inesperado.")

    text = reply.text()
    if text == DISTORT_KO:
        raise DistortError(f"No hay Workers de {media_type} disponibles.")
    if text == MEDIA_KO:
        raise DistortError(f"Media type '{media_type}' no reconocido.")
    return parse_worker(reply, media_type)


def connect_to_worker(worker: WorkerInfo) -> socket.socket:
    """Open a TCP connection to ``worker`` and keep it on ``worker.sock``."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.connect((worker.ip, worker.port))
    except OSError as exc:
        sock.close()
        raise DistortError(f"Error al conectar con Worker: {exc}") from exc
    worker.sock = sock
    return sock


def _require_socket(worker: WorkerInfo) -> socket.socket:
    if worker.sock is None:
        raise DistortError("Worker no conectado")
    return worker.sock


def _receive(sock: socket.socket) -> Frame:
    try:
        return receive_frame(sock)
    except (ConnectionClosed, FrameError) as exc:
        raise DistortError(f"Trama inválida recibida de Worker: {exc}") from exc


def send_start_distort(
    worker: WorkerInfo,
    request: DistortRequest,
    size: int | str,
    checksum: str,
    initial: bool = True,
) -> None:
    """Announce a file to the worker, as a new distortion or a resumed one.

    Raises DistortError when the worker refuses or does not answer.
    """
    sock = _require_socket(worker)
    frame_type = (
        FrameType.START_DISTORT_FLECK_WORKER if initial
        else FrameType.RESUME_DISTORT_FLECK_WORKER
    )
    data = (
        f"{request.username}&{request.filename}&{size}&{checksum}"
        f"&{request.distortion_factor}"
    )
    try:
        send_frame(sock, frame_type, data)
    except (OSError, FrameError) as exc:
        raise DistortError(f"Error enviando solicitud al Worker: {exc}") from exc

    reply = _receive(sock)
    if reply.frame_type != frame_type or reply.text() == CON_KO:
        raise DistortError("Worker ha rechazado la solicitud de distorsión.")
    print("Worker ha aceptado la solicitud de distorsión.")


def wait_file_confirmed(worker: WorkerInfo) -> None:
    """Wait for the worker to confirm the file's MD5, then acknowledge it."""
    sock = _require_socket(worker)
    reply = _receive(sock)
    if reply.frame_type != FrameType.END_DISTORT_FLECK_WORKER or reply.text() != CHECK_OK:
        raise DistortError(
            "Worker NO ha recibido el archivo correctamente (MD5 Invalido)."
        )
    print("Archivo enviado correctamente.")
    try:
        send_frame(sock, FrameType.END_DISTORT_FLECK_WORKER, OK_MSG)
    except OSError as exc:
        raise DistortError(f"Error enviando confirmación de MD5: {exc}") from exc


def receive_start_distort(sock: socket.socket) -> tuple[int, str]:
    """Receive the size and MD5 of the distorted file and acknowledge them.

    Raises ConnectionClosed when the worker has gone away and DistortError
    when the announcement is invalid.
    """
    try:
        frame = receive_frame(sock)
    except FrameError as exc:
        sock.close()
        raise DistortError(f"Trama inicial inválida: {exc}") from exc

    if frame.frame_type != FrameType.START_DISTORT_WORKER_FLECK:
        sock.close()
        raise DistortError("Trama inicial inválida")

    tokens = _tokens(frame.text())
    if len(tokens) < 2:
        sock.close()
        raise DistortError("Formato de datos trama distorsion inicial inválido")
    try:
        size = int(tokens[0])
    except ValueError as exc:
        sock.close()
        raise DistortError(f"Tamaño de archivo inválido {tokens[0]!r}") from exc
    checksum = tokens[1]

    try:
        send_frame(sock, FrameType.START_DISTORT_WORKER_FLECK, OK_MSG)
    except OSError as exc:
        sock.close()
        raise DistortError(f"Error enviando confirmación inicial: {exc}") from exc
    return size, checksum


def send_file_confirmed(sock: socket.socket) -> None:
    """Tell the worker the distorted file arrived intact and wait for its reply."""
    try:
        send_frame(sock, FrameType.END_DISTORT_FLECK_WORKER, CHECK_OK)
    except OSError as exc:
        raise DistortError(f"Error enviando confirmación de MD5: {exc}") from exc
    reply = _receive(sock)
    if reply.frame_type != FrameType.END_DISTORT_FLECK_WORKER or reply.text() == CON_KO:
        raise DistortError("Worker no ha confirmado la recepción.")