"""A complete distortion job: send a file to a worker and receive it back distorted."""

from __future__ import annotations

import socket
import time
from typing import BinaryIO, Callable

from mrjsystem.distort_protocol import (
    DistortError,
    connect_to_worker,
    receive_start_distort,
    request_worker,
    send_file_confirmed,
    send_start_distort,
    wait_file_confirmed,
)
from mrjsystem.files import file_size, md5sum
from mrjsystem.frames import (
    CHECK_KO,
    MAX_DATA_LENGTH,
    OK_MSG,
    Frame,
    FrameError,
    FrameType,
)
from mrjsystem.models import DistortRequest, WorkerInfo
from mrjsystem.network import receive_frame, send_frame

RETRY_DELAY = 8.0

FinishedCallback = Callable[[str, bool], None]


class DistortJob:
    """Drives one distortion from start to end, replacing workers that go away.

    ``on_finished`` is called once the job ends, with the worker type and
    whether the distortion succeeded.
    """

    def __init__(
        self,
        request: DistortRequest,
        worker: WorkerInfo,
        gotham_sock: socket.socket,
        on_finished: FinishedCallback | None = None,
        retry_delay: float = RETRY_DELAY,
    ) -> None:
        self.request = request
        self.worker = worker
        self.gotham_sock = gotham_sock
        self.on_finished = on_finished
        self.retry_delay = retry_delay
        self._size = 0
        self._checksum = ""

    def run(self) -> None:
        """Carry out the distortion. Raises DistortError when it fails."""
        succeeded = False
        try:
            self._distort()
            succeeded = True
        finally:
            self._close_worker()
            if self.on_finished is not None:
                self.on_finished(self.worker.worker_type, succeeded)

    def recover_worker(self) -> WorkerInfo:
        """Replace a worker that went away with a new one assigned by Gotham.

        The new worker is connected and told to resume the distortion.
        Raises DistortError when no worker is available or it refuses.
        """
        print("Cierre de conexión de Worker, buscando nuevo Worker disponible...")
        time.sleep(self.retry_delay)
        worker_type = self.worker.worker_type
        self._close_worker()
        try:
            worker = request_worker(self.gotham_sock, worker_type, self.request.filename)
        except DistortError as exc:
            raise DistortError(
                "Error: Distorsión cancelada (No hay Workers disponibles)."
            ) from exc
        self.worker = worker
        connect_to_worker(worker)
        send_start_distort(worker, self.request, self._size, self._checksum, initial=False)
        print("Success: Nuevo Worker encontrado.")
        return worker

    def _distort(self) -> None:
        connect_to_worker(self.worker)
        path = self.request.file_path()
        try:
            self._size = file_size(path)
            self._checksum = md5sum(path)
        except OSError as exc:
            raise DistortError(f"Error leyendo el archivo {path}: {exc}") from exc

        send_start_distort(self.worker, self.request, self._size, self._checksum, initial=True)

        try:
            handle = open(path, "rb")
        except OSError as exc:
            raise DistortError(f"Error al abrir el archivo {path}: {exc}") from exc
        with handle:
            self._send_file(handle)

        wait_file_confirmed(self.worker)

        size, checksum = self._receive_announcement()
        self._receive_file(size, checksum)

        self.worker.status = 100
        print("Success: Archivo distorsionado correctamente y conexión cerrada con Worker")

    def _sock(self) -> socket.socket:
        if self.worker.sock is None:
            raise DistortError("Worker no conectado")
        return self.worker.sock

    def _send(self, frame_type: int, data: bytes | str) -> None:
        try:
            send_frame(self._sock(), frame_type, data)
        except OSError as exc:
            raise DistortError(f"Error al enviar trama al Worker: {exc}") from exc

    def _send_file(self, handle: BinaryIO) -> None:
        self.worker.status = 0
        sent = 0
        for chunk in iter(lambda: handle.read(MAX_DATA_LENGTH), b""):
            reply = self._send_chunk(chunk)
            if reply.frame_type != FrameType.FILE_DATA or reply.text() != OK_MSG:
                raise DistortError("Error: Trama de Worker inesperada (se esperaba OK_MSG)")
            sent += len(chunk)
            self.worker.status = sent * 100 // (self._size * 2)

    def _send_chunk(self, chunk: bytes) -> Frame:
        while True:
            self._send(FrameType.FILE_DATA, chunk)
            try:
                return receive_frame(self._sock())
            except FrameError as exc:
                raise DistortError(f"Trama inválida recibida de Worker: {exc}") from exc
            except OSError:
                self.recover_worker()

    def _receive_announcement(self) -> tuple[int, str]:
        try:
            return receive_start_distort(self._sock())
        except OSError:
            pass
        return self._restart_announcement()

    def _restart_announcement(self) -> tuple[int, str]:
        self.recover_worker()
        try:
            return receive_start_distort(self._sock())
        except OSError as exc:
            raise DistortError(
                f"Error al recibir trama inicial de distorsión de vuelta: {exc}"
            ) from exc

    def _receive_file(self, size: int, checksum: str) -> None:
        path = self.request.distorted_path()
        print("Recibiendo archivo distorsionado...")
        try:
            out = open(path, "wb")
        except OSError as exc:
            raise DistortError(f"Error al crear archivo distorsionado: {exc}") from exc

        with out:
            received = 0
            while received < size:
                try:
                    frame = receive_frame(self._sock())
                except FrameError as exc:
                    raise DistortError(
                        f"Trama de datos distorsionados inválida: {exc}"
                    ) from exc
                except OSError:
                    size, checksum = self._restart_announcement()
                    continue
                if frame.frame_type != FrameType.FILE_DATA:
                    raise DistortError("Trama de datos distorsionados inválida")
                out.write(frame.data)
                self._send(FrameType.FILE_DATA, OK_MSG)
                received += frame.data_length
                self.worker.status = 50 + received * 50 // size

        try:
            calculated = md5sum(path)
        except OSError:
            calculated = None
        if calculated != checksum:
            try:
                send_frame(self._sock(), FrameType.END_DISTORT_FLECK_WORKER, CHECK_KO)
                print("Enviado: MD5 del archivo recibido no coincide con el esperado")
            except OSError:
                pass
            raise DistortError("MD5 del archivo recibido no coincide con el esperado")

        send_file_confirmed(self._sock())

    def _close_worker(self) -> None:
        if self.worker.sock is not None:
            self.worker.sock.close()
            self.worker.sock = None