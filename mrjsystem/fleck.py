"""Fleck: the interactive client that asks Gotham for workers to distort files."""

from __future__ import annotations

import argparse
import socket
import sys
import threading
from typing import TextIO

from mrjsystem.distort_protocol import DistortError, request_worker
from mrjsystem.distort_session import DistortJob
from mrjsystem.frames import FrameError, FrameType
from mrjsystem.models import (
    DistortRequest,
    FleckConfig,
    WorkerInfo,
    read_fleck_config,
)
from mrjsystem.network import ConnectionClosed, receive_frame, send_frame
from mrjsystem.textutil import MEDIA, TEXT, file_type, list_files, strip_line_end

GOODBYE = "Thanks for using Mr. J System, see you soon, chaos lover :)"


def connect_to_gotham(config: FleckConfig) -> socket.socket:
    """Open a connection to Gotham and register this Fleck with it.

    Returns the connected socket. Raises ConnectionError when the address
    is invalid, the connection fails or Gotham does not accept it.
    """
    print("Iniciando conexión de Fleck con Gotham...")
    config.gotham_ip = strip_line_end(config.gotham_ip)
    try:
        socket.inet_pton(socket.AF_INET, config.gotham_ip)
    except OSError as exc:
        raise ConnectionError(
            f"Dirección IP de Gotham no válida: {config.gotham_ip!r}"
        ) from exc

    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.connect((config.gotham_ip, config.gotham_port))
        print("Conexión establecida con Gotham, enviando datos...")
        config.username = strip_line_end(config.username)
        data = f"{config.username}&{config.gotham_ip}&{config.gotham_port}"
        send_frame(sock, FrameType.CONNECT_FLECK_GOTHAM, data)
        reply = receive_frame(sock)
    except (OSError, FrameError) as exc:
        sock.close()
        raise ConnectionError(f"Error al conectar con Gotham: {exc}") from exc

    if reply.frame_type != FrameType.CONNECT_FLECK_GOTHAM:
        sock.close()
        raise ConnectionError(
            f"Respuesta desconocida de Gotham: , DATA={reply.text()}"
        )
    print("Conexión aceptada por Gotham.")
    return sock


def format_status(
    text_worker: WorkerInfo | None,
    media_worker: WorkerInfo | None,
    text_finished: bool,
    media_finished: bool,
) -> str:
    """The status report of the text and media distortions."""
    if text_worker is None:
        text_line = (
            "Worker de Texto: [100%] Distorsión finalizada"
            if text_finished
            else "Worker de Texto: No tiene distorsión activa"
        )
    else:
        text_line = (
            f"Worker de Texto [{text_worker.ip}:{text_worker.port}]: "
            f"{text_worker.status}% completado"
        )
    if media_worker is None:
        media_line = (
            "Worker de Media: [100%] Distorsión finalizada"
            if media_finished
            else "Worker de Media: No tiene distorsión activa"
        )
    else:
        media_line = (
            f"Worker de Media  [{media_worker.ip}:{media_worker.port}]: "
            f"{media_worker.status}% completado"
        )
    return (
        "\n========= ESTADO DE WORKERS =========\n\n"
        f"{text_line}\n{media_line}\n"
        "\n=====================================\n\n"
    )


class FleckShell:
    """The command loop: connect, list, distort, check status, clear all, logout."""

    def __init__(
        self,
        config: FleckConfig,
        stdin: TextIO | None = None,
        stdout: TextIO | None = None,
    ) -> None:
        self.config = config
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout
        self.gotham_sock: socket.socket | None = None
        self.text_finished = False
        self.media_finished = False
        self._jobs: dict[str, DistortJob] = {}
        self._lock = threading.Lock()

    def _say(self, text: str) -> None:
        self.stdout.write(text)
        self.stdout.flush()

    def _active_worker(self, media_type: str) -> WorkerInfo | None:
        with self._lock:
            job = self._jobs.get(media_type)
        return job.worker if job is not None else None

    def handle_command(self, line: str) -> bool:
        """Carry out one command line. Returns False once the user logs out."""
        words = line.split()
        if not words:
            return True
        command, args = words[0].lower(), words[1:]
        handler = {
            "connect": self._connect,
            "list": self._list,
            "distort": self._distort,
            "check": self._check,
            "clear": self._clear,
            "logout": self._logout,
        }.get(command)
        if handler is None:
            self._say("Unknown command\n")
            return True
        return handler(args)

    def run(self) -> None:
        """Read and carry out commands until logout or end of input."""
        while True:
            self._say("\n$ ")
            line = self.stdin.readline()
            if not line:
                break
            if not self.handle_command(line):
                break
        self._say("\nSaliendo del programa...\n")

    def _connect(self, args: list[str]) -> bool:
        if args:
            self._say("Unknown command\n")
            return True
        self._say("Command OK\n")
        if self.gotham_sock is not None:
            self._say("Ya estás conectado a Gotham.\n")
            return True
        try:
            self.gotham_sock = connect_to_gotham(self.config)
        except ConnectionError as exc:
            self._say(f"{exc}\nError al conectar Fleck con Gotham.\n")
            return True
        self._say("Conexión establecida con Gotham.\n")
        return True

    def _list(self, args: list[str]) -> bool:
        kind = args[0].lower() if args else None
        if kind not in ("media", "text"):
            self._say("Command KO\nUso: list <media|text>\n")
            return True
        if len(args) > 1:
            self._say("Unknown command\n")
            return True
        if kind == "media":
            self._say(
                f"Listando archivos multimedia en el directorio {self.config.user_dir}:\n"
            )
            extensions = (".wav", ".jpg", ".png")
        else:
            self._say(
                f"Listando archivos de texto en el directorio {self.config.user_dir}:\n"
            )
            extensions = (".txt",)
        for extension in extensions:
            try:
                names = list_files(self.config.user_dir, extension)
            except OSError as exc:
                self._say(f"Error abriendo el directorio: {exc}\n")
                continue
            for name in names:
                self._say(f"{name}\n")
        return True

    def _distort(self, args: list[str]) -> bool:
        if self.gotham_sock is None:
            self._say(
                "No estás conectado a Gotham. Usa el comando 'connect' primero.\n"
            )
            return True
        if len(args) != 2:
            self._say("Commando Incorrecto.\nUso: distort <filename> <factor>\n")
            return True
        filename, factor = args
        self._say("Command OK\n")

        media_type = file_type(filename)
        if media_type is None:
            self._say("Cancelando: Media type no reconocido.\n")
            return True
        if self._active_worker(media_type) is not None:
            self._say(f"Cancelando: Ya hay una distorsión '{media_type}' en curso.\n")
            return True

        try:
            worker = request_worker(self.gotham_sock, media_type, filename)
        except DistortError as exc:
            self._say(f"{exc}\nError solicitando distort a Gotham.\n")
            return True

        request = DistortRequest(
            username=self.config.username,
            user_dir=self.config.user_dir,
            filename=filename,
            distortion_factor=factor,
        )
        job = DistortJob(request, worker, self.gotham_sock, on_finished=self._job_finished)
        with self._lock:
            self._jobs[media_type] = job
        threading.Thread(target=self._run_job, args=(job,), daemon=True).start()
        return True

    @staticmethod
    def _run_job(job: DistortJob) -> None:
        try:
            job.run()
        except (DistortError, OSError) as exc:
            print(f"Error: {exc}", file=sys.stderr)

    def _job_finished(self, worker_type: str, succeeded: bool) -> None:
        with self._lock:
            self._jobs.pop(worker_type, None)
            if succeeded:
                if worker_type == MEDIA:
                    self.media_finished = True
                else:
                    self.text_finished = True

    def _check(self, args: list[str]) -> bool:
        if not args or args[0].lower() != "status":
            self._say("Command KO\n")
            return True
        if len(args) > 1:
            self._say("Unknown command\n")
            return True
        self._say("Command OK\n")
        self._say(
            format_status(
                self._active_worker(TEXT),
                self._active_worker(MEDIA),
                self.text_finished,
                self.media_finished,
            )
        )
        return True

    def _clear(self, args: list[str]) -> bool:
        if not args or args[0].lower() != "all":
            self._say("Command KO\n")
            return True
        if len(args) > 1:
            self._say("Unknown command\n")
            return True
        self._say("Command OK\n")
        with self._lock:
            self.text_finished = False
            self.media_finished = False
        return True

    def _logout(self, args: list[str]) -> bool:
        if args:
            self._say("Unknown command\n")
            return True
        self._say(f"{GOODBYE}\n")
        if self.gotham_sock is None:
            self._say("No estás conectado a Gotham.\n")
            return False
        try:
            send_frame(self.gotham_sock, FrameType.DISCONNECTION, "LOGOUT")
        except OSError as exc:
            self._say(f"Error enviando comando de logout a Gotham: {exc}\n")
        else:
            self._say("Desconexión enviada a Gotham.\n")
        self.gotham_sock.close()
        self.gotham_sock = None
        return False


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="fleck", description="Mr. J System client.")
    parser.add_argument("config_file", help="Fleck configuration file")
    args = parser.parse_args(argv)

    try:
        config = read_fleck_config(args.config_file)
    except (OSError, ValueError) as exc:
        print(f"Error leyendo la configuración: {exc}", file=sys.stderr)
        return 1

    print("\nFleck:")
    print(f"Nombre de usuario: {config.username}")
    print(f"Directorio de usuario: {config.user_dir}")
    print(f"Dirección IP de Gotham: {config.gotham_ip}")
    print(f"Puerto de Gotham: {config.gotham_port}")

    shell = FleckShell(config)
    try:
        shell.run()
    except KeyboardInterrupt:
        print("\nSaliendo del programa...")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())