import io
import socket
import threading

import pytest

from mrjsystem.fleck import FleckShell, connect_to_gotham, format_status, main
from mrjsystem.frames import FRAME_SIZE, FrameType, build_frame, parse_frame
from mrjsystem.models import FleckConfig, WorkerInfo


def _config(port=9000, user_dir="/nobody_here"):
    return FleckConfig(
        username="alice", user_dir=user_dir, gotham_ip="127.0.0.1", gotham_port=port
    )


def _shell(config=None, stdin_text=""):
    out = io.StringIO()
    shell = FleckShell(config or _config(), io.StringIO(stdin_text), out)
    return shell, out


def _recv_all(sock):
    data = bytearray()
    while len(data) < FRAME_SIZE:
        chunk = sock.recv(FRAME_SIZE - len(data))
        if not chunk:
            break
        data.extend(chunk)
    return bytes(data)


def _fake_gotham(reply_type):
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(("127.0.0.1", 0))
    listener.listen(1)
    received = {}

    def serve():
        conn, _ = listener.accept()
        with conn:
            received["frame"] = parse_frame(_recv_all(conn))
            conn.sendall(build_frame(reply_type, "OK"))
        listener.close()

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    return listener.getsockname()[1], received, thread


def test_format_status_idle():
    report = format_status(None, None, False, False)
    assert "Worker de Texto: No tiene distorsión activa" in report
    assert "Worker de Media: No tiene distorsión activa" in report


def test_format_status_finished_and_active():
    worker = WorkerInfo(ip="10.0.0.5", port=8100, worker_type="Media", status=40)
    report = format_status(None, worker, True, False)
    assert "Worker de Texto: [100%] Distorsión finalizada" in report
    assert "Worker de Media  [10.0.0.5:8100]: 40% completado" in report


def test_unknown_command():
    shell, out = _shell()
    assert shell.handle_command("dance now\n") is True
    assert out.getvalue() == "Unknown command\n"


def test_blank_line_prints_nothing():
    shell, out = _shell()
    assert shell.handle_command("   \n") is True
    assert out.getvalue() == ""


def test_list_without_argument_is_ko():
    shell, out = _shell()
    shell.handle_command("LIST")
    assert out.getvalue() == "Command KO\nUso: list <media|text>\n"


def test_list_with_extra_argument():
    shell, out = _shell()
    shell.handle_command("list text more")
    assert out.getvalue() == "Unknown command\n"


def test_list_text_files(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    user_dir = tmp_path / "users" / "bob"
    user_dir.mkdir(parents=True)
    (user_dir / "notes.txt").write_text("hi")
    (user_dir / "pic.png").write_bytes(b"x")
    shell, out = _shell(_config(user_dir="/bob"))
    shell.handle_command("list Text")
    lines = out.getvalue().splitlines()
    assert "notes.txt" in lines
    assert "pic.png" not in lines


def test_check_status_reports_finished():
    shell, out = _shell()
    shell.text_finished = True
    shell.handle_command("check status")
    text = out.getvalue()
    assert text.startswith("Command OK\n")
    assert "Worker de Texto: [100%] Distorsión finalizada" in text


def test_check_without_status_is_ko():
    shell, out = _shell()
    shell.handle_command("check")
    assert out.getvalue() == "Command KO\n"


def test_clear_all_resets_flags():
    shell, out = _shell()
    shell.text_finished = True
    shell.media_finished = True
    shell.handle_command("clear ALL")
    assert out.getvalue() == "Command OK\n"
    assert (shell.text_finished, shell.media_finished) == (False, False)


def test_distort_requires_connection():
    shell, out = _shell()
    shell.handle_command("distort a.txt 2")
    assert "Usa el comando 'connect' primero" in out.getvalue()


def test_distort_unknown_media_type():
    shell, out = _shell()
    ours, peer = socket.socketpair()
    shell.gotham_sock = ours
    try:
        shell.handle_command("distort file.xyz 2")
        assert "Cancelando: Media type no reconocido." in out.getvalue()
    finally:
        ours.close()
        peer.close()


def test_distort_without_available_workers():
    shell, out = _shell()
    ours, peer = socket.socketpair()
    shell.gotham_sock = ours
    try:
        peer.sendall(build_frame(FrameType.DISTORT_FLECK_GOTHAM, "DISTORT_KO"))
        shell.handle_command("distort notes.txt 3")
        sent = parse_frame(_recv_all(peer))
        assert sent.frame_type == FrameType.DISTORT_FLECK_GOTHAM
        assert sent.text() == "Text&notes.txt"
        assert "No hay Workers de Text disponibles." in out.getvalue()
    finally:
        ours.close()
        peer.close()


def test_logout_sends_disconnection():
    shell, out = _shell()
    ours, peer = socket.socketpair()
    shell.gotham_sock = ours
    try:
        assert shell.handle_command("logout") is False
        frame = parse_frame(_recv_all(peer))
        assert frame.frame_type == FrameType.DISCONNECTION
        assert frame.text() == "LOGOUT"
        assert shell.gotham_sock is None
    finally:
        peer.close()


def test_logout_with_argument_is_unknown():
    shell, out = _shell()
    assert shell.handle_command("logout now") is True
    assert out.getvalue() == "Unknown command\n"


def test_run_stops_at_logout():
    shell, out = _shell(stdin_text="list\nlogout\nlist text\n")
    shell.run()
    text = out.getvalue()
    assert "Command KO" in text
    assert "Thanks for using Mr. J System, see you soon, chaos lover :)" in text
    assert "Listando archivos" not in text


def test_connect_to_gotham_accepted():
    port, received, thread = _fake_gotham(FrameType.CONNECT_FLECK_GOTHAM)
    sock = connect_to_gotham(_config(port=port))
    try:
        thread.join(timeout=5)
        assert received["frame"].frame_type == FrameType.CONNECT_FLECK_GOTHAM
        assert received["frame"].text() == f"alice&127.0.0.1&{port}"
    finally:
        sock.close()


def test_connect_to_gotham_unexpected_reply():
    port, _received, thread = _fake_gotham(FrameType.ERROR)
    with pytest.raises(ConnectionError):
        connect_to_gotham(_config(port=port))
    thread.join(timeout=5)


def test_connect_to_gotham_invalid_ip():
    config = _config()
    config.gotham_ip = "not-an-ip"
    with pytest.raises(ConnectionError):
        connect_to_gotham(config)


def test_main_missing_config(tmp_path):
    assert main([str(tmp_path / "missing.dat")]) == 1