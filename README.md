# mrjsystem

Tools for a file distortion network. In this network, clients send files to
worker servers and receive distorted versions back. A coordinating server
called Gotham assigns the workers. Every message on the wire is a fixed
256-byte frame:

| Bytes    | Field                                          |
|----------|------------------------------------------------|
| 0        | frame type                                     |
| 1–2      | data length (big-endian, at most 247)          |
| 3–249    | data, zero padded                              |
| 250–251  | checksum: 16-bit sum of all other bytes        |
| 252–255  | Unix timestamp (big-endian)                    |

## Installation

```
pip install .
```

The package depends only on the standard library.

## Commands

### `fleck`

`fleck` is an interactive client. Start it with a configuration file:

```
fleck fleck.conf
```

The configuration file has four lines:

1. The user name. Any `&` in it is removed.
2. The user directory. It is joined directly after `users`, so `/alice` means `users/alice`.
3. The IP address of Gotham.
4. The port of Gotham.

For example:

```
alice
/alice
127.0.0.1
8080
```

The shell reads one command per line. Command names are case-insensitive.

- `connect` connects to Gotham and registers the user.
- `list media` lists the `.wav`, `.jpg` and `.png` files in the user directory.
- `list text` lists the `.txt` files in the user directory.
- `distort <filename> <factor>` asks Gotham for a worker of the file's type:
  - Media means `.png`, `.jpg`, `.jpeg`, `.wav` and `.mp3`.
  - Text means `.txt`, `.md`, `.log` and `.csv`.

  The transfer runs in the background. Only one distortion of each type can run at a time. If a worker goes away during the transfer, Fleck asks Gotham for another worker and resumes with it.
- `check status` shows how far the active text and media distortions have got.
- `clear all` forgets which distortions have finished.
- `logout` tells Gotham that the client is disconnecting and leaves the shell.

The shell also stops at end of input.

Fleck checks the MD5 sum of the distorted file. It writes the file next to the original as `<filename>_distorted`.

### `arkham`

`arkham` reads 256-byte frames from standard input. For each valid frame it appends a line of the form `[<local time>] <data>` to a log file. Invalid frames are skipped.

```
arkham < frames.bin
arkham --log my-log.txt < frames.bin
```

The default log file is `arkham/logs.txt`.

## Library use

```python
from mrjsystem.frames import FrameType, build_frame, parse_frame

raw = build_frame(FrameType.HEARTBEAT, b"HEARTBEAT")
frame = parse_frame(raw)  # raises FrameError on a bad size, checksum or length
print(frame.frame_type, frame.text(), frame.ctime())
```

The other modules are:

- `mrjsystem.network`
  - `Server` is a listening TCP socket. It is a context manager and has `start`, `accept` and `close`.
  - `send_frame` and `receive_frame` exchange whole frames over a connected socket. `receive_frame` raises `ConnectionClosed` when the peer goes away.
  - `send_heartbeats` and `answer_heartbeats` run the heartbeat loops.
- `mrjsystem.distort_protocol` holds the individual steps of the distortion exchange with Gotham and the workers. Those steps raise `DistortError`.
- `mrjsystem.distort_session.DistortJob` runs one whole distortion.
- `mrjsystem.files` provides `file_size` and `md5sum`.
- `mrjsystem.textutil` provides file-name classification and directory listing helpers.

## What this package does not include

This package contains the client side and the log writer only. It has no Gotham coordinator and no worker servers. It does not carry out the distortion itself. To use `fleck`, a Gotham server and workers that speak the frame protocol above must already be running.

## Tests

```
pip install .[test]
pytest
```