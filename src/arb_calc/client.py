import os
import select
import subprocess
import time
from typing import IO, Dict, List, Optional, Sequence, Tuple

from .codec import FEE_KEYS, decode_verdict, encode_request
from .config import ClientConfig
from .errors import DecodeError, EngineError
from .evaluator import evaluate
from .log import LOG
from .models import ScenarioRequest, Verdict

# bytes of child stderr kept for diagnostics
STDERR_TAIL = 4096


def _pipe(stream: Optional[IO[bytes]], name: str) -> IO[bytes]:
    if stream is None:
        raise EngineError(f"engine {name} is not a pipe")
    return stream


class EngineClient:
    """Talks to a filter subprocess over its stdin/stdout, one line each way.

    The child's stderr is drained while waiting for answers so a chatty
    engine cannot stall on a full pipe; only the last few KiB are kept.
    """

    def __init__(self, command: Sequence[str], timeout: float = 5.0, fee_key: str = FEE_KEYS[0]) -> None:
        self.command: Tuple[str, ...] = tuple(command)
        self.timeout = timeout
        self.fee_key = fee_key
        self._proc: Optional[subprocess.Popen] = None
        self._buffer = b""
        self._stderr_tail = b""
        self._stderr_open = False
        self.closed = False

    def __enter__(self) -> "EngineClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _start(self) -> subprocess.Popen:
        if self._proc is None:
            try:
                self._proc = subprocess.Popen(
                    list(self.command),
                    stdin=subprocess.PIPE,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                )
            except OSError as exc:
                self.closed = True
                raise EngineError(f"cannot start engine {self.command[0]!r}: {exc}") from exc
            self._stderr_open = True
        return self._proc

    def _drain_stderr(self, fd: int) -> None:
        chunk = os.read(fd, 65536)
        if not chunk:
            self._stderr_open = False
            return
        self._stderr_tail = (self._stderr_tail + chunk)[-STDERR_TAIL:]

    def _read_line(self, proc: subprocess.Popen) -> bytes:
        out_fd = _pipe(proc.stdout, "stdout").fileno()
        err_fd = _pipe(proc.stderr, "stderr").fileno()
        deadline = time.monotonic() + self.timeout
        while b"\n" not in self._buffer:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise EngineError(f"engine did not answer within {self.timeout}s")
            watched: List[int] = [out_fd, err_fd] if self._stderr_open else [out_fd]
            ready, _, _ = select.select(watched, [], [], remaining)
            if err_fd in ready:
                self._drain_stderr(err_fd)
            if out_fd not in ready:
                continue
            chunk = os.read(out_fd, 65536)
            if not chunk:
                raise EngineError(f"engine exited{self._stderr_suffix(proc)}")
            self._buffer += chunk
        line, _, self._buffer = self._buffer.partition(b"\n")
        return line

    def _stderr_suffix(self, proc: subprocess.Popen) -> str:
        try:
            proc.wait(timeout=self.timeout)
        except subprocess.TimeoutExpired:
            return ""
        if self._stderr_open and proc.stderr is not None:
            self._stderr_tail = (self._stderr_tail + proc.stderr.read())[-STDERR_TAIL:]
            self._stderr_open = False
        text = self._stderr_tail.decode("utf-8", "replace").strip()
        return f" with code {proc.returncode}: {text}" if text else f" with code {proc.returncode}"

    def request(self, scenario: ScenarioRequest) -> Verdict:
        if self.closed:
            raise EngineError("engine client is closed")
        proc = self._start()
        try:
            stdin = _pipe(proc.stdin, "stdin")
            stdin.write((encode_request(scenario, fee_key=self.fee_key) + "\n").encode("utf-8"))
            stdin.flush()
            line = self._read_line(proc)
            return decode_verdict(line.decode("utf-8"))
        except (OSError, UnicodeDecodeError) as exc:
            self.close()
            raise EngineError(f"engine I/O failed: {exc}") from exc
        except DecodeError as exc:
            self.close()
            raise EngineError(f"engine returned an invalid verdict: {exc}") from exc
        except EngineError:
            self.close()
            raise

    def close(self) -> None:
        self.closed = True
        proc, self._proc = self._proc, None
        if proc is None:
            return
        for stream in (proc.stdin, proc.stdout, proc.stderr):
            if stream is not None:
                try:
                    stream.close()
                except OSError:
                    pass
        if proc.poll() is None:
            proc.terminate()
            try:
                proc.wait(timeout=self.timeout)
            except subprocess.TimeoutExpired:
                proc.kill()
                proc.wait()


_ENGINES: Dict[Tuple[Tuple[str, ...], float], EngineClient] = {}


def engine_client(command: Sequence[str], timeout: float = 5.0) -> EngineClient:
    key = (tuple(command), timeout)
    client = _ENGINES.get(key)
    if client is None or client.closed:
        client = EngineClient(key[0], timeout=timeout)
        _ENGINES[key] = client
    return client


def close_engines() -> None:
    while _ENGINES:
        _, client = _ENGINES.popitem()
        client.close()


def decide(request: ScenarioRequest, config: ClientConfig) -> Verdict:
    if not config.use_engine:
        return evaluate(request)
    try:
        return engine_client(config.engine_command, timeout=config.timeout).request(request)
    except EngineError as exc:
        LOG.warning("engine %s failed, evaluating in-process: %s", config.engine_command[0], exc)
        return evaluate(request)
