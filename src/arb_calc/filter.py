"""Long-lived request/verdict filter.

Reads one JSON scenario per line from the input stream and writes one JSON
verdict per line to the output stream. The first bad record, arithmetic
overflow or I/O fault ends the process with exit code 1 after a diagnostic
on stderr. There is no skip-and-continue path: a malformed line means the
caller speaks a different protocol and must be fixed, and the supervisor is
expected to restart the filter. End of input exits with 0.
"""

import sys
from typing import BinaryIO, Iterator, Optional, TextIO

from .codec import decode_request, encode_verdict
from .errors import CalcError, TransportReadError, TransportWriteError
from .evaluator import evaluate
from .log import LOG, new_logger

EXIT_OK = 0
EXIT_FAILURE = 1


class FilterProcess:
    def __init__(self, stdin: BinaryIO, stdout: TextIO) -> None:
        self.stdin = stdin
        self.stdout = stdout
        self.records_in = 0
        self.records_out = 0
        self.line_number = 0

    def _lines(self) -> Iterator[str]:
        while True:
            try:
                raw = self.stdin.readline()
            except (OSError, ValueError) as exc:
                raise TransportReadError(f"cannot read request stream: {exc}") from exc
            if not raw:
                return
            self.line_number += 1
            try:
                text = raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise TransportReadError(f"stream did not contain valid UTF-8: {exc}") from exc
            if text.endswith("\n"):
                text = text[:-1]
                if text.endswith("\r"):
                    text = text[:-1]
            yield text

    def _emit(self, line: str) -> None:
        try:
            self.stdout.write(line + "\n")
            self.stdout.flush()
        except (OSError, ValueError) as exc:
            raise TransportWriteError(f"cannot write response: {exc}") from exc

    def handle_line(self, line: str) -> str:
        request = decode_request(line)
        verdict = evaluate(request)
        LOG.debug(
            "verdict profitable=%s profit=%s conservativeProfit=%s",
            verdict.profitable,
            verdict.profit,
            verdict.conservative_profit,
        )
        return encode_verdict(verdict)

    def serve(self) -> int:
        LOG.info("arb_calc filter started")
        try:
            for line in self._lines():
                if not line.strip():
                    continue
                self.records_in += 1
                self._emit(self.handle_line(line))
                self.records_out += 1
        except CalcError as exc:
            field = getattr(exc, "field", None)
            where = f" field {field}" if field else ""
            LOG.error("%s at line %d%s: %s", type(exc).__name__, self.line_number, where, exc)
            LOG.info("arb_calc filter aborted after %d records", self.records_out)
            return EXIT_FAILURE

        LOG.info("arb_calc filter finished: %d records in, %d out", self.records_in, self.records_out)
        return EXIT_OK


def main(stdin: Optional[BinaryIO] = None, stdout: Optional[TextIO] = None) -> None:
    new_logger()
    process = FilterProcess(
        stdin if stdin is not None else sys.stdin.buffer,
        stdout if stdout is not None else sys.stdout,
    )
    sys.exit(process.serve())


if __name__ == "__main__":
    main()
