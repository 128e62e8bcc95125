import io
import json
import os
import subprocess
import sys
import unittest

from arb_calc.filter import EXIT_FAILURE, EXIT_OK, FilterProcess

from tests.helpers import FILTER_COMMAND, SRC_DIR, request_line


class _BrokenReader(io.BytesIO):
    def readline(self, *args):  # type: ignore[override]
        raise OSError("stream fault")


class _BrokenWriter(io.StringIO):
    def write(self, s):  # type: ignore[override]
        raise BrokenPipeError("closed")


class FilterProcessTests(unittest.TestCase):
    def run_filter(self, data: bytes):
        stdout = io.StringIO()
        process = FilterProcess(io.BytesIO(data), stdout)
        with self.assertLogs("arb_calc", level="DEBUG") as logs:
            code = process.serve()
        return code, stdout.getvalue(), logs.output

    def test_profitable_scenario(self) -> None:
        code, out, _ = self.run_filter((request_line() + "\n").encode())
        self.assertEqual(code, EXIT_OK)
        self.assertEqual(out, '{"profitable":true,"profit":"90","conservativeProfit":"40"}\n')

    def test_unprofitable_scenario(self) -> None:
        code, out, _ = self.run_filter((request_line(minProfit="41") + "\n").encode())
        self.assertEqual(code, EXIT_OK)
        self.assertEqual(json.loads(out)["profitable"], False)

    def test_blank_lines_are_skipped_and_order_is_kept(self) -> None:
        data = "\n".join([request_line(minProfit="40"), "   ", "", request_line(minProfit="41")]) + "\n"
        code, out, _ = self.run_filter(data.encode())
        self.assertEqual(code, EXIT_OK)
        lines = out.splitlines()
        self.assertEqual(len(lines), 2)
        self.assertEqual([json.loads(line)["profitable"] for line in lines], [True, False])

    def test_crlf_and_missing_final_newline(self) -> None:
        data = (request_line() + "\r\n" + request_line(minProfit="41")).encode()
        code, out, _ = self.run_filter(data)
        self.assertEqual(code, EXIT_OK)
        self.assertEqual(len(out.splitlines()), 2)

    def test_empty_input_exits_cleanly(self) -> None:
        code, out, _ = self.run_filter(b"")
        self.assertEqual(code, EXIT_OK)
        self.assertEqual(out, "")

    def test_decode_error_stops_without_output_for_bad_line(self) -> None:
        data = "\n".join([request_line(), request_line(amountIn="abc"), request_line()]) + "\n"
        code, out, logs = self.run_filter(data.encode())
        self.assertEqual(code, EXIT_FAILURE)
        self.assertEqual(len(out.splitlines()), 1)
        errors = [line for line in logs if line.startswith("ERROR")]
        self.assertEqual(len(errors), 1)
        self.assertIn("DecodeError at line 2 field amountIn", errors[0])

    def test_invalid_utf8_is_a_read_error(self) -> None:
        code, out, logs = self.run_filter(b"\xff\xfe\n")
        self.assertEqual(code, EXIT_FAILURE)
        self.assertEqual(out, "")
        self.assertTrue(any("TransportReadError" in line for line in logs))

    def test_stream_fault_is_a_read_error(self) -> None:
        process = FilterProcess(_BrokenReader(), io.StringIO())
        with self.assertLogs("arb_calc", level="ERROR") as logs:
            self.assertEqual(process.serve(), EXIT_FAILURE)
        self.assertIn("TransportReadError", logs.output[0])

    def test_write_failure_is_fatal(self) -> None:
        process = FilterProcess(io.BytesIO((request_line() + "\n").encode()), _BrokenWriter())
        with self.assertLogs("arb_calc", level="ERROR") as logs:
            self.assertEqual(process.serve(), EXIT_FAILURE)
        self.assertIn("TransportWriteError", logs.output[0])

    def test_hostile_json_is_a_logged_decode_error(self) -> None:
        for data in (b"[" * 200000 + b"\n", (request_line()[:-1] + ', "extra": ' + "1" * 5000 + "}\n").encode()):
            code, out, logs = self.run_filter(data)
            self.assertEqual(code, EXIT_FAILURE)
            self.assertEqual(out, "")
            self.assertTrue(any("DecodeError at line 1" in line for line in logs))

    def test_overflow_is_fatal(self) -> None:
        data = (request_line(quote2Out=str(2**127 - 1), amountIn="-1") + "\n").encode()
        code, out, logs = self.run_filter(data)
        self.assertEqual(code, EXIT_FAILURE)
        self.assertEqual(out, "")
        self.assertTrue(any("IntegerOverflowError" in line for line in logs))


class FilterSubprocessTests(unittest.TestCase):
    def run_process(self, data: str) -> subprocess.CompletedProcess:
        return subprocess.run(FILTER_COMMAND, input=data.encode(), capture_output=True, timeout=30)

    def test_end_to_end_stream(self) -> None:
        result = self.run_process(request_line() + "\n\n" + request_line(minProfit="41") + "\n")
        self.assertEqual(result.returncode, 0)
        self.assertEqual(
            result.stdout.decode().splitlines(),
            [
                '{"profitable":true,"profit":"90","conservativeProfit":"40"}',
                '{"profitable":false,"profit":"90","conservativeProfit":"40"}',
            ],
        )

    def test_module_entry_point(self) -> None:
        env = dict(os.environ)
        env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(SRC_DIR), env.get("PYTHONPATH")]))
        result = subprocess.run(
            [sys.executable, "-m", "arb_calc"],
            input=(request_line() + "\n").encode(),
            capture_output=True,
            env=env,
            timeout=30,
        )
        self.assertEqual(result.returncode, 0)
        self.assertEqual(result.stdout.decode(), '{"profitable":true,"profit":"90","conservativeProfit":"40"}\n')

    def test_end_to_end_bad_record(self) -> None:
        result = self.run_process(request_line(amountIn="abc") + "\n")
        self.assertNotEqual(result.returncode, 0)
        self.assertEqual(result.stdout, b"")
        self.assertIn(b"amountIn", result.stderr)


if __name__ == "__main__":
    unittest.main()
