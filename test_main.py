import contextlib
import io
import os
import tempfile
import unittest

from openpyxl import load_workbook

from main import main


def run(*argv):
    out, err = io.StringIO(), io.StringIO()
    with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
        code = main(list(argv))
    return code, out.getvalue(), err.getvalue()


class TestCommandLine(unittest.TestCase):
    def test_wire(self):
        code, out, _ = run("wire", "16", "--voltage", "120", "--length", "50")
        self.assertEqual(code, 0)
        self.assertIn("12 AWG", out)
        self.assertIn("Upsized from 14", out)

    def test_wire_metric_length(self):
        # 15.24 m = 50 ft
        code, out, _ = run("wire", "16", "--voltage", "120", "--length", "15.24", "--length-unit", "m")
        self.assertEqual(code, 0)
        self.assertIn("12 AWG", out)

    def test_load_with_presets(self):
        code, out, _ = run("load", "--area", "3000", "--preset", "0", "--preset", "1", "--existing", "100")
        self.assertEqual(code, 0)
        self.assertIn("Recommended service:", out)

    def test_motor_overload_and_disconnect(self):
        code, out, _ = run("motor", "10", "--length", "50", "--sf", "1.15")
        self.assertEqual(code, 0)
        self.assertIn("Overload (NEC 430.32):    17.5 A", out)
        self.assertIn("Disconnect (NEC 430.110): 17 A minimum", out)

    def test_subpanel(self):
        code, out, _ = run("subpanel", "100", "--length", "100", "--load", "90")
        self.assertEqual(code, 0)
        self.assertIn("3 AWG", out)
        self.assertIn("Consider a 125A subpanel", out)

    def test_sizing_error_exit_code(self):
        code, _, err = run("motor", "12", "--length", "50")
        self.assertEqual(code, 1)
        self.assertTrue(err.startswith("Error:"))

    def test_xlsx_export(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "report.xlsx")
            code, _, _ = run("--xlsx", path, "ev", "40", "--length", "50")
            self.assertEqual(code, 0)
            wb = load_workbook(path)
            self.assertEqual(wb["Branch Circuits"].cell(row=2, column=1).value, "EV charger")


if __name__ == '__main__':
    unittest.main()
