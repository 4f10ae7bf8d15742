import unittest
import logging
import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
from app_logger import CONSOLE_FORMAT, ColoredFormatter, setup_logging


class TestColoredFormatter(unittest.TestCase):
    def make_record(self):
        return logging.LogRecord(
            "sync_logic", logging.WARNING, __file__, 10, "Citation %r is not defined", (99,), None
        )

    def test_plain_format_interpolates_args(self):
        formatter = ColoredFormatter(CONSOLE_FORMAT, use_color=False)
        line = formatter.format(self.make_record())
        self.assertIn("WARNING", line)
        self.assertIn("Citation 99 is not defined", line)

    def test_colored_format_keeps_message(self):
        formatter = ColoredFormatter(CONSOLE_FORMAT, use_color=True)
        line = formatter.format(self.make_record())
        self.assertIn("Citation 99 is not defined", line)


class TestSetupLogging(unittest.TestCase):
    def tearDown(self):
        root = logging.getLogger()
        for handler in list(root.handlers):
            if getattr(handler, "_reportcite", False):
                root.removeHandler(handler)
                handler.close()

    def test_repeated_setup_does_not_stack_handlers(self):
        setup_logging("DEBUG", use_color=False)
        setup_logging("INFO", use_color=False)
        ours = [h for h in logging.getLogger().handlers if getattr(h, "_reportcite", False)]
        self.assertEqual(len(ours), 1)
        self.assertEqual(logging.getLogger().level, logging.INFO)

    def test_unknown_level_rejected(self):
        with self.assertRaises(ValueError):
            setup_logging("LOUD")


if __name__ == "__main__":
    unittest.main()
