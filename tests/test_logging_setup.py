import logging
import os
import shutil
import tempfile
import unittest

import yaml

from discussion_scraper.utils.logging import get_logger, setup_logging


class TestSetupLogging(unittest.TestCase):
    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()
        self.root_handlers = logging.getLogger().handlers[:]
        self.root_level = logging.getLogger().level

    def tearDown(self):
        root = logging.getLogger()
        for handler in root.handlers[:]:
            if handler not in self.root_handlers:
                handler.close()
        root.handlers = self.root_handlers
        root.setLevel(self.root_level)
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    def test_fallback_writes_log_file(self):
        log_file = os.path.join(self.tmp_dir, "logs", "run.log")
        setup_logging(os.path.join(self.tmp_dir, "missing.yaml"), log_file=log_file)

        get_logger("discussion_scraper.test").info("hello from fallback")
        for handler in logging.getLogger().handlers:
            handler.flush()

        with open(log_file, encoding="utf-8") as f:
            content = f.read()
        self.assertIn("| INFO | discussion_scraper.test | hello from fallback", content)

    def test_yaml_config_creates_log_directory(self):
        log_file = os.path.join(self.tmp_dir, "nested", "app.log")
        cfg = {
            "version": 1,
            "disable_existing_loggers": False,
            "handlers": {"file": {"class": "logging.FileHandler", "filename": log_file}},
            "root": {"level": "INFO", "handlers": ["file"]},
        }
        path = os.path.join(self.tmp_dir, "logging.yaml")
        with open(path, "w", encoding="utf-8") as f:
            yaml.safe_dump(cfg, f)

        setup_logging(path)

        self.assertTrue(os.path.isdir(os.path.dirname(log_file)))


if __name__ == "__main__":
    unittest.main()
