"""Tests for configuration and logging setup."""

import json
import logging

import yaml

from janus.utils.config import Config, load_config, save_config
from janus.utils.logger import JsonFormatter, log_exception, setup_logging, setup_logging_from_config


class TestConfig:
    def test_defaults(self):
        config = Config()
        assert config.paths.store_path.name == "janus.dat"
        assert config.storage.format_version == 0x5
        assert config.platform in ("windows", "macos", "linux")

    def test_update_merges_sections(self):
        config = Config()
        config.update_from_dict({"sync": {"max_workers": 8}, "log_level": "DEBUG", "bogus": 1})

        assert config.sync.max_workers == 8
        assert config.sync.preserve_metadata is True
        assert config.log_level == "DEBUG"
        assert not hasattr(config, "bogus")

    def test_yaml_round_trip(self, temp_dir):
        config = Config()
        config.update_from_dict({"paths": {"data_dir": str(temp_dir)}, "watchdog": {"queue_size": 50}})
        path = temp_dir / "config.yaml"

        save_config(config, path)
        loaded = load_config(path)

        assert yaml.safe_load(path.read_text())["watchdog"]["queue_size"] == 50
        assert loaded.watchdog.queue_size == 50
        assert loaded.paths.data_dir == temp_dir

    def test_json_file(self, temp_dir):
        path = temp_dir / "settings.json"
        path.write_text(json.dumps({"log_format": "json"}))

        assert load_config(path).log_format == "json"

    def test_broken_file_falls_back(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)
        monkeypatch.setattr("janus.utils.config.get_default_config_path",
                            lambda: temp_dir / "absent.yaml")
        path = temp_dir / "broken.yaml"
        path.write_text("paths: [unclosed")

        assert load_config(path).log_level == "INFO"

    def test_validate(self):
        config = Config()
        assert config.validate() == []

        config.update_from_dict({"sync": {"max_workers": 0}, "log_format": "xml"})
        problems = config.validate()
        assert len(problems) == 2
        assert any("max_workers" in p for p in problems)

    def test_to_dict_is_serialisable(self, temp_dir):
        config = Config()
        config.update_from_dict({"paths": {"data_dir": str(temp_dir)}})
        data = config.to_dict()
        assert data["paths"]["data_dir"] == str(temp_dir)
        assert json.loads(json.dumps(data)) == data


class TestLogging:
    def test_json_formatter(self):
        record = logging.LogRecord("janus.test", logging.INFO, __file__, 1, "hello %s", ("there",), None)
        payload = json.loads(JsonFormatter().format(record))
        assert payload["message"] == "hello there"
        assert payload["level"] == "INFO"

    def test_setup_logging_with_file(self, temp_dir):
        root = logging.getLogger()
        saved = root.handlers[:], root.level
        log_file = temp_dir / "logs" / "janus.log"
        try:
            config = Config(log_level="DEBUG", log_file=str(log_file), log_format="color")
            setup_logging_from_config(config)
            logging.getLogger("janus.test").info("written")
            for handler in root.handlers:
                handler.flush()

            assert "written" in log_file.read_text()
            assert logging.getLogger("watchdog").level == logging.WARNING
        finally:
            for handler in root.handlers[:]:
                root.removeHandler(handler)
                handler.close()
            for handler in saved[0]:
                root.addHandler(handler)
            root.setLevel(saved[1])

    def test_log_exception(self, caplog):
        logger = logging.getLogger("janus.test")
        try:
            raise ValueError("bad")
        except ValueError as e:
            with caplog.at_level(logging.ERROR):
                log_exception(logger, e, "failed", extra={"path": "/w"})

        assert caplog.records[-1].exc_info[0] is ValueError
        assert caplog.records[-1].context == {"path": "/w"}

    def test_unknown_level_falls_back_to_info(self):
        root = logging.getLogger()
        saved = root.handlers[:], root.level
        try:
            setup_logging("LOUD")
            assert root.level == logging.INFO
        finally:
            for handler in root.handlers[:]:
                root.removeHandler(handler)
            for handler in saved[0]:
                root.addHandler(handler)
            root.setLevel(saved[1])
