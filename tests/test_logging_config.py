import logging

from config import logging_config


def test_resolve_level():
    assert logging_config.resolve_level("debug") == logging.DEBUG
    assert logging_config.resolve_level("WARNING") == logging.WARNING
    assert logging_config.resolve_level("chatty") == logging.INFO
    assert logging_config.resolve_level(None) == logging.INFO


def test_setup_logging_configures_once(tmp_path, monkeypatch):
    monkeypatch.setattr(logging_config, "_logging_configured", False)
    root = logging.getLogger()
    before = list(root.handlers)
    previous_level = root.level

    try:
        logging_config.setup_logging("api", log_dir=str(tmp_path), level=logging.DEBUG)
        logging_config.setup_logging("api", log_dir=str(tmp_path), level=logging.DEBUG)

        added = [h for h in root.handlers if h not in before]
        assert len(added) == 2
        assert (tmp_path / "api" / "crop_service.log").exists()
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        for handler in root.handlers[:]:
            if handler not in before:
                root.removeHandler(handler)
                handler.close()
        root.setLevel(previous_level)
