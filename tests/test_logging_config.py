import json
import logging

from catalog.logging_config import JsonFormatter, setup_logging


def test_json_formatter_renders_one_line():
    record = logging.LogRecord("catalog.test", logging.INFO, __file__, 1, "Upserted %d vectors", (3,), None)

    payload = json.loads(JsonFormatter().format(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "catalog.test"
    assert payload["message"] == "Upserted 3 vectors"


def test_setup_logging_replaces_root_handlers(tmp_path):
    log_file = tmp_path / "app.log"
    root = logging.getLogger()
    previous = (root.level, list(root.handlers))
    try:
        setup_logging(level="debug", fmt="text", log_file=str(log_file))

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 2
        logging.getLogger("catalog.test").info("hello")
        for handler in root.handlers:
            handler.flush()
        assert "hello" in log_file.read_text(encoding="utf-8")
    finally:
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        root.setLevel(previous[0])
        for handler in previous[1]:
            root.addHandler(handler)
