import logging

from statusbot.core.logging_utils import LogConfig, log_event, setup_rotating_logger


def test_log_event_renders_fields_as_json(caplog) -> None:
    logger = logging.getLogger("statusbot.test.events")
    with caplog.at_level(logging.INFO, logger="statusbot.test.events"):
        log_event(logger, logging.INFO, "config.loaded", endpoints=["en", "de"])
        log_event(logger, logging.DEBUG, "config.hidden", value=1)

    assert [record.message for record in caplog.records] == [
        'config.loaded {"endpoints":["en","de"]}'
    ]
    assert caplog.records[0].event == "config.loaded"


def test_log_event_formats_exceptions(caplog) -> None:
    logger = logging.getLogger("statusbot.test.exc")
    with caplog.at_level(logging.WARNING, logger="statusbot.test.exc"):
        log_event(logger, logging.WARNING, "boom", exc=ValueError("bad"))
    assert caplog.records[0].message == 'boom {"exc":"ValueError: bad"}'


def test_setup_rotating_logger_attaches_one_file_handler(tmp_path) -> None:
    log_path = tmp_path / "logs" / "bot.log"
    config = LogConfig(path=log_path, level=logging.DEBUG)
    logger = setup_rotating_logger("statusbot.test.rotating", config)
    setup_rotating_logger("statusbot.test.rotating", config)
    try:
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        logger.debug("hello")
        logger.handlers[0].flush()
        assert "hello" in log_path.read_text(encoding="utf-8")
    finally:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()


def test_setup_rotating_logger_without_path_only_sets_level() -> None:
    logger = setup_rotating_logger(
        "statusbot.test.plain", LogConfig(level=logging.WARNING)
    )
    assert logger.level == logging.WARNING
    assert logger.handlers == []
