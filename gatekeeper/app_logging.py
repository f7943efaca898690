import logging
from pythonjsonlogger import jsonlogger

_HANDLER_NAME = 'gatekeeper.json'


def setup_logger(level: str = 'INFO') -> None:
    logger = logging.getLogger()
    if not any(h.get_name() == _HANDLER_NAME for h in logger.handlers):
        logHandler = logging.StreamHandler()
        logHandler.set_name(_HANDLER_NAME)
        formatter = jsonlogger.JsonFormatter(
            '%(asctime)s %(levelname)s %(name)s %(message)s',
            rename_fields={'levelname': 'level', 'asctime': 'timestamp'}
        )
        logHandler.setFormatter(formatter)
        logger.addHandler(logHandler)
    logger.setLevel(level.upper())
