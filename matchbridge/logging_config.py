import logging
import sys

LOG_FORMAT = '%(asctime)s %(filename)s:%(lineno)d %(levelname)s %(message)s'
DATE_FORMAT = '%Y/%m/%d %H:%M:%S'


def configure_logging(settings: dict) -> logging.Logger:
    """Attach the file and console handlers to the package logger.

    Safe to call more than once; handlers installed by an earlier call are
    replaced rather than duplicated.
    """
    logger = logging.getLogger('matchbridge')
    logger.setLevel(settings.get('LOG_LEVEL', 'INFO'))

    for handler in list(logger.handlers):
        if getattr(handler, '_matchbridge', False):
            logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers = []

    log_file = settings.get('LOG_FILE')
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode='a', encoding='utf-8'))
    if settings.get('PRINT_CMD_LOG'):
        handlers.append(logging.StreamHandler(sys.stdout))

    for handler in handlers:
        handler.setFormatter(formatter)
        handler._matchbridge = True
        logger.addHandler(handler)

    return logger
