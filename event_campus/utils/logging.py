import logging
import sys
from logging.handlers import RotatingFileHandler

from event_campus.config import LOG_FILE, LOG_LEVEL


def setup_logging():
    """Configure application logging"""
    
    logger = logging.getLogger()
    logger.setLevel(LOG_LEVEL)
    
    logger.handlers.clear()
    
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(LOG_LEVEL)
    
    file_handler = None
    if LOG_FILE:
        try:
            file_handler = RotatingFileHandler(
                LOG_FILE,
                maxBytes=10485760,  # 10MB
                backupCount=5,
                encoding="utf-8",
            )
            file_handler.setLevel(LOG_LEVEL)
        except OSError:
            logger.warning("Cannot open log file %s, logging to console only", LOG_FILE)
    
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)
    if file_handler:
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
    
    # Silence noisy libraries
    logging.getLogger('uvicorn').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy').setLevel(logging.WARNING)
    logging.getLogger('apscheduler').setLevel(logging.WARNING)
