import logging

from marketplace.config import ENV, LOG_FILE

handlers = [logging.StreamHandler()]
if LOG_FILE:
    handlers.append(logging.FileHandler(LOG_FILE))

logging.basicConfig(
    format="%(filename)s - %(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=handlers,
)
if ENV == "production":
    logging.getLogger().setLevel(logging.INFO)
else:
    logging.getLogger().setLevel(logging.DEBUG)

# SQL echo belongs to the engine, not to the root level
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(filename: str) -> logging.Logger:
    return logging.getLogger(filename)
