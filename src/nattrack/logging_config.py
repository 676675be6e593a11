import logging

def setup_logging(level: str = "INFO"):
    levelno = getattr(logging, str(level).upper(), None)
    if not isinstance(levelno, int):
        levelno = logging.INFO
    fmt = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
    logging.basicConfig(level=levelno, format=fmt)
    return levelno
