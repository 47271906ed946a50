import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Configura el logger raíz una sola vez, al arrancar la app."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # el SQL solo interesa con echo=True
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
