import logging
from pathlib import Path

from configuration import Configuration as Config

p = Path(__file__).resolve()

# Create a custom logger
main_logger = logging.getLogger("build_sbom")
main_logger.setLevel(logging.DEBUG)  # Set the minimum logging level
main_logger.propagate = False

# Create handlers for file and console
Config.log_dir.mkdir(parents=True, exist_ok=True)
file_handler_path = Path(Config.log_dir, Config.log_file_name)
file_handler = logging.FileHandler(file_handler_path, mode='w', encoding="utf-8")
console_handler = logging.StreamHandler()

# Set the logging level for each handler
file_handler.setLevel(logging.DEBUG)
console_handler.setLevel(getattr(logging, Config.log_level, logging.INFO))

# Create a logging format
formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
file_handler.setFormatter(formatter)
console_handler.setFormatter(formatter)

# Add the handlers to the logger
if not main_logger.handlers:
    main_logger.addHandler(file_handler)
    main_logger.addHandler(console_handler)


def get_logger(name: str) -> logging.Logger:
    """Child of the main logger; shares its handlers."""
    return main_logger.getChild(name)


def set_console_level(level: int) -> None:
    console_handler.setLevel(level)
