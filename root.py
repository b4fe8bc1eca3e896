# FILE IS USED TO LOCATE THE PROJECT ROOT (LOGS, .env), KEEP IT AT THE TOP LEVEL
from pathlib import Path

p = Path(__file__).resolve()


def get_project_root() -> Path:
    return Path(p.parent)
