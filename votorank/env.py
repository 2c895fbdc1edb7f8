from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def load_env(env_path: Optional[Path] = None) -> bool:
    """Load .env from the working directory if present.

    Existing environment variables win over values in the file.
    Returns True when a file was loaded.
    """
    path = env_path or Path.cwd() / ".env"
    if not path.exists():
        return False
    return load_dotenv(dotenv_path=path, override=False)
