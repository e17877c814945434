from dataclasses import dataclass
from pathlib import Path
import os

DEFAULT_API_URL = "https://weight-track-bend.onrender.com"


def _load_env_file(path: Path) -> None:
    if not path.exists():
        return
    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        os.environ.setdefault(key.strip(), value.strip())


@dataclass
class Settings:
    bot_token: str
    api_url: str = DEFAULT_API_URL
    api_timeout: float = 10.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env_file: Path = Path(".env")) -> "Settings":
        _load_env_file(env_file)
        token = os.getenv("BOT_TOKEN")
        if not token:
            raise RuntimeError("BOT_TOKEN is not set")
        raw_timeout = os.getenv("WEIGHT_API_TIMEOUT", "10")
        try:
            timeout = float(raw_timeout)
        except ValueError:
            raise RuntimeError(f"WEIGHT_API_TIMEOUT must be a number, got {raw_timeout!r}") from None
        if timeout <= 0:
            raise RuntimeError("WEIGHT_API_TIMEOUT must be positive")
        return cls(
            bot_token=token,
            api_url=os.getenv("WEIGHT_API_URL", DEFAULT_API_URL),
            api_timeout=timeout,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
