# src/synq_exec/infrastructure/env.py
from dataclasses import dataclass, field
from pathlib import Path
from dotenv import load_dotenv
from returns.result import safe
import os


@dataclass(frozen=True)
class Env:
    """Environment snapshot taken after .env loading; children inherit it as-is."""

    raw: dict[str, str] = field(default_factory=dict)

    @safe
    def load(self, path_to_dotenv: str | Path = ".env") -> "Env":
        load_dotenv(dotenv_path=path_to_dotenv)
        return Env(raw=dict(os.environ))

    def get_str(self, key: str) -> str | None:
        return self.raw.get(key) or None

    def get_path(self, key: str) -> Path | None:
        value = self.get_str(key)
        return Path(value) if value else None

    def process_env(self) -> dict[str, str]:
        return dict(self.raw)
