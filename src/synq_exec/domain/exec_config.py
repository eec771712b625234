from dataclasses import dataclass
from pathlib import Path
import yaml

from .models import DEFAULT_ERROR, ApiError


@dataclass(frozen=True)
class ExecConfig:
    pid_file: Path | None = None
    error_name: str = DEFAULT_ERROR.name
    error_url: str = DEFAULT_ERROR.url
    error_message: str = DEFAULT_ERROR.message
    log_dir: Path = Path("logs")
    logfile_size_limit_mb: int = 10

    @staticmethod
    def load(path: Path) -> "ExecConfig":
        data = yaml.safe_load(path.read_text()) or {}
        pid_file = data.get("pid_file")
        return ExecConfig(
            pid_file=Path(pid_file) if pid_file else None,
            error_name=data.get("error_name", DEFAULT_ERROR.name),
            error_url=data.get("error_url", DEFAULT_ERROR.url),
            error_message=data.get("error_message", DEFAULT_ERROR.message),
            log_dir=Path(data.get("log_dir", "logs")),
            logfile_size_limit_mb=int(data.get("logfile_size_limit_mb", 10)),
        )

    def error_template(self) -> ApiError:
        return ApiError(
            name=self.error_name,
            url=self.error_url,
            message=self.error_message,
        )
