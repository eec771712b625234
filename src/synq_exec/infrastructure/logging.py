# src/synq_exec/infrastructure/logging.py
import logging
from dataclasses import dataclass
from pathlib import Path


@dataclass(eq=False)
class TruncatingFileHandler(logging.FileHandler):
    filename: Path
    max_bytes: int
    mode: str = "a"
    encoding: str | None = None
    delay: bool = False

    def __post_init__(self) -> None:
        self.filename.parent.mkdir(parents=True, exist_ok=True)
        super().__init__(
            filename=self.filename,
            mode=self.mode,
            encoding=self.encoding,
            delay=self.delay,
        )

    def emit(self, record: logging.LogRecord) -> None:
        try:
            if self.stream and self.stream.tell() >= self.max_bytes:
                self.stream.seek(0)
                self.stream.truncate()
            super().emit(record)
        except Exception:
            self.handleError(record)


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def create_logger(
    *,
    name: str,
    log_dir: Path,
    logfile_size_limit_mb: int,
    level: int = logging.INFO,
    console: bool = False,
) -> logging.Logger:
    """
    Named logger writing to <log_dir>/synq-exec.log.

    With console=True, WARNING and above are echoed to stderr as well, so an
    operator running the CLI sees failed commands without opening the file.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    if logger.handlers:
        return logger  # singleton safety

    formatter = logging.Formatter(LOG_FORMAT)

    handler = TruncatingFileHandler(
        filename=log_dir / "synq-exec.log",
        max_bytes=logfile_size_limit_mb * 1024 * 1024,
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    if console:
        stream = logging.StreamHandler()
        stream.setLevel(logging.WARNING)
        stream.setFormatter(formatter)
        logger.addHandler(stream)

    return logger
