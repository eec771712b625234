# src/synq_exec/control/dependency_container.py
from pathlib import Path
from dependency_injector import containers, providers

from ..domain.exec_config import ExecConfig
from ..infrastructure.env import Env
from ..infrastructure.logging import create_logger
from ..infrastructure.process_runner import ProcessRunner
from ..application.exec_service import ExecService
from .instance_guard import InstanceGuard

# ------------------------ Factory / Provider functions ------


def env_provider_func(path: str | Path) -> Env:
    return Env().load(path).unwrap()


def exec_config_func(path: Path | None) -> ExecConfig:
    if path is None or not Path(path).exists():
        return ExecConfig()
    return ExecConfig.load(Path(path))


def resolve_pid_file(config: ExecConfig, override: Path | None) -> Path | None:
    return Path(override) if override else config.pid_file


def resolve_log_dir(config: ExecConfig, override: Path | None) -> Path:
    return Path(override) if override else config.log_dir


# ------------------------ Dependency Container ------------------------


class Container(containers.DeclarativeContainer):
    config = providers.Configuration()

    # -------------------- Infrastructure --------------------

    env: providers.Singleton[Env] = providers.Singleton(
        env_provider_func,
        path=config.dotenv_path,
    )

    exec_config: providers.Singleton[ExecConfig] = providers.Singleton(
        exec_config_func,
        path=config.config_path,
    )

    logger = providers.Singleton(
        create_logger,
        name="synq_exec",
        log_dir=providers.Callable(resolve_log_dir, exec_config, config.log_dir),
        logfile_size_limit_mb=providers.Callable(
            lambda c: c.logfile_size_limit_mb, exec_config
        ),
        console=config.console,
    )

    runner: providers.Factory[ProcessRunner] = providers.Factory(
        ProcessRunner,
        env=providers.Callable(lambda e: e.process_env(), env),
        error_template=providers.Callable(lambda c: c.error_template(), exec_config),
        logger=logger,
    )

    # -------------------- Control --------------------

    pid_file = providers.Callable(resolve_pid_file, exec_config, config.pid_file)

    guard: providers.Factory[InstanceGuard] = providers.Factory(
        InstanceGuard,
        lock_file=pid_file,
        logger=logger,
    )

    # -------------------- Application --------------------

    exec_service: providers.Factory[ExecService] = providers.Factory(
        ExecService,
        runner_factory=runner.provider,
        logger=logger,
    )
