from datetime import datetime
from pathlib import Path

DEFAULT_BASE_FOLDER_NAME = "spottrack_data"
LOGS_FOLDER_NAME = "logs"
CONFIGS_FOLDER_NAME = "configs"
DEFAULT_LAUNCH_CONFIG_FILE_NAME = "launch_config.json"


def get_default_base_folder_path() -> Path:
    return Path.home() / DEFAULT_BASE_FOLDER_NAME


def get_default_launch_config_path() -> Path:
    """Where `python -m spottrack` looks for a launch config when none is given."""
    return get_default_base_folder_path() / CONFIGS_FOLDER_NAME / DEFAULT_LAUNCH_CONFIG_FILE_NAME


def get_log_file_path() -> str:
    log_folder_path = get_default_base_folder_path() / LOGS_FOLDER_NAME
    log_folder_path.mkdir(exist_ok=True, parents=True)
    return str(log_folder_path / create_log_file_name())


def create_log_file_name(timestamp: datetime | None = None) -> str:
    timestamp = timestamp or datetime.now().astimezone()
    # filename friendly: no colons, no dots
    stamp = timestamp.isoformat(timespec="milliseconds").replace(":", "_").replace(".", "ms")
    return f"spottrack_{stamp}.log"
