import json
import os

from config.log_config import app_logger

DEFAULT_CONFIG_PATH = os.path.join("config", "system_config.json")

DEFAULT_SYSTEM_CONFIG = {
    "default_src_lang": "auto",
    "default_dst_lang": "English",
    "result_dir": "result",
    "log_dir": "log",
    "batch_size": 40,
    "large_job_batch_size": 20,
    "large_job_threshold": 20,
    "slow_job_threshold": 10,
    "inter_chunk_delay": 0.5,
    "max_attempts": 3,
    "retry_base_delay": 2.0,
    "skip_already_translated": True,
    "autosize_shapes": True,
}


def read_system_config(config_path=DEFAULT_CONFIG_PATH):
    """Read system configuration, falling back to defaults for missing keys"""
    config = dict(DEFAULT_SYSTEM_CONFIG)
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            loaded = json.load(f)
    except FileNotFoundError:
        return config
    except json.JSONDecodeError as e:
        app_logger.warning(f"Ignoring malformed config {config_path}: {e}")
        return config

    if isinstance(loaded, dict):
        config.update(loaded)
    return config


def write_system_config(config, config_path=DEFAULT_CONFIG_PATH):
    """Write system configuration to config file"""
    directory = os.path.dirname(config_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config, f, indent=4, ensure_ascii=False)


def get_custom_paths(config):
    """Get result and log directories from config and ensure they exist"""
    result_dir = config.get("result_dir", "result")
    log_dir = config.get("log_dir", "log")

    os.makedirs(result_dir, exist_ok=True)
    os.makedirs(log_dir, exist_ok=True)

    return result_dir, log_dir
