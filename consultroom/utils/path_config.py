"""Path configuration utilities for consultroom.

Centralizes the locations of the packaged configuration directory and the
runtime log directory.
"""
import os
from pathlib import Path


def get_app_root():
    """Get the root directory of the application package."""
    return str(Path(__file__).parent.parent.absolute())


def get_config_dir():
    """Get the packaged configuration directory path."""
    return os.path.join(get_app_root(), "config")


def get_client_config_file(config_dir=None):
    """Get the client configuration file path."""
    return os.path.join(config_dir or get_config_dir(), "client_config.json")


def get_logs_dir():
    """Get the logs directory path, created under the working directory."""
    logs_dir = os.path.join(os.getcwd(), "logs")
    os.makedirs(logs_dir, exist_ok=True)
    return logs_dir
