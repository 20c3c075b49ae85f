"""Settings and well-known paths for sbcli.

The Sandbox and Saltbox-mod repositories live under the server appdata
path, which users may override in the Saltbox inventory.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import yaml

from sbcli.repos import Repo

logger = logging.getLogger(__name__)

ANSIBLE_PLAYBOOK_BINARY = "/usr/local/bin/ansible-playbook"
SALTBOX_REPO_PATH = "/srv/git/saltbox"
SALTBOX_CACHE_FILE = "/srv/git/saltbox/cache.json"
SALTBOX_INVENTORY_PATH = "/srv/git/saltbox/inventories/host_vars/localhost.yml"
DEFAULT_SERVER_APPDATA_PATH = "/opt"


def load_server_appdata_path(inventory_path: Union[str, Path]) -> str:
    """Read ``server_appdata_path`` from the Saltbox inventory.

    Any problem reading or parsing the inventory falls back to ``/opt``.

    Args:
        inventory_path: Path to ``inventories/host_vars/localhost.yml``.

    Returns:
        The configured appdata path, or the default.
    """
    try:
        with open(inventory_path, "r", encoding="utf-8") as f:
            content = yaml.safe_load(f)
    except (yaml.YAMLError, OSError) as e:
        logger.debug(f"Using default appdata path, inventory not usable: {e}")
        return DEFAULT_SERVER_APPDATA_PATH

    if not isinstance(content, dict):
        return DEFAULT_SERVER_APPDATA_PATH

    value = content.get("server_appdata_path")
    if not value or not isinstance(value, str):
        return DEFAULT_SERVER_APPDATA_PATH
    return value


@dataclass
class Settings:
    """Locations of the installer's binaries, repositories and cache.

    Attributes:
        ansible_playbook_binary: ansible-playbook executable.
        saltbox_repo_path: Primary repository checkout.
        cache_file: JSON tag cache document.
        server_appdata_path: Parent directory of the Sandbox and
            Saltbox-mod checkouts.
    """

    ansible_playbook_binary: str = ANSIBLE_PLAYBOOK_BINARY
    saltbox_repo_path: str = SALTBOX_REPO_PATH
    cache_file: str = SALTBOX_CACHE_FILE
    server_appdata_path: str = DEFAULT_SERVER_APPDATA_PATH

    def repo_path(self, repo: Repo) -> str:
        if repo is Repo.PRIMARY:
            return self.saltbox_repo_path
        return os.path.join(self.server_appdata_path, repo.directory)

    def playbook_path(self, repo: Repo) -> str:
        return os.path.join(self.repo_path(repo), repo.playbook)


def load_settings(inventory_path: Union[str, Path] = SALTBOX_INVENTORY_PATH) -> Settings:
    """Build the settings, honouring the inventory's appdata path."""
    return Settings(server_appdata_path=load_server_appdata_path(inventory_path))
