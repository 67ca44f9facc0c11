"""
Idle Upgrade Optimizer - Local Storage
=======================================
One YAML document per entity list in a data directory. Loads fall back to
the last good in-memory copy; saves never raise, failures are logged.
"""

import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional

import yaml

from idle_opt.io import (
    generator_from_dict, generator_to_dict,
    research_from_dict, research_to_dict,
    resource_from_dict, resource_to_dict,
)
from idle_opt.models import Generator, RankingSession, Research, Resource

log = logging.getLogger(__name__)

GENERATORS_FILE = "generators.yaml"
RESEARCH_FILE = "research.yaml"
RESOURCES_FILE = "resources.yaml"
SESSION_FILE = "session.yaml"
USER_ID_FILE = "user_id"


class LocalStorage:
    def __init__(self, data_dir: str):
        self.data_dir = Path(data_dir)
        self._cache: Dict[str, list] = {}

    # -----------------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------------

    def _load_list(self, filename: str, from_dict: Callable) -> list:
        path = self.data_dir / filename
        if not path.exists():
            return list(self._cache.get(filename, []))
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or []
            items = [from_dict(d) for d in data]
        except (OSError, yaml.YAMLError, KeyError, TypeError, ValueError):
            log.exception("Failed to load %s", path)
            return list(self._cache.get(filename, []))
        self._cache[filename] = items
        return list(items)

    def _save_list(self, filename: str, items: list, to_dict: Callable):
        path = self.data_dir / filename
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            with open(path, "w") as f:
                yaml.dump([to_dict(i) for i in items], f,
                          default_flow_style=False, sort_keys=False)
        except (OSError, yaml.YAMLError):
            log.exception("Failed to save %s", path)
            return
        self._cache[filename] = list(items)

    # -----------------------------------------------------------------------
    # Entities
    # -----------------------------------------------------------------------

    def load_generators(self) -> List[Generator]:
        return self._load_list(GENERATORS_FILE, generator_from_dict)

    def save_generators(self, generators: List[Generator]):
        self._save_list(GENERATORS_FILE, generators, generator_to_dict)

    def load_research(self) -> List[Research]:
        return self._load_list(RESEARCH_FILE, research_from_dict)

    def save_research(self, research: List[Research]):
        self._save_list(RESEARCH_FILE, research, research_to_dict)

    def load_resources(self) -> List[Resource]:
        return self._load_list(RESOURCES_FILE, resource_from_dict)

    def save_resources(self, resources: List[Resource]):
        self._save_list(RESOURCES_FILE, resources, resource_to_dict)

    # -----------------------------------------------------------------------
    # Session and user id
    # -----------------------------------------------------------------------

    def load_session(self) -> RankingSession:
        path = self.data_dir / SESSION_FILE
        if not path.exists():
            return RankingSession()
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
            weights = {str(k): float(v) for k, v in (data.get("previous_weights") or {}).items()}
        except (OSError, yaml.YAMLError, AttributeError, TypeError, ValueError):
            log.exception("Failed to load %s", path)
            return RankingSession()
        return RankingSession(previous_weights=weights)

    def save_session(self, session: RankingSession):
        path = self.data_dir / SESSION_FILE
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            with open(path, "w") as f:
                yaml.dump({"previous_weights": dict(session.previous_weights)}, f,
                          default_flow_style=False)
        except OSError:
            log.exception("Failed to save %s", path)

    def get_user_id(self) -> Optional[str]:
        path = self.data_dir / USER_ID_FILE
        try:
            user_id = path.read_text().strip() if path.exists() else ""
        except OSError:
            log.exception("Failed to read %s", path)
            return None
        return user_id or None

    def set_user_id(self, user_id: Optional[str]):
        path = self.data_dir / USER_ID_FILE
        try:
            if not user_id:
                path.unlink(missing_ok=True)
                return
            self.data_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(user_id.strip())
        except OSError:
            log.exception("Failed to write %s", path)

    def clear_all(self):
        """Delete the stored entity lists and session. The user id is kept."""
        for filename in (GENERATORS_FILE, RESEARCH_FILE, RESOURCES_FILE, SESSION_FILE):
            try:
                (self.data_dir / filename).unlink(missing_ok=True)
            except OSError:
                log.exception("Failed to delete %s", self.data_dir / filename)
        self._cache.clear()
