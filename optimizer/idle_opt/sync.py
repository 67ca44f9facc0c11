"""
Idle Upgrade Optimizer - Cloud Sync Client
===========================================
HTTP client for the sync server (see idle_opt.web). Used opportunistically:
every call degrades to a logged failure and a neutral return value when the
server is unreachable or answers with an error.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

import requests

from idle_opt.io import sync_data_from_dict, sync_data_to_dict
from idle_opt.models import Generator, Research, Resource, SyncData

log = logging.getLogger(__name__)


class CloudSync:
    def __init__(self, base_url: str, user_id: Optional[str] = None,
                 timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.user_id = user_id
        self.timeout = timeout
        self.http = session or requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def sync_to_cloud(self, generators: List[Generator], research: List[Research],
                      resources: List[Resource]) -> bool:
        if not self.user_id:
            return False
        payload = sync_data_to_dict(SyncData(
            user_id=self.user_id,
            generators=generators,
            research=research,
            resources=resources,
            last_modified=datetime.now(timezone.utc),
        ))
        try:
            r = self.http.post(self._url("/api/sync/save"), json=payload, timeout=self.timeout)
            r.raise_for_status()
        except requests.RequestException:
            log.exception("Cloud save failed for user %s", self.user_id)
            return False
        return True

    def sync_from_cloud(self) -> Optional[SyncData]:
        if not self.user_id:
            return None
        try:
            r = self.http.get(self._url("/api/sync/load"),
                              params={"user_id": self.user_id}, timeout=self.timeout)
            if r.status_code == 404:
                return None
            r.raise_for_status()
            return sync_data_from_dict(r.json())
        except (requests.RequestException, ValueError, KeyError):
            log.exception("Cloud load failed for user %s", self.user_id)
            return None

    def check_user_exists(self, user_id: str) -> bool:
        try:
            r = self.http.get(self._url("/api/sync/load"),
                              params={"user_id": user_id}, timeout=self.timeout)
        except requests.RequestException:
            log.exception("Cloud user check failed for %s", user_id)
            return False
        return r.status_code == 200

    def get_all_user_ids(self) -> List[str]:
        try:
            r = self.http.get(self._url("/api/sync/users"), timeout=self.timeout)
            r.raise_for_status()
            return [str(u) for u in r.json()]
        except (requests.RequestException, ValueError, TypeError):
            log.exception("Listing cloud users failed")
            return []
