import os
import json
import logging
from typing import Optional, Dict, Any
from decision_app.core import config
from decision_app.core.errors import StorageError
from decision_app.models.decision_tree import utc_now

logger = logging.getLogger(__name__)


class ProfileStore:
    """Per-user preference data: custom advisor and personality type."""

    def __init__(self, path: Optional[str] = None):
        self.path = path or config.PROFILES_FILE

    def _load_profiles(self) -> Dict:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return json.load(f) or {}
        except (OSError, ValueError) as e:
            logger.error(f"Error loading profiles from {self.path}: {e}")
            raise StorageError(f"Could not read profiles: {e}") from e

    def _save_profiles(self, profiles: Dict):
        tmp_path = f"{self.path}.tmp"
        try:
            os.makedirs(os.path.dirname(os.path.abspath(self.path)), exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(profiles, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f"Error saving profiles to {self.path}: {e}")
            raise StorageError(f"Could not write profiles: {e}") from e

    def _update(self, user_id: str, key: str, value: Any):
        profiles = self._load_profiles()
        profile = profiles.setdefault(user_id, {"custom_advisors": None, "personality_type": "NONE"})
        profile[key] = value
        profile["updated_at"] = utc_now().isoformat()
        self._save_profiles(profiles)

    def get_profile(self, user_id: str) -> Dict:
        return self._load_profiles().get(user_id, {})

    def get_custom_advisor(self, user_id: str) -> Optional[Any]:
        return self.get_profile(user_id).get("custom_advisors")

    def set_custom_advisor(self, user_id: str, custom_advisor: Dict):
        self._update(user_id, "custom_advisors", custom_advisor)

    def get_personality_type(self, user_id: str) -> Optional[str]:
        ptype = self.get_profile(user_id).get("personality_type")
        if not ptype or ptype == "NONE":
            return None
        return ptype

    def set_personality_type(self, user_id: str, personality_type: str):
        self._update(user_id, "personality_type", personality_type.strip().upper() or "NONE")
