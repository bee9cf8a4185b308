import os
import json
import logging
from typing import Optional, List, Dict
from pydantic import ValidationError
from decision_app.core import config
from decision_app.core.errors import StorageError
from decision_app.models.decision_tree import DecisionTree

logger = logging.getLogger(__name__)


class DecisionTreeStore:
    """
    Row store for decision trees, kept as a JSON document keyed by tree id.
    Each row mirrors the decision_trees table: flat columns for querying plus
    the authoritative snapshot in ``data``.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path or config.TREES_FILE

    def _load_rows(self) -> Dict[str, Dict]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return json.load(f) or {}
        except (OSError, ValueError) as e:
            logger.error(f"Error loading decision trees from {self.path}: {e}")
            raise StorageError(f"Could not read decision trees: {e}") from e

    def _write_rows(self, rows: Dict[str, Dict]):
        tmp_path = f"{self.path}.tmp"
        try:
            os.makedirs(os.path.dirname(os.path.abspath(self.path)), exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(rows, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f"Error saving decision trees to {self.path}: {e}")
            raise StorageError(f"Could not write decision trees: {e}") from e

    @staticmethod
    def to_row(tree: DecisionTree) -> Dict:
        data = tree.model_dump(mode="json")
        return {
            "id": tree.id,
            "user_id": tree.user_id,
            "title": tree.title,
            "topic": tree.topic,
            "context": tree.context,
            "current_node_id": tree.current_node_id,
            "data": data,
            "created_at": data["created_at"],
            "updated_at": data["updated_at"],
        }

    @staticmethod
    def from_row(row: Dict) -> DecisionTree:
        try:
            return DecisionTree.model_validate(row["data"])
        except (KeyError, ValidationError) as e:
            raise StorageError(f"Corrupt decision tree row {row.get('id')}: {e}") from e

    def save(self, tree: DecisionTree):
        """Upserts the full snapshot. Rows belonging to another user are never overwritten."""
        rows = self._load_rows()
        existing = rows.get(tree.id)
        if existing and existing.get("user_id") != tree.user_id:
            raise StorageError(f"Decision tree {tree.id} belongs to another user")
        rows[tree.id] = self.to_row(tree)
        self._write_rows(rows)

    def get_by_id(self, tree_id: str) -> Optional[DecisionTree]:
        row = self._load_rows().get(tree_id)
        if row is None:
            return None
        return self.from_row(row)

    def list_by_owner(self, owner_id: str, limit: Optional[int] = None) -> List[DecisionTree]:
        trees = [self.from_row(r) for r in self._load_rows().values() if r.get("user_id") == owner_id]
        trees.sort(key=lambda t: t.updated_at, reverse=True)
        if limit is not None and limit >= 0:
            trees = trees[:limit]
        return trees

    def delete_by_id(self, tree_id: str, owner_id: Optional[str] = None):
        rows = self._load_rows()
        row = rows.get(tree_id)
        if row is None:
            return
        if owner_id is not None and row.get("user_id") != owner_id:
            raise StorageError(f"Decision tree {tree_id} belongs to another user")
        del rows[tree_id]
        self._write_rows(rows)
