from datetime import datetime, timezone
from typing import List, Optional, Dict
from pydantic import BaseModel, Field
from decision_app.core import config


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DecisionOption(BaseModel):
    id: str
    text: str


class DecisionNode(BaseModel):
    id: str
    title: str
    content: str = ""
    options: List[DecisionOption] = []
    parent_id: Optional[str] = None
    parent_option: Optional[str] = None
    is_final: bool = False

    def get_option(self, option_id: str) -> Optional[DecisionOption]:
        return next((o for o in self.options if o.id == option_id), None)


class Flowchart(BaseModel):
    """Reduced view of a tree without ownership or timestamps."""
    id: str
    topic: str
    context: str = ""
    current_node_id: str
    nodes: Dict[str, DecisionNode]


class DecisionTree(BaseModel):
    id: str
    title: str
    topic: str
    context: str = ""
    user_id: str
    current_node_id: str
    nodes: Dict[str, DecisionNode]
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def current_node(self) -> Optional[DecisionNode]:
        return self.nodes.get(self.current_node_id)

    def root(self) -> Optional[DecisionNode]:
        return next((n for n in self.nodes.values() if n.parent_id is None), None)

    def find_child(self, parent_id: str, option_id: str) -> Optional[DecisionNode]:
        for node in self.nodes.values():
            if node.parent_id == parent_id and node.parent_option == option_id:
                return node
        return None

    def path_to_current(self) -> List[DecisionNode]:
        """Nodes from the root down to the current node, following parent links."""
        path = []
        seen = set()
        node_id = self.current_node_id
        while node_id and node_id not in seen:
            node = self.nodes.get(node_id)
            if node is None:
                break
            seen.add(node_id)
            path.append(node)
            node_id = node.parent_id
        path.reverse()
        return path

    def to_flowchart(self) -> Flowchart:
        return Flowchart(
            id=self.id,
            topic=self.topic,
            context=self.context,
            current_node_id=self.current_node_id,
            nodes=self.nodes
        )


class ParsedNode(BaseModel):
    title: str
    body: str = ""
    options: List[str] = []
    used_fallback_options: bool = False


class FinalDecision(BaseModel):
    decision: str
    reflection: str
    updated_tree: DecisionTree


class Personalization(BaseModel):
    personality_type: Optional[str] = None
    advisor_prompt: Optional[str] = None


class DecisionPolicy(BaseModel):
    min_path_nodes: int = 3
    max_nodes: int = 10
    min_options: int = 2
    max_options: int = 4

    @classmethod
    def from_config(cls) -> "DecisionPolicy":
        return cls(
            min_path_nodes=config.CONCLUDE_MIN_PATH_NODES,
            max_nodes=config.CONCLUDE_MAX_NODES,
            min_options=config.MIN_OPTIONS,
            max_options=config.MAX_OPTIONS
        )
