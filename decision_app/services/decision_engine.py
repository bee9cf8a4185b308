import logging
from typing import Optional, List
from decision_app.core.errors import InvalidOptionError, InvalidStateError
from decision_app.core.ids import new_id
from decision_app.models.decision_tree import (
    DecisionTree, DecisionNode, DecisionOption, DecisionPolicy,
    FinalDecision, Personalization, utc_now
)
from decision_app.services.completion_client import SamplingConfig
from decision_app.services.response_parser import parse_node, parse_final_decision

logger = logging.getLogger(__name__)

BASE_SYSTEM_PROMPT = (
    "You are an AI decision-making assistant that helps users make decisions by creating structured decision trees. \n"
    "Your goal is to help the user think through their decision methodically and consider important factors."
)

FINALIZE_SYSTEM_PROMPT = (
    "You are a thoughtful decision assistant. Based on the decision steps and context provided, "
    "generate a final decision recommendation and a reflection that explains the reasoning, "
    "considerations, and potential outcomes."
)

SUMMARY_SYSTEM_PROMPT = (
    "You are a helpful assistant that creates very concise summaries. "
    "Summarize the decision in one short sentence and include one relevant emoji at the beginning."
)

NODE_SAMPLING = SamplingConfig(max_tokens=800)
FINALIZE_SAMPLING = SamplingConfig(max_tokens=1000)
SUMMARY_SAMPLING = SamplingConfig(max_tokens=150)


class DecisionTreeEngine:
    """
    Transitions over DecisionTree values. Every operation takes a tree and
    returns a new tree; the input snapshot is never modified, so a failed
    call leaves the caller's tree untouched.
    """

    def __init__(self, completion_client, policy: Optional[DecisionPolicy] = None):
        self.completion_client = completion_client
        self.policy = policy or DecisionPolicy.from_config()

    def build_system_prompt(self, personalization: Optional[Personalization] = None) -> str:
        prompt = BASE_SYSTEM_PROMPT
        if personalization:
            ptype = personalization.personality_type
            if ptype and ptype != "NONE":
                prompt += f"\nThe user's personality type is {ptype}. Tailor your advice to match this personality."
            if personalization.advisor_prompt:
                prompt += f"\n{personalization.advisor_prompt}"
        return prompt

    def _options_hint(self) -> str:
        return f"{self.policy.min_options}-{self.policy.max_options}"

    @staticmethod
    def _make_options(texts: List[str]) -> List[DecisionOption]:
        return [DecisionOption(id=new_id(), text=t) for t in texts]

    async def create_tree(
        self,
        topic: str,
        context: str = "",
        owner_id: str = "",
        personalization: Optional[Personalization] = None,
    ) -> DecisionTree:
        context = context or ""
        system_prompt = self.build_system_prompt(personalization)
        user_prompt = f"I need help making a decision about: {topic}."
        if context:
            user_prompt += f" Additional context: {context}"
        user_prompt += (
            f"\nStart with a title line, then a short explanation, then {self._options_hint()} "
            "options as a bulleted list."
        )

        content = await self.completion_client.complete(system_prompt, user_prompt, NODE_SAMPLING)
        parsed = parse_node(content, topic)

        tree_id = new_id()
        root_id = new_id()
        root = DecisionNode(
            id=root_id,
            title=parsed.title,
            content=parsed.body,
            options=self._make_options(parsed.options),
            parent_id=None
        )
        now = utc_now()
        logger.info(f"Created decision tree {tree_id} for {owner_id} with {len(root.options)} options")
        return DecisionTree(
            id=tree_id,
            title=parsed.title,
            topic=topic,
            context=context,
            user_id=owner_id,
            current_node_id=root_id,
            nodes={root_id: root},
            created_at=now,
            updated_at=now
        )

    async def advance(self, tree: DecisionTree, option_id: str) -> DecisionTree:
        current = tree.current_node
        if current is None:
            raise InvalidStateError(f"Current node {tree.current_node_id} not found in tree {tree.id}")

        option = current.get_option(option_id)
        if option is None:
            raise InvalidOptionError(f"Option {option_id} is not offered by node {current.id}", option_id=option_id)

        existing = tree.find_child(current.id, option_id)
        if existing is not None:
            logger.debug(f"Revisiting explored branch {existing.id} in tree {tree.id}")
            return tree.model_copy(update={"current_node_id": existing.id, "updated_at": utc_now()})

        history = f"We're discussing a decision about: {tree.topic}\n"
        if tree.context:
            history += f"Context: {tree.context}\n\n"
        history += f"Previous point: {current.title}\n{current.content}\n\n"
        history += f"Selected option: {option.text}\n\n"
        hint = self._options_hint()
        system_prompt = (
            "You are an AI decision-making assistant. Continue the decision tree based on the user's selection. "
            f"Provide a title, detailed explanation, and {hint} options for the next step."
        )
        user_prompt = (
            history + "Based on this selection, what's the next step in making this decision? "
            f"Provide a title, explanation, and {hint} possible options."
        )

        content = await self.completion_client.complete(system_prompt, user_prompt, NODE_SAMPLING)
        parsed = parse_node(content, f'Next step for "{option.text}"')

        node = DecisionNode(
            id=new_id(),
            title=parsed.title,
            content=parsed.body,
            options=self._make_options(parsed.options),
            parent_id=current.id,
            parent_option=option_id
        )
        logger.info(f"Added node {node.id} under {current.id} in tree {tree.id}")
        return tree.model_copy(update={
            "current_node_id": node.id,
            "nodes": {**tree.nodes, node.id: node},
            "updated_at": utc_now()
        })

    def go_back(self, tree: DecisionTree) -> DecisionTree:
        current = tree.current_node
        if current is None or current.parent_id is None:
            return tree
        return tree.model_copy(update={"current_node_id": current.parent_id, "updated_at": utc_now()})

    def should_conclude(self, tree: DecisionTree, conclude_now: bool = False) -> bool:
        if conclude_now:
            return True
        if len(tree.nodes) >= self.policy.max_nodes:
            return True
        return len(tree.path_to_current()) >= self.policy.min_path_nodes

    def _describe_path(self, tree: DecisionTree) -> str:
        text = f"Decision topic: {tree.topic}\n"
        if tree.context:
            text += f"Initial context: {tree.context}\n\n"

        path = tree.path_to_current()
        for idx, node in enumerate(path):
            text += f"Step {idx + 1}: {node.title}\n{node.content}\n"
            if idx < len(path) - 1:
                selected = node.get_option(path[idx + 1].parent_option)
                if selected:
                    text += f"Selected: {selected.text}\n\n"
        return text

    async def finalize(self, tree: DecisionTree) -> FinalDecision:
        current = tree.current_node
        if current is None:
            raise InvalidStateError(f"Current node {tree.current_node_id} not found in tree {tree.id}")

        user_prompt = (
            f"{self._describe_path(tree)}\n\nBased on this decision process, please provide:\n"
            "RECOMMENDATION: a clear final decision recommendation (1-2 sentences)\n"
            "REFLECTION: a thoughtful reflection on this decision, including key factors considered "
            "and potential implications (3-5 sentences)"
        )
        content = await self.completion_client.complete(FINALIZE_SYSTEM_PROMPT, user_prompt, FINALIZE_SAMPLING)
        decision, reflection = parse_final_decision(content)

        final_node = current.model_copy(update={"is_final": True})
        updated = tree.model_copy(update={
            "nodes": {**tree.nodes, current.id: final_node},
            "updated_at": utc_now()
        })
        logger.info(f"Concluded tree {tree.id} at node {current.id}")
        return FinalDecision(decision=decision, reflection=reflection, updated_tree=updated)

    async def summarize(self, tree: DecisionTree) -> str:
        text = f"Decision topic: {tree.topic}"
        if tree.context:
            text += f"\nContext: {tree.context}"
        root = tree.root()
        current = tree.current_node
        if root:
            text += f"\nInitial consideration: {root.title}\n{root.content}"
        if current and (root is None or current.id != root.id):
            text += f"\nCurrent consideration: {current.title}\n{current.content}"

        try:
            summary = await self.completion_client.complete(
                SUMMARY_SYSTEM_PROMPT,
                f"Summarize this decision process in one short sentence with an emoji at the beginning:\n{text}",
                SUMMARY_SAMPLING
            )
        except Exception as e:
            logger.warning(f"Summary for tree {tree.id} failed, using title: {e}")
            return tree.title
        return summary.strip() or tree.title
