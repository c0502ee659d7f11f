from typing import Dict, List, Optional
import structlog

from eliza.domain.action.base_action import Action

logger = structlog.get_logger(__name__)


def normalize_action_name(name: str) -> str:
    """Lowercase and drop underscores so SEND_MESSAGE matches sendmessage"""
    return (name or "").lower().replace("_", "").strip()


class ActionRegistry:
    """Registry for actions with name and simile resolution.

    Resolution runs in two phases. The name phase tries an exact lookup on
    the normalized name, then a containment scan over names in either
    direction. The simile phase repeats both steps over similes. The first
    registered match wins in every step.
    """

    def __init__(self):
        self.actions: List[Action] = []
        self._by_name: Dict[str, Action] = {}
        self._by_simile: Dict[str, Action] = {}

    def register_action(self, action: Action) -> None:
        """Register a new action"""

        self.actions.append(action)
        self._by_name.setdefault(normalize_action_name(action.name), action)

        for simile in action.similes:
            key = normalize_action_name(simile)
            if key:
                self._by_simile.setdefault(key, action)

    def get_available_actions(self) -> List[Action]:
        """Get all registered actions in registration order"""

        return list(self.actions)

    def resolve(self, requested: str) -> Optional[Action]:
        """Find the action a response refers to, or None"""

        key = normalize_action_name(requested)
        if not key:
            return None

        action = self._by_name.get(key)
        if action:
            return action

        for candidate in self.actions:
            name = normalize_action_name(candidate.name)
            if name and (key in name or name in key):
                return candidate

        action = self._by_simile.get(key)
        if action:
            logger.debug("Resolved action by simile", requested=requested, action=action.name)
            return action

        for candidate in self.actions:
            for simile in candidate.similes:
                normalized = normalize_action_name(simile)
                if normalized and (key in normalized or normalized in key):
                    return candidate

        return None

    def __len__(self) -> int:
        return len(self.actions)
