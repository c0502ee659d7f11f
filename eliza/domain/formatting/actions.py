from typing import List, Sequence
import random

from eliza.domain.action.base_action import Action, ActionExample
from eliza.domain.formatting.sampling import sample, shuffled

EXAMPLE_NAMES = [
    "Alice", "Bob", "Charlie", "Dana", "Eve", "Frank", "Grace", "Heidi",
    "Ivan", "Judy", "Mallory", "Niaj", "Olivia", "Peggy", "Rupert",
    "Sybil", "Trent", "Victor", "Walter", "Zoe",
]


def format_action_names(actions: Sequence[Action], rng: random.Random) -> str:
    return ", ".join(action.name for action in shuffled(actions, rng))


def format_actions(actions: Sequence[Action], rng: random.Random) -> str:
    return ",\n".join(f"{action.name}: {action.description}" for action in shuffled(actions, rng))


def render_example_conversation(example: Sequence[ActionExample], names: Sequence[str]) -> str:
    """Render one sample conversation, filling ``{{userN}}`` placeholders"""
    lines = []
    for message in example:
        line = f"{message.user}: {message.content.text}"
        if message.content.action:
            line += f" ({message.content.action})"
        for index, name in enumerate(names):
            line = line.replace(f"{{{{user{index + 1}}}}}", name)
        lines.append(line)
    return "\n".join(lines)


def compose_action_examples(actions: Sequence[Action], count: int, rng: random.Random) -> str:
    """Up to ``count`` example conversations.

    Examples are drawn random-without-replacement, round-robin across
    actions, so each action is represented before any repeats.
    """
    pools: List[list] = [list(action.examples) for action in actions if action.examples]
    selected = []
    index = 0

    while len(selected) < count and pools:
        slot = index % len(pools)
        pool = pools[slot]
        selected.append(pool.pop(rng.randrange(len(pool))))
        if pool:
            index += 1
        else:
            pools.pop(slot)

    rendered = []
    for example in selected:
        names = sample(EXAMPLE_NAMES, 5, rng)
        rendered.append("\n" + render_example_conversation(example, names))
    return "\n".join(rendered)
