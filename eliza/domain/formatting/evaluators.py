from typing import Sequence
import random

from eliza.domain.action.base_action import Evaluator
from eliza.domain.formatting.actions import EXAMPLE_NAMES, render_example_conversation
from eliza.domain.formatting.sampling import sample


def format_evaluator_names(evaluators: Sequence[Evaluator]) -> str:
    return ",\n".join(f"'{evaluator.name}'" for evaluator in evaluators)


def format_evaluators(evaluators: Sequence[Evaluator]) -> str:
    return ",\n".join(f"'{evaluator.name}: {evaluator.description}'" for evaluator in evaluators)


def _fill_names(text: str, names: Sequence[str]) -> str:
    for index, name in enumerate(names):
        text = text.replace(f"{{{{user{index + 1}}}}}", name)
    return text


def format_evaluator_examples(evaluators: Sequence[Evaluator], rng: random.Random) -> str:
    blocks = []
    for evaluator in evaluators:
        for example in evaluator.examples:
            names = sample(EXAMPLE_NAMES, 5, rng)
            blocks.append(
                f"Context:\n{_fill_names(example.context, names)}\n\n"
                f"Messages:\n{render_example_conversation(example.messages, names)}\n\n"
                f"Outcome:\n{_fill_names(example.outcome, names)}"
            )
    return "\n\n".join(blocks)


def format_evaluator_example_descriptions(evaluators: Sequence[Evaluator]) -> str:
    return "\n\n".join(
        "\n".join(
            f"{evaluator.name} Example {index + 1}: {evaluator.description}"
            for index in range(len(evaluator.examples))
        )
        for evaluator in evaluators
    )
