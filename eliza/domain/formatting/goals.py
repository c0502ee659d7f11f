from typing import List, Optional, Sequence, TYPE_CHECKING

from eliza.domain.models.agent_state import Goal

if TYPE_CHECKING:
    from eliza.domain.orchestration.core.agent_runtime import AgentRuntime


async def get_goals(
    runtime: "AgentRuntime",
    room_id: str,
    user_id: Optional[str] = None,
    only_in_progress: bool = True,
    count: int = 5,
) -> List[Goal]:
    return await runtime.database_adapter.get_goals(
        room_id=room_id,
        user_id=user_id,
        only_in_progress=only_in_progress,
        count=count,
    )


async def create_goal(runtime: "AgentRuntime", goal: Goal) -> None:
    await runtime.database_adapter.create_goal(goal)


async def update_goal(runtime: "AgentRuntime", goal: Goal) -> None:
    await runtime.database_adapter.update_goal(goal)


def format_goals_as_string(goals: Sequence[Goal]) -> str:
    """Goal blocks with a checkbox per objective"""
    blocks = []
    for goal in goals:
        lines = [f"Goal: {goal.name}", f"id: {goal.id}", "Objectives:"]
        for objective in goal.objectives:
            mark = "[x]" if objective.completed else "[ ]"
            progress = "(DONE)" if objective.completed else "(IN PROGRESS)"
            lines.append(f"- {mark} {objective.description} {progress}")
        blocks.append("\n".join(lines))
    return "\n".join(blocks)
