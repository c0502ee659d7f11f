import pytest

from eliza.domain.formatting.goals import create_goal, get_goals, update_goal
from eliza.domain.models.agent_state import Goal, GoalStatus, Objective
from tests.conftest import ROOM_ID, USER_ID


def _goal(name, **kwargs):
    return Goal(room_id=ROOM_ID, user_id=USER_ID, name=name, objectives=[Objective(description="ask")], **kwargs)


def test_is_finished():
    assert not _goal("a").is_finished()
    assert not _goal("a", status=GoalStatus.NOT_STARTED).is_finished()
    assert _goal("a", status=GoalStatus.DONE).is_finished()
    assert _goal("a", status=GoalStatus.FAILED).is_finished()


@pytest.mark.asyncio
async def test_goal_lifecycle(runtime):
    goal = _goal("learn the user's name")
    await create_goal(runtime, goal)
    await create_goal(runtime, _goal("someone else's", user_id="other-user"))

    (stored,) = await get_goals(runtime, ROOM_ID, user_id=USER_ID)
    assert stored.name == "learn the user's name"

    done = stored.model_copy(update={
        "status": GoalStatus.DONE,
        "objectives": [Objective(description="ask", completed=True)],
    })
    await update_goal(runtime, done)

    assert await get_goals(runtime, ROOM_ID, user_id=USER_ID) == []
    (finished,) = await get_goals(runtime, ROOM_ID, user_id=USER_ID, only_in_progress=False)
    assert finished.is_finished()
    assert finished.objectives[0].completed

    await runtime.database_adapter.remove_goal(goal.id)
    assert await get_goals(runtime, ROOM_ID, user_id=USER_ID, only_in_progress=False) == []
    assert len(await get_goals(runtime, ROOM_ID, only_in_progress=False)) == 1
